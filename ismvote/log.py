"""Logger."""

import logging


def detection_record(index, maximum):
    """
    Fields of one detected maximum in log order: index, class id, weight, number of votes,
    position x y z, box size x y z, box rotation w x y z.
    """
    rotation = maximum.bounding_box.rotation
    return ((index, maximum.class_id, maximum.weight, len(maximum.vote_indices))
            + tuple(float(value) for value in maximum.position)
            + tuple(float(value) for value in maximum.bounding_box.size)
            + (rotation.w, rotation.x, rotation.y, rotation.z))


class Logger():
    """Logger."""

    def __init__(self, name):
        """Constructor."""
        self._logger = logging.getLogger(name)

    def log_maxima(self, maxima):
        """Log the returned maxima, best first."""
        for index, maximum in enumerate(maxima):
            self._logger.info('maximum %d, class: %s, weight: %.5f, glob: (%s, %.4f), this: (%s, %.4f), num votes: %d',
                              index, maximum.class_id, maximum.weight,
                              maximum.global_hypothesis[0], maximum.global_hypothesis[1],
                              maximum.current_class_hypothesis[0], maximum.current_class_hypothesis[1],
                              len(maximum.vote_indices))

    def log_records(self, maxima):
        """Log the detection records of maxima."""
        for index, maximum in enumerate(maxima):
            self._logger.debug(', '.join('{}'.format(field) for field in detection_record(index, maximum)))
