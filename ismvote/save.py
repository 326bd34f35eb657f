"""Save detection results to disk."""
import logging
import os

from ismvote.constants import LOG_COLUMNS
from ismvote.log import detection_record


class ResultSaver:
    """Writes one detection log file per scene."""
    def __init__(self, configs):
        self._configs = configs
        self._output_dir = configs.logging.output_dir
        self._logger = logging.getLogger(self.__class__.__name__)

    def save(self, scene_name, maxima, model_file='', ground_truth=None):
        if not self._configs.logging.save_detection_log:
            return None
        os.makedirs(self._output_dir, exist_ok=True)
        file_name = os.path.splitext(os.path.basename(scene_name))[0] + '.txt'
        path = os.path.join(self._output_dir, file_name)

        lines_to_write = ['ISM3D detection log, filename: {}, point cloud: {}, ground truth class ID: {}\n'
                          .format(model_file, scene_name, -1 if ground_truth is None else ground_truth),
                          ', '.join(LOG_COLUMNS) + '\n']
        for index, maximum in enumerate(maxima):
            lines_to_write.append(', '.join('{}'.format(field) for field in detection_record(index, maximum)) + '\n')
        with open(path, 'w') as file:
            file.writelines(lines_to_write)
        self._logger.info('Detection log written to %s', path)
        return path
