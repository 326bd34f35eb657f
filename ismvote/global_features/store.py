"""Training global features, flattened over all classes."""
import logging
import threading

import numpy as np

from ismvote.global_features.index import FeatureIndex


class GlobalFeatureStore:
    """
    Keeps the flattened cloud of training descriptors with their class ids and the average
    descriptor radius per class. The nearest neighbor index is built on first use.
    """
    def __init__(self, class_clouds, distance_type):
        self._logger = logging.getLogger(self.__class__.__name__)
        self._distance_type = distance_type
        self._index = None
        self._index_lock = threading.Lock()

        descriptors = []
        class_ids = []
        self.average_radii = {}
        for class_id, clouds in class_clouds.items():
            radii = [feature.radius for cloud in clouds for feature in cloud]
            if radii:
                self.average_radii[class_id] = float(np.mean(radii))
            for cloud in clouds:
                for feature in cloud:
                    descriptors.append(feature.descriptor)
                    class_ids.append(class_id)
        self.descriptors = np.array(descriptors, dtype=np.float32)
        self.class_ids = np.array(class_ids, dtype=np.int64)

    def __len__(self):
        return len(self.class_ids)

    def average_radius(self, class_id):
        return self.average_radii.get(class_id, 0.0)

    @property
    def index(self):
        with self._index_lock:
            if self._index is None:
                self._logger.info('Creating %s index for %d global features', self._distance_type, len(self))
                self._index = FeatureIndex(self.descriptors, self._distance_type)
        return self._index
