"""Nearest neighbor search over global descriptors."""
import numpy as np
from scipy.spatial import cKDTree

from ismvote.constants import EUCLIDEAN, CHI_SQUARED, HELLINGER, HIST_INTERSECTION


class FeatureIndex:
    """
    k nearest neighbor index for one of the supported histogram distances.
    Euclidean and Hellinger search a kd-tree, the other distances are brute force.
    """
    def __init__(self, data, distance_type=EUCLIDEAN):
        if distance_type not in (EUCLIDEAN, CHI_SQUARED, HELLINGER, HIST_INTERSECTION):
            raise ValueError('unknown distance type: {}'.format(distance_type))
        self.distance_type = distance_type
        self._data = np.asarray(data, dtype=np.float64)
        self._tree = None
        if len(self._data) and distance_type == EUCLIDEAN:
            self._tree = cKDTree(self._data)
        elif len(self._data) and distance_type == HELLINGER:
            self._tree = cKDTree(np.sqrt(np.clip(self._data, 0, None)))

    def __len__(self):
        return len(self._data)

    def knn_search(self, query, k):
        """Indices and distances of the k nearest neighbors of query, nearest first."""
        if len(self._data) == 0:
            raise LookupError('nearest neighbor search on an empty index')
        query = np.asarray(query, dtype=np.float64).flatten()
        k = max(1, min(k, len(self._data)))

        if self._tree is not None:
            if self.distance_type == HELLINGER:
                query = np.sqrt(np.clip(query, 0, None))
            distances, indices = self._tree.query(query, k=k)
            return np.atleast_1d(indices), np.atleast_1d(distances)

        if self.distance_type == CHI_SQUARED:
            diff_sqr = (self._data - query) ** 2
            total = self._data + query
            distances = np.sum(np.divide(diff_sqr, total, out=np.zeros_like(diff_sqr), where=total > 0), axis=1)
        else:
            # Intersection as a distance: mass of the query not covered by the neighbor
            distances = query.sum() - np.minimum(self._data, query).sum(axis=1)
        indices = np.argsort(distances, kind='stable')[:k]
        return indices, distances[indices]
