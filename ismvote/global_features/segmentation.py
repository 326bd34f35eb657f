"""Crop scene regions around maxima."""
import logging

import numpy as np
from scipy.spatial import cKDTree

from ismvote.geometry import as_points


class RegionSegmenter:
    """Radius search on the scene points, returning the points and normals of a region."""
    def __init__(self, points, normals=None):
        self._logger = logging.getLogger(self.__class__.__name__)
        self._points = as_points(points)
        self._normals = None if normals is None else as_points(normals)
        self._tree = cKDTree(self._points) if len(self._points) else None

    def segment(self, center, radius):
        if self._tree is None or radius <= 0:
            self._logger.warning('Error during nearest neighbor search: empty scene or radius %s', radius)
            return np.empty((0, 3)), np.empty((0, 3))
        indices = sorted(self._tree.query_ball_point(np.asarray(center, dtype=np.float64), radius))
        if len(indices) == 0:
            self._logger.warning('Error during nearest neighbor search: no points within %.4f of %s',
                                 radius, np.round(center, 4).tolist())
            return np.empty((0, 3)), np.empty((0, 3))
        normals = self._normals[indices] if self._normals is not None else np.empty((0, 3))
        return self._points[indices], normals
