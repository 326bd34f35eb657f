"""Global descriptor: normalized histogram of point distances to the region centroid."""
import numpy as np

from ismvote.geometry import as_points, centroid, farthest_distance
from ismvote.global_features import GlobalDescriptorIf


class Descriptor(GlobalDescriptorIf):
    def __init__(self, configs):
        super(Descriptor, self).__init__(configs)
        self._n_bins = configs.global_features.n_bins

    def compute(self, points, normals):
        points = as_points(points)
        if len(points) == 0:
            return np.empty((0, self._n_bins), dtype=np.float32)
        center = centroid(points)
        radius = farthest_distance(points, center)
        distances = np.linalg.norm(points - center, axis=1)
        hist, _ = np.histogram(distances, bins=self._n_bins, range=(0, radius if radius > 0 else 1.0))
        return (hist / len(points)).astype(np.float32)[np.newaxis, :]

    def radius(self, points):
        points = as_points(points)
        return farthest_distance(points, centroid(points))
