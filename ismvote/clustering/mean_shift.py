"""Mean-shift mode seeking with a Gaussian kernel."""
import logging

import numpy as np
from scipy.spatial import cKDTree

from ismvote.clustering import ClusteringIf, Clusters, empty_clusters
from ismvote.geometry import gaussian_kernel


class Clustering(ClusteringIf):
    def __init__(self, configs):
        super(Clustering, self).__init__(configs, 'mean_shift')
        self._logger = logging.getLogger(self.__class__.__name__)

    def find_modes(self, votes, radius):
        if len(votes) == 0:
            return empty_clusters()
        assert radius > 0, 'mean shift requires a positive bandwidth'
        positions = np.array([vote.position for vote in votes]).reshape(len(votes), 3)
        weights = np.array([vote.weight for vote in votes], dtype=np.float64)
        tree = cKDTree(positions)

        modes = []
        for seed in self._seeds(positions, radius):
            mode = self._shift(seed, positions, weights, tree, radius)
            if mode is not None:
                modes.append(mode)
        centers = self._merge_modes(modes, radius)
        return self._assign(centers, positions, weights, radius)

    def _seeds(self, positions, radius):
        """One seed per occupied bin, at the mean of the votes inside it."""
        bin_size = radius * self._clustering_configs.seed_bin_ratio
        bins = np.floor(positions / bin_size).astype(np.int64)
        _, inverse = np.unique(bins, axis=0, return_inverse=True)
        inverse = inverse.reshape(-1)
        return [positions[inverse == bin_index].mean(axis=0) for bin_index in range(inverse.max() + 1)]

    def _shift(self, center, positions, weights, tree, radius):
        density = 0.0
        for _ in range(self._clustering_configs.max_iter):
            neighbors = tree.query_ball_point(center, radius)
            if len(neighbors) == 0:
                return None
            dist_sqr = np.sum((positions[neighbors] - center) ** 2, axis=1)
            kernel_weights = gaussian_kernel(dist_sqr, radius) * weights[neighbors]
            density = kernel_weights.sum()
            if density <= 0:
                return None
            new_center = kernel_weights @ positions[neighbors] / density
            shift = np.linalg.norm(new_center - center)
            center = new_center
            if shift < self._clustering_configs.tolerance * radius:
                break
        return center, density

    def _merge_modes(self, modes, radius):
        """Suppress modes that converged next to a denser one."""
        merge_dist = radius * self._clustering_configs.merge_radius_ratio
        centers = []
        for center, _ in sorted(modes, key=lambda mode: -mode[1]):
            if all(np.linalg.norm(center - kept) >= merge_dist for kept in centers):
                centers.append(center)
        return centers

    def _assign(self, centers, positions, weights, radius):
        """Each vote supports the nearest mode within the bandwidth."""
        if len(centers) == 0:
            return empty_clusters()
        center_tree = cKDTree(np.array(centers))
        dists, owners = center_tree.query(positions, distance_upper_bound=radius)

        clusters = empty_clusters()
        for center_index, center in enumerate(centers):
            members = np.flatnonzero((owners == center_index) & np.isfinite(dists))
            if len(members) == 0:
                continue
            reweighted = gaussian_kernel(dists[members] ** 2, radius) * weights[members]
            clusters.centers.append(center)
            clusters.weights.append(float(reweighted.sum()))
            clusters.members.append(members.tolist())
            clusters.reweighted.append(reweighted.tolist())
        self._logger.debug('%d modes found for %d votes', len(clusters.centers), len(positions))
        return clusters
