"""Geometry helpers: centroids, bounding boxes and rotation averaging."""
import numpy as np
from pyquaternion import Quaternion

from ismvote.votes import BoundingBox


def as_points(points):
    """(N, 3) float array from points, or the xyz columns of a wider array."""
    points = np.asarray(points, dtype=np.float64)
    if points.size == 0:
        return np.empty((0, 3))
    return points.reshape(len(points), -1)[:, :3]

def centroid(points):
    points = as_points(points)
    if len(points) == 0:
        return np.zeros(3)
    return points.mean(axis=0)

def farthest_distance(points, query):
    """Distance of the point farthest from query."""
    points = as_points(points)
    if len(points) == 0:
        return 0.0
    return float(np.linalg.norm(points - query, axis=1).max())


def gaussian_kernel(dist_sqr, radius):
    """exp(-0.5 * u) with u the squared distance normalized by the squared radius."""
    if radius <= 0:
        return np.where(np.asarray(dist_sqr) > 0, 0.0, 1.0)
    return np.exp(-0.5 * np.asarray(dist_sqr) / (radius * radius))


def oriented_bounding_box(points):
    """
    Bounding box aligned with the principal axes of points.
    The box is not guaranteed to have minimum volume, but matches it for boxes with distinct extents.
    """
    points = as_points(points)
    if len(points) == 0:
        return BoundingBox(np.zeros(3), np.zeros(3), Quaternion())
    mean = points.mean(axis=0)
    centered = points - mean
    covariance = centered.T @ centered / len(points)
    _, eigenvectors = np.linalg.eigh(covariance)
    axes = eigenvectors[:, ::-1]  # Largest spread first
    if np.linalg.det(axes) < 0:
        axes[:, 2] = -axes[:, 2]
    local = centered @ axes
    min_bounds = local.min(axis=0)
    max_bounds = local.max(axis=0)
    position = mean + axes @ (0.5 * (min_bounds + max_bounds))
    return BoundingBox(position, max_bounds - min_bounds, Quaternion(matrix=axes))


def quat_weighted_average(quaternions, weights):
    """
    Weighted average of rotations.

    Quaternions are flipped onto the hemisphere of the heaviest one before the average is taken
    as the dominant eigenvector of the weighted outer product matrix sum(w * q q^T).
    """
    quaternions = [Quaternion(q) for q in quaternions]
    if len(quaternions) == 0:
        return Quaternion()
    weights = np.asarray(weights, dtype=np.float64)
    if weights.sum() <= 0:
        weights = np.ones(len(quaternions))

    elements = np.array([q.normalised.elements for q in quaternions])
    reference = elements[np.argmax(weights)]
    signs = np.where(elements @ reference < 0, -1.0, 1.0)
    elements = elements * signs[:, np.newaxis]

    accumulator = (elements * weights[:, np.newaxis]).T @ elements
    _, eigenvectors = np.linalg.eigh(accumulator)
    average = eigenvectors[:, -1]
    if average @ reference < 0:
        average = -average
    return Quaternion(average).normalised
