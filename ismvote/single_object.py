"""One maximum per class for scenes that are known to contain a single object."""
import numpy as np

from ismvote.constants import WINDOW_VOTING_SPACE, WINDOW_BANDWIDTH, WINDOW_MODEL_RADIUS
from ismvote.geometry import centroid, farthest_distance, gaussian_kernel, oriented_bounding_box
from ismvote.maxima import VotingMaximum, merge_maxima, reweight_maximum, last_hypotheses


def _search_dist(window, class_id, search_dist_for_class, model_radius):
    if window == WINDOW_BANDWIDTH:
        return search_dist_for_class(class_id)
    if window == WINDOW_MODEL_RADIUS:
        return model_radius
    raise ValueError('no fixed search distance for window {}'.format(window))


def compute_single_max_per_class(vote_store, points, window, search_dist_for_class):
    """
    Vote based: the scene centroid is the query point and each class gets one maximum there,
    weighted by the kernel density of its votes within the search window.
    """
    query = centroid(points)
    model_radius = farthest_distance(points, query)
    bounding_box = oriented_bounding_box(points)

    maxima = []
    for class_id in vote_store.class_ids():
        positions = vote_store.vote_positions(class_id)
        weights = vote_store.vote_weights(class_id)
        dist_sqr = np.sum((positions - query) ** 2, axis=1)

        if window == WINDOW_VOTING_SPACE:
            indices = np.arange(len(positions))
            search_dist = np.sqrt(dist_sqr.max()) if len(dist_sqr) else 0.0
        else:
            search_dist = _search_dist(window, class_id, search_dist_for_class, model_radius)
            indices = np.flatnonzero(dist_sqr <= search_dist * search_dist)

        density = float(np.sum(gaussian_kernel(dist_sqr[indices], search_dist) * weights[indices]))
        maxima.append(VotingMaximum(class_id=class_id,
                                    position=query.copy(),
                                    weight=density,
                                    vote_indices=indices.tolist(),
                                    bounding_box=bounding_box))
    return maxima


def merge_maxima_for_each_class(max_list, points, window, search_dist_for_class,
                                hypothesis_policy=last_hypotheses):
    """
    Maxima based: merge the maxima of each class that lie within the search window around the
    scene centroid, after discounting their weights by their distance to it. The complete
    voting space window merges all maxima of a class.
    """
    query = centroid(points)
    model_radius = farthest_distance(points, query)

    used = [False] * len(max_list)
    result_maxima = []
    for i, max_i in enumerate(max_list):
        if used[i]:
            continue
        class_id = max_i.class_id
        search_dist = None if window == WINDOW_VOTING_SPACE else \
            _search_dist(window, class_id, search_dist_for_class, model_radius)

        class_maxima = []
        for j in range(i, len(max_list)):
            max_j = max_list[j]
            if used[j] or max_j.class_id != class_id:
                continue
            if search_dist is None:
                class_maxima.append(max_j)
                used[j] = True
            elif np.linalg.norm(max_j.position - query) < search_dist:
                reweighted = max_j.copy()
                reweighted.weight = reweight_maximum(max_j, query, search_dist)
                class_maxima.append(reweighted)
                used[j] = True

        if class_maxima:
            result_maxima.append(merge_maxima(class_maxima, hypothesis_policy))
    return result_maxima
