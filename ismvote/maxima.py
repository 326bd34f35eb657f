"""Voting maxima: merging, reweighting, filtering and normalization."""

import numpy as np

from ismvote.constants import HYPOTHESIS_LAST, HYPOTHESIS_STRONGEST
from ismvote.geometry import gaussian_kernel, quat_weighted_average
from ismvote.votes import BoundingBox, empty_bounding_box


class VotingMaximum:
    """A mode of the vote distribution of one class, i.e. an object hypothesis."""
    def __init__(self, class_id=0, position=None, weight=0.0, vote_indices=None, bounding_box=None,
                 global_hypothesis=(0, 0.0), current_class_hypothesis=(0, 0.0)):
        self.class_id = class_id
        self.position = np.zeros(3) if position is None else np.asarray(position, dtype=np.float64)
        self.weight = weight
        self.vote_indices = [] if vote_indices is None else list(vote_indices)
        self.bounding_box = empty_bounding_box() if bounding_box is None else bounding_box
        self.global_hypothesis = tuple(global_hypothesis)
        self.current_class_hypothesis = tuple(current_class_hypothesis)

    def copy(self):
        return VotingMaximum(self.class_id, self.position.copy(), self.weight, self.vote_indices,
                             self.bounding_box, self.global_hypothesis, self.current_class_hypothesis)

    def __repr__(self):
        return ('VotingMaximum(class_id={}, weight={:.4f}, position={}, num_votes={}, global={})'
                .format(self.class_id, self.weight, np.round(self.position, 4).tolist(),
                        len(self.vote_indices), self.global_hypothesis))


## Hypothesis merge policies ##
# A policy maps the merged maxima (in merge order) to (global_hypothesis, current_class_hypothesis).

def last_hypotheses(max_list):
    """Hypotheses of the last merged maximum. An approximation, not an average."""
    return max_list[-1].global_hypothesis, max_list[-1].current_class_hypothesis

def strongest_hypotheses(max_list):
    """Hypotheses of the heaviest merged maximum."""
    strongest = max(max_list, key=lambda maximum: maximum.weight)
    return strongest.global_hypothesis, strongest.current_class_hypothesis

HYPOTHESIS_POLICIES = {
    HYPOTHESIS_LAST: last_hypotheses,
    HYPOTHESIS_STRONGEST: strongest_hypotheses,
}

def get_hypothesis_policy(policy):
    """Policy from its configured name; callables are passed through."""
    if callable(policy):
        return policy
    if policy not in HYPOTHESIS_POLICIES:
        raise ValueError('unknown hypothesis merge policy: {}'.format(policy))
    return HYPOTHESIS_POLICIES[policy]


## Merging ##

def _running_average(value, weight, other_value, other_weight):
    total = weight + other_weight
    if total <= 0:
        return np.asarray(other_value, dtype=np.float64)
    return (value * weight + np.asarray(other_value) * other_weight) / total

def merge_maxima(max_list, hypothesis_policy=last_hypotheses):
    """
    Fold max_list into one maximum.
    Position and box size are running weighted averages, rotations are averaged pairwise,
    the weight is the sum of weights and the vote indices are concatenated.
    """
    result = VotingMaximum()
    rotation = result.bounding_box.rotation
    size = np.zeros(3)
    for maximum in max_list:
        # Position and box must be updated before the weight
        result.position = _running_average(result.position, result.weight,
                                           maximum.position, maximum.weight)
        size = _running_average(size, result.weight, maximum.bounding_box.size, maximum.weight)
        if result.weight + maximum.weight > 0:
            rotation = quat_weighted_average([rotation, maximum.bounding_box.rotation],
                                             [result.weight, maximum.weight])
        else:
            rotation = maximum.bounding_box.rotation
        result.class_id = maximum.class_id
        result.weight += maximum.weight
        result.vote_indices += maximum.vote_indices
    result.bounding_box = BoundingBox(result.position.copy(), size, rotation)
    if max_list:
        result.global_hypothesis, result.current_class_hypothesis = hypothesis_policy(max_list)
    return result


def reweight_maximum(maximum, query, search_dist):
    """Weight of maximum discounted by a Gaussian kernel on its distance to query."""
    dist_sqr = np.sum((maximum.position - query) ** 2)
    return float(gaussian_kernel(dist_sqr, search_dist)) * maximum.weight


## Ordering ##

def sort_maxima(maxima):
    """Sort by weight, descending. Equal weights keep their order."""
    return sorted(maxima, key=lambda maximum: -maximum.weight)

def normalize_weights(maxima):
    """Turn weights into probabilities. A zero sum leaves the weights untouched."""
    total = sum(maximum.weight for maximum in maxima)
    if total <= 0:
        return maxima
    for maximum in maxima:
        maximum.weight /= total
    return maxima


## Filtering ##

def filter_maxima(maxima, search_dist_for_class, merge=False, hypothesis_policy=last_hypotheses):
    """
    Remove maxima close to another maximum.

    Each not yet consumed maximum collects the unconsumed maxima after it that lie within its
    class search distance and whose own search distance is not larger. Of that group only the
    heaviest maximum survives. The reference maximum joins its group last, so on equal weights
    the first close maximum wins. With merge, maxima of the same class within the group are
    merged before the survivor is picked, groups ordered by class id.
    """
    consumed = [False] * len(maxima)
    filtered = []
    for i, reference in enumerate(maxima):
        if consumed[i]:
            continue
        search_dist = search_dist_for_class(reference.class_id)

        close_maxima = []
        for j in range(i + 1, len(maxima)):
            if consumed[j]:
                continue
            other = maxima[j]
            dist = np.linalg.norm(other.position - reference.position)
            # Only subsume maxima of classes with a smaller or equal search distance
            if dist < search_dist and search_dist_for_class(other.class_id) <= search_dist:
                close_maxima.append(other)
                consumed[j] = True

        if not close_maxima:
            filtered.append(reference)
            continue
        close_maxima.append(reference)

        if merge:
            same_class = {}
            for maximum in close_maxima:
                same_class.setdefault(maximum.class_id, []).append(maximum)
            close_maxima = [same_class[class_id][0] if len(same_class[class_id]) == 1
                            else merge_maxima(same_class[class_id], hypothesis_policy)
                            for class_id in sorted(same_class)]

        filtered.append(max(close_maxima, key=lambda maximum: maximum.weight))
    return filtered

def merge_and_filter_maxima(maxima, search_dist_for_class, hypothesis_policy=last_hypotheses):
    return filter_maxima(maxima, search_dist_for_class, merge=True, hypothesis_policy=hypothesis_policy)
