"""Influence of global hypotheses on the sorted list of maxima."""
from ismvote.constants import (INFLUENCE_BLIND_OVERRIDE, INFLUENCE_SCORED_OVERRIDE, INFLUENCE_TOP_CLASS_OVERRIDE,
                               INFLUENCE_FIXED_UPWEIGHT, INFLUENCE_SCORE_UPWEIGHT, INFLUENCE_T_CONORM)


def _global_class_among_top(maxima, rate_limit):
    """True if the top maximum's global class is among the maxima weighing at least rate_limit of the top."""
    top_weight = maxima[0].weight
    global_class = maxima[0].global_hypothesis[0]
    for maximum in maxima:
        if maximum.weight < top_weight * rate_limit:
            return False
        if maximum.class_id == global_class:
            return True
    return False

def _override_top_class(maxima):
    maxima[0].class_id = maxima[0].global_hypothesis[0]


def blind_override(maxima, configs):
    """Type 1: trust a good global score blindly."""
    if maxima[0].global_hypothesis[1] > configs.min_svm_score:
        _override_top_class(maxima)

def scored_override(maxima, configs):
    """Type 2: trust a good global score if the global class is among the top classes."""
    if maxima[0].global_hypothesis[1] > configs.min_svm_score and \
            _global_class_among_top(maxima, configs.rate_limit):
        _override_top_class(maxima)

def top_class_override(maxima, configs):
    """Type 3: take the global class if it is among the top classes."""
    if _global_class_among_top(maxima, configs.rate_limit):
        _override_top_class(maxima)

def fixed_upweight(maxima, configs):
    """Type 4: upweight maxima consistent with their global class by a fixed factor."""
    for maximum in maxima:
        if maximum.class_id == maximum.global_hypothesis[0]:
            maximum.weight *= configs.weight_factor

def score_upweight(maxima, configs):
    """Type 5: upweight maxima consistent with their global class by the global score."""
    for maximum in maxima:
        if maximum.class_id == maximum.global_hypothesis[0]:
            maximum.weight *= 1 + maximum.global_hypothesis[1]

def t_conorm(maxima, configs):
    """Type 6: probabilistic sum S(a, b) = a + b - ab of local weight and global score."""
    for maximum in maxima:
        local_weight = maximum.weight
        global_score = maximum.global_hypothesis[1]
        maximum.weight = local_weight + global_score - local_weight * global_score


INFLUENCE_POLICIES = {
    INFLUENCE_BLIND_OVERRIDE: blind_override,
    INFLUENCE_SCORED_OVERRIDE: scored_override,
    INFLUENCE_TOP_CLASS_OVERRIDE: top_class_override,
    INFLUENCE_FIXED_UPWEIGHT: fixed_upweight,
    INFLUENCE_SCORE_UPWEIGHT: score_upweight,
    INFLUENCE_T_CONORM: t_conorm,
}


def get_influence_policy(influence_type):
    if influence_type not in INFLUENCE_POLICIES:
        raise ValueError('unknown global feature influence type: {}'.format(influence_type))
    return INFLUENCE_POLICIES[influence_type]

def apply_global_influence(maxima, configs):
    """Apply the configured policy to maxima sorted by weight. configs is the global_features section."""
    if maxima:
        get_influence_policy(configs.influence_type)(maxima, configs)
    return maxima
