"""Shared pytest fixtures."""
import numpy as np
import pytest

from ismvote.clustering import ClusteringIf, empty_clusters
from ismvote.global_features import GlobalDescriptorIf, make_global_feature
from ismvote.utils import get_configs
from ismvote.voting import Voting


class FixedDescriptor(GlobalDescriptorIf):
    """Returns the same descriptors for every region."""
    def __init__(self, configs, descriptors):
        super(FixedDescriptor, self).__init__(configs)
        self.descriptors = np.asarray(descriptors, dtype=np.float64)

    def compute(self, points, normals):
        return self.descriptors


class VoteClustering(ClusteringIf):
    """Every vote is its own cluster, centered on the vote."""
    def __init__(self, configs):
        super(VoteClustering, self).__init__(configs, 'mean_shift')

    def find_modes(self, votes, radius):
        clusters = empty_clusters()
        for index, vote in enumerate(votes):
            clusters.centers.append(vote.position)
            clusters.weights.append(vote.weight)
            clusters.members.append([index])
            clusters.reweighted.append([vote.weight])
        return clusters


@pytest.fixture
def configs():
    return get_configs()


@pytest.fixture
def make_voting(configs):
    """Voting with overridden voting (and optionally global_features) settings."""
    created = []

    def _make(global_features=None, descriptor=None, clustering=None, **voting_settings):
        for key, value in voting_settings.items():
            configs['voting'][key] = value
        for key, value in (global_features or {}).items():
            configs['global_features'][key] = value
        voting = Voting(configs, clustering=clustering, descriptor=descriptor)
        created.append(voting)
        return voting

    yield _make
    for voting in created:
        voting.close()


@pytest.fixture
def two_class_votes():
    """Five votes of class 0 at the origin, three of class 1 at (10, 10, 10)."""
    def _cast(voting):
        for _ in range(5):
            voting.vote([0.0, 0.0, 0.0], 1.0, 0, [0.0, 0.0, 0.0])
        for _ in range(3):
            voting.vote([10.0, 10.0, 10.0], 1.0, 1, [10.0, 10.0, 10.0])
        return voting
    return _cast


@pytest.fixture
def training_features():
    """Class 0 descriptors point along the second axis, class 1 descriptors along the first."""
    return {
        0: [[make_global_feature([0.0, 1.0], 1.0, 0), make_global_feature([0.1, 0.9], 1.0, 0)]],
        1: [[make_global_feature([1.0, 0.0], 2.0, 1)], [make_global_feature([0.9, 0.1], 2.0, 1)]],
    }


@pytest.fixture
def fixed_descriptor(configs):
    def _make(descriptors):
        return FixedDescriptor(configs, descriptors)
    return _make


@pytest.fixture
def vote_clustering(configs):
    return VoteClustering(configs)
