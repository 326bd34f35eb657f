"""Per-class mode finding on the votes of one class."""
from abc import abstractmethod
from collections import namedtuple

Clusters = namedtuple('Clusters', ['centers', 'weights', 'members', 'reweighted'])


def empty_clusters():
    return Clusters([], [], [], [])


class ClusteringIf:
    """
    Clustering strategy interface.

    find_modes(votes, radius) returns Clusters with one entry per discovered cluster:
    centers      - list of (3,) arrays
    weights      - list of floats
    members      - list of lists of indices into votes
    reweighted   - list of lists of kernel discounted weights, aligned with members
    """
    def __init__(self, configs, clustering_configs):
        self._configs = configs
        self._clustering_configs = getattr(configs.clustering, clustering_configs)

    @abstractmethod
    def find_modes(self, votes, radius):
        """Find the modes of the vote distribution of one class."""
