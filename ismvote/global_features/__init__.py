"""Whole-object (global) features and their classification."""
from abc import abstractmethod
from collections import namedtuple

import numpy as np

from ismvote.constants import REFERENCE_FRAME_SIZE

GlobalFeature = namedtuple('GlobalFeature', ['reference_frame', 'descriptor', 'radius', 'class_id'])


def make_global_feature(descriptor, radius, class_id=0, reference_frame=None):
    if reference_frame is None:
        reference_frame = np.eye(3).flatten()
    reference_frame = np.asarray(reference_frame, dtype=np.float32).flatten()
    assert reference_frame.size == REFERENCE_FRAME_SIZE
    return GlobalFeature(reference_frame=reference_frame,
                         descriptor=np.asarray(descriptor, dtype=np.float32).flatten(),
                         radius=float(radius),
                         class_id=int(class_id))


class GlobalDescriptorIf:
    """Computes global descriptors for a segmented region of a scene."""
    def __init__(self, configs):
        self._configs = configs

    @abstractmethod
    def compute(self, points, normals):
        """Return an (N, D) array with one descriptor per row, N may be 0."""
