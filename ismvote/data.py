"""Load votes and scenes from disk."""
from collections import namedtuple

import numpy as np
from pyquaternion import Quaternion

from ismvote.votes import BoundingBox

Scene = namedtuple('Scene', ['points', 'normals'])

# Arrays of a votes file, one row per vote
POSITIONS = 'positions'
WEIGHTS = 'weights'
CLASS_IDS = 'class_ids'
KEYPOINTS = 'keypoints'
BOX_POSITIONS = 'box_positions'
BOX_SIZES = 'box_sizes'
BOX_ROTATIONS = 'box_rotations'
CODEWORD_IDS = 'codeword_ids'


def load_scene(path):
    """Scene points from a .npy array with 3 (xyz) or 6 (xyz and normal) columns."""
    data = np.load(path)
    if data.ndim != 2 or data.shape[1] not in (3, 6):
        raise ValueError('scene {} must have 3 or 6 columns, got shape {}'.format(path, data.shape))
    points = np.ascontiguousarray(data[:, :3], dtype=np.float64)
    normals = np.ascontiguousarray(data[:, 3:], dtype=np.float64) if data.shape[1] == 6 else None
    return Scene(points, normals)


def cast_votes(voting, path):
    """Cast all votes stored in a .npz file. Returns the number of votes."""
    with np.load(path) as data:
        positions = data[POSITIONS]
        n_votes = len(positions)
        weights = data[WEIGHTS]
        class_ids = data[CLASS_IDS]
        keypoints = data[KEYPOINTS] if KEYPOINTS in data else np.zeros((n_votes, 3))
        box_positions = data[BOX_POSITIONS] if BOX_POSITIONS in data else positions
        box_sizes = data[BOX_SIZES] if BOX_SIZES in data else np.zeros((n_votes, 3))
        box_rotations = data[BOX_ROTATIONS] if BOX_ROTATIONS in data else np.tile([1.0, 0.0, 0.0, 0.0], (n_votes, 1))
        codeword_ids = data[CODEWORD_IDS] if CODEWORD_IDS in data else np.full(n_votes, -1)

    for index in range(n_votes):
        bounding_box = BoundingBox(box_positions[index], box_sizes[index], Quaternion(*box_rotations[index]))
        voting.vote(positions[index], float(weights[index]), int(class_ids[index]), keypoints[index],
                    bounding_box, int(codeword_ids[index]))
    return n_votes
