"""Votes for object centers and the store that collects them per class."""
from collections import namedtuple, defaultdict
import threading

import numpy as np
from pyquaternion import Quaternion

from ismvote.exceptions import VotesNotFoundError

BoundingBox = namedtuple('BoundingBox', ['position', 'size', 'rotation'])
Vote = namedtuple('Vote', ['position', 'weight', 'class_id', 'keypoint', 'bounding_box', 'codeword_id'])


def empty_bounding_box():
    return BoundingBox(np.zeros(3), np.zeros(3), Quaternion())


class VoteStore:
    """Per-class lists of votes. Appending is safe from concurrent workers."""
    def __init__(self):
        self._votes = defaultdict(list)
        self._lock = threading.Lock()

    def vote(self, position, weight, class_id, keypoint, bounding_box=None, codeword_id=-1):
        """Cast a vote for an object center of class_id."""
        new_vote = Vote(position=np.asarray(position, dtype=np.float64),
                        weight=float(weight),
                        class_id=int(class_id),
                        keypoint=np.asarray(keypoint, dtype=np.float64),
                        bounding_box=bounding_box if bounding_box is not None else empty_bounding_box(),
                        codeword_id=int(codeword_id))
        with self._lock:
            self._votes[new_vote.class_id].append(new_vote)
        return new_vote

    def get_votes(self, class_id=None):
        """All votes as {class_id: [Vote]}, or the votes of one class."""
        if class_id is None:
            return dict(self._votes)
        if class_id not in self._votes:
            raise VotesNotFoundError(class_id)
        return self._votes[class_id]

    def class_ids(self):
        return sorted(self._votes)

    def vote_positions(self, class_id):
        votes = self.get_votes(class_id)
        return np.array([vote.position for vote in votes]).reshape(len(votes), 3)

    def vote_weights(self, class_id):
        return np.array([vote.weight for vote in self.get_votes(class_id)], dtype=np.float64)

    def clear(self):
        with self._lock:
            self._votes.clear()

    def __len__(self):
        return sum(len(votes) for votes in self._votes.values())
