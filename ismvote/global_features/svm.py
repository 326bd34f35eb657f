"""Support vector machines for global descriptors, stored with joblib."""
from collections import namedtuple
import logging
import os
import re
import shutil
import tarfile
import tempfile

import joblib
import numpy as np

SvmResponse = namedtuple('SvmResponse', ['label', 'score', 'all_scores'])


def is_archive(path):
    return path.endswith(('.tar', '.tar.gz', '.tgz'))


def _class_id_from_name(name):
    match = re.search(r'(\d+)\D*$', os.path.basename(name))
    if match is None:
        raise ValueError('no class id in one-vs-all classifier name: {}'.format(name))
    return int(match.group(1))


def _positive_scores(estimator, data):
    """Score of the positive class for a binary estimator."""
    if hasattr(estimator, 'predict_proba'):
        classes = list(estimator.classes_)
        return estimator.predict_proba(data)[:, classes.index(1) if 1 in classes else -1]
    return np.ravel(estimator.decision_function(data))


def _class_scores(estimator, data):
    """Per-class scores for a multi-class estimator, columns ordered as estimator.classes_."""
    if hasattr(estimator, 'predict_proba'):
        return estimator.predict_proba(data)
    scores = estimator.decision_function(data)
    if scores.ndim == 1:
        scores = np.stack([-scores, scores], axis=1)
    return scores


class SvmModel:
    """
    Either one multi-class estimator (a joblib file) or a tar archive of one-vs-all binary
    estimators, one per class, each named with its class id (e.g. svm_class_3.pkl).
    Archives are extracted to a temporary directory that is removed by close().
    """
    def __init__(self, path):
        self._logger = logging.getLogger(self.__class__.__name__)
        self._tmp_dir = None
        self.files = []
        self._estimators = {}
        if is_archive(path):
            self._load_archive(path)
        else:
            self.files = [os.path.abspath(path)]
            self._estimator = joblib.load(path)

    def _load_archive(self, path):
        self._tmp_dir = tempfile.mkdtemp(prefix='ismvote_svm_')
        with tarfile.open(path) as archive:
            members = [member for member in archive.getmembers() if member.isfile()]
            archive.extractall(self._tmp_dir, members=members, filter='data')
        for member in members:
            file_path = os.path.join(self._tmp_dir, member.name)
            self.files.append(file_path)
            self._estimators[_class_id_from_name(member.name)] = joblib.load(file_path)
        self._logger.info('Loaded %d one-vs-all classifiers from %s', len(self._estimators), path)

    @property
    def one_vs_all(self):
        return len(self._estimators) > 0

    def predict(self, descriptor):
        """Label with the highest score, its score and the scores of all classes."""
        data = np.asarray(descriptor, dtype=np.float64).reshape(1, -1)
        if self.one_vs_all:
            all_scores = {class_id: float(_positive_scores(estimator, data)[0])
                          for class_id, estimator in sorted(self._estimators.items())}
        else:
            scores = _class_scores(self._estimator, data)[0]
            all_scores = {int(class_id): float(score)
                          for class_id, score in zip(self._estimator.classes_, scores)}
        label = max(all_scores, key=all_scores.get)
        return SvmResponse(label, all_scores[label], all_scores)

    def close(self):
        if self._tmp_dir is not None:
            shutil.rmtree(self._tmp_dir, ignore_errors=True)
            self._tmp_dir = None
