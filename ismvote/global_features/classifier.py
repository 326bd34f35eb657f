"""Classify global descriptors by nearest neighbor voting or with an SVM."""
from collections import Counter
import logging
import os
import pickle
import tarfile

import numpy as np

from ismvote.constants import KNN, SVM
from ismvote.global_features.svm import SvmModel


class GlobalClassifier:
    """
    Sets the global hypothesis (best class over all classes) and the current class hypothesis
    (score of the maximum's own class) of a maximum from the global descriptors of its region.

    If the SVM can not be loaded the classifier remembers the error and uses nearest neighbor
    voting for all later calls.
    """
    def __init__(self, configs, feature_store):
        self._configs = configs
        self._feature_store = feature_store
        self._strategy = configs.global_features.strategy
        self._k = configs.global_features.k
        self._svm = None
        self.svm_error = False
        self._logger = logging.getLogger(self.__class__.__name__)
        if self._strategy not in (KNN, SVM):
            raise ValueError('unknown global feature strategy: {}'.format(self._strategy))

    @property
    def strategy(self):
        return KNN if self.svm_error else self._strategy

    def load_svm(self, path):
        if not path:
            self._logger.error('SVM path is empty!')
            self.svm_error = True
            return
        if not os.path.isfile(path):
            self._logger.error('SVM file not valid or missing: %s', path)
            self.svm_error = True
            return
        try:
            self._svm = SvmModel(path)
        except (OSError, ValueError, KeyError, EOFError, tarfile.TarError, pickle.UnpicklingError) as error:
            self._logger.error('Failed to load SVM from %s: %s', path, error)
            self.svm_error = True

    def classify(self, features, maximum, single_object_mode=False):
        """Classify features, an (N, D) array, and store the result in maximum."""
        features = np.asarray(features, dtype=np.float64)
        features = np.atleast_2d(features) if features.size else np.empty((0, 0))
        if self._strategy == SVM and self._svm is None and not self.svm_error:
            self._logger.error('No SVM loaded, falling back to nearest neighbor voting')
            self.svm_error = True

        if self.strategy == KNN:
            self._classify_knn(features, maximum)
        else:
            self._classify_svm(features, maximum, single_object_mode)
        return maximum

    def _classify_knn(self, features, maximum):
        occurrences = Counter()
        all_entries = 0
        for descriptor in features:
            try:
                indices, _ = self._feature_store.index.knn_search(descriptor, self._k)
            except LookupError as error:
                self._logger.warning('Nearest neighbor search failed: %s', error)
                break
            # Fewer than k neighbors may have been found
            all_entries += len(indices)
            occurrences.update(self._feature_store.class_ids[indices].tolist())

        current_score = occurrences[maximum.class_id] / all_entries if all_entries > 0 else 0.0
        best_overall = (0, 0.0)
        for class_id, count in sorted(occurrences.items()):
            score = count / all_entries
            if score > best_overall[1]:
                best_overall = (class_id, score)
        maximum.global_hypothesis = best_overall
        maximum.current_class_hypothesis = (maximum.class_id, current_score)

    def _classify_svm(self, features, maximum, single_object_mode):
        responses = [self._svm.predict(descriptor) for descriptor in features]
        if len(responses) == 0:
            maximum.global_hypothesis = (0, 0.0)
            maximum.current_class_hypothesis = (maximum.class_id, 0.0)
            return

        response = responses[0]
        if len(responses) > 1:
            occurrences = Counter(resp.label for resp in responses)
            best_count = max(occurrences.values())
            best_class = min(label for label, count in occurrences.items() if count == best_count)
            # Sample with the highest score among those voting for the best class
            response = max((resp for resp in responses if resp.label == best_class),
                           key=lambda resp: resp.score)

        current_score = 0.0 if single_object_mode else response.all_scores.get(maximum.class_id, 0.0)
        maximum.global_hypothesis = (response.label, response.score)
        maximum.current_class_hypothesis = (maximum.class_id, current_score)

    def close(self):
        if self._svm is not None:
            self._svm.close()
