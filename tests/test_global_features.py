import os
import tarfile

import joblib
import numpy as np
import pytest
from sklearn.svm import SVC

from ismvote.global_features.classifier import GlobalClassifier
from ismvote.global_features.distance_histogram import Descriptor
from ismvote.global_features.index import FeatureIndex
from ismvote.global_features.segmentation import RegionSegmenter
from ismvote.global_features.store import GlobalFeatureStore
from ismvote.global_features.svm import SvmModel
from ismvote.maxima import VotingMaximum

HISTOGRAMS = np.array([[0.5, 0.5, 0.0],
                       [0.0, 0.5, 0.5],
                       [1.0, 0.0, 0.0]])


@pytest.mark.parametrize('distance_type', ['Euclidean', 'ChiSquared', 'Hellinger', 'HistIntersection'])
def test_index_finds_identical_histogram_first(distance_type):
    index = FeatureIndex(HISTOGRAMS, distance_type)
    indices, distances = index.knn_search([0.0, 0.5, 0.5], 2)
    assert indices[0] == 1
    assert distances[0] == pytest.approx(0.0)
    assert len(indices) == 2


def test_index_clamps_k_and_rejects_empty_data():
    indices, _ = FeatureIndex(HISTOGRAMS).knn_search([1.0, 0.0, 0.0], 10)
    assert len(indices) == 3
    with pytest.raises(LookupError):
        FeatureIndex(np.empty((0, 3))).knn_search([1.0, 0.0, 0.0], 1)
    with pytest.raises(ValueError):
        FeatureIndex(HISTOGRAMS, 'Manhattan')


def test_store_flattens_features(training_features):
    store = GlobalFeatureStore(training_features, 'Euclidean')
    assert len(store) == 4
    assert sorted(store.class_ids.tolist()) == [0, 0, 1, 1]
    assert store.average_radius(1) == pytest.approx(2.0)
    assert store.average_radius(9) == 0.0
    assert len(store.index) == 4


def test_knn_classifier_fractions(configs, training_features):
    configs['global_features']['k'] = 2
    classifier = GlobalClassifier(configs, GlobalFeatureStore(training_features, 'Euclidean'))
    maximum = classifier.classify([[1.0, 0.0], [0.95, 0.05], [0.0, 1.0]], VotingMaximum(class_id=0))
    # 6 neighbors in total, 4 of class 1
    assert maximum.global_hypothesis[0] == 1
    assert maximum.global_hypothesis[1] == pytest.approx(4 / 6)
    assert maximum.current_class_hypothesis == (0, pytest.approx(2 / 6))


def test_knn_tie_goes_to_smallest_class(configs, training_features):
    configs['global_features']['k'] = 4
    classifier = GlobalClassifier(configs, GlobalFeatureStore(training_features, 'Euclidean'))
    maximum = classifier.classify([[0.5, 0.5]], VotingMaximum(class_id=1))
    assert maximum.global_hypothesis == (0, 0.5)


def test_knn_without_features(configs, training_features):
    classifier = GlobalClassifier(configs, GlobalFeatureStore(training_features, 'Euclidean'))
    maximum = classifier.classify(np.empty((0, 2)), VotingMaximum(class_id=1))
    assert maximum.global_hypothesis == (0, 0.0)
    assert maximum.current_class_hypothesis == (1, 0.0)


def train_svm(labels_first, labels_second):
    """Linear SVM separating descriptors along the first axis from those along the second."""
    rng = np.random.RandomState(0)
    first = np.array([1.0, 0.0]) + 0.05 * rng.randn(10, 2)
    second = np.array([0.0, 1.0]) + 0.05 * rng.randn(10, 2)
    svm = SVC(kernel='linear')
    svm.fit(np.vstack([first, second]), [labels_first] * 10 + [labels_second] * 10)
    return svm


def test_svm_classifier(configs, tmp_path, training_features):
    path = str(tmp_path / 'svm.pkl')
    joblib.dump(train_svm(1, 0), path)
    configs['global_features']['strategy'] = 'SVM'
    classifier = GlobalClassifier(configs, GlobalFeatureStore(training_features, 'Euclidean'))
    classifier.load_svm(path)
    assert not classifier.svm_error

    maximum = classifier.classify([[1.0, 0.0], [0.9, 0.1], [0.0, 1.0]], VotingMaximum(class_id=0))
    assert maximum.global_hypothesis[0] == 1
    assert maximum.global_hypothesis[1] > 0
    assert maximum.current_class_hypothesis[1] < 0

    single = classifier.classify([[0.0, 1.0]], VotingMaximum(class_id=0), single_object_mode=True)
    assert single.global_hypothesis[0] == 0
    assert single.current_class_hypothesis == (0, 0.0)


def test_one_vs_all_svm_archive(tmp_path):
    for class_id, svm in ((3, train_svm(1, 0)), (5, train_svm(0, 1))):
        joblib.dump(svm, str(tmp_path / 'svm_class_{}.pkl'.format(class_id)))
    archive_path = str(tmp_path / 'svm.tar.gz')
    with tarfile.open(archive_path, 'w:gz') as archive:
        for class_id in (3, 5):
            name = 'svm_class_{}.pkl'.format(class_id)
            archive.add(str(tmp_path / name), arcname=name)

    model = SvmModel(archive_path)
    assert model.one_vs_all
    assert model.predict([1.0, 0.0]).label == 3
    assert model.predict([0.0, 1.0]).label == 5
    extracted = list(model.files)
    model.close()
    assert not any(os.path.exists(path) for path in extracted)


def test_svm_errors_fall_back_to_knn(configs, tmp_path, training_features):
    configs['global_features']['strategy'] = 'SVM'
    store = GlobalFeatureStore(training_features, 'Euclidean')

    missing = GlobalClassifier(configs, store)
    missing.load_svm(str(tmp_path / 'missing.pkl'))
    assert missing.svm_error
    assert missing.strategy == 'KNN'
    assert missing.classify([[1.0, 0.0]], VotingMaximum()).global_hypothesis == (1, 1.0)

    broken_path = tmp_path / 'broken.pkl'
    broken_path.write_bytes(b'not a pickle')
    broken = GlobalClassifier(configs, store)
    broken.load_svm(str(broken_path))
    assert broken.svm_error

    empty = GlobalClassifier(configs, store)
    empty.load_svm('')
    assert empty.svm_error

    never_loaded = GlobalClassifier(configs, store)
    never_loaded.classify([[0.0, 1.0]], VotingMaximum())
    assert never_loaded.svm_error


def test_segmenter_radius_search():
    points = np.array([[0, 0, 0], [0.5, 0, 0], [3, 0, 0]], dtype=np.float64)
    normals = np.tile([0.0, 0.0, 1.0], (3, 1))
    region_points, region_normals = RegionSegmenter(points, normals).segment([0, 0, 0], 1.0)
    assert len(region_points) == 2
    assert len(region_normals) == 2

    empty_points, _ = RegionSegmenter(points).segment([10, 10, 10], 1.0)
    assert len(empty_points) == 0
    empty_points, _ = RegionSegmenter(np.empty((0, 3))).segment([0, 0, 0], 1.0)
    assert len(empty_points) == 0


def test_distance_histogram(configs):
    configs['global_features']['n_bins'] = 4
    descriptor = Descriptor(configs)
    points = np.array([[0, 0, 0], [1, 0, 0], [-1, 0, 0], [0, 4, 0], [0, -4, 0]], dtype=np.float64)
    histogram = descriptor.compute(points, None)
    assert histogram.shape == (1, 4)
    assert histogram.sum() == pytest.approx(1.0)
    assert descriptor.radius(points) == pytest.approx(4.0)
    assert descriptor.compute(np.empty((0, 3)), None).shape == (0, 4)
