import json

import numpy as np
import pytest
from pyquaternion import Quaternion

from ismvote import persistence
from ismvote.exceptions import ConfigurationMismatchError, ModelFormatError
from ismvote.statistics import determine_average_bounding_box_dimensions
from ismvote.votes import BoundingBox


@pytest.fixture
def data(training_features):
    return persistence.model_data({0: (1.5, 0.5), 4: (2.0, 1.0)},
                                  {0: (0.25, 0.0), 4: (0.5, 0.125)},
                                  training_features,
                                  'svm/model.tar.gz')


def assert_same_features(loaded, expected):
    assert sorted(loaded) == sorted(expected)
    for class_id, clouds in expected.items():
        assert len(loaded[class_id]) == len(clouds)
        for loaded_cloud, cloud in zip(loaded[class_id], clouds):
            for loaded_feature, feature in zip(loaded_cloud, cloud):
                assert np.allclose(loaded_feature.descriptor, feature.descriptor)
                assert np.allclose(loaded_feature.reference_frame, feature.reference_frame)
                assert loaded_feature.radius == pytest.approx(feature.radius)
                assert loaded_feature.class_id == class_id


@pytest.mark.parametrize('file_name', ['model.ismb', 'model.json'])
def test_model_file_round_trip(tmp_path, data, training_features, file_name):
    path = str(tmp_path / file_name)
    persistence.save_model(path, data)
    loaded = persistence.load_model(path, read_global_features=True)

    assert loaded.dimensions == data.dimensions
    assert loaded.variances == data.variances
    assert loaded.svm_path == 'svm/model.tar.gz'
    assert_same_features(loaded.global_features, training_features)


def test_global_features_are_skipped_when_disabled(data):
    loaded = persistence.load_binary(persistence.dump_binary(data), read_global_features=False)
    assert loaded.global_features is None
    assert loaded.svm_path is None
    assert sorted(loaded.dimensions) == [0, 4]


def test_missing_global_features(tmp_path):
    data = persistence.model_data({0: (1.0, 1.0)}, {0: (0.0, 0.0)})
    with pytest.raises(ConfigurationMismatchError):
        persistence.load_binary(persistence.dump_binary(data), read_global_features=True)

    path = tmp_path / 'model.json'
    path.write_text(json.dumps({'BoundingBoxDimensions': [], 'BoundingBoxVariances': []}))
    with pytest.raises(ConfigurationMismatchError) as error:
        persistence.load_model(str(path), read_global_features=True)
    assert 'global_features.enabled' in str(error.value)


def test_corrupt_binary_data(data):
    buffer = persistence.dump_binary(data)
    with pytest.raises(ModelFormatError):
        persistence.load_binary(buffer[:-20], read_global_features=True)
    with pytest.raises(ModelFormatError):
        persistence.load_binary(b'XXXX' + buffer[4:])
    with pytest.raises(ModelFormatError):
        persistence.load_binary(buffer[:4] + b'\x09\x00\x00\x00' + buffer[8:])


def test_invalid_json(tmp_path):
    path = tmp_path / 'model.json'
    path.write_text('{"BoundingBoxDimensions": [{"ClassId": 0}], "BoundingBoxVariances": []}')
    with pytest.raises(ModelFormatError):
        persistence.load_model(str(path))

    path.write_text('not json')
    with pytest.raises(ModelFormatError):
        persistence.load_model(str(path))

    path.write_text(json.dumps({'BoundingBoxDimensions': [], 'BoundingBoxVariances': [],
                                'GlobalFeatures': [{'ClassId': 0, 'FeatureList': 3}]}))
    with pytest.raises(ModelFormatError):
        persistence.load_model(str(path), read_global_features=True)


def test_json_keys(data):
    json_dict = persistence.to_json(data)
    assert json_dict['BoundingBoxDimensions'][0] == {'ClassId': 0, 'FirstDimension': 1.5, 'SecondDimension': 0.5}
    assert json_dict['BoundingBoxVariances'][1]['SecondDimVariance'] == 0.125
    feature = json_dict['GlobalFeatures'][0]['FeatureList'][0][0]
    assert sorted(feature) == ['Descriptor', 'GlobalDescriptorRadius', 'ReferenceFrame']
    assert len(feature['ReferenceFrame']) == 9
    assert json_dict['ObjectDataSVM'] == 'svm/model.tar.gz'


def test_bounding_box_statistics():
    boxes = {1: [BoundingBox(np.zeros(3), np.array([2.0, 4.0, 6.0]), Quaternion()),
                 BoundingBox(np.zeros(3), np.array([4.0, 8.0, 2.0]), Quaternion())],
             2: []}
    dimensions, variances = determine_average_bounding_box_dimensions(boxes)
    assert list(dimensions) == [1]
    assert dimensions[1] == pytest.approx((3.5, 2.0))
    assert variances[1] == pytest.approx((0.25, 0.0))
