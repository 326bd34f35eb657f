"""
Persisted voting data: bounding box statistics, training global features and the SVM path.

Two encodings hold the same data. The binary one is a little endian, length prefixed stream:

    b'ISMV' uint32 version
    int32 n, n x (uint32 class_id, float32 first_dim, float32 second_dim)
    int32 n, n x (uint32 class_id, float32 first_var, float32 second_var)
    int32 n_classes, per class:
        uint32 class_id, int32 n_clouds, per cloud:
            int32 n_features, per feature:
                9 x float32 reference frame, int32 length, length x float32 descriptor, float32 radius
    int32 length, length x utf-8 SVM path

The structured text encoding is JSON with the sections BoundingBoxDimensions,
BoundingBoxVariances, GlobalFeatures and ObjectDataSVM.
"""
from collections import namedtuple
import json
import struct

import numpy as np

from ismvote.constants import JSON_SUFFIX, REFERENCE_FRAME_SIZE
from ismvote.exceptions import ModelFormatError, ConfigurationMismatchError
from ismvote.global_features import make_global_feature

MAGIC = b'ISMV'
VERSION = 1

ModelData = namedtuple('ModelData', ['dimensions', 'variances', 'global_features', 'svm_path'])

MISSING_GLOBAL_FEATURES = ('No global features in loaded dataset found! '
                           'Set the parameter "global_features.enabled" to false and try again.')


def model_data(dimensions=None, variances=None, global_features=None, svm_path=None):
    return ModelData(dimensions or {}, variances or {}, global_features, svm_path)


## Binary ##

class _Reader:
    def __init__(self, buffer):
        self._buffer = buffer
        self._offset = 0

    def read(self, fmt):
        fmt = '<' + fmt
        size = struct.calcsize(fmt)
        if self._offset + size > len(self._buffer):
            raise ModelFormatError('unexpected end of model data at byte {}'.format(self._offset))
        values = struct.unpack_from(fmt, self._buffer, self._offset)
        self._offset += size
        return values if len(values) != 1 else values[0]

    def read_floats(self, count):
        if count < 0:
            raise ModelFormatError('negative descriptor length {}'.format(count))
        return np.array(self.read('{}f'.format(count)), ndmin=1, dtype=np.float32)


def _write_pairs(parts, pairs):
    parts.append(struct.pack('<i', len(pairs)))
    for class_id, (first, second) in sorted(pairs.items()):
        parts.append(struct.pack('<Iff', class_id, first, second))

def _read_pairs(reader):
    pairs = {}
    for _ in range(reader.read('i')):
        class_id, first, second = reader.read('Iff')
        pairs[class_id] = (first, second)
    return pairs


def dump_binary(data):
    parts = [MAGIC, struct.pack('<I', VERSION)]
    _write_pairs(parts, data.dimensions)
    _write_pairs(parts, data.variances)

    global_features = data.global_features or {}
    parts.append(struct.pack('<i', len(global_features)))
    for class_id, clouds in sorted(global_features.items()):
        parts.append(struct.pack('<Ii', class_id, len(clouds)))
        for cloud in clouds:
            parts.append(struct.pack('<i', len(cloud)))
            for feature in cloud:
                parts.append(np.asarray(feature.reference_frame, dtype='<f4').tobytes())
                parts.append(struct.pack('<i', len(feature.descriptor)))
                parts.append(np.asarray(feature.descriptor, dtype='<f4').tobytes())
                parts.append(struct.pack('<f', feature.radius))

    svm_path = (data.svm_path or '').encode('utf-8')
    parts.append(struct.pack('<i', len(svm_path)))
    parts.append(svm_path)
    return b''.join(parts)

def load_binary(buffer, read_global_features=False):
    reader = _Reader(buffer)
    if buffer[:len(MAGIC)] != MAGIC:
        raise ModelFormatError('not a binary voting model')
    reader.read('4s')
    version = reader.read('I')
    if version != VERSION:
        raise ModelFormatError('unsupported binary model version {}'.format(version))

    dimensions = _read_pairs(reader)
    variances = _read_pairs(reader)

    global_features = None
    svm_path = None
    if read_global_features:
        global_features = {}
        for _ in range(reader.read('i')):
            class_id, n_clouds = reader.read('Ii')
            clouds = []
            for _ in range(n_clouds):
                cloud = []
                for _ in range(reader.read('i')):
                    reference_frame = reader.read_floats(REFERENCE_FRAME_SIZE)
                    descriptor = reader.read_floats(reader.read('i'))
                    radius = reader.read('f')
                    cloud.append(make_global_feature(descriptor, radius, class_id, reference_frame))
                clouds.append(cloud)
            global_features[class_id] = clouds
        if not any(cloud for clouds in global_features.values() for cloud in clouds):
            raise ConfigurationMismatchError(MISSING_GLOBAL_FEATURES)
        length = reader.read('i')
        svm_path = reader.read('{}s'.format(length)).decode('utf-8') if length > 0 else None
    return ModelData(dimensions, variances, global_features, svm_path)


## JSON ##

def to_json(data):
    json_dict = {
        'BoundingBoxDimensions': [{'ClassId': int(class_id),
                                   'FirstDimension': float(first),
                                   'SecondDimension': float(second)}
                                  for class_id, (first, second) in sorted(data.dimensions.items())],
        'BoundingBoxVariances': [{'ClassId': int(class_id),
                                  'FirstDimVariance': float(first),
                                  'SecondDimVariance': float(second)}
                                 for class_id, (first, second) in sorted(data.variances.items())],
        'GlobalFeatures': [{'ClassId': int(class_id),
                            'FeatureList': [[{'ReferenceFrame': np.asarray(feature.reference_frame).tolist(),
                                              'Descriptor': np.asarray(feature.descriptor).tolist(),
                                              'GlobalDescriptorRadius': float(feature.radius)}
                                             for feature in cloud]
                                            for cloud in clouds]}
                           for class_id, clouds in sorted((data.global_features or {}).items())],
    }
    if data.svm_path:
        json_dict['ObjectDataSVM'] = data.svm_path
    return json_dict

def _json_section(json_dict, key):
    section = json_dict.get(key)
    if not isinstance(section, list):
        raise ModelFormatError('missing or invalid section {}'.format(key))
    return section

def from_json(json_dict, read_global_features=False):
    try:
        dimensions = {int(entry['ClassId']): (float(entry['FirstDimension']), float(entry['SecondDimension']))
                      for entry in _json_section(json_dict, 'BoundingBoxDimensions')}
        variances = {int(entry['ClassId']): (float(entry['FirstDimVariance']), float(entry['SecondDimVariance']))
                     for entry in _json_section(json_dict, 'BoundingBoxVariances')}
    except (KeyError, TypeError, ValueError) as error:
        raise ModelFormatError('invalid bounding box entry: {}'.format(error))

    global_features = None
    svm_path = None
    if read_global_features:
        if not isinstance(json_dict.get('GlobalFeatures'), list):
            raise ConfigurationMismatchError(MISSING_GLOBAL_FEATURES)
        global_features = {}
        try:
            for class_features in json_dict['GlobalFeatures']:
                class_id = int(class_features['ClassId'])
                feature_list = class_features.get('FeatureList')
                if not isinstance(feature_list, list):
                    raise ModelFormatError('Error reading global feature list of class {}'.format(class_id))
                global_features[class_id] = [[make_global_feature(point['Descriptor'],
                                                                  point['GlobalDescriptorRadius'],
                                                                  class_id,
                                                                  point['ReferenceFrame'])
                                              for point in cloud]
                                             for cloud in feature_list]
        except (KeyError, TypeError, ValueError, AssertionError) as error:
            if isinstance(error, ModelFormatError):
                raise
            raise ModelFormatError('invalid global feature entry: {}'.format(error))
        if not any(cloud for clouds in global_features.values() for cloud in clouds):
            raise ConfigurationMismatchError(MISSING_GLOBAL_FEATURES)
        svm_path = json_dict.get('ObjectDataSVM')
    return ModelData(dimensions, variances, global_features, svm_path)


## Files ##

def save_model(path, data):
    if path.endswith(JSON_SUFFIX):
        with open(path, 'w') as file:
            json.dump(to_json(data), file, indent=4)
    else:
        with open(path, 'wb') as file:
            file.write(dump_binary(data))

def load_model(path, read_global_features=False):
    if path.endswith(JSON_SUFFIX):
        with open(path) as file:
            try:
                json_dict = json.load(file)
            except json.JSONDecodeError as error:
                raise ModelFormatError('invalid json model {}: {}'.format(path, error))
        if not isinstance(json_dict, dict):
            raise ModelFormatError('invalid json model {}'.format(path))
        return from_json(json_dict, read_global_features)
    with open(path, 'rb') as file:
        return load_binary(file.read(), read_global_features)
