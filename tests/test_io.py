import logging

import numpy as np
import pytest

from ismvote.data import cast_votes, load_scene
from ismvote.log import detection_record
from ismvote.maxima import VotingMaximum
from ismvote.save import ResultSaver
from ismvote.setup import parse_arguments, setup_logging
from ismvote.utils import get_configs


def test_default_configs():
    configs = get_configs()
    assert configs.voting.radius_type == 'Config'
    assert configs.clustering.method == 'mean_shift'
    assert configs.global_features.enabled is False


def test_experiment_config_overrides_defaults():
    configs = get_configs('single_object_knn')
    assert configs.voting.radius_type == 'FirstDim'
    assert configs.voting.bandwidth == pytest.approx(0.2)
    assert configs.global_features.influence_type == 6


def test_config_file_path(tmp_path):
    path = tmp_path / 'config.yaml'
    path.write_text('voting:\n  best_k: 2\nglobal_features:\n  distance_type: Hellinger\n')
    configs = get_configs(str(path))
    assert configs.voting.best_k == 2
    assert configs.voting.max_filter_type == 'None'
    assert configs.global_features.distance_type == 'Hellinger'


def test_detection_log(configs, tmp_path):
    configs['logging']['output_dir'] = str(tmp_path)
    maxima = [VotingMaximum(class_id=3, position=[1, 2, 3], weight=0.75, vote_indices=[0, 1]),
              VotingMaximum(class_id=1, position=[0, 0, 0], weight=0.25, vote_indices=[2])]
    path = ResultSaver(configs).save('/data/scenes/chair.pcd', maxima, 'model.ismb', ground_truth=3)

    with open(path) as file:
        lines = file.read().splitlines()
    assert path.endswith('chair.txt')
    assert lines[0] == 'ISM3D detection log, filename: model.ismb, point cloud: /data/scenes/chair.pcd, ' \
                       'ground truth class ID: 3'
    assert len(lines) == 4
    assert lines[2].split(', ')[:4] == ['0', '3', '0.75', '2']
    assert len(lines[3].split(', ')) == 14


def test_detection_log_disabled(configs, tmp_path):
    configs['logging']['save_detection_log'] = False
    assert ResultSaver(configs).save('scene.pcd', []) is None


def test_detection_record():
    record = detection_record(4, VotingMaximum(class_id=2, position=[1, 2, 3], weight=0.5, vote_indices=[7]))
    assert record[:4] == (4, 2, 0.5, 1)
    assert record[4:7] == (1.0, 2.0, 3.0)
    assert record[10:] == (1.0, 0.0, 0.0, 0.0)


def test_votes_and_scene_from_files(make_voting, tmp_path):
    votes_path = str(tmp_path / 'votes.npz')
    np.savez(votes_path,
             positions=np.array([[0, 0, 0], [0, 0, 0], [5, 5, 5]], dtype=np.float64),
             weights=np.array([1.0, 1.0, 0.5]),
             class_ids=np.array([0, 0, 2]),
             box_sizes=np.array([[1, 2, 3], [1, 2, 3], [2, 2, 2]], dtype=np.float64))
    scene_path = str(tmp_path / 'scene.npy')
    np.save(scene_path, np.hstack([np.random.RandomState(0).rand(10, 3), np.tile([0, 0, 1.0], (10, 1))]))

    voting = make_voting()
    assert cast_votes(voting, votes_path) == 3
    assert sorted(voting.get_votes()) == [0, 2]
    assert np.allclose(voting.get_votes(0)[0].bounding_box.size, [1, 2, 3])
    scene = load_scene(scene_path)
    assert scene.points.shape == (10, 3)
    assert scene.normals.shape == (10, 3)

    maxima = voting.find_maxima(scene.points, scene.normals)
    assert [maximum.class_id for maximum in maxima] == [0, 2]
    assert maxima[0].weight == pytest.approx(0.8)


def test_scene_with_wrong_columns(tmp_path):
    path = str(tmp_path / 'scene.npy')
    np.save(path, np.zeros((4, 5)))
    with pytest.raises(ValueError):
        load_scene(path)


def test_arguments_and_logging(tmp_path):
    output_dir = str(tmp_path / 'out')
    args = parse_arguments(['--votes-path', 'votes.npz', '--output-dir', output_dir, '--single-object'])
    assert args.single_object
    assert args.config_name is None

    setup_logging(output_dir, 'detect')
    logging.getLogger('test').info('written to file')
    for handler in logging.getLogger().handlers:
        handler.flush()
    with open(str(tmp_path / 'out' / 'logs' / 'detect.log')) as file:
        assert 'written to file' in file.read()
    for handler in logging.getLogger().handlers:
        handler.close()
    logging.getLogger().handlers = []
