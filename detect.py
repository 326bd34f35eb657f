"""Main detection script."""
import logging

import ismvote.setup
from ismvote.data import cast_votes, load_scene
from ismvote.save import ResultSaver
from ismvote.utils import get_configs, get_descriptor
from ismvote.voting import Voting


class Detector():
    """Detector."""
    def __init__(self, configs):
        """Constructor."""
        self._configs = configs
        self._voting = Voting(configs)
        self._result_saver = ResultSaver(configs)
        self._logger = logging.getLogger(self.__class__.__name__)
        if configs.get('model_path'):
            self._voting.load_model(configs.model_path)

    def detect(self, votes_path, scene_path='', single_object=False, ground_truth=None):
        scene = load_scene(scene_path) if scene_path else None
        n_votes = cast_votes(self._voting, votes_path)
        self._logger.info('Cast %d votes from %s', n_votes, votes_path)

        if single_object:
            self._voting.set_single_object_mode(True)
            if self._voting.use_global_features and scene is not None:
                descriptor = get_descriptor(self._configs)
                self._voting.set_global_features(descriptor.compute(scene.points, scene.normals))

        points, normals = (scene.points, scene.normals) if scene is not None else (None, None)
        maxima = self._voting.find_maxima(points, normals)
        if self._voting.svm_error:
            self._logger.warning('SVM could not be used, global features were classified with KNN')
        self._result_saver.save(scene_path or votes_path, maxima, self._configs.get('model_path', ''), ground_truth)
        self._voting.clear()
        return maxima

    def close(self):
        self._voting.close()


def main(setup):
    args = setup.parse_arguments()
    setup.setup_logging(args.output_dir, 'detect', logging.DEBUG if args.verbose else logging.INFO)

    configs = get_configs(args.config_name)
    configs += vars(args)
    configs['logging']['output_dir'] = args.output_dir
    setup.save_settings(args, configs)

    detector = Detector(configs)
    try:
        detector.detect(args.votes_path, args.scene_path, args.single_object, args.ground_truth)
    finally:
        detector.close()

if __name__ == '__main__':
    main(ismvote.setup)
