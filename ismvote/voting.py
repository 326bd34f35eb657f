"""Find object hypotheses in the votes cast by matched local features."""
from functools import partial
import logging
from multiprocessing.pool import ThreadPool
import os

import numpy as np
from pyquaternion import Quaternion

from ismvote import persistence
from ismvote.constants import (RADIUS_CONFIG, RADIUS_FIRST_DIM, RADIUS_SECOND_DIM,
                               FILTER_NONE, FILTER_SIMPLE, FILTER_MERGE,
                               SINGLE_NONE, SINGLE_VOTE_TYPES, SINGLE_MAXIMA_TYPES, SVM)
from ismvote.exceptions import ConfigurationMismatchError
from ismvote.geometry import as_points, centroid, oriented_bounding_box, quat_weighted_average
from ismvote.global_features.classifier import GlobalClassifier
from ismvote.global_features.fusion import apply_global_influence, get_influence_policy
from ismvote.global_features.segmentation import RegionSegmenter
from ismvote.global_features.store import GlobalFeatureStore
from ismvote.log import Logger
from ismvote.maxima import (VotingMaximum, filter_maxima, merge_and_filter_maxima, get_hypothesis_policy,
                            normalize_weights, sort_maxima)
from ismvote.single_object import compute_single_max_per_class, merge_maxima_for_each_class
from ismvote.statistics import determine_average_bounding_box_dimensions
from ismvote.utils import get_clustering, get_descriptor
from ismvote.votes import BoundingBox, VoteStore


class Voting:
    """
    Collects votes per class and turns them into a sorted list of maxima whose weights are
    class probabilities.

    configs             - AttrDict with the voting, clustering and global_features sections
    clustering          - ClusteringIf, defaults to the strategy named in configs.clustering.method
    descriptor          - GlobalDescriptorIf, defaults to configs.global_features.descriptor
    """
    def __init__(self, configs, clustering=None, descriptor=None):
        self._configs = configs
        self._voting_configs = configs.voting
        self._global_configs = configs.global_features
        self._logger = logging.getLogger(self.__class__.__name__)
        self._result_logger = Logger(self.__class__.__name__)
        self._validate_configs()

        self._store = VoteStore()
        self._clustering = clustering if clustering is not None else get_clustering(configs)
        self._hypothesis_policy = get_hypothesis_policy(self._voting_configs.merge_hypothesis_policy)
        self.bandwidth = self._voting_configs.bandwidth

        # Bounding box statistics per class: (first, second) dimension
        self.dimensions = {}
        self.variances = {}

        # Training global features, kept until saved
        self._global_features = {}
        self.svm_path = self._global_configs.get('svm_path') or None
        self._feature_store = None
        self._classifier = None
        self._descriptor = descriptor
        if self._descriptor is None and self.use_global_features:
            self._descriptor = get_descriptor(configs)

        self._single_object_mode = False
        self._scene_global_features = None

    def _validate_configs(self):
        if self._voting_configs.radius_type not in (RADIUS_CONFIG, RADIUS_FIRST_DIM, RADIUS_SECOND_DIM):
            raise ValueError('unknown radius type: {}'.format(self._voting_configs.radius_type))
        if self._voting_configs.max_filter_type not in (FILTER_NONE, FILTER_SIMPLE, FILTER_MERGE):
            raise ValueError('unknown maxima filter type: {}'.format(self._voting_configs.max_filter_type))
        single_type = self._voting_configs.single_object_max_type
        if single_type != SINGLE_NONE and single_type not in SINGLE_VOTE_TYPES and single_type not in SINGLE_MAXIMA_TYPES:
            raise ValueError('unknown single object maxima type: {}'.format(single_type))
        if self.use_global_features:
            get_influence_policy(self._global_configs.influence_type)

    @property
    def use_global_features(self):
        return bool(self._global_configs.enabled)

    @property
    def single_object_mode(self):
        return self._single_object_mode

    @property
    def svm_error(self):
        return self._classifier is not None and self._classifier.svm_error

    ## Votes ##

    def vote(self, position, weight, class_id, keypoint, bounding_box=None, codeword_id=-1):
        """Cast a vote. Safe to call from several threads."""
        return self._store.vote(position, weight, class_id, keypoint, bounding_box, codeword_id)

    def get_votes(self, class_id=None):
        return self._store.get_votes(class_id)

    def clear(self):
        """Remove all votes. Must be called between scenes."""
        self._store.clear()

    ## Scene settings ##

    def set_global_features(self, global_features):
        """Global features of the whole scene. The scene is then treated as a single object."""
        self._scene_global_features = np.asarray(global_features, dtype=np.float64)
        self._single_object_mode = True

    def set_single_object_mode(self, single_object_mode):
        self._single_object_mode = bool(single_object_mode)
        if not self._single_object_mode:
            self._scene_global_features = None

    def get_search_dist_for_class(self, class_id):
        """Search radius, either the configured bandwidth or derived from the box dimensions of class_id."""
        radius_type = self._voting_configs.radius_type
        if radius_type == RADIUS_CONFIG:
            return self.bandwidth
        if class_id not in self.dimensions:
            self._logger.warning('No bounding box dimensions for class %s, using bandwidth %s',
                                 class_id, self.bandwidth)
            return self.bandwidth
        first_dim, second_dim = self.dimensions[class_id]
        dim = first_dim if radius_type == RADIUS_FIRST_DIM else second_dim
        return dim * self._voting_configs.radius_factor

    ## Maxima ##

    def find_maxima(self, points=None, normals=None):
        """
        Find, filter and sort the maxima of all classes.
        points and normals of the scene are needed for global features and in single object mode.
        """
        points = as_points(points) if points is not None else np.empty((0, 3))
        if self.use_global_features and self._classifier is None:
            raise ConfigurationMismatchError('Global features are enabled, but none were loaded. '
                                             'Load a model with global features or disable them.')
        # A single object scene is still classified by its global features without any votes
        if len(self._store) == 0 and not (self.use_global_features and self._single_object_mode):
            return []

        segmenter = None
        if self.use_global_features and not self._single_object_mode:
            segmenter = RegionSegmenter(points, normals)

        maxima = []
        for class_id in self._store.class_ids():
            maxima += self._find_class_maxima(class_id, segmenter)

        scene_max = None
        if self.use_global_features and self._single_object_mode:
            # Classify the global features of the whole scene instead of each maximum
            scene_max = self._classify_scene()
            for maximum in maxima:
                maximum.global_hypothesis = scene_max.global_hypothesis
            if len(maxima) == 0:
                scene_max.class_id, scene_max.weight = scene_max.global_hypothesis
                scene_max.position = centroid(points)
                scene_max.bounding_box = oriented_bounding_box(points)
                maxima.append(scene_max)

        maxima = self._filter_maxima(maxima, points)
        if scene_max is not None:
            for maximum in maxima:
                maximum.global_hypothesis = scene_max.global_hypothesis

        maxima = normalize_weights(sort_maxima(maxima))
        if self.use_global_features:
            apply_global_influence(maxima, self._global_configs)
            # Global features might have changed the weights
            maxima = normalize_weights(sort_maxima(maxima))

        best_k = self._voting_configs.best_k
        if best_k > 0 and len(maxima) >= best_k:
            maxima = maxima[:best_k]

        self._result_logger.log_maxima(maxima)
        self._result_logger.log_records(maxima)
        return maxima

    def _find_class_maxima(self, class_id, segmenter):
        votes = self._store.get_votes(class_id)
        clusters = self._clustering.find_modes(votes, self.get_search_dist_for_class(class_id))
        assert len(clusters.centers) == len(clusters.weights) == len(clusters.members) == len(clusters.reweighted)

        build = partial(self._build_maximum, class_id, votes, clusters, segmenter)
        num_workers = self._voting_configs.num_workers
        if num_workers > 1 and len(clusters.centers) > 1:
            with ThreadPool(num_workers) as pool:
                candidates = pool.map(build, range(len(clusters.centers)))
        else:
            candidates = [build(index) for index in range(len(clusters.centers))]
        return [maximum for maximum in candidates if maximum is not None]

    def _build_maximum(self, class_id, votes, clusters, segmenter, index):
        weight = clusters.weights[index]
        members = clusters.members[index]
        if weight < self._voting_configs.min_threshold or len(members) < self._voting_configs.min_votes_threshold:
            return None
        if len(members) == 0:
            return None

        # Reweighted votes, summing up to one
        member_weights = np.asarray(clusters.reweighted[index], dtype=np.float64)
        total = member_weights.sum()
        member_weights = member_weights / total if total > 0 else np.full(len(members), 1.0 / len(members))

        sizes = np.array([votes[vote_index].bounding_box.size for vote_index in members], dtype=np.float64)
        rotation = Quaternion()
        if self._voting_configs.average_rotation:
            rotation = quat_weighted_average([votes[vote_index].bounding_box.rotation for vote_index in members],
                                             member_weights)

        position = np.asarray(clusters.centers[index], dtype=np.float64)
        maximum = VotingMaximum(class_id=class_id,
                                position=position,
                                weight=float(weight),
                                vote_indices=members,
                                bounding_box=BoundingBox(position.copy(), member_weights @ sizes, rotation))

        if segmenter is not None:
            self._verify_with_global_features(segmenter, maximum)
        return maximum

    def _verify_with_global_features(self, segmenter, maximum):
        """Classify the global features of the region around maximum, sized by its class."""
        radius = self._feature_store.average_radius(maximum.class_id)
        region_points, region_normals = segmenter.segment(maximum.position, radius)
        if len(region_points):
            features = self._descriptor.compute(region_points, region_normals)
        else:
            features = np.empty((0, 0))
        self._classifier.classify(features, maximum)

    def _classify_scene(self):
        scene_max = VotingMaximum()
        features = self._scene_global_features
        if features is None:
            features = np.empty((0, 0))
        self._classifier.classify(features, scene_max, single_object_mode=True)
        return scene_max

    def _filter_maxima(self, maxima, points):
        if self._single_object_mode:
            max_type = self._voting_configs.single_object_max_type
            if max_type in SINGLE_VOTE_TYPES:
                return compute_single_max_per_class(self._store, points, SINGLE_VOTE_TYPES[max_type],
                                                    self.get_search_dist_for_class)
            if max_type in SINGLE_MAXIMA_TYPES:
                return merge_maxima_for_each_class(maxima, points, SINGLE_MAXIMA_TYPES[max_type],
                                                   self.get_search_dist_for_class, self._hypothesis_policy)
            return maxima

        filter_type = self._voting_configs.max_filter_type
        if filter_type == FILTER_SIMPLE:
            return filter_maxima(maxima, self.get_search_dist_for_class,
                                 hypothesis_policy=self._hypothesis_policy)
        if filter_type == FILTER_MERGE:
            return merge_and_filter_maxima(maxima, self.get_search_dist_for_class, self._hypothesis_policy)
        return maxima

    ## Training data ##

    def determine_average_bounding_box_dimensions(self, bounding_boxes):
        """bounding_boxes: {class_id: [BoundingBox]} of the training objects."""
        self.dimensions, self.variances = determine_average_bounding_box_dimensions(bounding_boxes)

    def forward_global_features(self, global_features):
        """Training global features as {class_id: [[GlobalFeature]]}, stored by save_model."""
        self._global_features = global_features

    def load_global_features(self, global_features, svm_path=None):
        """Flatten the training global features into the nearest neighbor store and load the SVM."""
        if self._classifier is not None:
            self._classifier.close()
        self._feature_store = GlobalFeatureStore(global_features, self._global_configs.distance_type)
        self._classifier = GlobalClassifier(self._configs, self._feature_store)
        if self._global_configs.strategy == SVM:
            self._classifier.load_svm(svm_path)

    ## Persistence ##

    def save_model(self, path):
        data = persistence.model_data(self.dimensions, self.variances, self._global_features, self.svm_path)
        persistence.save_model(path, data)
        self._logger.info('Voting data saved to %s', path)

    def load_model(self, path):
        data = persistence.load_model(path, read_global_features=self.use_global_features)
        self.dimensions = data.dimensions
        self.variances = data.variances
        if self.use_global_features:
            self.svm_path = self._resolve_svm_path(data.svm_path or self.svm_path, path)
            self.load_global_features(data.global_features, self.svm_path)
            # Only the flattened features and the radii are kept
            self._global_features = {}
        self._logger.info('Voting data loaded from %s: %d classes', path, len(self.dimensions))

    def _resolve_svm_path(self, svm_path, model_path):
        if not svm_path or os.path.isabs(svm_path) or os.path.exists(svm_path):
            return svm_path
        return os.path.join(os.path.dirname(os.path.abspath(model_path)), svm_path)

    def close(self):
        """Remove files unpacked from the model."""
        if self._classifier is not None:
            self._classifier.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()
