"""Constants for ISM voting."""
import os

# Paths
PACKAGE_PATH = os.path.dirname(__file__)
SETTINGS_PATH = os.path.join(PACKAGE_PATH, 'settings')

# Search radius types
RADIUS_CONFIG = 'Config'
RADIUS_FIRST_DIM = 'FirstDim'
RADIUS_SECOND_DIM = 'SecondDim'

# Maxima filter types
FILTER_NONE = 'None'
FILTER_SIMPLE = 'Simple'
FILTER_MERGE = 'Merge'

# Single object maxima types
SINGLE_NONE = 'None'
SINGLE_VOTING_SPACE_VOTES = 'VotingSpaceVotes'
SINGLE_BANDWIDTH_VOTES = 'BandwidthVotes'
SINGLE_MODEL_RADIUS_VOTES = 'ModelRadiusVotes'
SINGLE_VOTING_SPACE_MAXIMA = 'VotingSpaceMaxima'
SINGLE_BANDWIDTH_MAXIMA = 'BandwidthMaxima'
SINGLE_MODEL_RADIUS_MAXIMA = 'ModelRadiusMaxima'

# Search windows used in single object mode
WINDOW_VOTING_SPACE = 'voting_space'
WINDOW_BANDWIDTH = 'bandwidth'
WINDOW_MODEL_RADIUS = 'model_radius'

SINGLE_VOTE_TYPES = {
    SINGLE_VOTING_SPACE_VOTES: WINDOW_VOTING_SPACE,
    SINGLE_BANDWIDTH_VOTES: WINDOW_BANDWIDTH,
    SINGLE_MODEL_RADIUS_VOTES: WINDOW_MODEL_RADIUS,
}
SINGLE_MAXIMA_TYPES = {
    SINGLE_VOTING_SPACE_MAXIMA: WINDOW_VOTING_SPACE,
    SINGLE_BANDWIDTH_MAXIMA: WINDOW_BANDWIDTH,
    SINGLE_MODEL_RADIUS_MAXIMA: WINDOW_MODEL_RADIUS,
}

# Global feature classification
KNN = 'KNN'
SVM = 'SVM'

# Global feature distances
EUCLIDEAN = 'Euclidean'
CHI_SQUARED = 'ChiSquared'
HELLINGER = 'Hellinger'
HIST_INTERSECTION = 'HistIntersection'

# Global feature influence types
INFLUENCE_BLIND_OVERRIDE = 1
INFLUENCE_SCORED_OVERRIDE = 2
INFLUENCE_TOP_CLASS_OVERRIDE = 3
INFLUENCE_FIXED_UPWEIGHT = 4
INFLUENCE_SCORE_UPWEIGHT = 5
INFLUENCE_T_CONORM = 6

# Hypothesis merge policies
HYPOTHESIS_LAST = 'last'
HYPOTHESIS_STRONGEST = 'strongest'

# Reference frame of a global feature (3x3, row major)
REFERENCE_FRAME_SIZE = 9

# Model files
JSON_SUFFIX = '.json'

# Detection log
LOG_COLUMNS = ('number', 'classID', 'weight', 'num-votes',
               'position X Y Z', 'bounding box size X Y Z',
               'bounding Box rotation quaternion w x y z')
