"""
Constants shared by the hand detection pipeline and the classifier.
"""

import math

import numpy as np

# ==================== GENERAL CONSTANTS ====================
# Window (pixels) averaged when converting ij coordinates to xyz
DEFAULT_XYZ_AVERAGE_SIZE = 9

# Frame edges (pixels)
DEFAULT_BOTTOM_EDGE_THRESH = 10
DEFAULT_SIDE_EDGE_THRESH = 10

# ==================== HAND DETECTION CONSTANTS ====================
# Surface area gate (square meters)
DEFAULT_HAND_MIN_AREA = 0.01
DEFAULT_HAND_MAX_AREA = 0.056

# Fraction of frame height below which side contacts count as edge contacts
DEFAULT_HAND_EDGE_CONNECT_MAX_Y = 0.50

# Finger count accepted by the final gate
MIN_FINGERS = 1
MAX_FINGERS = 6

# Minimum number of boundary points between a finger tip and its defect
MIN_POINTS_TO_DEFECT = 10

# Angles
DEFAULT_DEFECT_MAX_ANGLE = 0.70 * math.pi
DEFAULT_CENTROID_DEFECT_FINGER_ANGLE_MIN = 0.40 * math.pi

# ==================== CLASSIFIER CONSTANTS ====================
NUM_SVMS = 4
SVM_FILE_TEMPLATE = "svm_{}.xml"
DEFAULT_SVM_MODEL_DIR = "svm"
MODEL_DIR_ENV_VAR = "DEPTHHAND_DIR"

DATA_LABELS_FILE_NAME = "labels.csv"
DATA_FEATURES_FILE_NAME = "features.csv"

DEFAULT_SVM_CONFIDENCE_THRESH = 0.45
DEFAULT_SVM_HIGH_CONFIDENCE_THRESH = 0.59

# Feature sanitization
FEATURE_SENTINEL = float(np.finfo(np.float32).max)
FEATURE_NAN_VALUE = 1.0
FEATURE_OVERFLOW_VALUE = 100.0

# ==================== LOGGING CONSTANTS ====================
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
MAX_LOG_FILE_SIZE = 10 * 1024 * 1024  # 10MB
