"""Hand detection module for depthhand.

This module turns a depth cluster into a hand hypothesis: boundary, palm,
wrist and fingertips from geometric heuristics, verified by an SVM ensemble.

Classes:
    HandDetector: Per-cluster detection pipeline
    SVMHandClassifier: Finger-count indexed SVM ensemble
    Hand: Detection result

Modules:
    edge_connectivity: Frame edge contact of a cluster
    contour_geometry: Boundary, hull, defects and palm center
    wrist_locator: Wrist search along the boundary
    finger_detection: Fingertip candidates, validation and deduplication
    single_finger: Fallback for a single extended finger
"""

# Core classes
from .hand_detector import HandDetector, detect_hands
from .model import SVMHandClassifier, extract_hand_features

# Types
from .hand_types import Hand, HandDiagnostics, RejectionReason

# Logging
from .logging_util import HandposeLogger, create_logger

__all__ = [
    # Core classes
    'HandDetector',
    'detect_hands',
    'SVMHandClassifier',
    'extract_hand_features',
    # Types
    'Hand',
    'HandDiagnostics',
    'RejectionReason',
    # Logging
    'HandposeLogger',
    'create_logger',
]
