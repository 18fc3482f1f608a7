"""
depthhand - geometric hand detection on depth-camera clusters.

Quick start:
    from depthhand import Cluster, HandDetector
    hand = HandDetector().detect(Cluster.from_mask(xyz_map, mask))
    if hand.is_hand:
        print(hand.num_fingers, hand.fingers_ij)
"""

# Import version from pyproject.toml to maintain single source of truth
try:
    import importlib.metadata
    __version__ = importlib.metadata.version("depthhand")
except (ImportError, importlib.metadata.PackageNotFoundError):
    # Fallback for development installs
    __version__ = "0.1.0"

from .cluster import Cluster
from .params import ObjectParams
from .exceptions import (
    DepthHandException, ClassifierError, ClassifierNotTrainedError,
    ModelLoadError, TrainingDataError, ConfigurationError, ClusterError
)
from .handpose import (
    Hand, HandDiagnostics, RejectionReason, HandDetector, detect_hands,
    SVMHandClassifier, extract_hand_features
)

__all__ = [
    '__version__',
    # Input and configuration
    'Cluster', 'ObjectParams',
    # Detection
    'Hand', 'HandDiagnostics', 'RejectionReason', 'HandDetector', 'detect_hands',
    # Classifier
    'SVMHandClassifier', 'extract_hand_features',
    # Exceptions
    'DepthHandException', 'ClassifierError', 'ClassifierNotTrainedError',
    'ModelLoadError', 'TrainingDataError', 'ConfigurationError', 'ClusterError',
]
