"""Hand classifier: feature extraction, SVM ensemble and training data."""

from .feature_extractor import extract_hand_features, feature_names, feature_count
from .svm_classifier import SVMHandClassifier, SVMHyperParams, DEFAULT_HYPERPARAMS, get_svm_idx
from .training_data import (
    TrainingSample, TrainingSet, load_training_samples, build_training_sets,
    write_training_files
)

__all__ = [
    'extract_hand_features', 'feature_names', 'feature_count',
    'SVMHandClassifier', 'SVMHyperParams', 'DEFAULT_HYPERPARAMS', 'get_svm_idx',
    'TrainingSample', 'TrainingSet', 'load_training_samples', 'build_training_sets',
    'write_training_files',
]
