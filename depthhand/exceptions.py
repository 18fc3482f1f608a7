"""
Custom exceptions for depthhand.

Geometric rejection of a cluster is never an exception: the detector reports
it through ``Hand.is_hand``. The exceptions below signal problems with the
deployment, the configuration, or the caller's input.
"""

from typing import Optional, Any


class DepthHandException(Exception):
    """Base exception for all depthhand errors."""

    def __init__(self, message: str, details: Optional[Any] = None):
        """
        Initialize depthhand exception.

        Args:
            message: Error message
            details: Optional additional details
        """
        super().__init__(message)
        self.message = message
        self.details = details


class ClassifierError(DepthHandException):
    """Base exception for hand classifier errors."""
    pass


class ClassifierNotTrainedError(ClassifierError):
    """Raised when the classifier is asked to classify without trained models."""

    def __init__(self, model_dir: Optional[str] = None):
        message = "Hand classifier is not trained"
        if model_dir:
            message += f" (no complete model set in '{model_dir}')"
        super().__init__(message, details={'model_dir': model_dir})


class ModelLoadError(ClassifierError):
    """Raised when a model file exists but cannot be used."""

    def __init__(self, path: str, reason: str):
        message = f"Failed to load model '{path}': {reason}"
        super().__init__(message, details={'path': path, 'reason': reason})


class TrainingDataError(DepthHandException):
    """Raised when training files are missing or malformed."""

    def __init__(self, source: str, reason: str):
        message = f"Invalid training data in {source}: {reason}"
        super().__init__(message, details={'source': source, 'reason': reason})


class ConfigurationError(DepthHandException):
    """Raised when configuration is invalid."""

    def __init__(self, config_type: str, reason: str):
        message = f"Invalid {config_type} configuration: {reason}"
        super().__init__(message, details={'config_type': config_type, 'reason': reason})


class ClusterError(DepthHandException):
    """Raised when a cluster snapshot is structurally invalid."""

    def __init__(self, reason: str):
        message = f"Invalid cluster: {reason}"
        super().__init__(message, details={'reason': reason})
