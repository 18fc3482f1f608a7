"""
Parameter container for hand detection.

Every numeric threshold consulted by the detection stages lives here. Values
are in meters for 3D distances, pixels for image distances and radians for
angles unless noted otherwise.
"""

import json
import math
import logging
from dataclasses import dataclass, asdict, fields
from pathlib import Path
from typing import Any, Dict, Union

from .core import constants
from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass
class ObjectParams:
    """Thresholds for hand detection and classification."""

    # ** General **
    xyz_average_size: int = constants.DEFAULT_XYZ_AVERAGE_SIZE  # pixels averaged for ij -> xyz
    bottom_edge_thresh: int = constants.DEFAULT_BOTTOM_EDGE_THRESH  # fingertips on edge are ignored
    side_edge_thresh: int = constants.DEFAULT_SIDE_EDGE_THRESH

    # ** Area gate / edge connection **
    hand_min_area: float = constants.DEFAULT_HAND_MIN_AREA  # m^2
    hand_max_area: float = constants.DEFAULT_HAND_MAX_AREA  # m^2
    hand_require_edge_connected: bool = False
    hand_edge_connect_max_y: float = constants.DEFAULT_HAND_EDGE_CONNECT_MAX_Y  # fraction of height

    # ** Classifier **
    hand_use_svm: bool = True
    hand_svm_confidence_thresh: float = constants.DEFAULT_SVM_CONFIDENCE_THRESH
    hand_svm_high_confidence_thresh: float = constants.DEFAULT_SVM_HIGH_CONFIDENCE_THRESH  # additional hands
    svm_model_dir: str = constants.DEFAULT_SVM_MODEL_DIR

    # ** Palm **
    center_max_dist_from_top: float = 0.155

    # ** Wrist **
    contact_bot_edge_thresh: int = 8
    contact_side_edge_thresh: int = 25
    wrist_width_min: float = 0.030
    wrist_width_max: float = 0.085
    wrist_center_dist_thresh: float = 0.075

    # ** Fingers **
    finger_len_min: float = 0.014
    finger_len_max: float = 0.125
    finger_dist_min: float = 0.01
    finger_defect_slope_min: float = -1.0  # (defect_y - finger_y) / |dx|
    finger_center_slope_min: float = -0.45  # (center_y - finger_y) / |dx|
    finger_curve_near_min: float = 0.95
    finger_curve_near_max: float = 2.80
    finger_curve_far_min: float = 0.05
    finger_curve_far_max: float = 1.20
    centroid_defect_finger_angle_min: float = constants.DEFAULT_CENTROID_DEFECT_FINGER_ANGLE_MIN
    min_points_to_defect: int = constants.MIN_POINTS_TO_DEFECT

    # ** Single finger **
    single_finger_len_min: float = 0.04
    single_finger_len_max: float = 0.11
    single_finger_angle_thresh: float = 0.08
    single_finger_slope_min: float = -0.1
    single_finger_hull_average_size: int = 22
    single_finger_tip_average_size: int = 10

    # ** Defects **
    defect_max_angle: float = constants.DEFAULT_DEFECT_MAX_ANGLE
    defect_min_dist: float = 0.02  # start of defect vs end of previous one
    defect_far_center_min_dist: float = 0.01
    defect_far_center_max_dist: float = 0.105
    defect_start_end_min_dist: float = 0.01
    defect_max_y_from_center: int = 30  # pixels

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """
        Check that ranges are ordered and sizes are positive.

        Raises:
            ConfigurationError: If a value is out of range
        """
        ranges = [
            ('hand_min_area', 'hand_max_area'),
            ('wrist_width_min', 'wrist_width_max'),
            ('finger_len_min', 'finger_len_max'),
            ('finger_curve_near_min', 'finger_curve_near_max'),
            ('finger_curve_far_min', 'finger_curve_far_max'),
            ('single_finger_len_min', 'single_finger_len_max'),
            ('defect_far_center_min_dist', 'defect_far_center_max_dist'),
        ]
        for lo, hi in ranges:
            if getattr(self, lo) > getattr(self, hi):
                raise ConfigurationError("ObjectParams", f"{lo} must not exceed {hi}")

        for name in ('xyz_average_size', 'single_finger_hull_average_size',
                     'single_finger_tip_average_size'):
            if getattr(self, name) < 1:
                raise ConfigurationError("ObjectParams", f"{name} must be positive")

        if not 0.0 <= self.hand_edge_connect_max_y <= 1.0:
            raise ConfigurationError("ObjectParams", "hand_edge_connect_max_y must be in [0, 1]")
        if not 0.0 < self.defect_max_angle <= math.pi:
            raise ConfigurationError("ObjectParams", "defect_max_angle must be in (0, pi]")

    @classmethod
    def from_dict(cls, values: Dict[str, Any]) -> 'ObjectParams':
        """
        Create parameters from a dictionary, ignoring unknown keys.

        Args:
            values: Parameter overrides

        Returns:
            ObjectParams with the overrides applied to the defaults
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(values) - known)
        if unknown:
            logger.warning(f"Ignoring unknown hand parameters: {', '.join(unknown)}")
        return cls(**{k: v for k, v in values.items() if k in known})

    @classmethod
    def from_json(cls, filepath: Union[str, Path]) -> 'ObjectParams':
        """
        Load parameters from a JSON file.

        Raises:
            ConfigurationError: If the file cannot be read or parsed
        """
        try:
            with open(filepath, 'r') as f:
                values = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError("ObjectParams", f"cannot read {filepath}: {e}") from e

        if not isinstance(values, dict):
            raise ConfigurationError("ObjectParams", f"{filepath} must contain a JSON object")

        logger.info(f"Loaded hand parameters from {filepath}")
        return cls.from_dict(values)

    def to_dict(self) -> Dict[str, Any]:
        """Parameters as a plain dictionary."""
        return asdict(self)

    def save_json(self, filepath: Union[str, Path]) -> None:
        """Save parameters to a JSON file."""
        with open(filepath, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)
        logger.info(f"Saved hand parameters to {filepath}")

