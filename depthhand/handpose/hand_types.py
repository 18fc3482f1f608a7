"""
Hand entity and related types for depth-based hand detection.

This module defines the result of one detection call: the ``Hand`` with all
geometry computed for the cluster, plus diagnostics describing how far the
pipeline got and why a cluster was rejected.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

import numpy as np

# (start index, end index, far index, depth in pixels) into the boundary
Defect = Tuple[int, int, int, float]
PointIJ = Tuple[int, int]


class RejectionReason(Enum):
    """
    Stage at which a cluster stopped being a hand candidate.

    ``NONE`` means the cluster was accepted.
    """
    NONE = "none"
    EMPTY_CLUSTER = "empty_cluster"
    AREA = "area"
    NOT_EDGE_CONNECTED = "not_edge_connected"
    WRIST_NOT_FOUND = "wrist_not_found"
    WRIST_WIDTH = "wrist_width"
    FINGER_COUNT = "finger_count"
    CLASSIFIER_CONFIDENCE = "classifier_confidence"

    @classmethod
    def from_string(cls, value: str) -> 'RejectionReason':
        """Convert string to RejectionReason, raises ValueError if not found."""
        for reason in cls:
            if reason.value == value.lower():
                return reason
        raise ValueError(f"Unknown rejection reason: {value}")

    def to_display_name(self) -> str:
        """Get human-readable display name."""
        return self.value.replace('_', ' ').capitalize()


@dataclass(frozen=True, eq=False)
class HandDiagnostics:
    """Intermediate artifacts of one detection, for inspection and rendering."""
    rejection: RejectionReason = RejectionReason.NONE
    contact_indices: Tuple[int, ...] = ()  # (contact_l, contact_r) into the boundary
    contact_ij: Tuple[PointIJ, ...] = ()
    direction: int = 0  # boundary step taken from contact_l towards the wrist
    wrist_indices: Tuple[int, ...] = ()
    sorted_defects: Tuple[Defect, ...] = ()
    num_good_defects: int = 0
    candidate_tip_indices: Tuple[int, ...] = ()
    candidate_defect_indices: Tuple[int, ...] = ()
    used_single_finger_fallback: bool = False


@dataclass(frozen=True, eq=False)
class Hand:
    """
    Geometry and verdict for one cluster.

    Boundary, hull and defect indices are local to the cluster's bounding
    box; every ``*_ij`` point is in full-frame pixel coordinates and every
    ``*_xyz`` point is a window-averaged world position.

    ``fingers_*`` and ``defects_*`` are parallel: defect k is the far point
    of the convexity defect that produced finger k. ``wrist_*`` holds either
    no point or exactly two.
    """
    bounding_box: Tuple[int, int, int, int] = (0, 0, 0, 0)
    frame_size: Tuple[int, int] = (0, 0)
    surface_area: float = 0.0
    left_edge_connected: bool = False
    right_edge_connected: bool = False

    boundary: np.ndarray = field(default_factory=lambda: np.zeros((0, 2), dtype=np.int32))
    hull: np.ndarray = field(default_factory=lambda: np.zeros((0, 2), dtype=np.int32))
    hull_indices: np.ndarray = field(default_factory=lambda: np.zeros(0, dtype=np.int32))
    defects: Tuple[Defect, ...] = ()

    palm_center_ij: Optional[PointIJ] = None
    palm_center_xyz: Optional[np.ndarray] = None
    circle_radius: float = 0.0

    wrist_ij: Tuple[PointIJ, ...] = ()
    wrist_xyz: Tuple[np.ndarray, ...] = ()

    fingers_ij: Tuple[PointIJ, ...] = ()
    fingers_xyz: Tuple[np.ndarray, ...] = ()
    defects_ij: Tuple[PointIJ, ...] = ()
    defects_xyz: Tuple[np.ndarray, ...] = ()

    is_hand: bool = False
    confidence: Optional[float] = None
    diagnostics: HandDiagnostics = field(default_factory=HandDiagnostics)

    def __post_init__(self):
        if len(self.fingers_ij) != len(self.defects_ij) or len(self.fingers_xyz) != len(self.defects_xyz):
            raise ValueError("fingers and defects must have equal length")
        if len(self.wrist_ij) not in (0, 2):
            raise ValueError("wrist must hold zero or two points")

    @property
    def num_fingers(self) -> int:
        return len(self.fingers_xyz)

    @property
    def touching_edge(self) -> bool:
        return self.left_edge_connected or self.right_edge_connected

    @property
    def wrist_width(self) -> Optional[float]:
        """3D distance between the wrist points, None without a wrist."""
        if len(self.wrist_xyz) != 2:
            return None
        return float(np.linalg.norm(np.asarray(self.wrist_xyz[0]) - np.asarray(self.wrist_xyz[1])))

    @property
    def rejection(self) -> RejectionReason:
        return self.diagnostics.rejection

    def __repr__(self) -> str:
        return (f"Hand(is_hand={self.is_hand}, fingers={self.num_fingers}, "
                f"confidence={self.confidence}, rejection={self.rejection.value})")
