"""
Input snapshot for hand detection.

A cluster is a set of depth-camera points that upstream segmentation
believes to be one object. It is read-only for the detector.
"""

import logging
from functools import cached_property
from typing import Optional, Tuple

import numpy as np

from .exceptions import ClusterError

logger = logging.getLogger(__name__)


class Cluster:
    """
    Image-space points of one cluster with their world positions.

    Attributes:
        points_ij: (N, 2) int array of (x, y) pixels in full-frame coordinates
        points_xyz: (N, 3) float array of world positions, parallel to ``points_ij``
        frame_size: (width, height) of the full frame
    """

    def __init__(self, points_ij: np.ndarray, points_xyz: np.ndarray,
                 frame_size: Tuple[int, int]):
        """
        Initialize a cluster.

        Args:
            points_ij: (N, 2) pixel coordinates (x, y) in the full frame
            points_xyz: (N, 3) world coordinates for each pixel
            frame_size: (width, height) of the full frame

        Raises:
            ClusterError: If the arrays do not describe the same points
        """
        points_ij = np.array(points_ij, dtype=np.int32).reshape(-1, 2)
        points_xyz = np.array(points_xyz, dtype=np.float32).reshape(-1, 3)

        if len(points_ij) != len(points_xyz):
            raise ClusterError(f"{len(points_ij)} image points but {len(points_xyz)} world points")

        width, height = int(frame_size[0]), int(frame_size[1])
        if width <= 0 or height <= 0:
            raise ClusterError(f"frame size must be positive, got {frame_size}")

        if len(points_ij):
            outside = ((points_ij[:, 0] < 0) | (points_ij[:, 0] >= width) |
                       (points_ij[:, 1] < 0) | (points_ij[:, 1] >= height))
            if outside.any():
                raise ClusterError(f"{int(outside.sum())} points lie outside the frame")

        self.points_ij = points_ij
        self.points_xyz = points_xyz
        self.frame_size = (width, height)

        self.points_ij.setflags(write=False)
        self.points_xyz.setflags(write=False)

    @classmethod
    def from_mask(cls, frame_xyz: np.ndarray, mask: np.ndarray) -> 'Cluster':
        """
        Build a cluster from a full-frame xyz map and a selection mask.

        Pixels with zero depth are never part of the cluster.

        Args:
            frame_xyz: (rows, cols, 3) xyz map of the full frame
            mask: (rows, cols) boolean mask of cluster pixels

        Returns:
            Cluster holding the selected pixels
        """
        if frame_xyz.shape[:2] != mask.shape[:2]:
            raise ClusterError(f"mask shape {mask.shape[:2]} does not match map shape {frame_xyz.shape[:2]}")

        selected = mask.astype(bool) & (frame_xyz[:, :, 2] != 0)
        rows, cols = np.nonzero(selected)
        points_ij = np.stack([cols, rows], axis=1)
        points_xyz = frame_xyz[rows, cols]
        return cls(points_ij, points_xyz, (frame_xyz.shape[1], frame_xyz.shape[0]))

    @property
    def num_points(self) -> int:
        return len(self.points_ij)

    @cached_property
    def bounding_box(self) -> Tuple[int, int, int, int]:
        """Bounding box (x, y, width, height) in full-frame coordinates."""
        if self.num_points == 0:
            return 0, 0, 0, 0
        x0, y0 = self.points_ij.min(axis=0)
        x1, y1 = self.points_ij.max(axis=0)
        return int(x0), int(y0), int(x1 - x0 + 1), int(y1 - y0 + 1)

    @property
    def top_left(self) -> Tuple[int, int]:
        return self.bounding_box[0], self.bounding_box[1]

    @cached_property
    def xyz_map(self) -> np.ndarray:
        """Bounding-box sized xyz map holding only the cluster's points."""
        _, _, width, height = self.bounding_box
        xyz = np.zeros((height, width, 3), dtype=np.float32)
        if self.num_points:
            local = self.points_ij - np.array(self.top_left, dtype=np.int32)
            xyz[local[:, 1], local[:, 0]] = self.points_xyz
        xyz.setflags(write=False)
        return xyz

    @cached_property
    def mask(self) -> np.ndarray:
        """Bounding-box sized mask of pixels with valid depth."""
        mask = self.xyz_map[:, :, 2] != 0
        mask.setflags(write=False)
        return mask

    @cached_property
    def top_point(self) -> Optional[Tuple[int, int]]:
        """Topmost cluster pixel (leftmost among ties) in full-frame coordinates."""
        if self.num_points == 0:
            return None
        order = np.lexsort((self.points_ij[:, 0], self.points_ij[:, 1]))
        x, y = self.points_ij[order[0]]
        return int(x), int(y)

    def to_local(self, pt) -> Tuple[int, int]:
        """Convert a full-frame point to bounding-box coordinates."""
        return int(pt[0]) - self.top_left[0], int(pt[1]) - self.top_left[1]

    def to_frame(self, pt) -> Tuple[int, int]:
        """Convert a bounding-box point to full-frame coordinates."""
        return int(pt[0]) + self.top_left[0], int(pt[1]) + self.top_left[1]

    def __repr__(self) -> str:
        return f"Cluster(points={self.num_points}, bbox={self.bounding_box}, frame={self.frame_size})"
