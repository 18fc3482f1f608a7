"""
Edge connectivity of a cluster.

A hand entering the view is usually attached to the bottom edge of the frame
or to its lower left/right sides. The sweeps below look for cluster pixels in
those bands, independently for the left and right halves of the frame.
"""

import math
import logging
from typing import Tuple

import numpy as np

from ..cluster import Cluster
from ..params import ObjectParams

logger = logging.getLogger(__name__)


def _any_depth(values: np.ndarray) -> bool:
    return bool(values.size) and bool(np.any(values != 0))


def _side_sweep(xyz: np.ndarray, col: int, rows: int, top: int, max_y: float) -> bool:
    """Sweep one column from the bottom of the frame up to ``max_y`` of its height."""
    if not 0 <= col < xyz.shape[1]:
        return False
    last = min(rows - 1 - top, xyz.shape[0] - 1)
    first = int(math.ceil(max(rows * max_y - top, 0.0)))
    if last < first:
        return False
    return _any_depth(xyz[first:last + 1, col, 2])


def check_edge_connected(cluster: Cluster, params: ObjectParams) -> Tuple[bool, bool]:
    """
    Determine whether a cluster touches the left and/or right frame edge.

    Args:
        cluster: Cluster to inspect
        params: Detection parameters (edge thresholds)

    Returns:
        Tuple (left_edge_connected, right_edge_connected)
    """
    cols, rows = cluster.frame_size
    left_x, top_y = cluster.top_left
    xyz = cluster.xyz_map
    half = cols // 2

    # Bottom band, left half
    row = rows - params.bottom_edge_thresh - top_y
    left = False
    if 0 <= row < xyz.shape[0]:
        end = min(half - left_x, xyz.shape[1])
        if end > 0:
            left = _any_depth(xyz[row, :end, 2])

    if not left:
        left = _side_sweep(xyz, params.side_edge_thresh - left_x, rows, top_y,
                           params.hand_edge_connect_max_y)

    # Bottom band, right half
    right = False
    if 0 <= row < xyz.shape[0]:
        start = max(half - left_x, 0)
        end = min(cols - left_x, xyz.shape[1])
        if end > start:
            right = _any_depth(xyz[row, start:end, 2])

    if not right:
        right = _side_sweep(xyz, cols - params.side_edge_thresh - left_x, rows, top_y,
                            params.hand_edge_connect_max_y)

    logger.debug(f"Edge connectivity for {cluster}: left={left}, right={right}")
    return left, right
