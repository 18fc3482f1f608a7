"""
Feature vectors for the hand classifier.

The vector starts with the finger count, followed by whole-hand shape
features, then one block per finger (longest finger first): seven shape
features and, for hands with more than one finger, four neighbour-distance
extrema.
Scale factors bring the values into a similar range for the RBF kernel.
"""

import math
import logging
from typing import List, Tuple

import numpy as np
import cv2

from ...cluster import Cluster
from ...core import constants
from ...core import utils
from ..hand_types import Hand

logger = logging.getLogger(__name__)

HAND_FEATURE_NAMES = [
    'num_fingers', 'avg_center_dist', 'std_center_dist', 'surface_area', 'std_depth',
    'contour_hull_area_ratio', 'contour_bbox_area_ratio', 'arc_length_ratio',
    'radius_diameter_ratio', 'diameter_3d', 'wrist_width', 'avg_finger_length',
    'avg_finger_mid_wrist_dist',
]
FINGER_FEATURE_NAMES = [
    'tip_defect_dist', 'defect_center_dist', 'tip_center_dist', 'angle_3d',
    'angle_2d', 'tip_angle', 'defect_angle',
]
NEIGHBOR_FEATURE_NAMES = [
    'min_tip_dist', 'max_tip_dist', 'min_defect_dist', 'max_defect_dist',
]


def feature_names(num_fingers: int) -> List[str]:
    """Names of the features produced for a hand with ``num_fingers`` fingers."""
    if num_fingers < 1:
        return HAND_FEATURE_NAMES[:1]
    names = list(HAND_FEATURE_NAMES)
    for i in range(num_fingers):
        names += [f'finger{i}_{name}' for name in FINGER_FEATURE_NAMES]
        if num_fingers > 1:
            names += [f'finger{i}_{name}' for name in NEIGHBOR_FEATURE_NAMES]
    return names


def feature_count(num_fingers: int) -> int:
    return len(feature_names(num_fingers))


def _safe_div(num: float, den: float) -> float:
    if den == 0:
        return math.nan
    return num / den


def center_distance_stats(points_xyz: np.ndarray, center: np.ndarray) -> Tuple[float, float, float, float]:
    """
    Mean and variance of the planar distance to ``center`` and of the depth.

    Returns:
        Tuple (mean_dist, var_dist, mean_depth, var_depth)
    """
    pts = np.asarray(points_xyz, dtype=np.float64).reshape(-1, 3)
    if len(pts) == 0:
        return math.nan, math.nan, math.nan, math.nan
    dists = np.linalg.norm(pts[:, :2] - np.asarray(center, dtype=np.float64)[:2], axis=1)
    depths = pts[:, 2]
    return float(dists.mean()), float(dists.var()), float(depths.mean()), float(depths.var())


def sanitize_features(features: np.ndarray) -> np.ndarray:
    """Replace NaN and values at or beyond the float32 limit."""
    out = np.array(features, dtype=np.float64)
    out[np.isnan(out)] = constants.FEATURE_NAN_VALUE
    out[np.abs(out) >= constants.FEATURE_SENTINEL] = constants.FEATURE_OVERFLOW_VALUE
    return out


def extract_hand_features(hand: Hand, cluster: Cluster) -> np.ndarray:
    """
    Compute the classifier feature vector of a hand.

    Args:
        hand: Hand with validated geometry (palm, wrist and fingers)
        cluster: Cluster the hand was detected in

    Returns:
        1-D float64 array; ``[0.0]`` for a hand without fingers
    """
    n = hand.num_fingers
    if n == 0:
        return np.zeros(1, dtype=np.float64)

    xyz = cluster.xyz_map
    center_xyz = np.asarray(hand.palm_center_xyz, dtype=np.float64)
    center_ij = hand.palm_center_ij
    result: List[float] = [float(n)]

    avg_dist, var_dist, _, var_depth = center_distance_stats(cluster.points_xyz, center_xyz)
    result += [avg_dist * 20, math.sqrt(var_dist) * 25, hand.surface_area * 10,
               math.sqrt(var_depth) * 25]

    contour = hand.boundary.reshape(-1, 1, 2).astype(np.int32)
    hull = hand.hull.reshape(-1, 1, 2).astype(np.int32)
    contour_area = cv2.contourArea(contour)
    hull_area = cv2.contourArea(hull) if len(hull) >= 3 else 0.0
    _, _, box_w, box_h = hand.bounding_box

    result.append(_safe_div(contour_area, hull_area))
    result.append(_safe_div(contour_area, box_w * box_h))
    hull_arc = cv2.arcLength(hull, True) if len(hull) >= 2 else 0.0
    result.append(_safe_div(cv2.arcLength(contour, True), hull_arc) * 0.5)

    diam, ia, ib = utils.diameter(hand.boundary)
    result.append(_safe_div(hand.circle_radius, diam) * 2)

    end_a = utils.average_around_point(xyz, hand.boundary[ia], constants.DEFAULT_XYZ_AVERAGE_SIZE)
    end_b = utils.average_around_point(xyz, hand.boundary[ib], constants.DEFAULT_XYZ_AVERAGE_SIZE)
    result.append(utils.euclidean_distance(end_a, end_b))

    if len(hand.wrist_xyz) == 2:
        wrist_a = np.asarray(hand.wrist_xyz[0], dtype=np.float64)
        wrist_b = np.asarray(hand.wrist_xyz[1], dtype=np.float64)
        result.append(utils.euclidean_distance(wrist_a, wrist_b))
        mid_wrist = wrist_a + (wrist_b - wrist_a) / 2
    else:
        result.append(math.nan)
        mid_wrist = np.full(3, math.nan)

    tips_xyz = [np.asarray(p, dtype=np.float64) for p in hand.fingers_xyz]
    defects_xyz = [np.asarray(p, dtype=np.float64) for p in hand.defects_xyz]
    lengths = [utils.euclidean_distance(t, d) for t, d in zip(tips_xyz, defects_xyz)]
    order = sorted(range(n), key=lambda i: (lengths[i], i), reverse=True)

    result.append(sum(lengths) / n * 5)
    result.append(sum(utils.euclidean_distance(t, mid_wrist) for t in tips_xyz) / n * 2)

    for i in order:
        tip, defect = tips_xyz[i], defects_xyz[i]
        tip_ij = np.asarray(hand.fingers_ij[i], dtype=np.float64)
        defect_ij = np.asarray(hand.defects_ij[i], dtype=np.float64)
        center = np.asarray(center_ij, dtype=np.float64)

        result.append(lengths[i] * 5)
        result.append(utils.euclidean_distance(defect, center_xyz) * 5)
        result.append(utils.euclidean_distance(tip, center_xyz) * 5)
        result.append(utils.angle_between_3d_vectors(tip, defect, center_xyz) / math.pi)
        result.append(utils.angle_between_points(tip_ij, center, defect_ij) / math.pi)
        result.append(utils.point_to_angle(tip_ij - center))
        result.append(utils.point_to_angle(defect_ij - center))

        if n > 1:
            min_tip = min_defect = float(cluster.frame_size[0])
            max_tip = max_defect = 0.0
            for j in range(n):
                if j == i:
                    continue
                tip_dist = utils.euclidean_distance(tip, tips_xyz[j])
                defect_dist = utils.euclidean_distance(defect, defects_xyz[j])
                min_tip, max_tip = min(min_tip, tip_dist), max(max_tip, tip_dist)
                min_defect, max_defect = min(min_defect, defect_dist), max(max_defect, defect_dist)
            result += [min_tip * 5, max_tip * 5, min_defect * 5, max_defect * 5]

    features = sanitize_features(np.asarray(result, dtype=np.float64))
    logger.debug(f"Extracted {len(features)} features for {n} fingers")
    return features
