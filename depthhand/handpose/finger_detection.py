"""
Finger candidate detection from convexity defects.

Defects between fingers have their start and end points on fingertips. The
defects are visited in angular order around the palm, their endpoints are
collected as fingertip candidates, and each candidate is then validated
against its defect point with length, slope, angle and curvature checks.
"""

import math
import logging
from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

import numpy as np

from ..cluster import Cluster
from ..core import utils
from ..params import ObjectParams
from .contour_geometry import ContourGeometry, cyclic_distance
from .hand_types import Defect, PointIJ
from .wrist_locator import WristResult

logger = logging.getLogger(__name__)


@dataclass
class FingerCandidate:
    """A fingertip paired with the far point of its defect."""
    tip_idx: int
    defect_idx: int
    tip_ij: PointIJ  # full frame
    defect_ij: PointIJ  # full frame
    tip_xyz: np.ndarray
    defect_xyz: np.ndarray

    @property
    def length(self) -> float:
        return utils.euclidean_distance(self.tip_xyz, self.defect_xyz)


@dataclass
class DefectScan:
    """Fingertip candidates and good defects collected from the sorted defects."""
    sorted_defects: List[Defect]
    good_defects: List[Defect]
    tip_indices: List[int]
    defect_indices: List[int]


def slope_ratio(dy: float, dx: float) -> float:
    """dy / |dx| with IEEE semantics for a vertical pair."""
    dx = abs(dx)
    if dx == 0:
        if dy == 0:
            return math.nan
        return math.copysign(math.inf, dy)
    return dy / dx


def sort_defects(boundary: np.ndarray, defects: Sequence[Defect],
                 center: PointIJ) -> List[Defect]:
    """
    Order defects counterclockwise around ``center`` starting from straight down.

    Args:
        boundary: (N, 2) boundary points
        defects: Defects to sort
        center: Palm center in the same coordinates as ``boundary``

    Returns:
        Sorted list of defects
    """
    slopes: Dict[int, float] = {}
    for defect in defects:
        far = defect[2]
        if far not in slopes:
            pt = boundary[far]
            slopes[far] = utils.point_to_slope((pt[0] - center[0], pt[1] - center[1]))
    return sorted(defects, key=lambda d: slopes[d[2]], reverse=True)


def under_wrist(far_idx: int, wrist_l: int, wrist_r: int, direction: int) -> bool:
    """Check whether a boundary index lies on the arm side of the wrist."""
    if direction == -1:
        if wrist_l <= wrist_r:
            return wrist_l <= far_idx <= wrist_r
        return far_idx <= wrist_r or far_idx >= wrist_l
    if wrist_l <= wrist_r:
        return far_idx <= wrist_l or far_idx >= wrist_r
    return wrist_r <= far_idx <= wrist_l


def collect_candidates(cluster: Cluster, geometry: ContourGeometry, wrist: WristResult,
                       params: ObjectParams) -> DefectScan:
    """
    Turn convexity defects into fingertip candidates.

    Args:
        cluster: Cluster being analysed
        geometry: Its contour geometry
        wrist: Located wrist
        params: Detection parameters

    Returns:
        DefectScan with the candidates and the good defects
    """
    xyz = cluster.xyz_map
    boundary = geometry.boundary
    avg = params.xyz_average_size

    defects = sort_defects(boundary, geometry.defects, geometry.palm_center)
    scan = DefectScan(sorted_defects=defects, good_defects=[], tip_indices=[], defect_indices=[])

    last_end = None
    first = True
    for defect in defects:
        start_idx, end_idx, far_idx, _ = defect
        if under_wrist(far_idx, wrist.wrist_l, wrist.wrist_r, wrist.direction):
            continue

        start = utils.nearest_point_on_cluster(xyz, boundary[start_idx])
        end = utils.nearest_point_on_cluster(xyz, boundary[end_idx])
        far = utils.nearest_point_on_cluster(xyz, boundary[far_idx])
        if not (utils.point_in_image(xyz, far) and utils.point_in_image(xyz, start)
                and utils.point_in_image(xyz, end)):
            continue

        far_xyz = utils.average_around_point(xyz, far, avg)
        start_xyz = utils.average_around_point(xyz, start, avg)
        end_xyz = utils.average_around_point(xyz, end, avg)

        far_center_dist = utils.euclidean_distance(far_xyz, geometry.palm_center_xyz)
        start_end_dist = utils.euclidean_distance(start_xyz, end_xyz)
        if not (params.defect_far_center_min_dist < far_center_dist < params.defect_far_center_max_dist
                and start_end_dist > params.defect_start_end_min_dist):
            continue

        scan.good_defects.append(defect)

        if utils.angle_between_points(start, end, far) > params.defect_max_angle:
            continue

        if not utils.point_on_edge(cluster.frame_size, cluster.to_frame(start),
                                   params.bottom_edge_thresh, params.side_edge_thresh) and \
                (first or utils.euclidean_distance(last_end, start_xyz) > params.defect_min_dist):
            scan.tip_indices.append(start_idx)
            scan.defect_indices.append(far_idx)
            first = False

        if not utils.point_on_edge(cluster.frame_size, cluster.to_frame(end),
                                   params.bottom_edge_thresh, params.side_edge_thresh):
            scan.tip_indices.append(end_idx)
            scan.defect_indices.append(far_idx)

        last_end = end_xyz

    logger.debug(f"{len(defects)} defects, {len(scan.good_defects)} good, "
                 f"{len(scan.tip_indices)} fingertip candidates")
    return scan


def curvature_samples(boundary: np.ndarray, tip_idx: int, points_to_defect: int) -> Tuple[float, float]:
    """
    Near and far curvature at a fingertip.

    The far sample is the smaller of the medium- and long-offset estimates.

    Returns:
        Tuple (curve_near, curve_far)
    """
    near_lo = max(2, points_to_defect // 20)
    mid_lo = max(2, points_to_defect // 5)
    far_lo = max(2, points_to_defect * 9 // 10)

    curve_near = utils.contour_curvature(boundary, tip_idx, near_lo, near_lo + 4)
    curve_mid = utils.contour_curvature(boundary, tip_idx, mid_lo, mid_lo + 5)
    curve_far = utils.contour_curvature(boundary, tip_idx, far_lo, far_lo + 5)
    return curve_near, min(curve_mid, curve_far)


def curvature_in_bands(curve_near: float, curve_far: float, params: ObjectParams) -> bool:
    return (params.finger_curve_near_min <= curve_near <= params.finger_curve_near_max and
            params.finger_curve_far_min <= curve_far <= params.finger_curve_far_max)


def validate_candidates(cluster: Cluster, geometry: ContourGeometry, scan: DefectScan,
                        params: ObjectParams) -> List[FingerCandidate]:
    """
    Apply the validation battery to every fingertip candidate.

    Args:
        cluster: Cluster being analysed
        geometry: Its contour geometry
        scan: Candidates from :func:`collect_candidates`
        params: Detection parameters

    Returns:
        Candidates that passed every check, in candidate order
    """
    xyz = cluster.xyz_map
    boundary = geometry.boundary
    n = len(boundary)
    center = geometry.palm_center
    frame_height = cluster.frame_size[1]
    avg = params.xyz_average_size

    fingers = []
    for tip_idx, defect_idx in zip(scan.tip_indices, scan.defect_indices):
        tip = boundary[tip_idx]
        defect = boundary[defect_idx]

        if not (defect[1] < center[1] + params.defect_max_y_from_center and
                defect[1] + cluster.top_left[1] < frame_height - params.bottom_edge_thresh):
            continue

        tip_xyz = utils.average_around_point(xyz, tip, avg)
        defect_xyz = utils.average_around_point(xyz, defect, avg)

        finger_length = utils.euclidean_distance(tip_xyz, defect_xyz)
        finger_defect_slope = slope_ratio(defect[1] - tip[1], defect[0] - tip[0])
        finger_center_slope = slope_ratio(center[1] - tip[1], center[0] - tip[0])
        centroid_defect_finger_angle = utils.angle_between_points(tip, center, defect)

        points_to_defect = cyclic_distance(tip_idx, defect_idx, n)
        if points_to_defect < params.min_points_to_defect:
            continue

        curve_near, curve_far = curvature_samples(boundary, tip_idx, points_to_defect)

        if (params.finger_len_min < finger_length < params.finger_len_max and
                finger_defect_slope > params.finger_defect_slope_min and
                finger_center_slope > params.finger_center_slope_min and
                centroid_defect_finger_angle > params.centroid_defect_finger_angle_min and
                tip_xyz[2] != 0 and
                curvature_in_bands(curve_near, curve_far, params)):
            fingers.append(FingerCandidate(
                tip_idx=int(tip_idx), defect_idx=int(defect_idx),
                tip_ij=cluster.to_frame(tip), defect_ij=cluster.to_frame(defect),
                tip_xyz=tip_xyz, defect_xyz=defect_xyz))
        else:
            logger.debug(f"Rejected fingertip {cluster.to_frame(tip)}: len={finger_length:.3f} "
                         f"curve_near={curve_near:.2f} curve_far={curve_far:.2f}")

    return fingers


def deduplicate(fingers: List[FingerCandidate], min_dist: float) -> List[FingerCandidate]:
    """
    Drop fingertips that have a higher fingertip within ``min_dist``.

    A fingertip is compared against every other fingertip strictly above it
    in the image (earlier candidates win ties in height), so the topmost of
    any group of near-duplicates survives.

    Args:
        fingers: Validated candidates
        min_dist: Minimum 3D separation between fingertips

    Returns:
        Surviving candidates, in their original order
    """
    kept = []
    for i, finger in enumerate(fingers):
        y = finger.tip_ij[1]
        duplicate = False
        for j, other in enumerate(fingers):
            if j == i:
                continue
            other_y = other.tip_ij[1]
            if other_y > y or (other_y == y and j > i):
                continue
            if utils.euclidean_distance(finger.tip_xyz, other.tip_xyz) < min_dist:
                duplicate = True
                break
        if not duplicate:
            kept.append(finger)
    return kept


def detect_fingers(cluster: Cluster, geometry: ContourGeometry, wrist: WristResult,
                   params: ObjectParams) -> Tuple[List[FingerCandidate], DefectScan]:
    """
    Run candidate collection, validation and deduplication.

    Returns:
        Tuple (fingers, scan)
    """
    scan = collect_candidates(cluster, geometry, wrist, params)
    fingers = deduplicate(validate_candidates(cluster, geometry, scan, params),
                          params.finger_dist_min)
    return fingers, scan
