"""
Single finger fallback.

A lone extended finger produces no defect between two fingertips, so the
defect-based search finds at most one candidate. Instead, the hull point
farthest from the palm (and above it) is taken as the fingertip and paired
with the nearest good defect.
"""

import math
import logging
from typing import List, Optional

from ..cluster import Cluster
from ..core import utils
from ..params import ObjectParams
from .contour_geometry import ContourGeometry, cyclic_distance, nearest_boundary_index
from .finger_detection import FingerCandidate, slope_ratio, curvature_in_bands, curvature_samples
from .hand_types import Defect

logger = logging.getLogger(__name__)


def detect_single_finger(cluster: Cluster, geometry: ContourGeometry,
                         good_defects: List[Defect],
                         params: ObjectParams) -> Optional[FingerCandidate]:
    """
    Look for exactly one extended finger.

    Args:
        cluster: Cluster being analysed
        geometry: Its contour geometry
        good_defects: Good defects found during candidate collection
        params: Detection parameters

    Returns:
        The finger, or None when the fallback finds no acceptable finger
    """
    xyz = cluster.xyz_map
    boundary = geometry.boundary
    hull = geometry.hull
    frame_size = cluster.frame_size
    palm_ij = cluster.to_frame(geometry.palm_center)

    best = -1
    farthest = 0.0
    if len(hull) > 1:
        for i, pt in enumerate(hull):
            pt_ij = cluster.to_frame(pt)
            if utils.point_on_edge(frame_size, pt_ij, params.bottom_edge_thresh,
                                   params.side_edge_thresh):
                continue

            pt_xyz = utils.average_around_point(xyz, pt, params.single_finger_hull_average_size)
            dist = utils.euclidean_distance(pt_xyz, geometry.palm_center_xyz)
            slope = slope_ratio(palm_ij[1] - pt_ij[1], pt_ij[0] - palm_ij[0])

            if slope > params.single_finger_slope_min and \
                    pt_ij[1] < frame_size[1] - params.bottom_edge_thresh and dist > farthest:
                farthest = dist
                best = i

    if best < 0:
        logger.debug("Single finger: no hull point above the palm")
        return None

    tip_idx = int(geometry.hull_indices[best])
    left = cluster.to_frame(hull[(best - 1) % len(hull)])
    right = cluster.to_frame(hull[(best + 1) % len(hull)])

    tip = utils.nearest_point_on_cluster(xyz, hull[best], max_dist=10000)
    tip_ij = cluster.to_frame(tip)
    tip_xyz = utils.average_around_point(xyz, tip, params.single_finger_tip_average_size)

    angle = utils.angle_between_points(left, right, tip_ij)
    if angle <= params.single_finger_angle_thresh or \
            utils.point_on_edge(frame_size, tip_ij, params.bottom_edge_thresh,
                                params.side_edge_thresh) or not good_defects:
        logger.debug(f"Single finger at {tip_ij} rejected: angle={angle:.2f}, "
                     f"good defects={len(good_defects)}")
        return None

    best_dist = math.inf
    defect_idx = -1
    defect_ij = None
    defect_xyz = None
    for _, _, far_idx, _ in good_defects:
        far = boundary[far_idx]
        far_xyz = utils.average_around_point(xyz, far, params.xyz_average_size)
        dist = utils.euclidean_distance(far_xyz, tip_xyz)
        if params.single_finger_len_min < dist < best_dist:
            best_dist = dist
            defect_idx = far_idx
            defect_ij = cluster.to_frame(utils.nearest_point_on_cluster(xyz, far))
            defect_xyz = far_xyz

    if defect_idx < 0:
        defect_idx = nearest_boundary_index(boundary, geometry.palm_center)
        defect_ij = palm_ij
        defect_xyz = geometry.palm_center_xyz

    points_to_defect = cyclic_distance(tip_idx, defect_idx, len(boundary))
    if points_to_defect < params.min_points_to_defect:
        logger.debug(f"Single finger at {tip_ij}: only {points_to_defect} points to defect")
        return None

    curve_near, curve_far = curvature_samples(boundary, tip_idx, points_to_defect)
    if not curvature_in_bands(curve_near, curve_far, params):
        logger.debug(f"Single finger at {tip_ij}: curvature {curve_near:.2f}/{curve_far:.2f} out of band")
        return None

    finger_length = utils.euclidean_distance(tip_xyz, defect_xyz)
    if not params.single_finger_len_min <= finger_length <= params.single_finger_len_max:
        logger.debug(f"Single finger at {tip_ij}: length {finger_length:.3f} out of range")
        return None

    return FingerCandidate(tip_idx=tip_idx, defect_idx=int(defect_idx), tip_ij=tip_ij,
                           defect_ij=defect_ij, tip_xyz=tip_xyz, defect_xyz=defect_xyz)
