"""
Wrist localization.

The wrist is found by walking the boundary from the points where the arm
enters the frame (the contact points) towards the palm, stopping at the first
point on each side that comes within reach of the palm center.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Tuple

import numpy as np

from ..cluster import Cluster
from ..core import utils
from ..params import ObjectParams
from .contour_geometry import ContourGeometry

logger = logging.getLogger(__name__)


@dataclass
class WristResult:
    """Outcome of the wrist search; indices are -1 when not found."""
    contact_l: int = -1
    contact_r: int = -1
    direction: int = 1
    wrist_l: int = -1
    wrist_r: int = -1
    wrist_l_xyz: np.ndarray = None
    wrist_r_xyz: np.ndarray = None

    @property
    def found(self) -> bool:
        return self.wrist_l >= 0 and self.wrist_r >= 0

    @property
    def width(self) -> float:
        return utils.euclidean_distance(self.wrist_l_xyz, self.wrist_r_xyz)


def find_contact_points(boundary_ij: np.ndarray, touching_edge: bool,
                        frame_size: Tuple[int, int], params: ObjectParams) -> Tuple[int, int]:
    """
    Find the boundary points where the arm enters the frame.

    When the cluster touches an edge, the contact points are the outermost
    boundary points in the lower edge band: leftmost/rightmost along the
    bottom, or lowest/highest along a side. Otherwise both contacts are the
    lowest boundary point.

    Args:
        boundary_ij: (N, 2) boundary in full-frame coordinates
        touching_edge: Whether the cluster is edge-connected
        frame_size: (width, height) of the frame
        params: Detection parameters

    Returns:
        Tuple (contact_l, contact_r) of boundary indices, (-1, -1) if none
    """
    width, height = frame_size
    contact_l = contact_r = -1

    if not touching_edge:
        lowest = -1
        for i, (_, y) in enumerate(boundary_ij):
            if y > lowest:
                lowest = y
                contact_l = contact_r = i
        return contact_l, contact_r

    l_margin = params.contact_side_edge_thresh
    r_margin = width - params.contact_side_edge_thresh
    min_y = height * params.hand_edge_connect_max_y

    for i, pt in enumerate(boundary_ij):
        x, y = int(pt[0]), int(pt[1])
        if y <= min_y or not utils.point_on_edge(frame_size, (x, y),
                                                 params.contact_bot_edge_thresh,
                                                 params.contact_side_edge_thresh):
            continue

        if contact_l < 0:
            contact_l = contact_r = i
            continue

        lx, ly = boundary_ij[contact_l]
        rx, ry = boundary_ij[contact_r]
        if x <= l_margin:
            if lx > l_margin or ly > y:
                contact_l = i
            if rx <= l_margin and ry < y:
                contact_r = i
        elif x >= r_margin:
            if rx < r_margin or ry > y:
                contact_r = i
            if lx >= r_margin and ly < y:
                contact_l = i
        else:
            if lx > x:
                contact_l = i
            if rx < x:
                contact_r = i

    return contact_l, contact_r


def traversal_direction(contact_l: int, contact_r: int, n: int) -> int:
    """
    Boundary step (+1 or -1) that leads from ``contact_l`` to ``contact_r``
    the long way round, i.e. through the hand rather than along the arm cut.
    """
    if (contact_r > contact_l and contact_r - contact_l < n // 2) or \
            (contact_r <= contact_l and contact_l - contact_r >= n // 2):
        return -1
    return 1


def walk_to_wrist(distance_at: Callable[[int], float], n: int, contact_l: int,
                  contact_r: int, direction: int, max_dist: float) -> Tuple[int, int]:
    """
    Walk the boundary from each contact point towards the other.

    The left walk steps by ``direction`` from ``contact_l`` and the right walk
    by ``-direction`` from ``contact_r``; each stops at the first index whose
    distance to the palm center is at most ``max_dist``.

    Args:
        distance_at: Distance from the boundary point at an index to the palm center
        n: Number of boundary points
        contact_l: Left contact index
        contact_r: Right contact index
        direction: Step of the left walk
        max_dist: Reach of the palm center

    Returns:
        Tuple (wrist_l, wrist_r), -1 for a walk that found nothing
    """
    def walk(start: int, stop: int, step: int) -> int:
        i = start
        while True:
            if distance_at(i) <= max_dist:
                return i
            i = (i + step) % n
            if i == stop:
                return -1

    return walk(contact_l, contact_r, direction), walk(contact_r, contact_l, -direction)


def locate_wrist(cluster: Cluster, geometry: ContourGeometry, touching_edge: bool,
                 params: ObjectParams) -> WristResult:
    """
    Locate the two wrist points of a cluster.

    Args:
        cluster: Cluster being analysed
        geometry: Its contour geometry
        touching_edge: Whether the cluster is edge-connected
        params: Detection parameters

    Returns:
        WristResult; ``found`` is False when either walk failed
    """
    boundary = geometry.boundary
    n = len(boundary)
    result = WristResult()
    if n == 0:
        return result

    boundary_ij = boundary + np.asarray(cluster.top_left, dtype=np.int32)
    result.contact_l, result.contact_r = find_contact_points(
        boundary_ij, touching_edge, cluster.frame_size, params)
    if result.contact_l < 0:
        logger.debug("No contact points found")
        return result

    result.direction = traversal_direction(result.contact_l, result.contact_r, n)

    xyz = cluster.xyz_map

    def distance_at(i: int) -> float:
        pt_xyz = utils.average_around_point(xyz, boundary[i], params.xyz_average_size)
        return utils.euclidean_distance(pt_xyz, geometry.palm_center_xyz)

    result.wrist_l, result.wrist_r = walk_to_wrist(
        distance_at, n, result.contact_l, result.contact_r, result.direction,
        params.wrist_center_dist_thresh)

    if result.found:
        result.wrist_l_xyz = utils.average_around_point(xyz, boundary[result.wrist_l],
                                                        params.xyz_average_size)
        result.wrist_r_xyz = utils.average_around_point(xyz, boundary[result.wrist_r],
                                                        params.xyz_average_size)
        logger.debug(f"Wrist at boundary indices {result.wrist_l}, {result.wrist_r}, "
                     f"width {result.width:.3f}")
    else:
        logger.debug(f"Wrist walk failed from contacts {result.contact_l}, {result.contact_r}")

    return result
