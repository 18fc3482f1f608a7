"""
Contour, convex hull, convexity defects and palm center of a cluster.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Tuple

import numpy as np
import cv2

from ..cluster import Cluster
from ..core import utils
from ..params import ObjectParams
from .hand_types import Defect, PointIJ

logger = logging.getLogger(__name__)


@dataclass
class ContourGeometry:
    """
    Shape of a cluster in bounding-box coordinates.

    Attributes:
        boundary: (N, 2) ordered outer boundary points
        hull_indices: Indices into ``boundary`` forming the convex hull
        hull: (M, 2) hull points
        defects: Convexity defects (start, end, far, depth)
        centroid: Boundary centroid snapped onto the cluster
        palm_center: Center of the largest inscribed circle
        palm_center_xyz: Averaged world position of the palm center
        circle_radius: Radius of the inscribed circle in pixels
    """
    boundary: np.ndarray
    hull_indices: np.ndarray = field(default_factory=lambda: np.zeros(0, dtype=np.int32))
    hull: np.ndarray = field(default_factory=lambda: np.zeros((0, 2), dtype=np.int32))
    defects: List[Defect] = field(default_factory=list)
    centroid: PointIJ = (0, 0)
    palm_center: PointIJ = (0, 0)
    palm_center_xyz: np.ndarray = field(default_factory=lambda: np.zeros(3))
    circle_radius: float = 0.0

    @property
    def num_points(self) -> int:
        return len(self.boundary)


def compute_convexity_defects(boundary: np.ndarray, hull_indices: np.ndarray) -> List[Defect]:
    """
    Convexity defects of a boundary with respect to its hull.

    OpenCV rejects hulls whose indices are not monotonic; such hulls are
    retried in sorted order, and a boundary it still cannot process is
    treated as having no defects.

    Args:
        boundary: (N, 2) boundary points
        hull_indices: Hull indices into ``boundary``

    Returns:
        List of (start, end, far, depth) with depth in pixels
    """
    contour = boundary.reshape(-1, 1, 2).astype(np.int32)
    hull = hull_indices.reshape(-1, 1).astype(np.int32)

    raw = None
    try:
        raw = cv2.convexityDefects(contour, hull)
    except cv2.error as e:
        logger.debug(f"convexityDefects failed on hull order, retrying sorted: {e}")
        try:
            raw = cv2.convexityDefects(contour, np.sort(hull, axis=0)[::-1].copy())
        except cv2.error as e2:
            logger.debug(f"convexityDefects failed, assuming no defects: {e2}")
            return []

    if raw is None:
        return []
    return [(int(s), int(e), int(f), float(d) / 256.0) for s, e, f, d in raw.reshape(-1, 4)]


def compute_contour_geometry(cluster: Cluster, params: ObjectParams) -> ContourGeometry:
    """
    Compute the boundary, hull, defects and palm center of a cluster.

    Args:
        cluster: Non-empty cluster
        params: Detection parameters

    Returns:
        ContourGeometry in bounding-box coordinates
    """
    xyz = cluster.xyz_map
    boundary = utils.compute_boundary(cluster.mask)
    geometry = ContourGeometry(boundary=boundary)
    if len(boundary) == 0:
        return geometry

    hull_indices = cv2.convexHull(boundary.reshape(-1, 1, 2), returnPoints=False)
    hull_indices = hull_indices.ravel().astype(np.int32)
    geometry.hull_indices = hull_indices
    geometry.hull = boundary[hull_indices]

    if len(hull_indices) > 3:
        geometry.defects = compute_convexity_defects(boundary, hull_indices)

    centroid = utils.find_center(boundary)
    geometry.centroid = utils.nearest_point_on_cluster(xyz, centroid)

    top_xyz = utils.average_around_point(xyz, cluster.to_local(cluster.top_point),
                                         params.xyz_average_size)
    center, radius = utils.largest_inscribed_circle(
        cluster.mask, xyz, top_xyz, params.center_max_dist_from_top,
        max_row=geometry.centroid[1])
    geometry.palm_center = center
    geometry.circle_radius = radius
    geometry.palm_center_xyz = utils.average_around_point(xyz, center, params.xyz_average_size)

    logger.debug(f"Contour of {len(boundary)} points, hull {len(hull_indices)}, "
                 f"{len(geometry.defects)} defects, palm center {center} r={radius:.1f}")
    return geometry


def cyclic_distance(a: int, b: int, n: int) -> int:
    """Number of boundary steps between two indices, the short way round."""
    diff = abs(a - b)
    return min(diff, n - diff)


def nearest_boundary_index(boundary: np.ndarray, pt: Tuple[int, int]) -> int:
    """Index of the boundary point closest to ``pt``."""
    diff = boundary.astype(np.float64) - np.asarray(pt, dtype=np.float64)
    return int(np.argmin(np.einsum('ij,ij->i', diff, diff)))
