"""
Geometry primitives shared by the hand detection stages.

All 2D points are ``(x, y)`` pixel tuples (column, row). XYZ maps are
``(rows, cols, 3)`` float arrays where a zero depth (third channel) marks a
pixel that does not belong to the cluster.
"""

import math
import logging
from typing import Optional, Sequence, Tuple

import numpy as np
import cv2

logger = logging.getLogger(__name__)

Point = Tuple[int, int]


def euclidean_distance(a, b) -> float:
    """
    Euclidean distance between two points of any (equal) dimension.

    Args:
        a: First point
        b: Second point

    Returns:
        Distance as float
    """
    diff = np.asarray(a, dtype=np.float64) - np.asarray(b, dtype=np.float64)
    return float(np.sqrt(np.dot(diff, diff)))


def point_in_image(xyz_map: np.ndarray, pt: Sequence[int]) -> bool:
    """Check whether a point lies inside the map."""
    return 0 <= pt[0] < xyz_map.shape[1] and 0 <= pt[1] < xyz_map.shape[0]


def point_on_edge(frame_size: Tuple[int, int], pt: Sequence[int],
                  bottom_thresh: int, side_thresh: int) -> bool:
    """
    Check whether a full-frame point lies within the bottom or side bands of the frame.

    Args:
        frame_size: (width, height) of the full frame
        pt: Point in full-frame coordinates
        bottom_thresh: Height of the bottom band in pixels
        side_thresh: Width of the side bands in pixels

    Returns:
        True if the point is on the edge
    """
    width, height = frame_size
    return (pt[0] <= side_thresh or pt[0] >= width - side_thresh or
            pt[1] >= height - bottom_thresh)


def average_around_point(xyz_map: np.ndarray, pt: Sequence[int], size: int = 9) -> np.ndarray:
    """
    Average the valid xyz values in a square window centered at a point.

    Args:
        xyz_map: XYZ map of the cluster
        pt: Window center (x, y) in map coordinates
        size: Window side length in pixels

    Returns:
        Averaged xyz vector, zeros if the window holds no valid point
    """
    half = size // 2
    rows, cols = xyz_map.shape[:2]
    r0, r1 = max(int(pt[1]) - half, 0), min(int(pt[1]) + half + 1, rows)
    c0, c1 = max(int(pt[0]) - half, 0), min(int(pt[0]) + half + 1, cols)

    if r0 >= r1 or c0 >= c1:
        return np.zeros(3, dtype=np.float64)

    window = xyz_map[r0:r1, c0:c1].reshape(-1, 3)
    valid = window[window[:, 2] != 0]
    if len(valid) == 0:
        return np.zeros(3, dtype=np.float64)
    return valid.mean(axis=0, dtype=np.float64)


def nearest_point_on_cluster(xyz_map: np.ndarray, pt: Sequence[int],
                             max_dist: float = 500) -> Point:
    """
    Snap a point to the closest pixel that belongs to the cluster.

    Args:
        xyz_map: XYZ map of the cluster
        pt: Point (x, y) in map coordinates
        max_dist: Points farther than this are not considered

    Returns:
        The snapped point, or the input point if nothing is in range
    """
    x, y = int(pt[0]), int(pt[1])
    if point_in_image(xyz_map, (x, y)) and xyz_map[y, x, 2] != 0:
        return x, y

    rows, cols = np.nonzero(xyz_map[:, :, 2])
    if len(rows) == 0:
        return x, y

    sq_dist = (cols - x) ** 2 + (rows - y) ** 2
    best = int(np.argmin(sq_dist))
    if sq_dist[best] > max_dist * max_dist:
        return x, y
    return int(cols[best]), int(rows[best])


def angle_between_points(a: Sequence[float], b: Sequence[float],
                         origin: Sequence[float]) -> float:
    """
    Angle formed at ``origin`` by the rays towards ``a`` and ``b``.

    Returns:
        Angle in radians in [0, pi]; 0 if either ray is degenerate
    """
    va = np.asarray(a, dtype=np.float64) - np.asarray(origin, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64) - np.asarray(origin, dtype=np.float64)
    norm = np.linalg.norm(va) * np.linalg.norm(vb)
    if norm == 0:
        return 0.0
    cos_angle = np.clip(np.dot(va, vb) / norm, -1.0, 1.0)
    return float(np.arccos(cos_angle))


def angle_between_3d_vectors(a: Sequence[float], b: Sequence[float],
                             origin: Sequence[float]) -> float:
    """3D counterpart of :func:`angle_between_points`."""
    return angle_between_points(a[:3], b[:3], origin[:3])


def point_to_slope(pt: Sequence[float]) -> float:
    """
    Order-preserving stand-in for the angle of a vector, without trigonometry.

    The value decreases as the vector rotates counterclockwise (as seen on
    screen, y pointing down) starting from straight down, so sorting by
    descending slope orders vectors counterclockwise from the bottom.

    Args:
        pt: Vector (x, y) in image coordinates

    Returns:
        Slope value in (-4, 0]
    """
    x, y = float(pt[0]), float(pt[1])
    if x == 0 and y == 0:
        return 0.0
    if x >= 0 and y > 0:
        turn = x / (x + y)
    elif x > 0 and y <= 0:
        turn = 1.0 + (-y) / (x - y)
    elif x <= 0 and y < 0:
        turn = 2.0 + (-x) / (-x - y)
    else:
        turn = 3.0 + y / (y - x)
    return -turn


def point_to_angle(pt: Sequence[float]) -> float:
    """
    Angle of an image-space vector, measured counterclockwise from the +x axis.

    Returns:
        Angle in radians in (-pi, pi]
    """
    return math.atan2(-float(pt[1]), float(pt[0]))


def contour_curvature(contour: np.ndarray, index: int, lo: int, hi: int) -> float:
    """
    Estimate how sharply a closed boundary bends at ``index``.

    For each offset in [lo, hi] the angle at the point between its neighbours
    ``offset`` steps before and after is measured; the mean is returned.
    Straight boundaries give values near pi, sharp tips values near 0.

    Args:
        contour: (N, 2) boundary points
        index: Boundary index to sample at
        lo: Smallest offset
        hi: Largest offset (inclusive)

    Returns:
        Mean angle in radians
    """
    n = len(contour)
    if n == 0 or hi < lo:
        return 0.0

    offsets = np.arange(lo, hi + 1)
    center = contour[index % n].astype(np.float64)
    before = contour[(index - offsets) % n].astype(np.float64) - center
    after = contour[(index + offsets) % n].astype(np.float64) - center

    norms = np.linalg.norm(before, axis=1) * np.linalg.norm(after, axis=1)
    dots = np.einsum('ij,ij->i', before, after)
    with np.errstate(divide='ignore', invalid='ignore'):
        cos_angle = np.where(norms > 0, dots / norms, 1.0)
    angles = np.arccos(np.clip(cos_angle, -1.0, 1.0))
    return float(np.mean(angles))


def surface_area(xyz_map: np.ndarray) -> float:
    """
    Approximate 3D surface area covered by the valid pixels of an xyz map.

    Each pixel contributes the parallelogram spanned by the vectors to its
    right and lower neighbours, when both neighbours are valid.

    Returns:
        Area in squared map units
    """
    if xyz_map.shape[0] < 2 or xyz_map.shape[1] < 2:
        return 0.0

    valid = xyz_map[:, :, 2] != 0
    base = xyz_map[:-1, :-1].astype(np.float64)
    right = xyz_map[:-1, 1:].astype(np.float64) - base
    down = xyz_map[1:, :-1].astype(np.float64) - base
    usable = valid[:-1, :-1] & valid[:-1, 1:] & valid[1:, :-1]

    cross = np.cross(right[usable], down[usable])
    return float(np.linalg.norm(cross, axis=1).sum())


def find_center(contour: np.ndarray) -> Point:
    """
    Centroid of a closed boundary.

    Falls back to the mean of the boundary points for degenerate polygons.
    """
    moments = cv2.moments(contour.reshape(-1, 1, 2).astype(np.int32))
    if moments['m00'] == 0:
        mean = contour.reshape(-1, 2).mean(axis=0)
        return int(round(mean[0])), int(round(mean[1]))
    return (int(round(moments['m10'] / moments['m00'])),
            int(round(moments['m01'] / moments['m00'])))


def diameter(contour: np.ndarray) -> Tuple[float, int, int]:
    """
    Largest distance between two boundary points.

    Returns:
        Tuple (distance, index_a, index_b) with indices into ``contour``
    """
    pts = contour.reshape(-1, 2)
    if len(pts) < 2:
        return 0.0, 0, 0

    hull_idx = cv2.convexHull(pts.astype(np.int32), returnPoints=False).ravel()
    hull_pts = pts[hull_idx].astype(np.float64)
    diff = hull_pts[:, None, :] - hull_pts[None, :, :]
    sq_dist = np.einsum('ijk,ijk->ij', diff, diff)
    a, b = np.unravel_index(int(np.argmax(sq_dist)), sq_dist.shape)
    return float(np.sqrt(sq_dist[a, b])), int(hull_idx[a]), int(hull_idx[b])


def compute_boundary(mask: np.ndarray) -> np.ndarray:
    """
    Outer boundary of the largest connected region of a binary mask.

    Args:
        mask: (rows, cols) boolean or uint8 mask

    Returns:
        (N, 2) int32 array of ordered boundary points, empty if the mask is empty
    """
    padded = np.pad(mask.astype(np.uint8), 1)
    contours = cv2.findContours(padded, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_NONE,
                                offset=(-1, -1))[-2]
    if len(contours) == 0:
        return np.zeros((0, 2), dtype=np.int32)

    largest = max(contours, key=lambda c: (cv2.contourArea(c), len(c)))
    return largest.reshape(-1, 2).astype(np.int32)


def largest_inscribed_circle(mask: np.ndarray, xyz_map: np.ndarray,
                             top_xyz: np.ndarray, max_dist_from_top: float,
                             max_row: Optional[int] = None) -> Tuple[Point, float]:
    """
    Find the largest circle that fits inside the cluster without covering background.

    Candidate centers are cluster pixels no lower than ``max_row`` whose xyz
    position is within ``max_dist_from_top`` of ``top_xyz``. If no pixel
    qualifies, every cluster pixel is a candidate.

    Args:
        mask: Cluster mask in map coordinates
        xyz_map: XYZ map of the cluster
        top_xyz: XYZ position of the reference top point
        max_dist_from_top: Maximum 3D distance from the top point
        max_row: Lowest row a center may lie on

    Returns:
        Tuple ((x, y), radius) in map coordinates and pixels
    """
    mask_u8 = np.pad(mask.astype(np.uint8), 1)
    dist = cv2.distanceTransform(mask_u8, cv2.DIST_L2, cv2.DIST_MASK_PRECISE)[1:-1, 1:-1]

    candidates = mask.astype(bool)
    if max_row is not None:
        candidates[max(int(max_row) + 1, 0):, :] = False
    offset = xyz_map.astype(np.float64) - np.asarray(top_xyz, dtype=np.float64)
    candidates &= np.linalg.norm(offset, axis=2) <= max_dist_from_top

    if not candidates.any():
        logger.debug("No inscribed circle candidates near the top point, using whole cluster")
        candidates = mask.astype(bool)
    if not candidates.any():
        return (0, 0), 0.0

    scores = np.where(candidates, dist, -1.0)
    row, col = np.unravel_index(int(np.argmax(scores)), scores.shape)
    return (int(col), int(row)), float(dist[row, col])
