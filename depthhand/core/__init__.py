"""
Core definitions of depthhand that do not depend on other modules.
"""

from . import constants
from .utils import (
    euclidean_distance, point_in_image, point_on_edge, average_around_point,
    nearest_point_on_cluster, angle_between_points, angle_between_3d_vectors,
    point_to_slope, point_to_angle, contour_curvature, surface_area,
    find_center, diameter, compute_boundary, largest_inscribed_circle
)

__all__ = [
    'constants',
    'euclidean_distance', 'point_in_image', 'point_on_edge', 'average_around_point',
    'nearest_point_on_cluster', 'angle_between_points', 'angle_between_3d_vectors',
    'point_to_slope', 'point_to_angle', 'contour_curvature', 'surface_area',
    'find_center', 'diameter', 'compute_boundary', 'largest_inscribed_circle',
]
