"""
Unit tests for the wrist search and finger detection stages.
"""

import math
import random
import unittest

import numpy as np

from depthhand import ObjectParams
from depthhand.handpose.contour_geometry import (
    compute_contour_geometry, compute_convexity_defects, cyclic_distance
)
from depthhand.handpose.finger_detection import (
    FingerCandidate, collect_candidates, deduplicate, detect_fingers,
    slope_ratio, sort_defects, under_wrist
)
from depthhand.handpose.single_finger import detect_single_finger
from depthhand.handpose.wrist_locator import (
    find_contact_points, locate_wrist, traversal_direction, walk_to_wrist
)

from synthetic_clusters import cluster_from_mask, hand_mask, loose_curvature_params


def candidate(tip_ij, tip_xyz):
    return FingerCandidate(tip_idx=0, defect_idx=0, tip_ij=tip_ij, defect_ij=(0, 0),
                           tip_xyz=np.asarray(tip_xyz, dtype=np.float64),
                           defect_xyz=np.zeros(3))


class TestWristWalk(unittest.TestCase):
    """Tests for the boundary walk."""

    def test_traversal_direction(self):
        self.assertEqual(traversal_direction(10, 20, 100), -1)
        self.assertEqual(traversal_direction(10, 80, 100), 1)
        self.assertEqual(traversal_direction(80, 10, 100), -1)
        self.assertEqual(traversal_direction(20, 10, 100), 1)
        self.assertEqual(traversal_direction(30, 30, 100), 1)

    def test_walk_symmetry(self):
        """Swapping the contacts and negating the direction swaps the wrist points."""
        rng = random.Random(7)
        n = 120
        for _ in range(50):
            dist = [rng.random() for _ in range(n)]
            contact_l, contact_r = rng.randrange(n), rng.randrange(n)
            direction = rng.choice((-1, 1))
            forward = walk_to_wrist(dist.__getitem__, n, contact_l, contact_r, direction, 0.1)
            backward = walk_to_wrist(dist.__getitem__, n, contact_r, contact_l, -direction, 0.1)
            self.assertEqual(forward, backward[::-1])

    def test_walk_stops_at_first_close_point(self):
        dist = [1.0] * 20
        dist[3] = dist[7] = 0.0
        self.assertEqual(walk_to_wrist(dist.__getitem__, 20, 0, 10, 1, 0.5), (3, 7))
        # The other way round never comes close before reaching the far contact
        self.assertEqual(walk_to_wrist(dist.__getitem__, 20, 0, 10, -1, 0.5), (-1, -1))

    def test_walk_failure(self):
        dist = [1.0] * 20
        self.assertEqual(walk_to_wrist(dist.__getitem__, 20, 3, 3, 1, 0.5), (-1, -1))

    def test_contacts_without_edge_use_lowest_point(self):
        boundary = np.array([[5, 1], [6, 9], [7, 9], [8, 2]])
        contacts = find_contact_points(boundary, False, (640, 480), ObjectParams())
        self.assertEqual(contacts, (1, 1))

    def test_contacts_along_bottom_edge(self):
        boundary = np.array([[200, 300], [210, 475], [250, 475], [300, 475], [310, 300]])
        contacts = find_contact_points(boundary, True, (640, 480), ObjectParams())
        self.assertEqual(contacts, (1, 3))

    def test_contacts_along_left_edge(self):
        boundary = np.array([[5, 300], [5, 350], [5, 400], [60, 400], [60, 300]])
        contacts = find_contact_points(boundary, True, (640, 480), ObjectParams())
        self.assertEqual(contacts, (0, 2))

    def test_locate_wrist_on_hand(self):
        cluster = cluster_from_mask(hand_mask())
        params = loose_curvature_params()
        geometry = compute_contour_geometry(cluster, params)
        wrist = locate_wrist(cluster, geometry, False, params)
        self.assertTrue(wrist.found)
        self.assertAlmostEqual(wrist.width, 0.055, delta=0.004)
        for idx in (wrist.wrist_l, wrist.wrist_r):
            _, y = cluster.to_frame(geometry.boundary[idx])
            self.assertAlmostEqual(y, 309, delta=2)


class TestContourGeometry(unittest.TestCase):
    """Tests for the contour and palm stage."""

    def test_palm_center_of_hand(self):
        cluster = cluster_from_mask(hand_mask())
        geometry = compute_contour_geometry(cluster, loose_curvature_params())
        cx, cy = cluster.to_frame(geometry.palm_center)
        self.assertAlmostEqual(cx, 320, delta=3)
        self.assertAlmostEqual(cy, 240, delta=3)
        self.assertAlmostEqual(geometry.circle_radius, 50, delta=3)
        self.assertGreater(len(geometry.defects), 0)

    def test_defects_of_convex_shape_are_shallow(self):
        square = np.array([[0, 0], [0, 10], [10, 10], [10, 0]], dtype=np.int32)
        defects = compute_convexity_defects(square, np.array([3, 2, 1, 0]))
        self.assertTrue(all(depth < 1.0 for _, _, _, depth in defects))

    def test_cyclic_distance(self):
        self.assertEqual(cyclic_distance(5, 95, 100), 10)
        self.assertEqual(cyclic_distance(10, 30, 100), 20)


class TestFingerDetection(unittest.TestCase):
    """Tests for finger candidates, validation and deduplication."""

    def test_slope_ratio(self):
        self.assertEqual(slope_ratio(4, -2), 2.0)
        self.assertEqual(slope_ratio(1, 0), float('inf'))
        self.assertEqual(slope_ratio(-1, 0), float('-inf'))
        self.assertNotEqual(slope_ratio(0, 0), slope_ratio(0, 0))  # NaN fails every threshold

    def test_sort_defects(self):
        boundary = np.array([[10, 0], [0, 10], [-10, 0], [0, -10]])
        defects = [(0, 0, i, 1.0) for i in range(4)]
        ordered = sort_defects(boundary, defects, (0, 0))
        # down, right, up, left
        self.assertEqual([d[2] for d in ordered], [1, 0, 3, 2])

    def test_under_wrist(self):
        self.assertTrue(under_wrist(5, 10, 90, 1))
        self.assertFalse(under_wrist(50, 10, 90, 1))
        self.assertTrue(under_wrist(50, 60, 40, 1))
        self.assertFalse(under_wrist(70, 60, 40, 1))
        self.assertTrue(under_wrist(50, 40, 60, -1))
        self.assertFalse(under_wrist(70, 40, 60, -1))
        self.assertTrue(under_wrist(70, 60, 40, -1))
        self.assertFalse(under_wrist(50, 60, 40, -1))

    def test_deduplicate_keeps_topmost(self):
        fingers = [
            candidate((100, 120), (0.0, 0.020, 0.5)),
            candidate((102, 115), (0.0, 0.015, 0.5)),
            candidate((200, 150), (0.1, 0.050, 0.5)),
        ]
        kept = deduplicate(fingers, 0.01)
        self.assertEqual([f.tip_ij for f in kept], [(102, 115), (200, 150)])

    def test_deduplicate_same_height_keeps_first(self):
        fingers = [candidate((100, 120), (0.0, 0.02, 0.5)),
                   candidate((101, 120), (0.001, 0.02, 0.5))]
        self.assertEqual([f.tip_ij for f in deduplicate(fingers, 0.01)], [(100, 120)])

    def test_deduplicate_never_grows(self):
        rng = np.random.RandomState(3)
        fingers = [candidate((int(x), int(y)), (x / 1000, y / 1000, 0.5))
                   for x, y in rng.randint(0, 100, size=(12, 2))]
        self.assertLessEqual(len(deduplicate(fingers, 0.02)), len(fingers))

    def test_five_fingers(self):
        cluster = cluster_from_mask(hand_mask())
        params = loose_curvature_params()
        geometry = compute_contour_geometry(cluster, params)
        wrist = locate_wrist(cluster, geometry, False, params)
        fingers, scan = detect_fingers(cluster, geometry, wrist, params)

        self.assertEqual(len(fingers), 5)
        self.assertGreaterEqual(len(scan.tip_indices), 5)
        for finger in fingers:
            self.assertLess(finger.tip_ij[1], 240)
            self.assertTrue(0.014 < finger.length < 0.125)

    def test_single_finger_fallback(self):
        cluster = cluster_from_mask(hand_mask(finger_angles=(0,), finger_length=105))
        params = loose_curvature_params()
        geometry = compute_contour_geometry(cluster, params)
        wrist = locate_wrist(cluster, geometry, False, params)
        scan = collect_candidates(cluster, geometry, wrist, params)

        finger = detect_single_finger(cluster, geometry, scan.good_defects, params)
        self.assertIsNotNone(finger)
        self.assertAlmostEqual(finger.tip_ij[0], 320, delta=6)
        self.assertAlmostEqual(finger.tip_ij[1], 135, delta=3)
        self.assertTrue(0.04 <= finger.length <= 0.11)

    def test_single_finger_needs_good_defects(self):
        cluster = cluster_from_mask(hand_mask(finger_angles=(0,), finger_length=105))
        params = loose_curvature_params()
        geometry = compute_contour_geometry(cluster, params)
        self.assertIsNone(detect_single_finger(cluster, geometry, [], params))


class TestFingerRejection(unittest.TestCase):
    """Each validation threshold on its own removes the fingers of an open hand."""

    @classmethod
    def setUpClass(cls):
        cls.cluster = cluster_from_mask(hand_mask())
        cls.single_cluster = cluster_from_mask(hand_mask(finger_angles=(0,), finger_length=105))

    def count_fingers(self, **overrides):
        params = loose_curvature_params(**overrides)
        geometry = compute_contour_geometry(self.cluster, params)
        wrist = locate_wrist(self.cluster, geometry, False, params)
        fingers, _ = detect_fingers(self.cluster, geometry, wrist, params)
        return len(fingers)

    def single_finger(self, **overrides):
        params = loose_curvature_params(**overrides)
        geometry = compute_contour_geometry(self.single_cluster, params)
        wrist = locate_wrist(self.single_cluster, geometry, False, params)
        scan = collect_candidates(self.single_cluster, geometry, wrist, params)
        return detect_single_finger(self.single_cluster, geometry, scan.good_defects, params)

    def test_reference_count(self):
        self.assertEqual(self.count_fingers(), 5)

    def test_default_params(self):
        params = ObjectParams(hand_use_svm=False)
        geometry = compute_contour_geometry(self.cluster, params)
        wrist = locate_wrist(self.cluster, geometry, False, params)
        fingers, _ = detect_fingers(self.cluster, geometry, wrist, params)
        self.assertEqual(len(fingers), 5)

    def test_finger_too_long(self):
        self.assertEqual(self.count_fingers(finger_len_max=0.02), 0)

    def test_finger_too_short(self):
        self.assertEqual(self.count_fingers(finger_len_min=0.1), 0)

    def test_defect_slope(self):
        self.assertEqual(self.count_fingers(finger_defect_slope_min=math.inf), 0)

    def test_center_slope(self):
        self.assertEqual(self.count_fingers(finger_center_slope_min=math.inf), 0)

    def test_centroid_defect_angle(self):
        self.assertEqual(self.count_fingers(centroid_defect_finger_angle_min=math.pi), 0)

    def test_boundary_span(self):
        self.assertEqual(self.count_fingers(min_points_to_defect=10000), 0)

    def test_defect_below_center(self):
        self.assertEqual(self.count_fingers(defect_max_y_from_center=-100), 0)

    def test_curvature_band(self):
        self.assertEqual(self.count_fingers(finger_curve_near_min=0.0, finger_curve_near_max=0.0), 0)

    def test_single_finger_reference(self):
        self.assertIsNotNone(self.single_finger())

    def test_single_finger_neighbor_angle(self):
        self.assertIsNone(self.single_finger(single_finger_angle_thresh=math.pi))

    def test_single_finger_length(self):
        self.assertIsNone(self.single_finger(single_finger_len_max=0.041))

    def test_single_finger_boundary_span(self):
        self.assertIsNone(self.single_finger(min_points_to_defect=10000))

    def test_single_finger_curvature(self):
        self.assertIsNone(self.single_finger(finger_curve_far_min=1.5, finger_curve_far_max=1.6))


if __name__ == '__main__':
    unittest.main()
