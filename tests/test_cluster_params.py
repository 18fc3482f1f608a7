"""
Unit tests for cluster snapshots and detection parameters.
"""

import json
import math
import os
import tempfile
import unittest

import numpy as np

from depthhand import Cluster, ObjectParams
from depthhand.exceptions import ClusterError, ConfigurationError

from synthetic_clusters import FRAME_SIZE, disk_mask, frame_xyz


class TestCluster(unittest.TestCase):
    """Tests for Cluster."""

    def test_from_mask(self):
        cluster = Cluster.from_mask(frame_xyz(), disk_mask(10))
        self.assertGreater(cluster.num_points, 250)
        self.assertEqual(cluster.frame_size, FRAME_SIZE)
        x, y, w, h = cluster.bounding_box
        self.assertEqual((x, y, w, h), (310, 230, 21, 21))
        top_x, top_y = cluster.top_point
        self.assertEqual(top_y, 230)
        self.assertTrue(disk_mask(10)[top_y, top_x])
        self.assertFalse(disk_mask(10)[top_y, top_x - 1])

    def test_xyz_map_is_local_and_read_only(self):
        cluster = Cluster.from_mask(frame_xyz(), disk_mask(10))
        xyz = cluster.xyz_map
        self.assertEqual(xyz.shape, (21, 21, 3))
        self.assertEqual(xyz[0, 0, 2], 0)  # corner of the bounding box lies outside the disk
        np.testing.assert_allclose(xyz[10, 10], (0.0, 0.0, 0.5), atol=1e-7)
        with self.assertRaises(ValueError):
            xyz[10, 10, 2] = 1.0
        self.assertEqual(int(cluster.mask.sum()), cluster.num_points)

    def test_coordinate_conversion(self):
        cluster = Cluster.from_mask(frame_xyz(), disk_mask(10))
        self.assertEqual(cluster.to_local((320, 240)), (10, 10))
        self.assertEqual(cluster.to_frame((10, 10)), (320, 240))

    def test_does_not_freeze_caller_arrays(self):
        points_ij = np.array([[1, 2], [3, 4]], dtype=np.int32)
        points_xyz = np.ones((2, 3), dtype=np.float32)
        Cluster(points_ij, points_xyz, (10, 10))
        points_ij[0, 0] = 5
        self.assertTrue(points_ij.flags.writeable)

    def test_mismatched_arrays(self):
        with self.assertRaises(ClusterError):
            Cluster(np.zeros((3, 2)), np.ones((2, 3)), (10, 10))

    def test_points_outside_frame(self):
        with self.assertRaises(ClusterError):
            Cluster(np.array([[10, 0]]), np.ones((1, 3)), (10, 10))

    def test_invalid_frame_size(self):
        with self.assertRaises(ClusterError):
            Cluster(np.zeros((0, 2)), np.zeros((0, 3)), (0, 10))

    def test_empty_cluster(self):
        cluster = Cluster(np.zeros((0, 2)), np.zeros((0, 3)), FRAME_SIZE)
        self.assertEqual(cluster.num_points, 0)
        self.assertEqual(cluster.bounding_box, (0, 0, 0, 0))
        self.assertIsNone(cluster.top_point)


class TestObjectParams(unittest.TestCase):
    """Tests for ObjectParams."""

    def test_defaults(self):
        params = ObjectParams()
        self.assertEqual(params.xyz_average_size, 9)
        self.assertAlmostEqual(params.defect_max_angle, 0.7 * math.pi)
        self.assertAlmostEqual(params.centroid_defect_finger_angle_min, 0.4 * math.pi)
        self.assertEqual(params.single_finger_hull_average_size, 22)

    def test_invalid_range(self):
        with self.assertRaises(ConfigurationError):
            ObjectParams(wrist_width_min=0.1, wrist_width_max=0.05)

    def test_invalid_window(self):
        with self.assertRaises(ConfigurationError):
            ObjectParams(xyz_average_size=0)

    def test_invalid_angle(self):
        with self.assertRaises(ConfigurationError):
            ObjectParams(defect_max_angle=4.0)

    def test_from_dict_ignores_unknown_keys(self):
        with self.assertLogs('depthhand.params', level='WARNING') as logs:
            params = ObjectParams.from_dict({'finger_len_min': 0.02, 'bogus': 1})
        self.assertEqual(params.finger_len_min, 0.02)
        self.assertIn('bogus', logs.output[0])

    def test_json_round_trip(self):
        params = ObjectParams(hand_use_svm=False, finger_dist_min=0.02)
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, 'params.json')
            params.save_json(path)
            with open(path) as f:
                self.assertFalse(json.load(f)['hand_use_svm'])
            loaded = ObjectParams.from_json(path)
        self.assertEqual(loaded, params)

    def test_from_json_missing_file(self):
        with self.assertRaises(ConfigurationError):
            ObjectParams.from_json('/nonexistent/params.json')

    def test_from_json_not_an_object(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, 'params.json')
            with open(path, 'w') as f:
                f.write('[1, 2]')
            with self.assertRaises(ConfigurationError):
                ObjectParams.from_json(path)


if __name__ == '__main__':
    unittest.main()
