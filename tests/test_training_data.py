"""
Tests for reading, joining and bucketing classifier training data.
"""

import os
import tempfile
import unittest

import numpy as np

from depthhand.exceptions import TrainingDataError
from depthhand.handpose.model.svm_classifier import get_svm_idx
from depthhand.handpose.model.training_data import (
    TrainingSample, build_training_sets, join_samples, load_training_samples,
    read_features, read_labels, write_training_files
)

from synthetic_clusters import random_samples


def row(name, *values):
    return name, np.asarray(values, dtype=np.float64)


class TestTrainingFiles(unittest.TestCase):
    """Tests for the labels and features files."""

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)

    def _write(self, name, text):
        path = os.path.join(self.tmp.name, name)
        with open(path, 'w') as f:
            f.write(text)
        return path

    def test_read_labels(self):
        path = self._write('labels.csv', "3\na,1\nb 0\nc,1\n")
        self.assertEqual(read_labels(path), [('a', 1), ('b', 0), ('c', 1)])

    def test_read_labels_honours_count(self):
        path = self._write('labels.csv', "1\na,1\nb,0\n")
        self.assertEqual(read_labels(path), [('a', 1)])

    def test_read_labels_malformed(self):
        path = self._write('labels.csv', "2\na,yes\n")
        with self.assertRaises(TrainingDataError):
            read_labels(path)

    def test_read_labels_missing(self):
        with self.assertRaises(TrainingDataError):
            read_labels(os.path.join(self.tmp.name, 'missing.csv'))

    def test_read_features(self):
        path = self._write('features.csv', "header\ns1,3,2,0.5,0.25\n\ns2 1 0\n")
        rows = read_features(path)
        self.assertEqual([name for name, _ in rows], ['s1', 's2'])
        np.testing.assert_array_equal(rows[0][1], [2.0, 0.5, 0.25])
        np.testing.assert_array_equal(rows[1][1], [0.0])

    def test_read_features_wrong_count(self):
        path = self._write('features.csv', "header\ns1,3,1,0.5\n")
        with self.assertRaises(TrainingDataError) as ctx:
            read_features(path)
        self.assertIn('line 2', str(ctx.exception))

    def test_read_features_not_a_number(self):
        path = self._write('features.csv', "header\ns1,x,1\n")
        with self.assertRaises(TrainingDataError):
            read_features(path)

    def test_write_and_load(self):
        samples = random_samples(per_bucket=3)
        write_training_files(self.tmp.name, samples)

        loaded = load_training_samples(self.tmp.name)

        self.assertEqual(len(loaded), len(samples))
        for original, sample in zip(samples, loaded):
            self.assertEqual(sample.name, original.name)
            self.assertEqual(sample.label, original.label)
            np.testing.assert_array_equal(sample.features, original.features)


class TestJoinSamples(unittest.TestCase):
    """Tests for join_samples."""

    def test_skips_unmatched_labels(self):
        labels = [('a', 1), ('b', 0), ('c', 1), ('d', 0)]
        features = [row('a', 1), row('c', 2), row('d', 3)]
        samples = list(join_samples(labels, features))
        self.assertEqual([(s.name, s.label) for s in samples], [('a', 1), ('c', 1), ('d', 0)])

    def test_stops_when_labels_run_out(self):
        labels = [('a', 1), ('b', 0)]
        features = [row('b', 1), row('a', 1)]
        samples = list(join_samples(labels, features))
        self.assertEqual([s.name for s in samples], ['b'])

    def test_ignores_rows_beyond_label_count(self):
        labels = [('a', 1)]
        features = [row('a', 1), row('b', 1)]
        self.assertEqual([s.name for s in join_samples(labels, features)], ['a'])


class TestBuildTrainingSets(unittest.TestCase):
    """Tests for build_training_sets."""

    def test_buckets(self):
        samples = random_samples(per_bucket=4)
        sets = build_training_sets(samples, get_svm_idx)

        self.assertEqual([len(s) for s in sets], [4, 4, 4, 4])
        self.assertEqual([s.data.shape[1] for s in sets], [19, 34, 45, 56])
        self.assertEqual(sets[0].labels.shape, (4, 1))
        self.assertEqual(sets[0].data.dtype, np.float32)
        self.assertEqual(sets[0].labels.dtype, np.float32)

    def test_drops_samples_without_fingers(self):
        samples = random_samples(per_bucket=2)
        samples.append(TrainingSample(name='none', label=0, features=np.zeros(1)))
        sets = build_training_sets(samples, get_svm_idx)
        self.assertEqual(sum(len(s) for s in sets), 8)

    def test_truncates_to_shortest_row(self):
        samples = random_samples(per_bucket=2) + random_samples(seed=1, per_bucket=2,
                                                                finger_counts=(5,))
        sets = build_training_sets(samples, get_svm_idx)
        self.assertEqual(len(sets[3]), 4)
        self.assertEqual(sets[3].data.shape[1], 56)
        self.assertEqual(sorted(sets[3].num_fingers.tolist()), [4, 4, 5, 5])

    def test_empty_bucket(self):
        with self.assertRaises(TrainingDataError):
            build_training_sets(random_samples(finger_counts=(1, 2, 4)), get_svm_idx)


if __name__ == '__main__':
    unittest.main()
