"""
Tests for the classifier training command.
"""

import os
import tempfile
import unittest
from unittest.mock import patch

from depthhand.handpose.model.training_data import write_training_files
from depthhand.tools.train_classifier import build_parser, main

from synthetic_clusters import random_samples


@patch('depthhand.tools.train_classifier.setup_logging')
class TestTrainClassifierCLI(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        self.data_dir = os.path.join(self.tmp.name, 'data')
        self.output_dir = os.path.join(self.tmp.name, 'out')

    def test_trains_and_exports(self, mock_setup):
        write_training_files(self.data_dir, random_samples())

        self.assertEqual(main([self.data_dir, self.output_dir, '--log-level', 'DEBUG']), 0)

        mock_setup.assert_called_once_with(level='DEBUG', log_file=None)
        for i in range(4):
            self.assertTrue(os.path.isfile(os.path.join(self.output_dir, f'svm_{i}.xml')))

    def test_missing_data(self, mock_setup):
        self.assertEqual(main([self.data_dir, self.output_dir]), 1)
        self.assertFalse(os.path.exists(self.output_dir))

    def test_parser_defaults(self, mock_setup):
        args = build_parser().parse_args(['data', 'out'])
        self.assertEqual(args.log_level, 'INFO')
        self.assertIsNone(args.log_file)


if __name__ == '__main__':
    unittest.main()
