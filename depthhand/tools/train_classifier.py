#!/usr/bin/env python
"""
Train the hand classifier from a labelled data directory.

Usage:
    python -m depthhand.tools.train_classifier DATA_DIR OUTPUT_DIR
"""

import sys
import argparse
import logging
from typing import List, Optional

from ..exceptions import DepthHandException
from ..handpose.model.svm_classifier import SVMHandClassifier
from ..logging_config import setup_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Train the depthhand SVM hand classifier")
    parser.add_argument("data_dir", help="Directory containing labels.csv and features.csv")
    parser.add_argument("output_dir", help="Directory receiving svm_0.xml ... svm_3.xml")
    parser.add_argument("--log-level", default="INFO",
                        help="Logging level (DEBUG, INFO, WARNING, ERROR)")
    parser.add_argument("--log-file", help="Optional log file")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point; returns the process exit code."""
    args = build_parser().parse_args(argv)
    setup_logging(level=args.log_level, log_file=args.log_file)

    classifier = SVMHandClassifier()
    try:
        if not classifier.train(args.data_dir):
            logger.error("Training failed")
            return 1
    except DepthHandException as e:
        logger.error(f"Training failed: {e}")
        return 1

    if not classifier.export(args.output_dir):
        return 1

    logger.info(f"Classifier written to {args.output_dir}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
