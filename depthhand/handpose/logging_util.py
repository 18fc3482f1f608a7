"""Logging utilities for hand detection.

This module provides configurable logging of detection verdicts and timing.
"""

import os
import logging
from datetime import datetime
from typing import Sequence

from .hand_types import Hand

# Global logger for this module
logger = logging.getLogger(__name__)


class HandposeLogger:
    """Specialized logger for hand detection with debug levels."""

    LOG_LEVELS = {
        'DEBUG': logging.DEBUG,
        'INFO': logging.INFO,
        'WARNING': logging.WARNING,
        'ERROR': logging.ERROR,
        'CRITICAL': logging.CRITICAL
    }

    def __init__(self, name: str = "detector", level: str = "INFO",
                 file_logging: bool = False, log_dir: str = "./logs"):
        """
        Initialize a handpose logger with configurable options.

        Args:
            name: Logger name
            level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            file_logging: Enable logging to file
            log_dir: Directory for log files
        """
        self.name = name
        self.logger = logging.getLogger(f"depthhand.handpose.{name}")

        self.level = self.LOG_LEVELS.get(level.upper(), logging.INFO)
        self.logger.setLevel(self.level)

        self.file_logging = file_logging
        if file_logging:
            self._setup_file_logging(log_dir)

    def _setup_file_logging(self, log_dir: str):
        """Set up file logging handler."""
        try:
            os.makedirs(log_dir, exist_ok=True)

            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            log_file = os.path.join(log_dir, f"handpose_{self.name}_{timestamp}.log")

            file_handler = logging.FileHandler(log_file)
            file_handler.setLevel(self.level)
            file_handler.setFormatter(logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            ))
            self.logger.addHandler(file_handler)

            self.logger.info(f"File logging enabled: {log_file}")
        except OSError as e:
            # Fall back to console logging only
            self.logger.warning(f"Failed to setup file logging: {e}")
            self.file_logging = False

    def log_detection(self, hand: Hand):
        """
        Log the verdict for one cluster.

        Args:
            hand: Detection result
        """
        if hand.is_hand:
            confidence = "n/a" if hand.confidence is None else f"{hand.confidence:.2f}"
            self.logger.info(f"Hand: {hand.num_fingers} fingers, confidence={confidence}, "
                             f"area={hand.surface_area:.4f}")
        else:
            self.logger.debug(f"Rejected cluster: {hand.rejection.to_display_name()}, "
                              f"{hand.num_fingers} fingers")

        if self.logger.isEnabledFor(logging.DEBUG) and hand.fingers_ij:
            self.logger.debug(f"Fingertips: {list(hand.fingers_ij)}, wrist: {list(hand.wrist_ij)}")

    def log_frame(self, hands: Sequence[Hand], num_clusters: int):
        """
        Log the outcome of a multi-cluster query.

        Args:
            hands: Accepted hands
            num_clusters: Number of clusters evaluated
        """
        self.logger.info(f"Frame: {len(hands)} hands from {num_clusters} clusters, "
                         f"fingers={[h.num_fingers for h in hands]}")

    def log_performance(self, process_time: float, frame_count: int):
        """
        Log performance metrics.

        Args:
            process_time: Processing time in milliseconds
            frame_count: Current frame count
        """
        if frame_count % 30 == 0:  # Log every 30 frames
            self.logger.info(f"Performance: {process_time:.1f}ms per frame")


def create_logger(name: str = "detector", level: str = "INFO",
                  file_logging: bool = False) -> HandposeLogger:
    """
    Create a handpose logger with the specified configuration.

    Args:
        name: Logger name suffix
        level: Logging level
        file_logging: Enable logging to file

    Returns:
        Configured HandposeLogger instance
    """
    return HandposeLogger(name, level, file_logging)
