"""
Logging setup for depthhand entry points.

Library modules only create ``logging.getLogger(__name__)`` loggers; handlers
are installed here, by the command-line tools or by an application that
embeds the detector.
"""

import sys
import logging
from pathlib import Path
from typing import Dict, Optional
from logging.handlers import RotatingFileHandler

from depthhand.core.constants import LOG_FORMAT, MAX_LOG_FILE_SIZE

# Detection stages log every rejected cluster at DEBUG
MODULE_LEVELS = {
    'depthhand.handpose': logging.WARNING,
    'depthhand.handpose.model': logging.INFO,
    'depthhand.tools': logging.INFO,
}

FILE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s'


def _to_level(level: str) -> int:
    value = logging.getLevelName(level.upper())
    return value if isinstance(value, int) else logging.INFO


def setup_logging(level: str = 'INFO', log_file: Optional[str] = None, console: bool = True,
                  module_levels: Optional[Dict[str, str]] = None) -> None:
    """
    Install console and file handlers on the root logger.

    Args:
        level: Console level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Rotating log file receiving every record, created with its directory
        console: Whether to log to stdout
        module_levels: Level overrides by logger name, applied after the defaults
            in ``MODULE_LEVELS``; e.g. ``{'depthhand.handpose': 'DEBUG'}`` shows
            why clusters are rejected
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.handlers.clear()

    if console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(_to_level(level))
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root_logger.addHandler(console_handler)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(log_file, maxBytes=MAX_LOG_FILE_SIZE, backupCount=3)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt='%Y-%m-%d %H:%M:%S'))
        root_logger.addHandler(file_handler)

    for name, module_level in MODULE_LEVELS.items():
        logging.getLogger(name).setLevel(module_level)
    for name, level_name in (module_levels or {}).items():
        logging.getLogger(name).setLevel(_to_level(level_name))
