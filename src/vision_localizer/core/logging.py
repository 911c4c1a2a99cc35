"""Logging configuration and utilities."""

import logging
import sys
from pathlib import Path

import cv2

# OpenCV logs through its own native logger, not Python's logging module.
_OPENCV_LEVELS = {
    logging.DEBUG: cv2.utils.logging.LOG_LEVEL_INFO,
    logging.INFO: cv2.utils.logging.LOG_LEVEL_WARNING,
    logging.WARNING: cv2.utils.logging.LOG_LEVEL_WARNING,
    logging.ERROR: cv2.utils.logging.LOG_LEVEL_ERROR,
    logging.CRITICAL: cv2.utils.logging.LOG_LEVEL_FATAL,
}


def setup_logging(level: str = "INFO", log_file: str | None = None) -> None:
    """Configure application-wide logging.

    Per-cycle estimator output is logged at DEBUG; solver failures and
    unavailable cameras at WARNING.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path to log file
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    formatter = logging.Formatter(
        fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    package_logger = logging.getLogger("vision_localizer")
    package_logger.setLevel(log_level)
    package_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    package_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path)
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        package_logger.addHandler(file_handler)

    # OpenCV info chatter (plugin loading, backend probing) only at DEBUG
    opencv_level = _OPENCV_LEVELS.get(log_level, cv2.utils.logging.LOG_LEVEL_WARNING)
    cv2.utils.logging.setLogLevel(opencv_level)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance for a module.

    Args:
        name: Module name (typically __name__)

    Returns:
        Logger under the ``vision_localizer`` namespace
    """
    if not name.startswith("vision_localizer"):
        name = f"vision_localizer.{name}"

    return logging.getLogger(name)
