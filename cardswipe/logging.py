"""
Card Swipe Logging

One package logger carries the handler and format. Every ScanDetector
logs through its own child of it, so turning on debug output for one
detector leaves the others at the package level.
"""

import itertools
import logging
from typing import Optional

# Package logger, parent of every cardswipe.* logger
logger = logging.getLogger("cardswipe")

DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DEFAULT_DATE_FORMAT = "%H:%M:%S"

_detector_ids = itertools.count(1)


def configure_logging(
    level: int = logging.WARNING,
    format_str: Optional[str] = None,
    date_format: Optional[str] = None,
):
    """
    Install the package handler and set the package level.

    Args:
        level: Level for cardswipe loggers without a level of their own
        format_str: Log message format string
        date_format: Date format string
    """
    handler = logging.StreamHandler()
    handler.setFormatter(
        logging.Formatter(
            format_str or DEFAULT_FORMAT,
            datefmt=date_format or DEFAULT_DATE_FORMAT,
        )
    )

    logger.handlers.clear()
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False


def create_detector_logger() -> logging.Logger:
    """Get a fresh child logger ("cardswipe.detector.<n>") for one detector."""
    return logger.getChild(f"detector.{next(_detector_ids)}")


def set_debug_enabled(detector_logger: logging.Logger, enabled: bool):
    """
    Switch state-transition logging for one detector.

    Disabling hands the logger back to the package level rather than
    forcing WARNING, so configure_logging() still governs it.
    """
    detector_logger.setLevel(logging.DEBUG if enabled else logging.NOTSET)


# Warnings only until the host configures logging
configure_logging()
