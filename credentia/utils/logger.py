"""
Logging setup for Credentia.

Every component logs through a child of the ``credentia`` logger, so one
stdout handler configured at startup covers the whole service.
"""

import logging
import sys
from typing import Optional

ROOT_LOGGER = "credentia"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Third-party loggers that are chatty at DEBUG (PNG chunk parsing, driver heartbeats)
QUIET_LOGGERS = ("PIL", "pymongo", "motor")


def setup_logger(name: str = ROOT_LOGGER, level: str = "INFO") -> logging.Logger:
    """
    Attach a stdout handler to the service logger.

    Args:
        name: Logger name
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    numeric_level = getattr(logging, level.upper(), logging.INFO)
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))

    logger.setLevel(numeric_level)
    logger.addHandler(handler)
    logger.propagate = False

    for noisy in QUIET_LOGGERS:
        logging.getLogger(noisy).setLevel(max(numeric_level, logging.INFO))

    return logger


def get_logger(component: Optional[str] = None) -> logging.Logger:
    """Logger for a component, e.g. ``get_logger("template_service")``."""
    return logging.getLogger(f"{ROOT_LOGGER}.{component}" if component else ROOT_LOGGER)
