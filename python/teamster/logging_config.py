"""Logging configuration for the teamster pool supervisor."""

import logging
import os
import sys
from typing import Union


def parse_level(value: str) -> Union[int, str]:
    """Convert a log level setting into something `Logger.setLevel` accepts.

    Integer strings are returned as ints, level names are upper-cased.
    Unknown names, negative numbers and anything unparsable fall back to ERROR.
    """
    level = value.strip().upper()
    if level.isdigit():
        return int(level)
    if level and isinstance(logging.getLevelName(level), int):
        return level
    return "ERROR"


def get_logger(name: str = "teamster") -> logging.Logger:
    """Get a configured logger for the package.

    The logger uses TEAMSTER_LOG_LEVEL (or LOG_LEVEL) to determine the log level.
    If not set, defaults to ERROR level, which effectively disables most package logging.

    Returns:
        Configured logger instance for the package.
    """
    logger = logging.getLogger(name)

    # Only configure if not already configured
    if not logger.handlers:
        level = os.getenv("TEAMSTER_LOG_LEVEL", os.getenv("LOG_LEVEL", "ERROR"))

        handler = logging.StreamHandler(sys.stdout)
        formatter = logging.Formatter(
            "[%(levelname)s] %(name)s - %(filename)s:%(lineno)d: %(message)s"
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)

        logger.setLevel(parse_level(level))

        # Prevent propagation to avoid duplicate logs
        logger.propagate = False

    return logger


# Package logger instance
logger = get_logger()
