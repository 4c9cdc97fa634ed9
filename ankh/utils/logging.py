"""Logging setup for the Ankh CLI."""

from __future__ import annotations

import sys

from loguru import logger

LOG_FORMAT = "<level>{level: <7}</level> {message}"


def log_level(verbose: bool = False, quiet: bool = False) -> str:
    """Quiet wins over verbose; the default is INFO."""
    if quiet:
        return "ERROR"
    if verbose:
        return "DEBUG"
    return "INFO"


def configure_logging(verbose: bool = False, quiet: bool = False) -> str:
    """Replace loguru's default sink with a stderr sink at the chosen level.

    Returns:
        The level name that was configured
    """
    level = log_level(verbose, quiet)
    logger.remove()
    logger.add(sys.stderr, level=level, format=LOG_FORMAT)
    return level
