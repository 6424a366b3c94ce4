"""Logging setup for the tunescore command line."""

import logging
import sys

LOGGER_NAME = "tunescore"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(verbose: bool = False) -> logging.Logger:
    """
    Attach a single stderr handler to the package logger.

    Safe to call more than once; later calls only adjust the level.
    """
    level = logging.DEBUG if verbose else logging.WARNING
    logger = logging.getLogger(LOGGER_NAME)
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    for handler in logger.handlers:
        handler.setLevel(level)
    logger.setLevel(level)
    return logger
