"""Logging setup for the crawlcore logger hierarchy."""

import logging
import sys

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(level: str | int = logging.INFO, stream=None) -> logging.Logger:
    """Attach a single stream handler to the ``crawlcore`` logger.

    Calling this again only updates the level; child loggers propagate here.
    """
    logger = logging.getLogger("crawlcore")
    logger.setLevel(level)

    if logger.handlers:
        return logger

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    return logger
