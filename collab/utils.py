"""
Shared helpers.
"""
import logging

from collab.core import config


LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def configure_logging(level: str | None = None) -> None:
    """
    Install a single root handler for the service.

    Safe to call more than once; later calls only adjust the level.
    """
    root = logging.getLogger()
    root.setLevel(level or config.LOG_LEVEL)
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)


def get_logger(name: str) -> logging.Logger:
    """
    Get a module logger.

    Usage:
        log = get_logger(__name__)
    """
    return logging.getLogger(name)
