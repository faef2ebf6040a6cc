"""Logger factory used by every gsstudio module."""

import logging
import sys
from typing import Optional

LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
}

_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def get_logger(name: str, level: Optional[int] = None) -> logging.Logger:
    """
    Get a module logger under the ``gsstudio`` hierarchy.

    A stderr handler is attached once to the package root logger; child
    loggers propagate to it.

    Args:
        name: Usually ``__name__`` of the calling module
        level: Optional level applied to the returned logger
    """
    root = logging.getLogger("gsstudio")
    if not root.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(_FORMAT, datefmt="%H:%M:%S"))
        root.addHandler(handler)
        root.setLevel(logging.INFO)

    logger = logging.getLogger(name)
    if level is not None:
        logger.setLevel(level)
    return logger


def set_level(level_name: str):
    """Set the level of the package root logger, e.g. from a ``--verbose`` flag."""
    get_logger("gsstudio").setLevel(LOG_LEVELS[level_name.upper()])
