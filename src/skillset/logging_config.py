"""Logging configuration for skillset.

Library modules log through ``logging.getLogger(__name__)``; user-facing
progress is printed by the CLI. ``setup_logging()`` attaches a single stderr
handler to the ``skillset`` logger.

Environment variables:
    SKILLSET_LOG_LEVEL: DEBUG, INFO, WARNING (default) or ERROR
"""

from __future__ import annotations

import logging
import os
import sys

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_FORMAT_DEBUG = "%(asctime)s [%(levelname)s] %(name)s:%(lineno)d: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
}


def get_log_level() -> int:
    level_str = os.environ.get("SKILLSET_LOG_LEVEL", "WARNING").upper()
    return _LEVELS.get(level_str, logging.WARNING)


def setup_logging(level: int | None = None) -> logging.Logger:
    if level is None:
        level = get_log_level()

    log_format = LOG_FORMAT_DEBUG if level == logging.DEBUG else LOG_FORMAT

    logger = logging.getLogger("skillset")
    logger.setLevel(level)
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(log_format, DATE_FORMAT))
    logger.addHandler(handler)

    # Records go to the skillset handler only, never the root logger.
    logger.propagate = False
    return logger
