"""Shared helpers."""

from __future__ import annotations

import logging
import os
import sys
from typing import Optional

LOGGER_NAME = "claims_workbench"
LOG_FORMAT = "%(asctime)s | %(levelname)-5s | %(name)s | %(message)s"


def setup_logging(level: Optional[str] = None) -> logging.Logger:
    """
    Configure and return the package logger.

    The handler is installed once; repeated calls only adjust the level.
    The level defaults to the CLAIMS_LOG_LEVEL environment variable.
    """
    logger = logging.getLogger(LOGGER_NAME)
    level_name = (level or os.getenv("CLAIMS_LOG_LEVEL", "INFO")).upper()
    logger.setLevel(getattr(logging, level_name, logging.INFO))

    if not any(h.get_name() == LOGGER_NAME for h in logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.set_name(LOGGER_NAME)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, "%Y-%m-%d %H:%M:%S"))
        logger.addHandler(handler)
        logger.propagate = False

    return logger
