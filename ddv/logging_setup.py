"""Logging configuration.

The terminal belongs to the UI, so records go to a rotating file only.
"""

from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler

from ddv.config import LogConfig

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
MAX_BYTES = 1_000_000
BACKUP_COUNT = 3


def setup_logging(config: LogConfig, level: str | None = None) -> logging.Logger:
    """Attach a rotating file handler to the ``ddv`` logger.

    Safe to call more than once; an existing handler for the same file is
    replaced rather than duplicated.
    """
    logger = logging.getLogger("ddv")
    logger.setLevel(getattr(logging, (level or config.level).upper(), logging.INFO))
    logger.propagate = False

    target = os.path.abspath(config.file)
    for handler in list(logger.handlers):
        if isinstance(handler, RotatingFileHandler) and handler.baseFilename == target:
            logger.removeHandler(handler)
            handler.close()

    config.file.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        target, maxBytes=MAX_BYTES, backupCount=BACKUP_COUNT, encoding="utf-8"
    )
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    return logger
