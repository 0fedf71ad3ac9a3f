"""Logger factory shared by every booknotes module.

Each module keeps a module-level ``LOG = get_logger("<area>")``. All loggers
write one ``[booknotes]``-prefixed line per record to stderr at the level
named by ``BOOKNOTES_LOG_LEVEL`` and do not propagate, so running under
gunicorn or the Flask dev server never prints a record twice.
"""
from __future__ import annotations

import logging
import threading
from typing import Optional

from booknotes import config as app_config

LOG_FORMAT = "[booknotes] %(asctime)s %(levelname)s %(name)s %(message)s"
ROOT_NAME = "booknotes"

_LOCK = threading.Lock()
_ROOT: Optional[logging.Logger] = None


def _configure(logger: logging.Logger) -> logging.Logger:
    logger.setLevel(getattr(logging, app_config.log_level_name(), logging.INFO))
    if not any(isinstance(h, logging.StreamHandler) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    logger.propagate = False
    return logger


def get_logger(name: str = ROOT_NAME) -> logging.Logger:
    global _ROOT
    if name != ROOT_NAME:
        with _LOCK:
            return _configure(logging.getLogger(name))
    if _ROOT is None:
        with _LOCK:
            if _ROOT is None:
                _ROOT = _configure(logging.getLogger(ROOT_NAME))
    return _ROOT


__all__ = ["get_logger", "LOG_FORMAT"]
