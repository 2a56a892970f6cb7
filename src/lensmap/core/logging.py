"""Logging setup for the lensmap package logger."""

from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str | int = "INFO") -> logging.Logger:
    """Install one stream handler on the ``lensmap`` logger. Safe to call repeatedly."""
    logger = logging.getLogger("lensmap")
    logger.setLevel(level.upper() if isinstance(level, str) else level)
    if not any(getattr(h, "_lensmap", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._lensmap = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
    return logger
