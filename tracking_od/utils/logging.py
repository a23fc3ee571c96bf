"""Logging helpers for tracking and estimation runs."""

from __future__ import annotations

import logging


def get_logger(name: str = "tracking_od", level: int | None = None) -> logging.Logger:
    """Return ``name``'s logger; the top-level package logger owns the handler."""

    package_logger = logging.getLogger(name.split(".")[0])
    if not package_logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter("[%(levelname)s] %(name)s: %(message)s")
        handler.setFormatter(formatter)
        package_logger.addHandler(handler)
        package_logger.setLevel(logging.INFO)
    logger = logging.getLogger(name)
    if level is not None:
        logger.setLevel(level)
    return logger
