"""Logging setup for the sync engine and its gateway."""
from __future__ import annotations

import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def setup_logging(level: str = "INFO") -> logging.Logger:
    """Attach a single stream handler to the package logger; safe to call twice."""

    package_logger = logging.getLogger("mediasync")
    package_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    if not any(getattr(handler, "_mediasync", False) for handler in package_logger.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._mediasync = True  # type: ignore[attr-defined]
        package_logger.addHandler(handler)
    return package_logger


__all__ = ["LOG_FORMAT", "setup_logging"]
