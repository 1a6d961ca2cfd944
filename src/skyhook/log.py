# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Logging helpers for skyhook."""

from __future__ import annotations

import logging
import os

DEFAULT_LOG_LEVEL = os.getenv("SKYHOOK_LOG_LEVEL", "WARNING").upper()
LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


def setup_logging(level: str | None = None, handler: logging.Handler | None = None) -> logging.Logger:
    """
    Configure the ``skyhook`` logger for scripts and applications.

    Only the package logger is touched; records still propagate to the root logger. Calling
    this again updates the level without stacking handlers.
    """
    effective_level = (level or DEFAULT_LOG_LEVEL).upper()
    logger = logging.getLogger("skyhook")
    logger.setLevel(getattr(logging, effective_level, logging.WARNING))

    if handler is not None or not any(getattr(h, "_skyhook", False) for h in logger.handlers):
        for existing in [h for h in logger.handlers if getattr(h, "_skyhook", False)]:
            logger.removeHandler(existing)
        handler = handler or logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._skyhook = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
    return logger


__all__ = ["setup_logging"]
