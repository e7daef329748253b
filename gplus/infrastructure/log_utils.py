"""Utility helpers for writing gplus logs with rotation and tagging support."""

from __future__ import annotations

import inspect
import logging
from typing import Dict

from gplus.logging_setup import get_logger, get_tag_for_module

_LEVEL_MAP: Dict[str, int] = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def log_message(msg: str, level: str = "INFO", tag: str | None = None, **kwargs) -> None:
    """
    Log a message to the rotating gplus log with optional tagging.

    Accepts **kwargs for compatibility with standard logging arguments
    like exc_info=True.
    """
    if tag is None:
        frame = inspect.stack()[1]
        module = inspect.getmodule(frame[0])
        module_name = getattr(module, "__name__", "unknown")
        tag = get_tag_for_module(module_name)

    logger = get_logger(tag)

    level_name = str(level).upper()
    numeric_level = _LEVEL_MAP.get(level_name)
    if numeric_level is None:
        logger.warning(
            "Received unknown log level '%s'; defaulting to INFO. Message: %s",
            level,
            msg,
        )
        numeric_level = logging.INFO

    logger.log(numeric_level, msg, **kwargs)


def mask_token(value: str | None, visible: int = 8) -> str:
    """Return a shortened token suitable for logs and console output."""
    if not value:
        return "EMPTY"
    if len(value) <= visible:
        return "*" * len(value)
    return f"{value[:visible]}..."

