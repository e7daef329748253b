"""Logging for gplus: one rotating log file plus optional stderr output.

Console output goes to stderr so the command output on stdout stays clean.
Every record carries a short tag naming the component that wrote it
(AUTH, LOOPBACK, TOKEN, STORE, PLUS, CONFIG, CLI).
"""

from __future__ import annotations

import logging
import sys
import time
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from gplus.config import get_env, settings

LOGGER_NAME = "gplus.history"
DEFAULT_MAX_BYTES = 5 * 1024 * 1024  # 5 MB per log file
DEFAULT_BACKUP_COUNT = 7
LOG_FORMAT = "[%(asctime)s] [%(levelname)s] [%(tag)s] %(message)s"

# Keys are matched as substrings of the calling module's dotted name.
TAG_MAP = {
    "authorization": "AUTH",
    "callback": "LOOPBACK",
    "token_client": "TOKEN",
    "token_storage": "STORE",
    "plus_client": "PLUS",
    "client_secrets": "CONFIG",
    "gplus.cli": "CLI",
}

_configured = False


class TaggedLogger(logging.LoggerAdapter):
    """Adds the component tag to every record."""

    def process(self, msg, kwargs):
        extra = dict(kwargs.get("extra") or {})
        extra.setdefault("tag", self.extra["tag"])
        kwargs["extra"] = extra
        return msg, kwargs


def _level_from(name: Optional[str]) -> int:
    candidate = str(name or get_env("LOG_LEVEL", default=settings.LOG_LEVEL)).upper()
    level = logging.getLevelName(candidate)
    return level if isinstance(level, int) else logging.INFO


def configure_logging(
    *,
    log_path: Optional[Path] = None,
    level: Optional[str] = None,
    max_bytes: int = DEFAULT_MAX_BYTES,
    backup_count: int = DEFAULT_BACKUP_COUNT,
    force: bool = False,
) -> logging.Logger:
    """Attach the rotating file handler (and stderr handler if enabled) once."""
    global _configured
    logger = logging.getLogger(LOGGER_NAME)
    if _configured and not force:
        return logger

    reset_logging()
    logger.setLevel(_level_from(level))
    logger.propagate = False

    formatter = logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%dT%H:%M:%SZ")
    formatter.converter = time.gmtime

    path = Path(log_path) if log_path is not None else settings.log_path
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8")
    except OSError as exc:
        print(f"gplus: cannot write log file {path}: {exc}", file=sys.stderr)
    else:
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    if get_env("LOG_TO_CONSOLE", default=settings.LOG_TO_CONSOLE):
        console = logging.StreamHandler(sys.stderr)
        console.setFormatter(formatter)
        logger.addHandler(console)

    _configured = True
    return logger


def get_logger(tag: str) -> TaggedLogger:
    return TaggedLogger(configure_logging(), {"tag": tag})


def get_tag_for_module(module_name: str) -> str:
    name = module_name.lower()
    for key, tag in TAG_MAP.items():
        if key in name:
            return tag
    return "GEN"


def reset_logging() -> None:
    """Close and detach every handler so the next call reconfigures."""
    global _configured
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)
    _configured = False
