from __future__ import annotations

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from .json_formatter import JSONFormatter

ROOT_LOGGER = "atpagent"
LOG_FILENAME = "atpagent.log"
_MARKER = "_atpagent_json_logging"


def _env_flag(name: str) -> bool:
    return os.getenv(name, "off").strip().casefold() in {"on", "1", "true"}


def _level_from_env() -> int:
    level = logging.getLevelName(os.getenv("ATP_LOG_LEVEL", "INFO").strip().upper())
    return level if isinstance(level, int) else logging.INFO


def _mark(handler: logging.Handler, formatter: logging.Formatter) -> logging.Handler:
    handler.setFormatter(formatter)
    setattr(handler, _MARKER, True)
    return handler


def _owned(logger: logging.Logger) -> list[logging.Handler]:
    return [handler for handler in logger.handlers if getattr(handler, _MARKER, False)]


def _resolve_log_path(log_dir: Path | None) -> Path:
    directory = Path(os.getenv("ATP_LOG_DIR") or log_dir or "logs").expanduser()
    directory.mkdir(parents=True, exist_ok=True)
    return (directory / LOG_FILENAME).resolve()


def configure_logging(log_dir: Path | None = None) -> logging.Logger:
    """Attach JSON handlers to the ``atpagent`` logger; safe to call repeatedly.

    Stdout always gets a handler. ``ATP_LOG_TO_FILE=on`` adds a rotating file
    under ``ATP_LOG_DIR``, falling back to ``log_dir`` and then ``./logs``.
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(_level_from_env())
    logger.propagate = False
    formatter = JSONFormatter()
    owned = _owned(logger)

    if not any(type(handler) is logging.StreamHandler for handler in owned):
        logger.addHandler(_mark(logging.StreamHandler(stream=sys.stdout), formatter))

    if _env_flag("ATP_LOG_TO_FILE"):
        log_path = _resolve_log_path(log_dir)
        already_open = any(
            isinstance(handler, RotatingFileHandler) and Path(handler.baseFilename) == log_path for handler in owned
        )
        if not already_open:
            file_handler = RotatingFileHandler(
                filename=log_path,
                maxBytes=int(os.getenv("ATP_LOG_MAX_BYTES", "5000000")),
                backupCount=int(os.getenv("ATP_LOG_BACKUP_COUNT", "5")),
                encoding="utf-8",
            )
            logger.addHandler(_mark(file_handler, formatter))

    return logger
