"""
Structured logging for book_sync.

Log records go to stderr so they never interleave with the operator progress
lines the CLI prints on stdout. Every record carries an ``extras`` JSON field.
"""
import json
import logging
import os
import sys
from typing import Any

_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s | extras=%(extras)s"
_EMPTY_EXTRAS = "{}"


def _level_from_env() -> str:
    # BOOK_SYNC_LOG_LEVEL wins over the shared LOG_LEVEL
    return (os.getenv("BOOK_SYNC_LOG_LEVEL") or os.getenv("LOG_LEVEL") or "INFO").upper()


def _encode(extras: dict) -> str:
    if not extras:
        return _EMPTY_EXTRAS
    return json.dumps(extras, ensure_ascii=False, default=str, sort_keys=True)


def get_logger(name: str) -> logging.LoggerAdapter:
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(fmt=_FORMAT))
        logger.addHandler(handler)
        logger.setLevel(_level_from_env())
        logger.propagate = False
    return logging.LoggerAdapter(logger, extra={"extras": _EMPTY_EXTRAS})


def with_extras(logger, **extras: Any) -> logging.LoggerAdapter:
    base = logger.logger if isinstance(logger, logging.LoggerAdapter) else logger
    return logging.LoggerAdapter(base, extra={"extras": _encode(extras)})


def log_event(logger, level: int, msg: str, *, exc_info: bool = False, **extras: Any) -> None:
    """Log ``msg`` at ``level`` with ``extras`` encoded into the extras field."""
    with_extras(logger, **extras).log(level, msg, exc_info=exc_info)
