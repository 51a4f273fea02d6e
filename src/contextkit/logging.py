"""
Logging utilities for contextkit.

All modules log through child loggers of the ``contextkit`` root logger.
Handlers are only installed by :func:`setup_logging`; the library itself
never configures output.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import TextIO

LOG_LEVEL_ENV = "CONTEXTKIT_LOG_LEVEL"
DEFAULT_LEVEL = "WARNING"
DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# Package root logger
_root_logger = logging.getLogger("contextkit")
_saved_level: int | None = None


def _coerce_level(level: str | int) -> int:
    if isinstance(level, int):
        return level
    value = logging.getLevelName(level.strip().upper())
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level: {level!r}")
    return value


def setup_logging(
    level: str | int | None = None,
    format: str | None = None,
    stream: TextIO | None = None,
    file: str | None = None,
) -> logging.Logger:
    """
    Configure logging for contextkit and return the package root logger.

    Args:
        level: Log level name or number. ``None`` reads ``CONTEXTKIT_LOG_LEVEL``
            and falls back to WARNING.
        format: Custom log format string
        stream: Output stream (defaults to stderr)
        file: Optional file path to write logs

    Example:
        setup_logging("DEBUG")
        setup_logging(file="contextkit.log")
    """
    if level is None:
        level = os.environ.get(LOG_LEVEL_ENV) or DEFAULT_LEVEL
    numeric_level = _coerce_level(level)

    _root_logger.setLevel(numeric_level)
    _root_logger.handlers.clear()

    formatter = logging.Formatter(format or DEFAULT_FORMAT)

    handlers: list[logging.Handler] = [logging.StreamHandler(stream or sys.stderr)]
    if file:
        handlers.append(logging.FileHandler(file))

    for handler in handlers:
        handler.setFormatter(formatter)
        handler.setLevel(numeric_level)
        _root_logger.addHandler(handler)

    return _root_logger


def get_logger(name: str) -> logging.Logger:
    """Child logger for a submodule, e.g. ``get_logger("session.manager")``."""
    if name.startswith("contextkit."):
        return logging.getLogger(name)
    return logging.getLogger(f"contextkit.{name}")


def set_level(level: str | int) -> None:
    _root_logger.setLevel(_coerce_level(level))


def disable() -> None:
    """Silence all contextkit logging, child loggers included."""
    global _saved_level
    if _saved_level is None:
        _saved_level = _root_logger.level
    _root_logger.setLevel(logging.CRITICAL + 1)


def enable() -> None:
    """Restore the level that was active before :func:`disable`."""
    global _saved_level
    if _saved_level is not None:
        _root_logger.setLevel(_saved_level)
        _saved_level = None
