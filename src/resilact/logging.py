"""Logging setup for the ``resilact`` logger tree.

The console handler writes short lines to stderr at the requested level. An
optional log file always receives DEBUG records, so every executor state
transition and poll is kept there even when the console is quiet.
"""

from __future__ import annotations

import logging as py_logging
import os
import sys
from pathlib import Path
from typing import Any, TextIO

LOGGER_NAME = "resilact"
LOG_LEVELS = {
    "DEBUG": py_logging.DEBUG,
    "INFO": py_logging.INFO,
    "WARN": py_logging.WARNING,
    "ERROR": py_logging.ERROR,
}
_LEVEL_ALIASES = {"WARNING": "WARN"}
_LOG_RELATIVE_PATH = Path("resilact/logs/resilact.log")
_FALLBACK_LOG_PATH = Path(".resilact/logs/resilact.log")
CONSOLE_FORMAT = "%(levelname)s %(name)s: %(message)s"
FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s:%(lineno)d %(message)s"


def normalize_level(name: str) -> str | None:
    """Canonical level name, or None when ``name`` is not a known level."""
    normalized = name.strip().upper()
    normalized = _LEVEL_ALIASES.get(normalized, normalized)
    if normalized in LOG_LEVELS:
        return normalized
    return None


def outcome_level(outcome: Any) -> int:
    """Level for reporting a terminal outcome.

    Successes are DEBUG noise, a cancelled run is INFO since somebody asked for
    it, every other failure is a WARNING.
    """
    if outcome.ok:
        return py_logging.DEBUG
    if getattr(outcome, "cancelled", False):
        return py_logging.INFO
    return py_logging.WARNING


def default_log_path() -> Path:
    config_home = os.environ.get("XDG_CONFIG_HOME")
    if config_home:
        return (Path(config_home) / _LOG_RELATIVE_PATH).resolve()
    try:
        return Path.home() / ".config" / _LOG_RELATIVE_PATH
    except RuntimeError:
        return (Path.cwd() / _FALLBACK_LOG_PATH).resolve()


def _file_handler(log_file: str | Path) -> py_logging.Handler | None:
    try:
        log_path = Path(log_file).expanduser()
    except RuntimeError:
        log_path = Path(log_file)
    try:
        log_path.resolve().parent.mkdir(parents=True, exist_ok=True)
        handler = py_logging.FileHandler(log_path.resolve(), encoding="utf-8")
    except OSError:
        return None
    handler.setLevel(py_logging.DEBUG)
    handler.setFormatter(py_logging.Formatter(FILE_FORMAT))
    return handler


def configure_logging(
    level: str = "INFO",
    stream: TextIO | None = None,
    *,
    log_file: str | Path | None = None,
) -> py_logging.Logger:
    """(Re)configure the ``resilact`` logger; unknown levels fall back to INFO."""
    console_level = LOG_LEVELS[normalize_level(level) or "INFO"]

    logger = py_logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console = py_logging.StreamHandler(stream or sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(py_logging.Formatter(CONSOLE_FORMAT))
    logger.addHandler(console)

    file_handler = _file_handler(log_file) if log_file else None
    if file_handler is not None:
        logger.addHandler(file_handler)
    logger.setLevel(py_logging.DEBUG if file_handler is not None else console_level)

    logger.propagate = False
    return logger
