"""
Core logging functionality for bluezsync.

One log file per log type lives under the per-user data directory.  Code
either goes through :func:`print_and_log` (console + file) or asks for a
standard :class:`logging.Logger` via :func:`get_logger`.
"""

import logging
from pathlib import Path
from typing import Dict, Optional

from . import config

# Re-export log type constants for external modules
LOG__GENERAL = config.LOG__GENERAL
LOG__DEBUG = config.LOG__DEBUG
LOG__SYNC = config.LOG__SYNC

_LOG_PATHS: Dict[str, Path] = {
    LOG__GENERAL: config.LOG_DIR / "general.log",
    LOG__DEBUG: config.LOG_DIR / "debug.log",
    LOG__SYNC: config.LOG_DIR / "sync.log",
}

# Raw message only
_formatter = logging.Formatter("%(message)s")

_handlers: Dict[str, logging.Handler] = {}
for log_type, path in _LOG_PATHS.items():
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, mode="a", encoding="utf-8")
    handler.setFormatter(_formatter)
    _handlers[log_type] = handler

# Root logger for bluezsync
_logger = logging.getLogger("bluezsync")
_logger.setLevel(logging.INFO)
_logger.addHandler(_handlers[LOG__GENERAL])

del log_type, path, handler


_RECORD_LEVELS = {
    LOG__GENERAL: logging.INFO,
    LOG__DEBUG: logging.DEBUG,
    LOG__SYNC: logging.INFO,
}


def _emit(line: str, log_type: str) -> None:
    """Write *line* to the handler for *log_type* without touching the logger tree.

    Lines below the ``bluezsync`` logger level (see :func:`set_level`) are dropped;
    DEBUG-type lines count as ``logging.DEBUG``, the others as ``logging.INFO``.
    """
    level = _RECORD_LEVELS.get(log_type, logging.INFO)
    if level < _logger.level:
        return
    record = logging.LogRecord(
        name=f"bluezsync.{log_type.lower()}",
        level=level,
        pathname=__file__,
        lineno=0,
        msg=line.rstrip("\n"),
        args=(),
        exc_info=None,
    )
    _handlers.get(log_type, _handlers[LOG__GENERAL]).handle(record)


def logging__debug_log(msg: str) -> None:
    """Write to debug log."""
    _emit(msg, LOG__DEBUG)


def logging__general_log(msg: str) -> None:
    """Write to general log."""
    _emit(msg, LOG__GENERAL)


def logging__sync_log(msg: str) -> None:
    """Write to the synchronizer log."""
    _emit(msg, LOG__SYNC)


_log_func_map = {
    LOG__GENERAL: logging__general_log,
    LOG__DEBUG: logging__debug_log,
    LOG__SYNC: logging__sync_log,
}


def logging__log_event(log_type: str, string_to_log: str) -> None:
    """Log an event to the specified log type."""
    _log_func_map.get(log_type, logging__general_log)(string_to_log)


def print_and_log(output_string: str, log_type: str = LOG__GENERAL) -> None:
    """Print to stdout and log to the specified log type.

    DEBUG and SYNC lines go to their files only.
    """
    if log_type not in (LOG__DEBUG, LOG__SYNC):
        print(output_string)
    logging__log_event(log_type, output_string)


def set_level(level: str) -> None:
    """Set the level of the ``bluezsync`` logger (e.g. from :class:`config.Settings`).

    The level applies to :func:`print_and_log` file output as well.
    """
    _logger.setLevel(getattr(logging, str(level).upper(), logging.INFO))


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get a logger with the specified name.

    Loggers are children of ``bluezsync`` and write to the general log file.
    """
    if name:
        if name.startswith("bluezsync."):
            name = name[len("bluezsync."):]
        return _logger.getChild(name)
    return _logger
