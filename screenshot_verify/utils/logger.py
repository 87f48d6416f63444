from __future__ import annotations

"""Logging
-------
Human-readable records go to stderr through Rich so that stdout carries
nothing but JSON reports. With LOG_TO_FILE enabled the same records are also
appended to LOG_FILE, one JSON object per line, together with whatever
context was bound via `bind` (the CLI binds `run_id` and `command`).
"""

import json
import logging
import threading
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Optional

from rich.console import Console
from rich.logging import RichHandler

from screenshot_verify.utils.config import LogLevel, Settings, get_settings


__all__ = [
    "get_logger",
    "set_log_level",
    "bind",
    "unbind",
    "log_with_context",
]

ROOT_LOGGER_NAME = "screenshot-verify"

_lock = threading.Lock()
_ready = False
_context: Dict[str, Any] = {}


class JsonLineFormatter(logging.Formatter):
    """Serialises a record and its bound context to a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).strftime("%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "pid": record.process,
        }
        context = getattr(record, "extra", None)
        if isinstance(context, dict):
            entry.update(context)
        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False)


# ---------- handlers ----------

def _level_of(level: LogLevel | str) -> int:
    name = level.value if isinstance(level, LogLevel) else str(level)
    return getattr(logging, name.upper(), logging.INFO)


def _stderr_handler(settings: Settings) -> logging.Handler:
    console = Console(stderr=True, color_system="auto" if settings.COLORIZED_OUTPUT else None)
    handler = RichHandler(
        console=console,
        show_path=False,
        rich_tracebacks=True,
        markup=False,
        omit_repeated_times=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    return handler


def _json_file_handler(path: Path) -> logging.Handler:
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(str(path), maxBytes=1024 * 1024, backupCount=3, encoding="utf-8", delay=True)
    handler.setFormatter(JsonLineFormatter())
    return handler


def _setup() -> None:
    global _ready
    if _ready:
        return
    with _lock:
        if _ready:
            return
        settings = get_settings()
        handlers = [_stderr_handler(settings)]
        if settings.LOG_TO_FILE:
            handlers.append(_json_file_handler(settings.LOG_FILE))

        root = logging.getLogger()
        for old in list(root.handlers):
            root.removeHandler(old)
        level = _level_of(settings.LOG_LEVEL)
        root.setLevel(level)
        for h in handlers:
            h.setLevel(level)
            root.addHandler(h)
        _ready = True


# ---------- public API ----------

def get_logger(name: Optional[str] = None) -> logging.LoggerAdapter:
    """Logger for `name` whose records carry the bound context."""
    _setup()
    return logging.LoggerAdapter(logging.getLogger(name or ROOT_LOGGER_NAME), extra={"extra": _context})


def set_log_level(level: LogLevel | str) -> None:
    _setup()
    py_level = _level_of(level)
    root = logging.getLogger()
    root.setLevel(py_level)
    for h in root.handlers:
        h.setLevel(py_level)


def bind(**kwargs: Any) -> None:
    """Add keys to the context of every record from now on."""
    _context.update(kwargs)


def unbind(*keys: str) -> None:
    for k in keys:
        _context.pop(k, None)


def log_with_context(logger: logging.LoggerAdapter, **kwargs: Any) -> logging.LoggerAdapter:
    """Like `logger`, plus `kwargs` on top of the bound context (e.g. app_pid)."""
    return logging.LoggerAdapter(logger.logger, extra={"extra": {**_context, **kwargs}})
