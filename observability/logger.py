"""Structured session event logging."""
from __future__ import annotations

import json
import logging
import logging.handlers
import os
import sys
import time
import uuid
from pathlib import Path
from typing import Any, Callable

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
ENABLE_FILE_LOGS = os.getenv("ENABLE_FILE_LOGS", "0") in ("1", "true", "True")
LOG_FILE = os.getenv("LOG_FILE", "logs/sessions.log")
LOG_MAX_BYTES = int(os.getenv("LOG_MAX_BYTES", "5242880"))
LOG_BACKUP_COUNT = int(os.getenv("LOG_BACKUP_COUNT", "5"))

HUMAN_FORMAT = "[%(asctime)s] %(levelname)s %(name)s :: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Keys surfaced on the human-readable line, in order.
_HUMAN_KEYS = ("phase", "role", "sequence", "remaining", "reason", "status", "ms", "accepted")

_events = logging.getLogger("interview.events")
_events.setLevel(LOG_LEVEL)
_events.propagate = False


def _is_json(record: logging.LogRecord) -> bool:
    return getattr(record, "is_json", False) is True


def _is_human(record: logging.LogRecord) -> bool:
    return not _is_json(record)


def _attach(handler: logging.Handler, fmt: str, keep: Callable[[logging.LogRecord], bool]) -> None:
    handler.setLevel(LOG_LEVEL)
    handler.setFormatter(logging.Formatter(fmt, datefmt=DATE_FORMAT))
    handler.addFilter(keep)
    _events.addHandler(handler)


def _rotating(path: Path) -> logging.Handler:
    return logging.handlers.RotatingFileHandler(path, maxBytes=LOG_MAX_BYTES, backupCount=LOG_BACKUP_COUNT)


def configure_logging(level: str = LOG_LEVEL) -> None:
    """Route module loggers to stdout with the shared human format."""

    root = logging.getLogger()
    root.setLevel(level)
    if any(getattr(handler, "_interview_console", False) for handler in root.handlers):
        return
    console = logging.StreamHandler(stream=sys.stdout)
    console.setFormatter(logging.Formatter(HUMAN_FORMAT, datefmt=DATE_FORMAT))
    console._interview_console = True  # type: ignore[attr-defined]
    root.addHandler(console)


def _ensure_handlers() -> None:
    if _events.handlers:
        return
    _attach(logging.StreamHandler(stream=sys.stdout), HUMAN_FORMAT, _is_human)
    if not ENABLE_FILE_LOGS:
        return

    json_path = Path(LOG_FILE)
    json_path.parent.mkdir(parents=True, exist_ok=True)
    # sessions.log holds JSON lines; sessions-human.log mirrors the console.
    human_path = json_path.with_name(f"{json_path.stem}-human.log")
    _attach(_rotating(json_path), "%(message)s", _is_json)
    _attach(_rotating(human_path), HUMAN_FORMAT, _is_human)


def _format_human(event: dict[str, Any]) -> str:
    line = f"session={event.get('session_id')} kind={event.get('kind')}"
    extras = " ".join(f"{key}={event[key]}" for key in _HUMAN_KEYS if key in event)
    return f"{line} {extras}" if extras else line


def _write(message: str, level: int, *, is_json: bool) -> None:
    if not _events.isEnabledFor(level):
        return
    record = _events.makeRecord(_events.name, level, "", 0, message, (), None)
    record.is_json = is_json  # type: ignore[attr-defined]
    _events.handle(record)


def log_event(kind: str, session_id: str, *, level: int = logging.INFO, **fields: Any) -> None:
    """Emit a session event as a human line and, when file logs are on, a JSON line."""

    _ensure_handlers()
    event: dict[str, Any] = {
        "ts": time.time(),
        "trace": uuid.uuid4().hex,
        "kind": kind,
        "session_id": session_id,
        **fields,
    }
    _write(_format_human(event), level, is_json=False)
    if ENABLE_FILE_LOGS:
        _write(json.dumps(event, ensure_ascii=False, default=str), level, is_json=True)


__all__ = ["configure_logging", "log_event"]
