# ============================================================================
# STRUCTURED LOGGING
# ============================================================================
# EPOCH: 2 - SHARED INSTANCES
# STATUS: Core - Structured logging with context
# PURPOSE: Per-task context fields on every record; human or JSON output
# CREATED: 14 SEP 2026
# ============================================================================
"""
Structured Logging

Modules log through logging.getLogger(__name__). Fields that describe
the current unit of work (which API method, which egress path, which
cache entry, which duty lease) are set once with log_context() and show
up on every record emitted inside the block.

The context lives in a ContextVar, so concurrent request tasks each see
their own fields.

    configure_logging("INFO")                 # human lines
    configure_logging("INFO", json_output=True)   # or LOG_FORMAT=json

    with log_context(method="user.rating", egress="10.0.0.1:8080"):
        logger.warning("Upstream call failed")
"""

import json
import logging
import os
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field, fields, replace
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, Optional, Union


@dataclass(frozen=True)
class LogContext:
    method: Optional[str] = None
    egress: Optional[str] = None
    domain: Optional[str] = None
    cache_key: Optional[str] = None
    duty: Optional[str] = None
    owner_id: Optional[str] = None
    correlation_id: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def named_fields(cls) -> tuple:
        return tuple(f.name for f in fields(cls) if f.name != "extra")

    def to_dict(self) -> Dict[str, Any]:
        """Set fields, then extras, flattened."""
        data = {name: getattr(self, name) for name in self.named_fields() if getattr(self, name) is not None}
        data.update(self.extra)
        return data


_context: ContextVar[LogContext] = ContextVar("log_context", default=LogContext())


def get_current_context() -> LogContext:
    return _context.get()


@contextmanager
def log_context(**fields_) -> Iterator[LogContext]:
    """
    Layer fields over the enclosing context for the duration of the block.

    Named LogContext fields replace the parent's value; anything else is
    merged into extra.
    """
    parent = _context.get()
    named = set(LogContext.named_fields())
    updates = {k: v for k, v in fields_.items() if k in named}
    extra = {**parent.extra, **{k: v for k, v in fields_.items() if k not in named}}

    token = _context.set(replace(parent, extra=extra, **updates))
    try:
        yield _context.get()
    finally:
        _context.reset(token)


def _record_data(record: logging.LogRecord) -> Optional[Any]:
    # logger.info("...", extra={"extra": {...}}) attaches structured data
    return getattr(record, "extra", None) or None


class StructuredFormatter(logging.Formatter):
    """One JSON object per record."""

    def __init__(self, include_context: bool = True):
        super().__init__()
        self.include_context = include_context

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        context = get_current_context().to_dict() if self.include_context else {}
        if context:
            entry["context"] = context

        data = _record_data(record)
        if data is not None:
            entry["data"] = data

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        entry["source"] = f"{record.filename}:{record.lineno} {record.funcName}"
        return json.dumps(entry, default=str)


class HumanFormatter(logging.Formatter):
    """
    Single-line records for terminals:

        2026-09-18 10:00:00 WARNING  infrastructure.codeforces_client [method=user.rating]: ...
    """

    def format(self, record: logging.LogRecord) -> str:
        stamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")
        context = get_current_context()
        tags = ", ".join(
            f"{name}={getattr(context, name)}"
            for name in LogContext.named_fields()
            if getattr(context, name) is not None
        )

        line = f"{stamp} {record.levelname:<8} {record.name}"
        if tags:
            line += f" [{tags}]"
        line += f": {record.getMessage()}"

        data = _record_data(record)
        if data is not None:
            line += f" {data}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def configure_logging(level: Union[str, int] = "INFO", json_output: bool = False) -> None:
    """
    Replace the root logger's handlers with one stdout handler.

    Args:
        level: name or number; unknown names fall back to INFO
        json_output: JSON records (LOG_FORMAT=json has the same effect)
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    use_json = json_output or os.getenv("LOG_FORMAT", "").lower() == "json"

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(StructuredFormatter() if use_json else HumanFormatter())

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)


__all__ = [
    "LogContext",
    "StructuredFormatter",
    "HumanFormatter",
    "configure_logging",
    "log_context",
    "get_current_context",
]
