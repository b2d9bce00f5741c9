"""
Module: review_kernel.logging_config
Responsibility: JSON-lines logging for every review package.  Each record
    carries the request-scoped context (correlation, request, actor, action)
    alongside whatever structured ``extra`` the caller supplied.
Architecture position: Kernel root.  Imported by every layer; imports nothing
    from the project.

Invariants enforced:
    - One log record is one JSON object on one line.
    - Context fields that were never set do not appear in the output.
    - configure_logging() installs at most one handler until reset_logging().

Audit relevance:
    Transition traces and config traces are plain log records; the context
    fields are what tie a trace to the request and actor that produced it.
"""

__all__ = [
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "reset_logging",
]

import json
import logging
import sys
import threading
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, date, datetime
from enum import Enum
from typing import Any, Iterator

_ROOT_NAME = "review_kernel"

_CONTEXT_VARS: dict[str, ContextVar[str | None]] = {
    field: ContextVar(f"review_log_{field}", default=None)
    for field in ("correlation_id", "request_id", "actor_id", "action", "trace_id")
}


class LogContext:
    """Request-scoped log fields, safe across threads and tasks."""

    @staticmethod
    def _var(field: str) -> ContextVar[str | None]:
        try:
            return _CONTEXT_VARS[field]
        except KeyError:
            raise ValueError(f"Unknown log context field: {field}") from None

    @classmethod
    def set(cls, **fields: Any) -> None:
        """Overwrite the given fields; None values are ignored."""
        for field, value in fields.items():
            if value is not None:
                cls._var(field).set(str(value))

    @classmethod
    def get_all(cls) -> dict[str, str]:
        return {
            field: value
            for field, var in _CONTEXT_VARS.items()
            if (value := var.get()) is not None
        }

    @classmethod
    def clear(cls) -> None:
        for var in _CONTEXT_VARS.values():
            var.set(None)

    @classmethod
    @contextmanager
    def bind(cls, **fields: Any) -> Iterator[type["LogContext"]]:
        """Set fields for the duration of a ``with`` block, then restore them."""
        tokens = [
            (cls._var(field), cls._var(field).set(str(value)))
            for field, value in fields.items()
            if value is not None
        ]
        try:
            yield cls
        finally:
            for var, token in reversed(tokens):
                var.reset(token)


def _to_json(obj: Any) -> Any:
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, (tuple, set, frozenset)):
        return list(obj)
    # Decimal and anything else unknown
    return str(obj)


# Attributes every LogRecord has; anything else came in through ``extra``.
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


class StructuredFormatter(logging.Formatter):
    """Render a LogRecord as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload = self._envelope(record)
        payload.update(LogContext.get_all())
        payload.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and key not in payload
        )
        if record.exc_info and record.exc_info[1] is not None:
            payload.update(self._exception_fields(record))
        return json.dumps(payload, default=_to_json)

    @staticmethod
    def _envelope(record: logging.LogRecord) -> dict[str, Any]:
        return {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

    def _exception_fields(self, record: logging.LogRecord) -> dict[str, Any]:
        exc = record.exc_info[1]
        fields: dict[str, Any] = {
            "exc_type": type(exc).__name__,
            "exc_message": str(exc),
        }
        code = getattr(exc, "code", None)
        if code is not None:
            fields["exc_code"] = code
        # ReviewKernelError subclasses keep their structured detail as attributes
        fields.update(
            (f"exc_{name}", value)
            for name, value in vars(exc).items()
            if not name.startswith("_") and name != "code"
        )
        fields["traceback"] = self.formatException(record.exc_info)
        return fields


def get_logger(name: str) -> logging.Logger:
    """Child logger of ``review_kernel``, e.g. ``review_kernel.db.engine``."""
    return logging.getLogger(f"{_ROOT_NAME}.{name}")


_state_lock = threading.Lock()
_installed_handler: logging.Handler | None = None


def configure_logging(
    *,
    level: int = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """Attach a JSON handler to the ``review_kernel`` logger.

    Only the first call has an effect; later calls return immediately until
    reset_logging() is called.
    """
    global _installed_handler
    with _state_lock:
        if _installed_handler is not None:
            return
        _installed_handler = (
            handler if handler is not None
            else logging.StreamHandler(stream or sys.stderr)
        )

    _installed_handler.setFormatter(StructuredFormatter())
    root = logging.getLogger(_ROOT_NAME)
    root.setLevel(level)
    root.propagate = False
    root.addHandler(_installed_handler)


def reset_logging() -> None:
    """Detach handlers and restore the WARNING level.  FOR TESTING ONLY."""
    global _installed_handler
    with _state_lock:
        _installed_handler = None
    root = logging.getLogger(_ROOT_NAME)
    root.handlers.clear()
    root.setLevel(logging.WARNING)
