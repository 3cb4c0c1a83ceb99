"""
Structured JSON logging for the stock kernel.

Every record under the ``stock_kernel`` logger is written as one JSON line.
Request-scoped fields ride along from ``LogContext`` so one request can be
followed from the HTTP layer through the engine down to the storage layer:

    request_id       set by the HTTP middleware
    actor_id         caller identity from the Access Gate
    item_id          item being created, moved or edited
    application_id   application being updated or deleted
"""

__all__ = [
    "CONTEXT_FIELDS",
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
from typing import Any, Iterator, TextIO

CONTEXT_FIELDS: tuple[str, ...] = (
    "request_id",
    "actor_id",
    "item_id",
    "application_id",
)

# Replaced on every change, never mutated in place
_context: ContextVar[dict[str, str]] = ContextVar("stock_log_context", default={})


def _merged(fields: dict[str, Any]) -> dict[str, str]:
    unknown = set(fields) - set(CONTEXT_FIELDS)
    if unknown:
        raise TypeError(f"Unknown log context field(s): {', '.join(sorted(unknown))}")
    merged = dict(_context.get())
    merged.update((key, str(value)) for key, value in fields.items() if value is not None)
    return merged


class LogContext:
    """Request-scoped log fields; safe across threads and async tasks."""

    @staticmethod
    def set(**fields: Any) -> None:
        """Set fields for the rest of the current context.  None is skipped."""
        _context.set(_merged(fields))

    @staticmethod
    def get_all() -> dict[str, str]:
        return dict(_context.get())

    @staticmethod
    def clear() -> None:
        _context.set({})

    @staticmethod
    @contextmanager
    def bind(**fields: Any) -> Iterator[None]:
        """Set fields for the duration of a ``with`` block, then restore."""
        token = _context.set(_merged(fields))
        try:
            yield
        finally:
            _context.reset(token)


# Attributes every LogRecord carries; anything else came in through ``extra``
_RECORD_ATTRIBUTES: frozenset[str] = frozenset(vars(logging.makeLogRecord({}))) | {
    "message",
    "asctime",
    "taskName",
}


def _json_value(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    code = getattr(exc, "code", None)
    if code is not None:
        fields["exc_code"] = code
    # StockKernelError subclasses keep their structured attributes
    fields.update(
        (f"exc_{key}", value)
        for key, value in vars(exc).items()
        if not key.startswith("_")
    )
    return fields


class StructuredFormatter(logging.Formatter):
    """Envelope, context, ``extra`` fields and exception details as JSON."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **_context.get(),
        }
        entry.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRIBUTES and key not in entry
        )
        if record.exc_info and record.exc_info[1] is not None:
            entry.update(_exception_fields(record.exc_info[1]))
            entry["traceback"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=_json_value)


_LOGGER_PREFIX = "stock_kernel"

_configure_lock = threading.Lock()
_installed_handler: logging.Handler | None = None


def get_logger(name: str) -> logging.Logger:
    """Logger under the ``stock_kernel`` namespace."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


def configure_logging(
    *,
    level: int = logging.INFO,
    stream: TextIO | None = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Attach one JSON handler to the ``stock_kernel`` logger.

    Only the first call takes effect until ``reset_logging()``.
    """
    global _installed_handler
    with _configure_lock:
        if _installed_handler is not None:
            return
        if handler is None:
            handler = logging.StreamHandler(stream or sys.stderr)
        handler.setFormatter(StructuredFormatter())

        logger = logging.getLogger(_LOGGER_PREFIX)
        logger.setLevel(level)
        logger.propagate = False
        logger.addHandler(handler)
        _installed_handler = handler


def reset_logging() -> None:
    """Detach the handler installed by ``configure_logging``.  Tests only."""
    global _installed_handler
    with _configure_lock:
        logger = logging.getLogger(_LOGGER_PREFIX)
        if _installed_handler is not None:
            logger.removeHandler(_installed_handler)
            _installed_handler = None
        logger.setLevel(logging.WARNING)
