"""Structured JSON logging for the payment ledger.

Every record under the ``ledger_kernel`` logger namespace leaves as a single
JSON object: a fixed envelope (``ts``, ``level``, ``logger``, ``message``),
the request-scoped fields held by :class:`LogContext`, the record's
``extra`` fields, and for errors the exception's type, code and attributes.

    from ledger_kernel.logging_config import LogContext, get_logger

    logger = get_logger("services.entry_lifecycle")
    with LogContext.bind(actor_id=actor.id, order_id=str(order_id)):
        logger.info("ledger_entry_created", extra={"payment_number": number})
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
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Any
from uuid import UUID

_LOGGER_PREFIX = "ledger_kernel"

# Fields a caller may put in the context; anything else is a typo.
CONTEXT_FIELDS = ("correlation_id", "actor_id", "order_id", "entry_id", "source")

_context: ContextVar[MappingProxyType] = ContextVar(
    "ledger_log_context", default=MappingProxyType({})
)


class LogContext:
    """Request-scoped log fields, isolated per thread and per asyncio task."""

    @staticmethod
    def _merged(fields: dict[str, str | None]) -> MappingProxyType:
        unknown = set(fields) - set(CONTEXT_FIELDS)
        if unknown:
            raise TypeError(f"Unknown log context field(s): {', '.join(sorted(unknown))}")
        merged = dict(_context.get())
        merged.update({k: v for k, v in fields.items() if v is not None})
        return MappingProxyType(merged)

    @classmethod
    def set(cls, **fields: str | None) -> None:
        """Set fields for the rest of the current context; None leaves a field as is."""
        _context.set(cls._merged(fields))

    @classmethod
    def get_all(cls) -> dict[str, str]:
        return dict(_context.get())

    @classmethod
    def clear(cls) -> None:
        _context.set(MappingProxyType({}))

    @classmethod
    @contextmanager
    def bind(cls, **fields: str | None) -> Iterator[type["LogContext"]]:
        """Set fields for the duration of a ``with`` block, then restore the previous context."""
        token = _context.set(cls._merged(fields))
        try:
            yield cls
        finally:
            _context.reset(token)


# Attributes every LogRecord has; anything else on a record came from ``extra``.
_RECORD_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


def _to_json(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (UUID, Decimal)):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    """Type, message, machine code and public attributes of a kernel exception."""
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    code = getattr(exc, "code", None)
    if code is not None:
        fields["exc_code"] = code
    for name, value in vars(exc).items():
        if not name.startswith("_") and name != "code":
            fields[f"exc_{name}"] = value
    return fields


class StructuredFormatter(logging.Formatter):
    """One JSON object per log record."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **_context.get(),
        }
        payload.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and key not in payload
        )
        if record.exc_info and record.exc_info[1] is not None:
            payload.update(_exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=_to_json)


def get_logger(name: str) -> logging.Logger:
    """Logger ``ledger_kernel.<name>``."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


_configured = False
_lock = threading.Lock()


def configure_logging(
    *,
    level: int = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """Attach one JSON handler to the ``ledger_kernel`` logger.  Later calls do nothing."""
    global _configured
    with _lock:
        if _configured:
            return
        _configured = True

    target = handler or logging.StreamHandler(stream or sys.stderr)
    target.setFormatter(StructuredFormatter())

    root = logging.getLogger(_LOGGER_PREFIX)
    root.setLevel(level)
    root.propagate = False
    root.addHandler(target)


def reset_logging() -> None:
    """Undo configure_logging. FOR TESTING ONLY."""
    global _configured
    with _lock:
        _configured = False
    root = logging.getLogger(_LOGGER_PREFIX)
    root.handlers.clear()
    root.setLevel(logging.WARNING)
