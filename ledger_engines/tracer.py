"""
ledger_engines.tracer -- LEDGER_ENGINE_TRACE records for pure engines.

``@traced_engine`` wraps an engine entry point and logs one record per
call: engine name and version, a short fingerprint of the chosen keyword
inputs, the duration, and an ``outcome`` that is either a summary of the
result (when ``describe`` is given) or ``"error"`` with the exception
type.  The wrapped function's inputs and result pass through untouched.

Two calls with equal fingerprinted inputs carry equal fingerprints, so a
summary can be tied back to the deposit and timestamp that produced it.

Usage:
    @traced_engine(
        "balance", "1.0",
        fingerprint_fields=("deposit_required", "calculated_at"),
        describe=lambda s: {"balance_status": s.balance_status},
    )
    def compute_summary(*, deposit_required, entries, calculated_at):
        ...
"""

from __future__ import annotations

import functools
import hashlib
import logging
import time
from collections.abc import Callable, Mapping
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any

_logger = logging.getLogger("ledger_kernel.engines.tracer")


def _stable_text(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, Decimal):
        # 100, 100.0 and 100.00 are the same amount
        return format(value.normalize(), "f")
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Mapping):
        return "{" + ",".join(
            f"{key}:{_stable_text(value[key])}" for key in sorted(value)
        ) + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(_stable_text(v) for v in value) + "]"
    return str(value)


def compute_input_fingerprint(
    fingerprint_fields: tuple[str, ...],
    kwargs: Mapping[str, Any],
) -> str:
    """First 16 hex chars of SHA-256 over ``name=value`` pairs; absent names count as null."""
    text = "|".join(f"{name}={_stable_text(kwargs.get(name))}" for name in fingerprint_fields)
    return hashlib.sha256(text.encode("utf-8")).hexdigest()[:16]


def traced_engine(
    engine_name: str,
    engine_version: str,
    fingerprint_fields: tuple[str, ...] = (),
    describe: Callable[[Any], Mapping[str, Any]] | None = None,
) -> Callable:
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            record: dict[str, Any] = {
                "trace_type": "LEDGER_ENGINE_TRACE",
                "engine_name": engine_name,
                "engine_version": engine_version,
                "input_fingerprint": (
                    compute_input_fingerprint(fingerprint_fields, kwargs)
                    if fingerprint_fields else ""
                ),
                "function": func.__qualname__,
            }
            started = time.monotonic()
            try:
                result = func(*args, **kwargs)
            except Exception as exc:
                record["duration_ms"] = round((time.monotonic() - started) * 1000, 2)
                record["outcome"] = "error"
                record["error_type"] = type(exc).__name__
                _logger.warning("LEDGER_ENGINE_TRACE", extra=record)
                raise

            record["duration_ms"] = round((time.monotonic() - started) * 1000, 2)
            record["outcome"] = dict(describe(result)) if describe else "ok"
            _logger.info("LEDGER_ENGINE_TRACE", extra=record)
            return result

        return wrapper

    return decorator
