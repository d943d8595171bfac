"""
billing_engines.tracer -- BILLING_ENGINE_TRACE records for pure calculations.

``@traced_engine`` wraps a calculation and logs, per call, the engine name
and version, a fingerprint of the chosen arguments, the duration, and
whether the call returned or raised.  Two calls with equal inputs always
produce the same fingerprint, so a trace line identifies which totals a
document was computed from without logging the document itself.

The decorator never changes arguments, results or exceptions.

Usage:
    @traced_engine("document_totals", "1.0", fingerprint_fields=("lines",))
    def calculate_document_totals(lines, discount_percent=None, ...):
        ...
"""

from __future__ import annotations

import functools
import hashlib
import inspect
import json
import time
from collections.abc import Callable
from dataclasses import asdict, is_dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from billing_kernel.logging_config import get_logger

_logger = get_logger("engines.tracer")

FINGERPRINT_LENGTH = 16


def _plain(value: Any) -> Any:
    # Decimal("1.50") and Decimal("1.5") must fingerprint alike
    if isinstance(value, Decimal):
        return format(value.normalize(), "f")
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (UUID, date)):
        return str(value)
    if is_dataclass(value) and not isinstance(value, type):
        return asdict(value)
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=str)
    return str(value)


def compute_input_fingerprint(
    fingerprint_fields: tuple[str, ...],
    arguments: dict[str, Any],
) -> str:
    """SHA-256 prefix over the canonical JSON of the named arguments."""
    selected = {name: arguments.get(name) for name in fingerprint_fields}
    canonical = json.dumps(selected, sort_keys=True, default=_plain, separators=(",", ":"))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:FINGERPRINT_LENGTH]


def traced_engine(
    engine_name: str,
    engine_version: str,
    fingerprint_fields: tuple[str, ...] = (),
) -> Callable:
    def decorator(func: Callable) -> Callable:
        signature = inspect.signature(func)

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            fingerprint = ""
            if fingerprint_fields:
                bound = signature.bind_partial(*args, **kwargs)
                fingerprint = compute_input_fingerprint(fingerprint_fields, bound.arguments)

            started = time.monotonic()
            outcome = "error"
            try:
                result = func(*args, **kwargs)
                outcome = "ok"
                return result
            finally:
                _logger.info(
                    "BILLING_ENGINE_TRACE",
                    extra={
                        "trace_type": "BILLING_ENGINE_TRACE",
                        "engine_name": engine_name,
                        "engine_version": engine_version,
                        "input_fingerprint": fingerprint,
                        "outcome": outcome,
                        "duration_ms": round((time.monotonic() - started) * 1000, 2),
                        "function": func.__qualname__,
                    },
                )

        return wrapper

    return decorator
