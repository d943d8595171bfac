"""
Module: billing_kernel.logging_config
Responsibility: JSON-lines logging for every billing package, with document
    and batch-run context attached automatically to each record.
Architecture position: Kernel, leaf.  Imported by everything; imports
    nothing from the billing packages.

Every record is one JSON object:

    {"ts": "...", "level": "INFO", "logger": "billing_kernel.modules.invoice.service",
     "message": "invoice_record_payment_committed", "document_number": "RG-2024-000001",
     "status": "PartiallyPaid", "version": 3}

Event names are snake_case messages; the details travel in ``extra``.
Exceptions logged with ``exc_info`` contribute their type, message, ``code``
and public attributes as ``exc_*`` fields.

Invariants enforced:
    - Context fields are a closed set; an unknown name raises ValueError.
    - ``LogContext.bind`` restores the previous context on exit, also when
      the block raises.
    - ``configure_logging`` installs its handler once per process until
      ``reset_logging`` is called.
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
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Any
from uuid import UUID

LOGGER_NAMESPACE = "billing_kernel"

_EMPTY: Mapping[str, str] = MappingProxyType({})
_context: ContextVar[Mapping[str, str]] = ContextVar("billing_log_context", default=_EMPTY)


# ---------------------------------------------------------------------------
# Context propagation
# ---------------------------------------------------------------------------


class LogContext:
    """Per-task log fields (thread and asyncio safe via ``ContextVar``).

    Services bind ``document_type`` / ``document_id`` around each unit of
    work; the batch runner binds ``batch_run_id`` around a whole run.
    """

    FIELDS = (
        "correlation_id",
        "actor_id",
        "document_type",
        "document_id",
        "document_number",
        "batch_run_id",
    )

    @classmethod
    def _merged(cls, fields: Mapping[str, Any]) -> Mapping[str, str]:
        unknown = sorted(set(fields) - set(cls.FIELDS))
        if unknown:
            raise ValueError(f"Unknown log context field: {', '.join(unknown)}")
        merged = dict(_context.get())
        merged.update({k: str(v) for k, v in fields.items() if v is not None})
        return MappingProxyType(merged)

    @classmethod
    def set(cls, **fields: Any) -> None:
        """Add fields to the current context.  ``None`` values are ignored."""
        _context.set(cls._merged(fields))

    @classmethod
    def get_all(cls) -> dict[str, str]:
        return dict(_context.get())

    @classmethod
    def clear(cls) -> None:
        _context.set(_EMPTY)

    @classmethod
    @contextmanager
    def bind(cls, **fields: Any) -> Iterator[type["LogContext"]]:
        token = _context.set(cls._merged(fields))
        try:
            yield cls
        finally:
            _context.reset(token)


# ---------------------------------------------------------------------------
# JSON formatter
# ---------------------------------------------------------------------------

_RESERVED = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {
    "message",
    "taskName",
}


def _json_default(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (UUID, Decimal)):
        return str(value)
    return repr(value)


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    code = getattr(exc, "code", None)
    if code is not None:
        fields["exc_code"] = code
    # BillingError subclasses keep their context as plain attributes
    for name, value in vars(exc).items():
        if not name.startswith("_") and name != "code":
            fields[f"exc_{name}"] = value
    return fields


class StructuredFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }
        payload.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _RESERVED and key not in payload
        )
        if record.exc_info and record.exc_info[1] is not None:
            payload.update(_exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=_json_default)


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------


def get_logger(name: str) -> logging.Logger:
    """Logger ``billing_kernel.<name>``; configuration is inherited from the root."""
    return logging.getLogger(f"{LOGGER_NAMESPACE}.{name}")


_setup_lock = threading.Lock()
_handler: logging.Handler | None = None


def configure_logging(
    *,
    level: int = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """Attach a JSON handler to the ``billing_kernel`` logger.

    Only the first call has an effect; later calls return immediately.
    """
    global _handler
    with _setup_lock:
        if _handler is not None:
            return
        _handler = handler or logging.StreamHandler(stream or sys.stderr)
        _handler.setFormatter(StructuredFormatter())
        root = logging.getLogger(LOGGER_NAMESPACE)
        root.setLevel(level)
        root.propagate = False
        root.addHandler(_handler)


def reset_logging() -> None:
    """Undo ``configure_logging``.  Used by the test suite."""
    global _handler
    with _setup_lock:
        _handler = None
        root = logging.getLogger(LOGGER_NAMESPACE)
        root.handlers.clear()
        root.setLevel(logging.WARNING)
        root.propagate = True
