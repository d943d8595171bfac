"""
Values -- money arithmetic helpers and small shared value objects.

Responsibility:
    Central place for the decimal rules every engine follows: how raw input
    becomes a Decimal, how and when amounts are rounded, and how money is
    rendered at the wire. Also holds the value objects shared by all three
    document types (DocumentType, StatusChange).

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - No floats in money arithmetic. Floats are converted through ``str`` so
      that 0.1 stays 0.1.
    - round_money() is the ONLY sanctioned rounding function (half-up to two
      decimals). Engines call it on final totals only.

Failure modes:
    - InvalidAmountError on unparseable, non-finite or boolean input.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Any
from uuid import UUID

from billing_kernel.exceptions import InvalidAmountError

MONEY_DECIMAL_PLACES = 2
ROUNDING_EPSILON = Decimal("0.01")
ZERO = Decimal("0")
HUNDRED = Decimal("100")

_MONEY_QUANTUM = Decimal(10) ** -MONEY_DECIMAL_PLACES


def to_decimal(value: Any, field: str = "amount") -> Decimal:
    """Convert caller input to Decimal, rejecting anything non-numeric."""
    if isinstance(value, bool):
        raise InvalidAmountError(field, value, "boolean is not a number")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, str)):
        try:
            result = Decimal(value)
        except InvalidOperation as exc:
            raise InvalidAmountError(field, value, "not a decimal number") from exc
    elif isinstance(value, float):
        result = Decimal(str(value))
    else:
        raise InvalidAmountError(field, value, f"unsupported type {type(value).__name__}")
    if not result.is_finite():
        raise InvalidAmountError(field, value, "must be finite")
    return result


def round_money(value: Decimal) -> Decimal:
    """Round to two decimal places, half-up."""
    return value.quantize(_MONEY_QUANTUM, rounding=ROUND_HALF_UP)


def format_money(value: Decimal) -> str:
    """Render money for the wire: always exactly two decimals."""
    return str(round_money(value))


def money_equal(left: Decimal, right: Decimal) -> bool:
    """Equality within the one-cent rounding tolerance."""
    return abs(left - right) <= ROUNDING_EPSILON


def as_utc(value: datetime) -> datetime:
    """Normalize a timestamp to UTC. Naive values are taken to be UTC already."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class DocumentType(str, Enum):
    """The three numbered document families."""

    QUOTE = "quote"
    INVOICE = "invoice"
    COST = "cost"


@dataclass(frozen=True)
class StatusChange:
    """One entry of a document's append-only status history."""

    status: str
    changed_at: datetime
    actor_id: UUID | None = None
    reason: str | None = None
