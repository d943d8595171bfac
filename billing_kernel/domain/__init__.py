"""
Pure domain layer.

Value objects and state-machine definitions with NO dependencies on the
ORM, the database or the system clock (SystemClock aside).
"""

from billing_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from billing_kernel.domain.line_items import LineCategory, LineItem, Unit
from billing_kernel.domain.values import (
    ROUNDING_EPSILON,
    DocumentType,
    StatusChange,
    format_money,
    round_money,
    to_decimal,
)
from billing_kernel.domain.workflow import Guard, Transition, Workflow

__all__ = [
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "LineCategory",
    "LineItem",
    "Unit",
    "ROUNDING_EPSILON",
    "DocumentType",
    "StatusChange",
    "format_money",
    "round_money",
    "to_decimal",
    "Guard",
    "Transition",
    "Workflow",
]
