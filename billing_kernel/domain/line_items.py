"""
Line items shared by quotes and invoices.

A LineItem carries the caller's input (quantity, unit price, discount, tax
rate) plus the computed fields filled in by the calculator during
recalculation. Computed values are kept unrounded; rounding happens only on
document totals.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from billing_kernel.domain.values import HUNDRED, ZERO, to_decimal
from billing_kernel.exceptions import InvalidAmountError


class LineCategory(str, Enum):
    TRANSPORT = "transport"
    PERSONNEL = "personnel"
    MATERIAL = "material"
    EXTRA_SERVICE = "extra_service"
    OTHER = "other"


class Unit(str, Enum):
    PIECE = "piece"
    HOUR = "hour"
    DAY = "day"
    KM = "km"
    SQM = "sqm"
    CBM = "cbm"
    KG = "kg"
    FLAT = "flat"


@dataclass(frozen=True)
class LineItem:
    """
    One priced position of a quote or invoice.

    ``discount_percent`` and ``discount_amount`` are the caller's input and are
    never rewritten. A positive percent wins when both are given; the applied
    amount lands in ``discount_total`` and the percent equivalent is
    ``effective_discount_percent``.
    """

    description: str
    quantity: Decimal
    unit_price: Decimal
    tax_rate: Decimal = Decimal("19")
    unit: Unit = Unit.PIECE
    category: LineCategory = LineCategory.OTHER
    discount_percent: Decimal = ZERO
    discount_amount: Decimal = ZERO
    notes: str | None = None

    # Computed by the calculator
    position: int = 0
    net_before_discount: Decimal = ZERO
    discount_total: Decimal = ZERO
    net_total: Decimal = ZERO
    gross_total: Decimal = ZERO

    def __post_init__(self) -> None:
        for name in (
            "quantity",
            "unit_price",
            "tax_rate",
            "discount_percent",
            "discount_amount",
            "net_before_discount",
            "discount_total",
            "net_total",
            "gross_total",
        ):
            object.__setattr__(self, name, to_decimal(getattr(self, name), name))
        object.__setattr__(self, "unit", Unit(self.unit))
        object.__setattr__(self, "category", LineCategory(self.category))

        if not self.description or not self.description.strip():
            raise InvalidAmountError("description", self.description, "must not be empty")
        if self.quantity <= ZERO:
            raise InvalidAmountError("quantity", self.quantity, "must be greater than zero")
        if self.unit_price < ZERO:
            raise InvalidAmountError("unit_price", self.unit_price, "must not be negative")
        if self.tax_rate < ZERO:
            raise InvalidAmountError("tax_rate", self.tax_rate, "must not be negative")
        if not ZERO <= self.discount_percent <= HUNDRED:
            raise InvalidAmountError(
                "discount_percent", self.discount_percent, "must be between 0 and 100"
            )
        if self.discount_amount < ZERO:
            raise InvalidAmountError(
                "discount_amount", self.discount_amount, "must not be negative"
            )

    @property
    def effective_discount_percent(self) -> Decimal:
        """Discount as a percentage of the undiscounted net, whichever input was given."""
        if self.discount_percent > ZERO:
            return self.discount_percent
        if self.net_before_discount <= ZERO:
            return ZERO
        return self.discount_total / self.net_before_discount * HUNDRED
