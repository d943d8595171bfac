"""
Money/Tax Calculator - line and document totals for quotes and invoices.

Pure functions with no I/O.  Every amount is a Decimal; rounding (half-up,
two places) is applied to final document totals only.  Line values and the
per-group sums stay unrounded so that rounding differences never compound.

A document discount is applied before tax and spread pro rata over the tax
groups: a 10% discount on a document with 19% and 7% lines reduces both
groups' taxable net by 10%.

Usage:
    from decimal import Decimal
    from billing_engines.calculator import calculate_document_totals, price_lines
    from billing_kernel.domain.line_items import LineItem

    lines = price_lines([
        LineItem("Transport", quantity=Decimal("1"), unit_price=Decimal("200.00")),
        LineItem("Packing material", quantity=Decimal("1"),
                 unit_price=Decimal("50.00"), tax_rate=Decimal("7")),
    ])
    totals = calculate_document_totals(lines)
    print(totals.gross_total)  # 291.50
"""

from __future__ import annotations

from collections.abc import Collection, Iterable
from dataclasses import dataclass, replace
from decimal import ROUND_HALF_UP, Decimal
from typing import Protocol

from billing_engines.tracer import traced_engine
from billing_kernel.domain.line_items import LineItem
from billing_kernel.domain.values import HUNDRED, ZERO, round_money, to_decimal
from billing_kernel.exceptions import InvalidAmountError, InvalidTaxRateError
from billing_kernel.logging_config import get_logger

logger = get_logger("engines.calculator")

_PERCENT_QUANTUM = Decimal("0.0001")


class TaxableLine(Protocol):
    tax_rate: Decimal
    net_total: Decimal


@dataclass(frozen=True)
class LineTotal:
    """Result of pricing a single line."""

    net_before_discount: Decimal
    discount_amount: Decimal
    discount_percent: Decimal
    net: Decimal


@dataclass(frozen=True)
class TaxGroup:
    """Net and tax of all lines sharing one tax rate."""

    rate: Decimal
    net: Decimal
    tax: Decimal

    @property
    def gross(self) -> Decimal:
        return self.net + self.tax


@dataclass(frozen=True)
class DocumentDiscount:
    """Result of applying a document-level discount to a net amount."""

    discount_amount: Decimal
    discount_percent: Decimal
    discounted_net: Decimal


@dataclass(frozen=True)
class DocumentTotals:
    """
    Rounded totals of a quote or invoice.

    ``discount_gross`` is the gross-equivalent of the document discount, so
    that ``sum(line gross) - discount_gross`` reproduces ``gross_total``
    within one cent.
    """

    net_total: Decimal
    discount_amount: Decimal
    discount_percent: Decimal
    discounted_net: Decimal
    tax_groups: tuple[TaxGroup, ...]
    tax_total: Decimal
    gross_total: Decimal
    discount_gross: Decimal = ZERO

    @classmethod
    def zero(cls) -> DocumentTotals:
        zero = round_money(ZERO)
        return cls(
            net_total=zero,
            discount_amount=zero,
            discount_percent=ZERO,
            discounted_net=zero,
            tax_groups=(),
            tax_total=zero,
            gross_total=zero,
            discount_gross=zero,
        )

    def tax_for_rate(self, rate: Decimal) -> Decimal:
        for group in self.tax_groups:
            if group.rate == rate:
                return group.tax
        return round_money(ZERO)


def _derived_percent(part: Decimal, whole: Decimal) -> Decimal:
    if whole <= ZERO:
        return ZERO
    return min(HUNDRED, part / whole * HUNDRED).quantize(
        _PERCENT_QUANTUM, rounding=ROUND_HALF_UP
    )


def validate_tax_rate(rate: Decimal, allowed: Collection[Decimal] | None) -> Decimal:
    """Return the rate as Decimal, or raise InvalidTaxRateError."""
    rate = to_decimal(rate, "tax_rate")
    if allowed is not None and rate not in allowed:
        raise InvalidTaxRateError(rate, tuple(sorted(allowed)))
    return rate


def line_total(
    quantity: Decimal,
    unit_price: Decimal,
    discount_percent: Decimal | None = None,
    discount_amount: Decimal | None = None,
) -> LineTotal:
    """
    Price one line: ``net = quantity * unit_price - discount``.

    A positive percent takes precedence and yields the discount amount;
    otherwise the amount is used and the percent derived from it.  The net
    never goes below zero.

    Raises:
        InvalidAmountError: quantity <= 0, unit price < 0, percent outside
            0-100, or a negative discount amount.
    """
    quantity = to_decimal(quantity, "quantity")
    unit_price = to_decimal(unit_price, "unit_price")
    percent = to_decimal(discount_percent or ZERO, "discount_percent")
    amount = to_decimal(discount_amount or ZERO, "discount_amount")

    if quantity <= ZERO:
        raise InvalidAmountError("quantity", quantity, "must be greater than zero")
    if unit_price < ZERO:
        raise InvalidAmountError("unit_price", unit_price, "must not be negative")
    if not ZERO <= percent <= HUNDRED:
        raise InvalidAmountError("discount_percent", percent, "must be between 0 and 100")
    if amount < ZERO:
        raise InvalidAmountError("discount_amount", amount, "must not be negative")

    before = quantity * unit_price
    if percent > ZERO:
        amount = before * percent / HUNDRED
    else:
        amount = min(amount, before)
        percent = _derived_percent(amount, before)

    return LineTotal(
        net_before_discount=before,
        discount_amount=amount,
        discount_percent=percent,
        net=max(ZERO, before - amount),
    )


def gross_from_net(net: Decimal, tax_rate: Decimal) -> Decimal:
    """``net * (1 + rate / 100)``, unrounded."""
    return to_decimal(net, "net") * (1 + to_decimal(tax_rate, "tax_rate") / HUNDRED)


def aggregate_by_tax_rate(lines: Iterable[TaxableLine]) -> tuple[TaxGroup, ...]:
    """Group line nets by tax rate; groups come back ordered by ascending rate."""
    sums: dict[Decimal, Decimal] = {}
    for line in lines:
        sums[line.tax_rate] = sums.get(line.tax_rate, ZERO) + line.net_total
    return tuple(
        TaxGroup(rate=rate, net=net, tax=net * rate / HUNDRED)
        for rate, net in sorted(sums.items())
    )


def apply_document_discount(
    net: Decimal,
    percent: Decimal | None = None,
    amount: Decimal | None = None,
) -> DocumentDiscount:
    """
    Apply a document-level discount to the summed line net.

    A positive percent takes precedence; otherwise a positive amount is
    used.  The discounted net is never negative.
    """
    net = to_decimal(net, "net")
    percent = to_decimal(percent or ZERO, "discount_percent")
    amount = to_decimal(amount or ZERO, "discount_amount")
    if not ZERO <= percent <= HUNDRED:
        raise InvalidAmountError("discount_percent", percent, "must be between 0 and 100")
    if amount < ZERO:
        raise InvalidAmountError("discount_amount", amount, "must not be negative")

    if percent > ZERO:
        discount = net * percent / HUNDRED
    else:
        discount = min(amount, max(net, ZERO))
        percent = _derived_percent(discount, net)

    return DocumentDiscount(
        discount_amount=discount,
        discount_percent=percent,
        discounted_net=max(ZERO, net - discount),
    )


def price_line(
    line: LineItem,
    position: int,
    allowed_tax_rates: Collection[Decimal] | None = None,
) -> LineItem:
    """Return a copy of ``line`` with position and computed totals filled in."""
    validate_tax_rate(line.tax_rate, allowed_tax_rates)
    total = line_total(
        line.quantity,
        line.unit_price,
        discount_percent=line.discount_percent,
        discount_amount=line.discount_amount,
    )
    return replace(
        line,
        position=position,
        discount_total=total.discount_amount,
        net_before_discount=total.net_before_discount,
        net_total=total.net,
        gross_total=gross_from_net(total.net, line.tax_rate),
    )


def price_lines(
    lines: Iterable[LineItem],
    start: int = 1,
    allowed_tax_rates: Collection[Decimal] | None = None,
) -> tuple[LineItem, ...]:
    """Price every line, numbering positions sequentially from ``start``."""
    return tuple(
        price_line(line, position, allowed_tax_rates)
        for position, line in enumerate(lines, start=start)
    )


@traced_engine(
    "document_totals",
    "1.0",
    fingerprint_fields=("lines", "discount_percent", "discount_amount"),
)
def calculate_document_totals(
    lines: Iterable[TaxableLine],
    discount_percent: Decimal | None = None,
    discount_amount: Decimal | None = None,
) -> DocumentTotals:
    """
    Totals of priced lines with a document discount applied before tax.

    ``tax_total`` is the rounded sum of the unrounded group taxes, and
    ``gross_total = round(discounted net) + round(tax)``.
    """
    lines = tuple(lines)
    groups = aggregate_by_tax_rate(lines)
    net = sum((g.net for g in groups), ZERO)
    discount = apply_document_discount(net, discount_percent, discount_amount)

    factor = discount.discounted_net / net if net > ZERO else Decimal(1)
    taxed = [
        TaxGroup(rate=g.rate, net=g.net * factor, tax=g.net * factor * g.rate / HUNDRED)
        for g in groups
    ]
    tax_exact = sum((g.tax for g in taxed), ZERO)
    line_gross_exact = sum((g.gross for g in groups), ZERO)

    discounted_net = round_money(discount.discounted_net)
    tax_total = round_money(tax_exact)
    totals = DocumentTotals(
        net_total=round_money(net),
        discount_amount=round_money(discount.discount_amount),
        discount_percent=discount.discount_percent,
        discounted_net=discounted_net,
        tax_groups=tuple(
            TaxGroup(rate=g.rate, net=round_money(g.net), tax=round_money(g.tax))
            for g in taxed
        ),
        tax_total=tax_total,
        gross_total=discounted_net + tax_total,
        discount_gross=round_money(
            line_gross_exact - discount.discounted_net - tax_exact
        ),
    )

    logger.debug(
        "document_totals_calculated",
        extra={
            "line_count": len(lines),
            "group_count": len(totals.tax_groups),
            "net_total": str(totals.net_total),
            "tax_total": str(totals.tax_total),
            "gross_total": str(totals.gross_total),
        },
    )
    return totals
