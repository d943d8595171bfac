"""
Reporting Domain Models (``billing_modules.reporting.models``).

Frozen dataclass report DTOs for the period summary, the per-period cost
totals and the budget comparison.  All amounts are
``Decimal`` rounded to two places; they are derived from committed documents
and carry no identity of their own.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum

from billing_kernel.domain.values import ZERO
from billing_modules.cost.models import CostCategory


@dataclass(frozen=True)
class RevenueSummary:
    """Invoiced revenue; cancelled invoices are excluded."""
    invoice_count: int = 0
    net_total: Decimal = ZERO
    tax_total: Decimal = ZERO
    gross_total: Decimal = ZERO
    paid_total: Decimal = ZERO
    outstanding_total: Decimal = ZERO
    overdue_count: int = 0


@dataclass(frozen=True)
class QuoteConversion:
    total: int = 0
    accepted: int = 0
    rejected: int = 0
    open: int = 0
    conversion_rate: Decimal = ZERO  # percent of all quotes that were accepted
    total_value: Decimal = ZERO
    converted_value: Decimal = ZERO
    average_value: Decimal = ZERO


@dataclass(frozen=True)
class CostCategoryTotal:
    category: CostCategory
    count: int
    net_total: Decimal
    gross_total: Decimal


@dataclass(frozen=True)
class CostSummary:
    """Costs per category; cancelled and rejected records are excluded."""
    by_category: tuple[CostCategoryTotal, ...] = ()
    net_total: Decimal = ZERO
    gross_total: Decimal = ZERO
    pending_approval_count: int = 0


class CostGrouping(str, Enum):
    DAY = "day"
    MONTH = "month"
    YEAR = "year"


@dataclass(frozen=True)
class CostPeriodTotal:
    """Costs incurred in one day, month or year."""
    period: str  # "2024-03-05", "2024-03" or "2024"
    count: int
    net_total: Decimal
    gross_total: Decimal
    by_category: tuple[CostCategoryTotal, ...] = ()


@dataclass(frozen=True)
class BudgetComparison:
    """
    Budgeted against actual gross cost for one category.

    ``utilisation_percent`` is ``None`` when nothing was budgeted.
    """
    category: CostCategory
    record_count: int
    budget: Decimal
    actual: Decimal
    utilisation_percent: Decimal | None

    @property
    def difference(self) -> Decimal:
        """Budget left over; negative when the category is over budget."""
        return self.budget - self.actual

    @property
    def over_budget(self) -> bool:
        return self.actual > self.budget


@dataclass(frozen=True)
class PeriodSummary:
    period_start: date
    period_end: date
    generated_at: str  # ISO timestamp from the injected clock
    revenue: RevenueSummary
    quotes: QuoteConversion
    costs: CostSummary

    @property
    def result(self) -> Decimal:
        """Invoiced net minus cost net."""
        return self.revenue.net_total - self.costs.net_total
