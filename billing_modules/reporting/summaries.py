"""
Pure period-summary functions.

Each function takes already-loaded documents and returns a report DTO.
ZERO I/O, no clock access: the same documents always give the same summary.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from billing_kernel.domain.values import HUNDRED, ZERO, round_money
from billing_modules.cost.models import ApprovalState, CostCategory, CostRecord, CostStatus
from billing_modules.invoice.models import Invoice, InvoiceStatus
from billing_modules.quote.models import Quote, QuoteStatus
from billing_modules.reporting.models import (
    BudgetComparison,
    CostCategoryTotal,
    CostGrouping,
    CostPeriodTotal,
    CostSummary,
    QuoteConversion,
    RevenueSummary,
)

_EXCLUDED_COST_STATUSES = frozenset({CostStatus.CANCELLED, CostStatus.REJECTED})


def in_period(day: date, start: date, end: date) -> bool:
    return start <= day <= end


def summarize_invoices(invoices: Iterable[Invoice], as_of: date) -> RevenueSummary:
    counted = [i for i in invoices if i.status != InvoiceStatus.CANCELLED]
    overdue = sum(
        1
        for i in counted
        if i.status not in (InvoiceStatus.DRAFT, InvoiceStatus.PAID)
        and i.due_date is not None
        and i.due_date < as_of
    )
    return RevenueSummary(
        invoice_count=len(counted),
        net_total=round_money(sum((i.net_total for i in counted), ZERO)),
        tax_total=round_money(sum((i.tax_total for i in counted), ZERO)),
        gross_total=round_money(sum((i.gross_total for i in counted), ZERO)),
        paid_total=round_money(sum((i.paid_amount for i in counted), ZERO)),
        outstanding_total=round_money(sum((i.outstanding_amount for i in counted), ZERO)),
        overdue_count=overdue,
    )


def summarize_quotes(quotes: Iterable[Quote]) -> QuoteConversion:
    quotes = list(quotes)
    if not quotes:
        return QuoteConversion()
    accepted = [q for q in quotes if q.status == QuoteStatus.ACCEPTED]
    rejected = sum(1 for q in quotes if q.status == QuoteStatus.REJECTED)
    closed = len(accepted) + rejected + sum(1 for q in quotes if q.status == QuoteStatus.EXPIRED)
    total_value = sum((q.totals.gross_total for q in quotes), ZERO)
    return QuoteConversion(
        total=len(quotes),
        accepted=len(accepted),
        rejected=rejected,
        open=len(quotes) - closed,
        conversion_rate=(Decimal(len(accepted)) / len(quotes) * HUNDRED).quantize(
            Decimal("0.01"), rounding=ROUND_HALF_UP
        ),
        total_value=round_money(total_value),
        converted_value=round_money(sum((q.totals.gross_total for q in accepted), ZERO)),
        average_value=round_money(total_value / len(quotes)),
    )


def _category_totals(records: Iterable[CostRecord]) -> tuple[CostCategoryTotal, ...]:
    groups: dict[CostCategory, list[CostRecord]] = {}
    for record in records:
        groups.setdefault(record.category, []).append(record)
    return tuple(
        sorted(
            (
                CostCategoryTotal(
                    category=category,
                    count=len(members),
                    net_total=round_money(sum((r.net_amount for r in members), ZERO)),
                    gross_total=round_money(sum((r.gross_amount for r in members), ZERO)),
                )
                for category, members in groups.items()
            ),
            key=lambda t: (-t.gross_total, t.category.value),
        )
    )


def summarize_costs(records: Iterable[CostRecord]) -> CostSummary:
    counted = [r for r in records if r.status not in _EXCLUDED_COST_STATUSES]
    return CostSummary(
        by_category=_category_totals(counted),
        net_total=round_money(sum((r.net_amount for r in counted), ZERO)),
        gross_total=round_money(sum((r.gross_amount for r in counted), ZERO)),
        pending_approval_count=sum(
            1 for r in counted if r.approval.state == ApprovalState.PENDING
        ),
    )


def period_key(day: date, grouping: CostGrouping) -> str:
    if grouping == CostGrouping.DAY:
        return day.isoformat()
    if grouping == CostGrouping.MONTH:
        return f"{day.year:04d}-{day.month:02d}"
    return f"{day.year:04d}"


def costs_by_period(
    records: Iterable[CostRecord], grouping: CostGrouping = CostGrouping.MONTH
) -> tuple[CostPeriodTotal, ...]:
    """
    Cost totals per day, month or year of the incurred date, oldest first.

    Cancelled and rejected records are excluded, as in ``summarize_costs``.
    Periods without costs are left out.
    """
    grouping = CostGrouping(grouping)
    groups: dict[str, list[CostRecord]] = {}
    for record in records:
        if record.status in _EXCLUDED_COST_STATUSES:
            continue
        groups.setdefault(period_key(record.incurred_on, grouping), []).append(record)
    return tuple(
        CostPeriodTotal(
            period=key,
            count=len(members),
            net_total=round_money(sum((r.net_amount for r in members), ZERO)),
            gross_total=round_money(sum((r.gross_amount for r in members), ZERO)),
            by_category=_category_totals(members),
        )
        for key, members in sorted(groups.items())
    )


def compare_budgets(
    records: Iterable[CostRecord], start: date, end: date
) -> tuple[BudgetComparison, ...]:
    """
    Budget against actual gross cost per category.

    Only records carrying a budget whose period overlaps ``start``..``end``
    take part; each contributes its budget amount and its gross amount.
    Utilisation is ``actual / budget`` in percent, one decimal place.
    """
    groups: dict[CostCategory, list[CostRecord]] = {}
    for record in records:
        if record.status in _EXCLUDED_COST_STATUSES:
            continue
        if record.budget is None or not record.budget.overlaps(start, end):
            continue
        groups.setdefault(record.category, []).append(record)

    comparisons = []
    for category in sorted(groups, key=lambda c: c.value):
        members = groups[category]
        budget = round_money(sum((r.budget.amount for r in members), ZERO))
        actual = round_money(sum((r.gross_amount for r in members), ZERO))
        comparisons.append(
            BudgetComparison(
                category=category,
                record_count=len(members),
                budget=budget,
                actual=actual,
                utilisation_percent=None
                if budget == ZERO
                else (actual / budget * HUNDRED).quantize(
                    Decimal("0.1"), rounding=ROUND_HALF_UP
                ),
            )
        )
    return tuple(comparisons)
