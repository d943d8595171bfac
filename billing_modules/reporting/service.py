"""
Reporting Module Service (``billing_modules.reporting.service``).

Responsibility
--------------
Read-only period summary over committed quotes, invoices and cost records:
revenue, quote conversion, costs per category and the period result.  Also
cost totals per day, month or year and the budget against actual comparison.

Architecture position
---------------------
**Modules layer** -- thin glue.  Loads documents through the store and
delegates every figure to the pure functions in ``summaries.py``.

Invariants enforced
-------------------
* Read-only: nothing is saved, no unit of work is opened.
* Invoices and quotes fall into a period by issue date, cost records by the
  date the cost was incurred.  Both bounds are inclusive.
* The budget comparison selects records by their budget period instead.

Failure modes
-------------
* ``ValueError`` when the period ends before it starts.
"""

from __future__ import annotations

from datetime import date

from billing_kernel.domain.clock import Clock, SystemClock
from billing_kernel.domain.values import DocumentType
from billing_kernel.logging_config import get_logger
from billing_kernel.services.document_store import DocumentStore
from billing_modules.reporting.models import (
    BudgetComparison,
    CostGrouping,
    CostPeriodTotal,
    PeriodSummary,
)
from billing_modules.reporting.summaries import (
    compare_budgets,
    costs_by_period,
    in_period,
    summarize_costs,
    summarize_invoices,
    summarize_quotes,
)

logger = get_logger("modules.reporting.service")


class ReportingService:
    """Period summary over committed billing documents."""

    def __init__(self, store: DocumentStore, clock: Clock | None = None):
        self._store = store
        self._clock = clock or SystemClock()

    def period_summary(self, start: date, end: date) -> PeriodSummary:
        _check_period(start, end)

        invoices = [
            i
            for i in self._store.find(DocumentType.INVOICE)
            if in_period(i.issue_date, start, end)
        ]
        quotes = [
            q
            for q in self._store.find(DocumentType.QUOTE)
            if in_period(q.issue_date, start, end)
        ]
        costs = [
            c
            for c in self._store.find(DocumentType.COST)
            if in_period(c.incurred_on, start, end)
        ]

        summary = PeriodSummary(
            period_start=start,
            period_end=end,
            generated_at=self._clock.now().isoformat(),
            revenue=summarize_invoices(invoices, self._clock.today()),
            quotes=summarize_quotes(quotes),
            costs=summarize_costs(costs),
        )
        logger.info(
            "period_summary_generated",
            extra={
                "period_start": start.isoformat(),
                "period_end": end.isoformat(),
                "invoice_count": summary.revenue.invoice_count,
                "quote_count": summary.quotes.total,
                "cost_net_total": str(summary.costs.net_total),
                "result": str(summary.result),
            },
        )
        return summary

    def cost_totals_by_period(
        self, start: date, end: date, grouping: CostGrouping = CostGrouping.MONTH
    ) -> tuple[CostPeriodTotal, ...]:
        """Cost totals per day, month or year for costs incurred in the period."""
        _check_period(start, end)
        totals = costs_by_period(
            (
                c
                for c in self._store.find(DocumentType.COST)
                if in_period(c.incurred_on, start, end)
            ),
            grouping,
        )
        logger.info(
            "cost_period_totals_generated",
            extra={
                "period_start": start.isoformat(),
                "period_end": end.isoformat(),
                "grouping": CostGrouping(grouping).value,
                "bucket_count": len(totals),
            },
        )
        return totals

    def budget_comparison(self, start: date, end: date) -> tuple[BudgetComparison, ...]:
        _check_period(start, end)
        comparisons = compare_budgets(self._store.find(DocumentType.COST), start, end)
        logger.info(
            "budget_comparison_generated",
            extra={
                "period_start": start.isoformat(),
                "period_end": end.isoformat(),
                "over_budget": [c.category.value for c in comparisons if c.over_budget],
            },
        )
        return comparisons


def _check_period(start: date, end: date) -> None:
    if end < start:
        raise ValueError(f"Period end {end} is before start {start}")
