"""Read-only period reporting over committed billing documents."""

from billing_modules.reporting.models import (
    BudgetComparison,
    CostCategoryTotal,
    CostGrouping,
    CostPeriodTotal,
    CostSummary,
    PeriodSummary,
    QuoteConversion,
    RevenueSummary,
)
from billing_modules.reporting.service import ReportingService

__all__ = [
    "BudgetComparison",
    "CostCategoryTotal",
    "CostGrouping",
    "CostPeriodTotal",
    "CostSummary",
    "PeriodSummary",
    "QuoteConversion",
    "ReportingService",
    "RevenueSummary",
]
