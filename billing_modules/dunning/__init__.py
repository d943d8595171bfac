"""Dunning: periodic reminder escalation for unpaid invoices."""

from billing_modules.dunning.manager import (
    DunningManager,
    DunningRunResult,
    Escalation,
    SkippedInvoice,
)

__all__ = [
    "DunningManager",
    "DunningRunResult",
    "Escalation",
    "SkippedInvoice",
]
