"""Cost records (Projektkosten): threshold approval and payment tracking."""

from billing_modules.cost.codec import CostCodec
from billing_modules.cost.engine import CostEngine
from billing_modules.cost.models import (
    Approval,
    ApprovalState,
    AuditAction,
    AuditEntry,
    Budget,
    CostCategory,
    CostPayment,
    CostPaymentMethod,
    CostRecord,
    CostStatus,
    CostType,
    QuantityBasis,
    QuantityUnit,
    Recurrence,
    RecurrenceInterval,
    Supplier,
)
from billing_modules.cost.service import CostService
from billing_modules.cost.workflows import COST_WORKFLOW

__all__ = [
    "Approval",
    "ApprovalState",
    "AuditAction",
    "AuditEntry",
    "Budget",
    "COST_WORKFLOW",
    "CostCategory",
    "CostCodec",
    "CostEngine",
    "CostPayment",
    "CostPaymentMethod",
    "CostRecord",
    "CostService",
    "CostStatus",
    "CostType",
    "QuantityBasis",
    "QuantityUnit",
    "Recurrence",
    "RecurrenceInterval",
    "Supplier",
]
