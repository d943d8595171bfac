"""
Cost Record Domain Models (``billing_modules.cost.models``).

Responsibility
--------------
Frozen dataclass value objects for internal expense records (Projektkosten):
the record with its approval sub-state, payment details, recurrence
schedule, optional budget assignment and append-only audit trail.

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.  Produced by
``CostEngine`` and persisted by ``CostService``.

Invariants enforced
-------------------
* Net amount is non-negative; with a quantity basis it equals
  ``quantity * unit_price``.
* A subcategory, when given, belongs to the record's category.
* ``audit`` is append-only; every engine operation adds one entry.

Failure modes
-------------
* ``InvalidAmountError`` for negative amounts or non-positive quantities.
* ``InvalidDocumentError`` for an empty description, a foreign subcategory
  or a recurrence ending before its next due date.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import ClassVar
from uuid import UUID

from billing_kernel.domain.values import ZERO, DocumentType, to_decimal
from billing_kernel.exceptions import InvalidAmountError, InvalidDocumentError

MAX_DESCRIPTION_LENGTH = 200


class CostStatus(str, Enum):
    """Payment status of a cost record."""
    OPEN = "Open"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    PAID = "Paid"
    CANCELLED = "Cancelled"


class ApprovalState(str, Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    AUTO_APPROVED = "AutoApproved"


class CostCategory(str, Enum):
    PERSONNEL = "personnel"
    VEHICLES = "vehicles"
    MATERIAL = "material"
    PACKAGING = "packaging"
    SUBCONTRACTING = "subcontracting"
    INSURANCE = "insurance"
    RENT = "rent"
    FUEL = "fuel"
    CATERING = "catering"
    OTHER = "other"


# Categories without an entry accept any subcategory.
SUBCATEGORIES: dict[CostCategory, frozenset[str]] = {
    CostCategory.PERSONNEL: frozenset({"wages", "overtime", "bonuses", "social_security"}),
    CostCategory.VEHICLES: frozenset({"truck", "van", "car", "special_vehicle"}),
    CostCategory.MATERIAL: frozenset({"tools", "equipment", "consumables"}),
    CostCategory.PACKAGING: frozenset({"boxes", "foil", "blankets", "padding"}),
    CostCategory.SUBCONTRACTING: frozenset({"transport", "assembly", "storage"}),
    CostCategory.INSURANCE: frozenset({"transport_insurance", "liability", "accident"}),
    CostCategory.RENT: frozenset({"vehicle_rental", "storage_rental", "equipment_rental"}),
    CostCategory.FUEL: frozenset({"diesel", "petrol", "adblue"}),
    CostCategory.CATERING: frozenset({"lunch", "drinks", "accommodation"}),
}


class CostType(str, Enum):
    FIXED = "fixed"
    VARIABLE = "variable"
    ONE_OFF = "one_off"


class QuantityUnit(str, Enum):
    HOURS = "hours"
    DAYS = "days"
    KM = "km"
    LITRES = "litres"
    PIECES = "pieces"
    KG = "kg"
    CBM = "cbm"
    SQM = "sqm"


class CostPaymentMethod(str, Enum):
    BANK_TRANSFER = "bank_transfer"
    CASH = "cash"
    CREDIT_CARD = "credit_card"
    PAYPAL = "paypal"
    COMPANY_CARD = "company_card"
    DIRECT_DEBIT = "direct_debit"
    OTHER = "other"


class RecurrenceInterval(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


class AuditAction(str, Enum):
    CREATED = "created"
    APPROVED = "approved"
    REJECTED = "rejected"
    PAID = "paid"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class QuantityBasis:
    """Net amount derived from a measured quantity."""
    quantity: Decimal
    unit: QuantityUnit
    unit_price: Decimal

    def __post_init__(self) -> None:
        object.__setattr__(self, "quantity", to_decimal(self.quantity, "quantity"))
        object.__setattr__(self, "unit_price", to_decimal(self.unit_price, "unit_price"))
        object.__setattr__(self, "unit", QuantityUnit(self.unit))
        if self.quantity <= ZERO:
            raise InvalidAmountError("quantity", self.quantity, "must be greater than zero")
        if self.unit_price < ZERO:
            raise InvalidAmountError("unit_price", self.unit_price, "must not be negative")

    @property
    def net(self) -> Decimal:
        return self.quantity * self.unit_price


@dataclass(frozen=True)
class Supplier:
    name: str
    supplier_number: str | None = None
    invoice_reference: str | None = None
    order_reference: str | None = None


@dataclass(frozen=True)
class Approval:
    """Approval sub-state.  ``required`` is fixed when the record is created."""
    state: ApprovalState
    required: bool
    decided_by: UUID | None = None
    decided_at: datetime | None = None
    comment: str | None = None
    rejection_reason: str | None = None

    @property
    def is_pending(self) -> bool:
        return self.state == ApprovalState.PENDING


@dataclass(frozen=True)
class CostPayment:
    paid_on: date
    method: CostPaymentMethod = CostPaymentMethod.BANK_TRANSFER
    reference: str | None = None


@dataclass(frozen=True)
class Recurrence:
    interval: RecurrenceInterval
    next_due: date
    end_date: date | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "interval", RecurrenceInterval(self.interval))
        if self.end_date is not None and self.end_date < self.next_due:
            raise InvalidDocumentError(
                DocumentType.COST.value,
                "recurrence",
                f"end date {self.end_date} is before next due date {self.next_due}",
            )


@dataclass(frozen=True)
class Budget:
    """Planned amount for a budget item over a period, both ends inclusive."""
    amount: Decimal
    period_start: date
    period_end: date
    item: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "amount", to_decimal(self.amount, "budget_amount"))
        if self.amount < ZERO:
            raise InvalidAmountError("budget_amount", self.amount, "must not be negative")
        if self.period_end < self.period_start:
            raise InvalidDocumentError(
                DocumentType.COST.value,
                "budget",
                f"period end {self.period_end} is before period start {self.period_start}",
            )

    def overlaps(self, start: date, end: date) -> bool:
        return self.period_start <= end and self.period_end >= start


@dataclass(frozen=True)
class AuditEntry:
    action: AuditAction
    at: datetime
    actor_id: UUID | None = None
    comment: str | None = None


@dataclass(frozen=True)
class CostRecord:
    """
    An internal expense record.

    ``tax_amount`` and ``gross_amount`` are derived by
    ``CostEngine.recalculate``.
    """
    document_type: ClassVar[DocumentType] = DocumentType.COST

    id: UUID
    description: str
    category: CostCategory
    cost_type: CostType
    incurred_on: date
    approval: Approval
    net_amount: Decimal = ZERO
    tax_rate: Decimal = Decimal("19")
    created_by: UUID | None = None
    number: str | None = None
    subcategory: str | None = None
    quantity_basis: QuantityBasis | None = None
    move_id: UUID | None = None
    supplier: Supplier | None = None
    cost_center: str | None = None
    notes: str | None = None
    status: CostStatus = CostStatus.OPEN
    tax_amount: Decimal = ZERO
    gross_amount: Decimal = ZERO
    payment: CostPayment | None = None
    recurrence: Recurrence | None = None
    budget: Budget | None = None
    audit: tuple[AuditEntry, ...] = ()
    version: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "category", CostCategory(self.category))
        object.__setattr__(self, "cost_type", CostType(self.cost_type))
        object.__setattr__(self, "status", CostStatus(self.status))
        object.__setattr__(self, "audit", tuple(self.audit))
        for name in ("net_amount", "tax_rate", "tax_amount", "gross_amount"):
            object.__setattr__(self, name, to_decimal(getattr(self, name), name))
        if not self.description or not self.description.strip():
            raise InvalidDocumentError(DocumentType.COST.value, "description", "is required")
        if len(self.description) > MAX_DESCRIPTION_LENGTH:
            raise InvalidDocumentError(
                DocumentType.COST.value,
                "description",
                f"must not exceed {MAX_DESCRIPTION_LENGTH} characters",
            )
        if self.net_amount < ZERO:
            raise InvalidAmountError("net_amount", self.net_amount, "must not be negative")
        allowed = SUBCATEGORIES.get(self.category)
        if self.subcategory and allowed is not None and self.subcategory not in allowed:
            raise InvalidDocumentError(
                DocumentType.COST.value,
                "subcategory",
                f"{self.subcategory!r} is not valid for category {self.category.value}",
            )

    @property
    def approval_pending(self) -> bool:
        return self.approval.is_pending

    @property
    def is_recurring(self) -> bool:
        return self.recurrence is not None
