"""
Invoice Domain Models (``billing_modules.invoice.models``).

Responsibility
--------------
Frozen dataclass value objects for customer invoices: the invoice itself,
its payment ledger, dunning reminders and delivery record.

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.  Produced by
``InvoiceEngine`` and persisted by ``InvoiceService``.

Invariants enforced
-------------------
* All models are ``frozen=True``; engines return new instances.
* All monetary fields use ``Decimal`` -- NEVER ``float``.
* Payments are strictly positive; the payment ledger is append-only.
* ``number`` is ``None`` until the first save and immutable afterwards.

Failure modes
-------------
* ``InvalidAmountError`` for non-positive payments or out-of-range discounts.
* ``InvalidDocumentError`` for payment terms outside 0-365 days or a service
  period ending before it starts.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import ClassVar
from uuid import UUID

from billing_engines.calculator import DocumentTotals
from billing_kernel.domain.line_items import LineItem
from billing_kernel.domain.values import (
    HUNDRED,
    ROUNDING_EPSILON,
    ZERO,
    DocumentType,
    StatusChange,
    to_decimal,
)
from billing_kernel.exceptions import InvalidAmountError, InvalidDocumentError


class InvoiceStatus(str, Enum):
    """Invoice lifecycle states."""
    DRAFT = "Draft"
    SENT = "Sent"
    PARTIALLY_PAID = "PartiallyPaid"
    PAID = "Paid"
    OVERDUE = "Overdue"
    CANCELLED = "Cancelled"
    DUNNED = "Dunned"


class InvoiceKind(str, Enum):
    INVOICE = "invoice"
    CREDIT_NOTE = "credit_note"
    CANCELLATION = "cancellation"
    PROFORMA = "proforma"


class PaymentMethod(str, Enum):
    BANK_TRANSFER = "bank_transfer"
    CASH = "cash"
    CREDIT_CARD = "credit_card"
    PAYPAL = "paypal"
    SEPA_DIRECT_DEBIT = "sepa_direct_debit"
    CHEQUE = "cheque"
    OTHER = "other"


class DeliveryChannel(str, Enum):
    EMAIL = "email"
    POST = "post"
    FAX = "fax"
    IN_PERSON = "in_person"


class Settlement(str, Enum):
    """Payment position of an invoice relative to its gross total."""
    UNPAID = "unpaid"
    PARTIAL = "partial"
    SETTLED = "settled"
    OVERPAID = "overpaid"


@dataclass(frozen=True)
class Payment:
    """One entry of the append-only payment ledger."""
    amount: Decimal
    paid_on: date
    method: PaymentMethod = PaymentMethod.BANK_TRANSFER
    reference: str | None = None
    note: str | None = None
    recorded_by: UUID | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "amount", to_decimal(self.amount, "payment_amount"))
        object.__setattr__(self, "method", PaymentMethod(self.method))
        if self.amount <= ZERO:
            raise InvalidAmountError("payment_amount", self.amount, "must be greater than zero")


@dataclass(frozen=True)
class Reminder:
    """A dunning reminder; ``level`` runs 1..max_level."""
    level: int
    raised_on: date
    due_date: date
    fee: Decimal = ZERO
    note: str | None = None
    raised_by: UUID | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "fee", to_decimal(self.fee, "reminder_fee"))
        if self.fee < ZERO:
            raise InvalidAmountError("reminder_fee", self.fee, "must not be negative")


@dataclass(frozen=True)
class Delivery:
    """How and when the invoice was sent to the customer."""
    channel: DeliveryChannel
    recipient: str
    sent_at: datetime


@dataclass(frozen=True)
class ServicePeriod:
    """Period in which the invoiced moving services were rendered."""
    start: date
    end: date

    def __post_init__(self) -> None:
        if self.end < self.start:
            raise InvalidDocumentError(
                DocumentType.INVOICE.value,
                "service_period",
                f"end {self.end} is before start {self.start}",
            )


@dataclass(frozen=True)
class Invoice:
    """
    A customer invoice.

    ``totals``, ``paid_amount`` and ``outstanding_amount`` are derived by
    ``InvoiceEngine.recalculate`` and only meaningful after it ran.
    ``version`` is the store's optimistic-concurrency token.
    """
    document_type: ClassVar[DocumentType] = DocumentType.INVOICE

    id: UUID
    customer_id: UUID
    issue_date: date
    lines: tuple[LineItem, ...]
    created_by: UUID | None = None
    number: str | None = None
    kind: InvoiceKind = InvoiceKind.INVOICE
    move_id: UUID | None = None
    quote_id: UUID | None = None
    service_period: ServicePeriod | None = None
    payment_terms_days: int = 14
    due_date: date | None = None
    status: InvoiceStatus = InvoiceStatus.DRAFT
    status_history: tuple[StatusChange, ...] = ()
    discount_percent: Decimal = ZERO
    discount_amount: Decimal = ZERO
    totals: DocumentTotals = field(default_factory=DocumentTotals.zero)
    payments: tuple[Payment, ...] = ()
    reminders: tuple[Reminder, ...] = ()
    paid_amount: Decimal = ZERO
    outstanding_amount: Decimal = ZERO
    delivery: Delivery | None = None
    notes: str = ""
    cancelled_at: datetime | None = None
    version: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "lines", tuple(self.lines))
        object.__setattr__(self, "payments", tuple(self.payments))
        object.__setattr__(self, "reminders", tuple(self.reminders))
        object.__setattr__(self, "status_history", tuple(self.status_history))
        object.__setattr__(self, "status", InvoiceStatus(self.status))
        object.__setattr__(self, "kind", InvoiceKind(self.kind))
        for name in ("discount_percent", "discount_amount", "paid_amount", "outstanding_amount"):
            object.__setattr__(self, name, to_decimal(getattr(self, name), name))
        if self.payment_terms_days < 0:
            raise InvalidDocumentError(
                DocumentType.INVOICE.value, "payment_terms_days", "cannot be negative"
            )
        if not ZERO <= self.discount_percent <= HUNDRED:
            raise InvalidAmountError(
                "discount_percent", self.discount_percent, "must be between 0 and 100"
            )
        if self.discount_amount < ZERO:
            raise InvalidAmountError(
                "discount_amount", self.discount_amount, "must not be negative"
            )

    @property
    def net_total(self) -> Decimal:
        return self.totals.discounted_net

    @property
    def tax_total(self) -> Decimal:
        return self.totals.tax_total

    @property
    def gross_total(self) -> Decimal:
        return self.totals.gross_total

    @property
    def reminder_level(self) -> int:
        return len(self.reminders)

    @property
    def last_reminder(self) -> Reminder | None:
        return self.reminders[-1] if self.reminders else None

    @property
    def is_overpaid(self) -> bool:
        return self.outstanding_amount <= -ROUNDING_EPSILON

    @property
    def overpaid_amount(self) -> Decimal:
        return -self.outstanding_amount if self.is_overpaid else ZERO

    @property
    def settlement(self) -> Settlement:
        if self.is_overpaid:
            return Settlement.OVERPAID
        if self.payments and self.outstanding_amount <= ZERO:
            return Settlement.SETTLED
        if self.paid_amount > ZERO:
            return Settlement.PARTIAL
        return Settlement.UNPAID

    @property
    def paid_percent(self) -> Decimal:
        if self.gross_total <= ZERO:
            return ZERO
        return self.paid_amount / self.gross_total * HUNDRED
