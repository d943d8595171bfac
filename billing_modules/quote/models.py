"""
Quote Domain Models (``billing_modules.quote.models``).

Responsibility
--------------
Frozen dataclass value objects for customer quotes (Angebote): the quote,
its payment terms, dispatch record and follow-up log.

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.  Produced by
``QuoteEngine`` and persisted by ``QuoteService``.

Invariants enforced
-------------------
* ``valid_until`` is after ``issue_date``.
* Optional lines are reported separately and never enter the totals.
* ``revision`` starts at 1; a new revision links back via ``predecessor_id``.
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
from billing_kernel.domain.values import HUNDRED, ZERO, DocumentType, StatusChange, to_decimal
from billing_kernel.exceptions import InvalidAmountError, InvalidDocumentError


class QuoteStatus(str, Enum):
    """Quote lifecycle states."""
    DRAFT = "Draft"
    REVIEW = "Review"
    SENT = "Sent"
    FOLLOW_UP = "FollowUp"
    NEGOTIATION = "Negotiation"
    ACCEPTED = "Accepted"
    REJECTED = "Rejected"
    EXPIRED = "Expired"


class SendChannel(str, Enum):
    EMAIL = "email"
    POST = "post"
    FAX = "fax"
    IN_PERSON = "in_person"


class FollowUpKind(str, Enum):
    PHONE = "phone"
    EMAIL = "email"
    VISIT = "visit"
    LETTER = "letter"


@dataclass(frozen=True)
class QuoteTerms:
    """Commercial terms offered with the quote."""
    payment_terms_days: int = 14
    cash_discount_percent: Decimal = ZERO
    cash_discount_days: int = 0
    deposit_percent: Decimal = ZERO
    remarks: str | None = None

    def __post_init__(self) -> None:
        for name in ("cash_discount_percent", "deposit_percent"):
            value = to_decimal(getattr(self, name), name)
            if not ZERO <= value <= HUNDRED:
                raise InvalidAmountError(name, value, "must be between 0 and 100")
            object.__setattr__(self, name, value)
        if self.payment_terms_days < 0:
            raise InvalidDocumentError(
                DocumentType.QUOTE.value, "payment_terms_days", "cannot be negative"
            )


@dataclass(frozen=True)
class Dispatch:
    """Record of the quote being sent."""
    channel: SendChannel
    recipient: str
    sent_at: datetime


@dataclass(frozen=True)
class FollowUp:
    """One customer contact after the quote was sent."""
    kind: FollowUpKind
    contacted_at: datetime
    outcome: str | None = None
    next_step: str | None = None
    actor_id: UUID | None = None


@dataclass(frozen=True)
class Quote:
    """
    A customer quote.

    ``lines`` are the required positions; ``optional_lines`` are offered
    extras.  Positions run sequentially across both, required first.
    """
    document_type: ClassVar[DocumentType] = DocumentType.QUOTE

    id: UUID
    customer_id: UUID
    issue_date: date
    valid_until: date
    lines: tuple[LineItem, ...] = ()
    optional_lines: tuple[LineItem, ...] = ()
    created_by: UUID | None = None
    number: str | None = None
    move_id: UUID | None = None
    status: QuoteStatus = QuoteStatus.DRAFT
    status_history: tuple[StatusChange, ...] = ()
    discount_percent: Decimal = ZERO
    discount_amount: Decimal = ZERO
    discount_reason: str | None = None
    terms: QuoteTerms = field(default_factory=QuoteTerms)
    totals: DocumentTotals = field(default_factory=DocumentTotals.zero)
    optional_net_total: Decimal = ZERO
    revision: int = 1
    predecessor_id: UUID | None = None
    dispatch: Dispatch | None = None
    follow_ups: tuple[FollowUp, ...] = ()
    order_reference: str | None = None
    accepted_at: datetime | None = None
    rejection_reason: str | None = None
    rejected_at: datetime | None = None
    version: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "lines", tuple(self.lines))
        object.__setattr__(self, "optional_lines", tuple(self.optional_lines))
        object.__setattr__(self, "status_history", tuple(self.status_history))
        object.__setattr__(self, "follow_ups", tuple(self.follow_ups))
        object.__setattr__(self, "status", QuoteStatus(self.status))
        for name in ("discount_percent", "discount_amount", "optional_net_total"):
            object.__setattr__(self, name, to_decimal(getattr(self, name), name))
        if self.valid_until <= self.issue_date:
            raise InvalidDocumentError(
                DocumentType.QUOTE.value,
                "valid_until",
                f"{self.valid_until} must be after issue date {self.issue_date}",
            )
        if not ZERO <= self.discount_percent <= HUNDRED:
            raise InvalidAmountError(
                "discount_percent", self.discount_percent, "must be between 0 and 100"
            )
        if self.discount_amount < ZERO:
            raise InvalidAmountError(
                "discount_amount", self.discount_amount, "must not be negative"
            )
        if self.revision < 1:
            raise InvalidDocumentError(DocumentType.QUOTE.value, "revision", "must be >= 1")

    @property
    def net_total(self) -> Decimal:
        return self.totals.discounted_net

    @property
    def gross_total(self) -> Decimal:
        return self.totals.gross_total

    def is_valid_on(self, day: date) -> bool:
        return day <= self.valid_until

    def days_remaining(self, day: date) -> int:
        return max(0, (self.valid_until - day).days)
