"""
Invoice Engine (``billing_modules.invoice.engine``).

Responsibility
--------------
Pure lifecycle operations on ``Invoice`` values: recalculation of totals and
balance, payment recording, sending, dunning reminders, cancellation,
duplication and conversion from an accepted quote.

Architecture position
---------------------
**Modules layer** -- pure.  Takes and returns immutable invoices; persisting
the result is the job of ``InvoiceService``.  Dates and timestamps are always
passed in.

Invariants enforced
-------------------
* ``paid_amount + outstanding_amount == gross_total`` after every operation;
  a balance within one cent of zero is settled and shows as 0.00.
* Status derived from the balance never overrides Paid or Cancelled.
* Every status change is validated against ``INVOICE_WORKFLOW`` and appended
  to the status history.
* Reminder levels increase by exactly one and stop at the configured maximum.

Failure modes
-------------
* ``EmptyDocumentError`` -- recalculation without line items.
* ``InvalidTaxRateError`` -- a line uses a rate outside the configured set.
* ``InvalidDocumentError`` -- payment terms beyond the configured maximum.
* ``InvalidTransitionError`` -- action not allowed from the current status.
* ``MaxRemindersExceededError`` -- escalation past the last reminder level.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import replace
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from uuid import UUID

from billing_config.schema import BillingConfig
from billing_engines.calculator import calculate_document_totals, price_lines
from billing_kernel.domain.line_items import LineItem
from billing_kernel.domain.values import (
    ZERO,
    StatusChange,
    as_utc,
    money_equal,
    round_money,
    to_decimal,
)
from billing_kernel.exceptions import (
    EmptyDocumentError,
    InvalidDocumentError,
    InvalidTransitionError,
    MaxRemindersExceededError,
)
from billing_kernel.logging_config import get_logger
from billing_modules.invoice.models import (
    Delivery,
    DeliveryChannel,
    Invoice,
    InvoiceKind,
    InvoiceStatus,
    Payment,
    PaymentMethod,
    Reminder,
    ServicePeriod,
)
from billing_modules.invoice.workflows import INVOICE_WORKFLOW
from billing_modules.quote.models import Quote, QuoteStatus

logger = get_logger("modules.invoice.engine")

REMINDABLE_STATUSES = frozenset({
    InvoiceStatus.SENT,
    InvoiceStatus.PARTIALLY_PAID,
    InvoiceStatus.OVERDUE,
    InvoiceStatus.DUNNED,
})


def _start_of_day(day: date) -> datetime:
    return datetime.combine(day, time(), tzinfo=timezone.utc)


class InvoiceEngine:
    """Lifecycle operations for customer invoices."""

    def __init__(self, config: BillingConfig | None = None):
        self._config = config or BillingConfig()
        self._allowed_tax_rates = frozenset(self._config.money.allowed_tax_rates)

    @property
    def config(self) -> BillingConfig:
        return self._config

    # -------------------------------------------------------------------------
    # Creation
    # -------------------------------------------------------------------------

    def create(
        self,
        *,
        invoice_id: UUID,
        customer_id: UUID,
        issue_date: date,
        lines: Iterable[LineItem],
        at: datetime,
        created_by: UUID | None = None,
        kind: InvoiceKind = InvoiceKind.INVOICE,
        move_id: UUID | None = None,
        quote_id: UUID | None = None,
        service_period: ServicePeriod | None = None,
        payment_terms_days: int | None = None,
        due_date: date | None = None,
        discount_percent: Decimal = ZERO,
        discount_amount: Decimal = ZERO,
        notes: str = "",
    ) -> Invoice:
        """Build a recalculated Draft invoice."""
        invoice = Invoice(
            id=invoice_id,
            customer_id=customer_id,
            issue_date=issue_date,
            lines=tuple(lines),
            created_by=created_by,
            kind=kind,
            move_id=move_id,
            quote_id=quote_id,
            service_period=service_period,
            payment_terms_days=(
                self._config.invoice.payment_terms_days
                if payment_terms_days is None
                else payment_terms_days
            ),
            due_date=due_date,
            discount_percent=discount_percent,
            discount_amount=discount_amount,
            notes=notes,
            status_history=(
                StatusChange(InvoiceStatus.DRAFT.value, as_utc(at), created_by, "created"),
            ),
        )
        return self.recalculate(invoice, as_of=issue_date, at=at)

    def from_quote(
        self,
        quote: Quote,
        *,
        invoice_id: UUID,
        issue_date: date,
        at: datetime,
        created_by: UUID | None = None,
        service_period: ServicePeriod | None = None,
    ) -> Invoice:
        """Draft invoice carrying the quote's required lines and discount.

        Optional positions are not invoiced.  The quote itself is not
        modified; ``InvoiceService`` accepts it in the same unit of work.
        """
        if quote.status in (QuoteStatus.REJECTED, QuoteStatus.EXPIRED):
            raise InvalidTransitionError(
                "quote",
                str(quote.id),
                quote.status.value,
                "invoice",
                reason="only open or accepted quotes can be invoiced",
            )
        return self.create(
            invoice_id=invoice_id,
            customer_id=quote.customer_id,
            issue_date=issue_date,
            lines=quote.lines,
            at=at,
            created_by=created_by,
            move_id=quote.move_id,
            quote_id=quote.id,
            service_period=service_period,
            payment_terms_days=quote.terms.payment_terms_days,
            discount_percent=quote.discount_percent,
            discount_amount=quote.discount_amount,
            notes=f"From quote {quote.number}" if quote.number else "",
        )

    def duplicate(
        self,
        invoice: Invoice,
        *,
        new_id: UUID,
        issue_date: date,
        at: datetime,
        actor_id: UUID | None = None,
    ) -> Invoice:
        """Draft copy without number, payments, reminders or delivery record."""
        copy = self.create(
            invoice_id=new_id,
            customer_id=invoice.customer_id,
            issue_date=issue_date,
            lines=invoice.lines,
            at=at,
            created_by=actor_id,
            kind=invoice.kind,
            move_id=invoice.move_id,
            service_period=invoice.service_period,
            payment_terms_days=invoice.payment_terms_days,
            discount_percent=invoice.discount_percent,
            discount_amount=invoice.discount_amount,
        )
        logger.info(
            "invoice_duplicated",
            extra={"source_id": str(invoice.id), "new_id": str(new_id)},
        )
        return copy

    # -------------------------------------------------------------------------
    # Recalculation
    # -------------------------------------------------------------------------

    def recalculate(
        self,
        invoice: Invoice,
        *,
        as_of: date,
        at: datetime | None = None,
        actor_id: UUID | None = None,
        reason: str | None = None,
    ) -> Invoice:
        """
        Recompute lines, totals and balance, then derive the status.

        Idempotent: recalculating an unchanged invoice on the same date
        returns an equal invoice.
        """
        if not invoice.lines:
            raise EmptyDocumentError("invoice", str(invoice.id))
        max_terms = self._config.invoice.max_payment_terms_days
        if invoice.payment_terms_days > max_terms:
            raise InvalidDocumentError(
                "invoice", "payment_terms_days", f"must be between 0 and {max_terms}"
            )

        lines = price_lines(invoice.lines, allowed_tax_rates=self._allowed_tax_rates)
        totals = calculate_document_totals(
            lines,
            discount_percent=invoice.discount_percent,
            discount_amount=invoice.discount_amount,
        )
        outstanding = self._outstanding(totals.gross_total, invoice.payments)
        due_date = invoice.due_date or invoice.issue_date + timedelta(
            days=invoice.payment_terms_days
        )
        updated = replace(
            invoice,
            lines=lines,
            totals=totals,
            paid_amount=totals.gross_total - outstanding,
            outstanding_amount=outstanding,
            due_date=due_date,
        )

        target, action = self._derive_status(updated, as_of)
        if target != updated.status:
            updated = self._change_status(
                updated,
                target,
                action,
                at=at or _start_of_day(as_of),
                actor_id=actor_id,
                reason=reason or action,
            )
        if updated.is_overpaid and not invoice.is_overpaid:
            logger.warning(
                "invoice_overpaid",
                extra={
                    "invoice_id": str(invoice.id),
                    "overpaid_amount": str(updated.overpaid_amount),
                },
            )
        return updated

    @staticmethod
    def _outstanding(gross_total: Decimal, payments: Iterable[Payment]) -> Decimal:
        """Open balance from the unrounded payment sum.

        A balance within one cent of zero counts as settled and shows as
        0.00, so payments with sub-cent fractions can close an invoice.
        """
        paid = sum((p.amount for p in payments), ZERO)
        exact = gross_total - paid
        if paid > ZERO and money_equal(exact, ZERO):
            return round_money(ZERO)
        return round_money(exact)

    def _derive_status(
        self, invoice: Invoice, as_of: date
    ) -> tuple[InvoiceStatus, str]:
        status = invoice.status
        if INVOICE_WORKFLOW.is_terminal(status.value):
            return status, ""
        if status == InvoiceStatus.DRAFT and not invoice.payments:
            return status, ""
        if invoice.outstanding_amount <= ZERO:
            return InvoiceStatus.PAID, "settle"
        # Only full settlement leaves dunning
        if status == InvoiceStatus.DUNNED:
            return status, ""
        if invoice.outstanding_amount < invoice.gross_total:
            return InvoiceStatus.PARTIALLY_PAID, "settle"
        if (
            status == InvoiceStatus.SENT
            and invoice.due_date is not None
            and invoice.due_date < as_of
        ):
            return InvoiceStatus.OVERDUE, "mark_overdue"
        return status, ""

    def _change_status(
        self,
        invoice: Invoice,
        target: InvoiceStatus,
        action: str,
        *,
        at: datetime,
        actor_id: UUID | None,
        reason: str | None,
    ) -> Invoice:
        INVOICE_WORKFLOW.require(
            invoice.status.value, action, document_id=invoice.id, to_state=target.value
        )
        if target == invoice.status:
            return invoice
        logger.info(
            "invoice_status_changed",
            extra={
                "invoice_id": str(invoice.id),
                "number": invoice.number,
                "from_status": invoice.status.value,
                "to_status": target.value,
                "action": action,
            },
        )
        return replace(
            invoice,
            status=target,
            status_history=invoice.status_history
            + (StatusChange(target.value, as_utc(at), actor_id, reason),),
        )

    # -------------------------------------------------------------------------
    # Lifecycle operations
    # -------------------------------------------------------------------------

    def send(
        self,
        invoice: Invoice,
        *,
        channel: DeliveryChannel,
        recipient: str,
        at: datetime,
        actor_id: UUID | None = None,
    ) -> Invoice:
        """Draft -> Sent, recording the delivery."""
        sent = self._change_status(
            invoice, InvoiceStatus.SENT, "send", at=at, actor_id=actor_id, reason="sent"
        )
        sent = replace(
            sent,
            delivery=Delivery(DeliveryChannel(channel), recipient, as_utc(at)),
        )
        return self.recalculate(sent, as_of=as_utc(at).date(), at=at)

    def record_payment(
        self,
        invoice: Invoice,
        *,
        amount: Decimal,
        paid_on: date,
        method: PaymentMethod = PaymentMethod.BANK_TRANSFER,
        reference: str | None = None,
        note: str | None = None,
        actor_id: UUID | None = None,
        as_of: date | None = None,
        at: datetime | None = None,
    ) -> Invoice:
        """
        Append a payment and recalculate.

        Overpayment is accepted and shows as a negative outstanding amount.
        """
        if invoice.status == InvoiceStatus.CANCELLED:
            raise InvalidTransitionError(
                "invoice", str(invoice.id), invoice.status.value, "record_payment"
            )
        payment = Payment(
            amount=to_decimal(amount, "payment_amount"),
            paid_on=paid_on,
            method=method,
            reference=reference,
            note=note,
            recorded_by=actor_id,
        )
        updated = self.recalculate(
            replace(invoice, payments=invoice.payments + (payment,)),
            as_of=as_of or paid_on,
            at=at,
            actor_id=actor_id,
            reason="payment recorded",
        )
        logger.info(
            "invoice_payment_recorded",
            extra={
                "invoice_id": str(invoice.id),
                "amount": str(payment.amount),
                "paid_amount": str(updated.paid_amount),
                "outstanding_amount": str(updated.outstanding_amount),
                "status": updated.status.value,
            },
        )
        return updated

    def raise_reminder(
        self,
        invoice: Invoice,
        *,
        as_of: date,
        fee: Decimal | None = None,
        note: str | None = None,
        actor_id: UUID | None = None,
        at: datetime | None = None,
    ) -> Invoice:
        """
        Escalate to the next reminder level and move the due date.

        The fee is recorded on the reminder; it is not added to the gross
        total.
        """
        INVOICE_WORKFLOW.require(
            invoice.status.value,
            "remind",
            document_id=invoice.id,
            to_state=InvoiceStatus.DUNNED.value,
        )
        max_level = self._config.dunning.max_level
        level = invoice.reminder_level + 1
        if level > max_level:
            raise MaxRemindersExceededError(str(invoice.id), invoice.reminder_level, max_level)

        reminder = Reminder(
            level=level,
            raised_on=as_of,
            due_date=as_of + timedelta(days=self._config.dunning.cadence_days),
            fee=self._config.dunning.default_fee if fee is None else fee,
            note=note,
            raised_by=actor_id,
        )
        updated = replace(
            invoice,
            reminders=invoice.reminders + (reminder,),
            due_date=reminder.due_date,
        )
        updated = self._change_status(
            updated,
            InvoiceStatus.DUNNED,
            "remind",
            at=at or _start_of_day(as_of),
            actor_id=actor_id,
            reason=f"reminder level {level}",
        )
        logger.info(
            "invoice_reminder_raised",
            extra={
                "invoice_id": str(invoice.id),
                "number": invoice.number,
                "level": level,
                "fee": str(reminder.fee),
                "due_date": reminder.due_date.isoformat(),
            },
        )
        return updated

    def cancel(
        self,
        invoice: Invoice,
        *,
        reason: str,
        at: datetime,
        actor_id: UUID | None = None,
    ) -> Invoice:
        """Any open status -> Cancelled.  Payments are kept on record."""
        cancelled = self._change_status(
            invoice,
            InvoiceStatus.CANCELLED,
            "cancel",
            at=at,
            actor_id=actor_id,
            reason=reason,
        )
        note = f"Cancelled: {reason}"
        return replace(
            cancelled,
            notes=f"{invoice.notes}\n{note}" if invoice.notes else note,
            cancelled_at=as_utc(at),
        )

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    @staticmethod
    def days_overdue(invoice: Invoice, as_of: date) -> int:
        if INVOICE_WORKFLOW.is_terminal(invoice.status.value) or invoice.due_date is None:
            return 0
        return max(0, (as_of - invoice.due_date).days)
