"""
Invoice Module Service - persists InvoiceEngine operations through the store.

Every write runs load, mutate, recalculate (as of the clock's today), number
on first save (``RG-YYYY-NNNNNN``), save with the optimistic version check, in
one unit of work.  A concurrent writer surfaces as ``VersionConflictError``;
callers reload and retry.

Usage:
    service = InvoiceService(store, clock=clock)
    invoice = service.create(customer_id=customer_id, lines=[...])
    invoice = service.send(invoice.id, channel=DeliveryChannel.EMAIL, recipient="a@b.de")
    invoice = service.record_payment(invoice.id, amount=Decimal("150.00"))
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

from billing_config.schema import BillingConfig
from billing_engines.numbering import DocumentNumberGenerator
from billing_kernel.domain.clock import Clock
from billing_kernel.domain.line_items import LineItem
from billing_kernel.domain.values import ZERO, DocumentType
from billing_kernel.exceptions import BillingError, ConcurrencyError
from billing_kernel.logging_config import LogContext, get_logger
from billing_kernel.services.document_store import DocumentStore
from billing_modules._service import DocumentService
from billing_modules.invoice.engine import REMINDABLE_STATUSES, InvoiceEngine
from billing_modules.invoice.models import (
    DeliveryChannel,
    Invoice,
    InvoiceKind,
    InvoiceStatus,
    PaymentMethod,
    ServicePeriod,
)
from billing_modules.quote.engine import QuoteEngine
from billing_modules.quote.models import QuoteStatus

logger = get_logger("modules.invoice.service")


class InvoiceService(DocumentService[Invoice]):
    """Transactional invoice operations."""

    document_type = DocumentType.INVOICE

    def __init__(
        self,
        store: DocumentStore,
        clock: Clock | None = None,
        config: BillingConfig | None = None,
        numbering: DocumentNumberGenerator | None = None,
    ):
        super().__init__(store, clock, config, numbering)
        self._engine = InvoiceEngine(self._config)
        self._quote_engine = QuoteEngine(self._config)

    @property
    def engine(self) -> InvoiceEngine:
        return self._engine

    def _recalculate(self, invoice: Invoice) -> Invoice:
        return self._engine.recalculate(
            invoice, as_of=self._today(), at=self._clock.now()
        )

    def _number_year(self, invoice: Invoice) -> int:
        return invoice.issue_date.year

    # -------------------------------------------------------------------------
    # Creation
    # -------------------------------------------------------------------------

    def create(
        self,
        *,
        customer_id: UUID,
        lines: Iterable[LineItem],
        actor_id: UUID | None = None,
        issue_date: date | None = None,
        kind: InvoiceKind = InvoiceKind.INVOICE,
        move_id: UUID | None = None,
        service_period: ServicePeriod | None = None,
        payment_terms_days: int | None = None,
        due_date: date | None = None,
        discount_percent: Decimal = ZERO,
        discount_amount: Decimal = ZERO,
        notes: str = "",
        invoice_id: UUID | None = None,
    ) -> Invoice:
        invoice = self._engine.create(
            invoice_id=invoice_id or uuid4(),
            customer_id=customer_id,
            issue_date=issue_date or self._today(),
            lines=lines,
            at=self._clock.now(),
            created_by=actor_id,
            kind=kind,
            move_id=move_id,
            service_period=service_period,
            payment_terms_days=payment_terms_days,
            due_date=due_date,
            discount_percent=discount_percent,
            discount_amount=discount_amount,
            notes=notes,
        )
        return self._insert(invoice, "invoice_create")

    def create_from_quote(
        self,
        quote_id: UUID,
        *,
        actor_id: UUID | None = None,
        issue_date: date | None = None,
        service_period: ServicePeriod | None = None,
    ) -> Invoice:
        """
        Invoice an accepted (or still open) quote.

        A quote that is not yet Accepted is accepted in the same unit of
        work, so either both documents change or neither does.  A quote
        past its validity date is expired first and cannot be invoiced.
        """
        self._expire_lapsed_quote(quote_id)
        invoice_id = uuid4()
        with LogContext.bind(
            document_type=DocumentType.INVOICE.value, document_id=str(invoice_id)
        ):
            try:
                with self._store.unit_of_work():
                    quote = self._store.load(DocumentType.QUOTE, quote_id)
                    if quote.status != QuoteStatus.ACCEPTED:
                        quote = self._store.save(
                            self._quote_engine.accept(
                                quote,
                                at=self._clock.now(),
                                order_reference=None,
                                actor_id=actor_id,
                            )
                        )
                    invoice = self._engine.from_quote(
                        quote,
                        invoice_id=invoice_id,
                        issue_date=issue_date or self._today(),
                        at=self._clock.now(),
                        created_by=actor_id,
                        service_period=service_period,
                    )
                    saved = self._persist(invoice)
            except BillingError:
                logger.warning("invoice_create_from_quote_failed", exc_info=True)
                raise
            logger.info(
                "invoice_create_from_quote_committed",
                extra={
                    "quote_id": str(quote_id),
                    "quote_number": quote.number,
                    "number": saved.number,
                    "gross_total": str(saved.gross_total),
                },
            )
            return saved

    def _expire_lapsed_quote(self, quote_id: UUID) -> None:
        """Commit the expiry of a lapsed quote before it is invoiced.

        Runs in its own unit of work, so the Expired status survives the
        InvalidTransitionError that invoicing it raises next.
        """
        with self._store.unit_of_work():
            quote = self._store.load(DocumentType.QUOTE, quote_id)
            expired = self._quote_engine.expire_if_overdue(
                quote, today=self._today(), at=self._clock.now()
            )
            if expired is quote:
                return
            self._store.save(expired)
        logger.info(
            "quote_expired_before_invoicing",
            extra={"quote_id": str(quote_id), "quote_number": quote.number},
        )

    def duplicate(self, invoice_id: UUID, *, actor_id: UUID | None = None) -> Invoice:
        source = self._store.load(DocumentType.INVOICE, invoice_id)
        copy = self._engine.duplicate(
            source,
            new_id=uuid4(),
            issue_date=self._today(),
            at=self._clock.now(),
            actor_id=actor_id,
        )
        return self._insert(copy, "invoice_duplicate")

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def send(
        self,
        invoice_id: UUID,
        *,
        channel: DeliveryChannel = DeliveryChannel.EMAIL,
        recipient: str = "",
        actor_id: UUID | None = None,
    ) -> Invoice:
        return self._mutate(
            invoice_id,
            "invoice_send",
            lambda i: self._engine.send(
                i, channel=channel, recipient=recipient, at=self._clock.now(), actor_id=actor_id
            ),
        )

    def record_payment(
        self,
        invoice_id: UUID,
        *,
        amount: Decimal,
        paid_on: date | None = None,
        method: PaymentMethod = PaymentMethod.BANK_TRANSFER,
        reference: str | None = None,
        note: str | None = None,
        actor_id: UUID | None = None,
    ) -> Invoice:
        return self._mutate(
            invoice_id,
            "invoice_record_payment",
            lambda i: self._engine.record_payment(
                i,
                amount=amount,
                paid_on=paid_on or self._today(),
                method=method,
                reference=reference,
                note=note,
                actor_id=actor_id,
                as_of=self._today(),
                at=self._clock.now(),
            ),
        )

    def raise_reminder(
        self,
        invoice_id: UUID,
        *,
        fee: Decimal | None = None,
        note: str | None = None,
        actor_id: UUID | None = None,
        as_of: date | None = None,
    ) -> Invoice:
        return self._mutate(
            invoice_id,
            "invoice_raise_reminder",
            lambda i: self._engine.raise_reminder(
                i,
                as_of=as_of or self._today(),
                fee=fee,
                note=note,
                actor_id=actor_id,
                at=self._clock.now(),
            ),
        )

    def cancel(self, invoice_id: UUID, *, reason: str, actor_id: UUID | None = None) -> Invoice:
        return self._mutate(
            invoice_id,
            "invoice_cancel",
            lambda i: self._engine.cancel(
                i, reason=reason, at=self._clock.now(), actor_id=actor_id
            ),
        )

    def refresh(self, invoice_id: UUID) -> Invoice:
        """Recalculate and save, picking up an Overdue transition if one is due."""
        return self._mutate(invoice_id, "invoice_refresh", lambda i: i)

    # -------------------------------------------------------------------------
    # Queries and sweeps
    # -------------------------------------------------------------------------

    def find_overdue(self, as_of: date | None = None) -> tuple[Invoice, ...]:
        """Open invoices whose current due date lies before ``as_of``."""
        as_of = as_of or self._today()
        return tuple(
            invoice
            for invoice in self._store.find(DocumentType.INVOICE, REMINDABLE_STATUSES)
            if InvoiceEngine.days_overdue(invoice, as_of) > 0
        )

    def mark_overdue(self) -> tuple[Invoice, ...]:
        """Move every Sent invoice past its due date to Overdue."""
        today = self._today()
        marked: list[Invoice] = []
        for invoice in self._store.find(DocumentType.INVOICE, [InvoiceStatus.SENT]):
            if InvoiceEngine.days_overdue(invoice, today) == 0:
                continue
            try:
                marked.append(self.refresh(invoice.id))
            except ConcurrencyError:
                logger.warning(
                    "invoice_mark_overdue_skipped_conflict",
                    extra={"invoice_id": str(invoice.id)},
                )
        logger.info(
            "invoice_mark_overdue_completed",
            extra={"as_of": today.isoformat(), "marked_count": len(marked)},
        )
        return tuple(marked)
