"""
Quote Module Service - persists QuoteEngine operations through the store.

Each public method loads the quote, applies one engine operation,
recalculates, assigns the ``ANG-YYYY-NNNNNN`` number on first save and saves
under the optimistic version check, all inside one unit of work.

Reading a quote applies expiry: a sent quote whose validity has elapsed is
moved to Expired (and saved) before it is returned.

Usage:
    service = QuoteService(InMemoryDocumentStore(), clock=SystemClock())
    quote = service.create(customer_id=customer_id, lines=[...], actor_id=actor_id)
    quote = service.send(quote.id, channel=SendChannel.EMAIL, recipient="kunde@example.de")
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

from billing_config.schema import BillingConfig
from billing_engines.numbering import DocumentNumberGenerator
from billing_kernel.domain.clock import Clock
from billing_kernel.domain.line_items import LineItem
from billing_kernel.domain.values import ZERO, DocumentType
from billing_kernel.exceptions import ConcurrencyError
from billing_kernel.logging_config import get_logger
from billing_kernel.services.document_store import DocumentStore
from billing_modules._service import DocumentService
from billing_modules.quote.engine import EXPIRABLE_STATUSES, QuoteEngine
from billing_modules.quote.models import (
    FollowUpKind,
    Quote,
    QuoteStatus,
    QuoteTerms,
    SendChannel,
)

logger = get_logger("modules.quote.service")


class QuoteService(DocumentService[Quote]):
    """Transactional quote operations."""

    document_type = DocumentType.QUOTE

    def __init__(
        self,
        store: DocumentStore,
        clock: Clock | None = None,
        config: BillingConfig | None = None,
        numbering: DocumentNumberGenerator | None = None,
    ):
        super().__init__(store, clock, config, numbering)
        self._engine = QuoteEngine(self._config)

    @property
    def engine(self) -> QuoteEngine:
        return self._engine

    def _recalculate(self, quote: Quote) -> Quote:
        return self._engine.recalculate(quote)

    def _number_year(self, quote: Quote) -> int:
        return quote.issue_date.year

    # -------------------------------------------------------------------------
    # Creation and reads
    # -------------------------------------------------------------------------

    def create(
        self,
        *,
        customer_id: UUID,
        lines: Iterable[LineItem],
        actor_id: UUID | None = None,
        issue_date: date | None = None,
        valid_until: date | None = None,
        optional_lines: Iterable[LineItem] = (),
        move_id: UUID | None = None,
        terms: QuoteTerms | None = None,
        discount_percent: Decimal = ZERO,
        discount_amount: Decimal = ZERO,
        discount_reason: str | None = None,
        quote_id: UUID | None = None,
    ) -> Quote:
        quote = self._engine.create(
            quote_id=quote_id or uuid4(),
            customer_id=customer_id,
            issue_date=issue_date or self._today(),
            lines=lines,
            at=self._clock.now(),
            created_by=actor_id,
            valid_until=valid_until,
            optional_lines=optional_lines,
            move_id=move_id,
            terms=terms,
            discount_percent=discount_percent,
            discount_amount=discount_amount,
            discount_reason=discount_reason,
        )
        return self._insert(quote, "quote_create")

    def get(self, quote_id: UUID) -> Quote:
        """Load a quote, expiring it first if its validity has elapsed."""
        quote = self._store.load(DocumentType.QUOTE, quote_id)
        if quote.status in EXPIRABLE_STATUSES and quote.valid_until < self._today():
            return self.expire(quote_id)
        return quote

    def expire(self, quote_id: UUID, today: date | None = None) -> Quote:
        """Expire the quote if its validity elapsed before ``today``.

        A quote that is not due for expiry is returned without being saved.
        """
        today = today or self._today()
        quote = self._store.load(DocumentType.QUOTE, quote_id)
        if quote.status not in EXPIRABLE_STATUSES or quote.valid_until >= today:
            return quote
        return super()._mutate(
            quote_id,
            "quote_expire",
            lambda q: self._engine.expire_if_overdue(q, today=today, at=self._clock.now()),
        )

    def _mutate(
        self, quote_id: UUID, event: str, operation: Callable[[Quote], Quote]
    ) -> Quote:
        # A lapsed quote is expired, and committed, before any other change
        self.expire(quote_id)
        return super()._mutate(quote_id, event, operation)

    # -------------------------------------------------------------------------
    # Editing
    # -------------------------------------------------------------------------

    def add_line(self, quote_id: UUID, line: LineItem, *, optional: bool = False) -> Quote:
        return self._mutate(
            quote_id, "quote_add_line", lambda q: self._engine.add_line(q, line, optional=optional)
        )

    def remove_line(self, quote_id: UUID, position: int) -> Quote:
        return self._mutate(
            quote_id, "quote_remove_line", lambda q: self._engine.remove_line(q, position)
        )

    def set_discount(
        self,
        quote_id: UUID,
        *,
        percent: Decimal | None = None,
        amount: Decimal | None = None,
        reason: str | None = None,
    ) -> Quote:
        return self._mutate(
            quote_id,
            "quote_set_discount",
            lambda q: self._engine.set_discount(q, percent=percent, amount=amount, reason=reason),
        )

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def submit_for_review(self, quote_id: UUID, *, actor_id: UUID | None = None) -> Quote:
        return self._mutate(
            quote_id,
            "quote_submit_for_review",
            lambda q: self._engine.submit_for_review(q, at=self._clock.now(), actor_id=actor_id),
        )

    def send(
        self,
        quote_id: UUID,
        *,
        channel: SendChannel,
        recipient: str,
        actor_id: UUID | None = None,
    ) -> Quote:
        return self._mutate(
            quote_id,
            "quote_send",
            lambda q: self._engine.send(
                q, channel=channel, recipient=recipient, at=self._clock.now(), actor_id=actor_id
            ),
        )

    def follow_up(
        self,
        quote_id: UUID,
        *,
        kind: FollowUpKind,
        outcome: str | None = None,
        next_step: str | None = None,
        actor_id: UUID | None = None,
    ) -> Quote:
        return self._mutate(
            quote_id,
            "quote_follow_up",
            lambda q: self._engine.follow_up(
                q,
                kind=kind,
                at=self._clock.now(),
                outcome=outcome,
                next_step=next_step,
                actor_id=actor_id,
            ),
        )

    def negotiate(
        self, quote_id: UUID, *, note: str | None = None, actor_id: UUID | None = None
    ) -> Quote:
        return self._mutate(
            quote_id,
            "quote_negotiate",
            lambda q: self._engine.negotiate(q, at=self._clock.now(), note=note, actor_id=actor_id),
        )

    def accept(
        self,
        quote_id: UUID,
        *,
        order_reference: str | None = None,
        actor_id: UUID | None = None,
    ) -> Quote:
        return self._mutate(
            quote_id,
            "quote_accept",
            lambda q: self._engine.accept(
                q, at=self._clock.now(), order_reference=order_reference, actor_id=actor_id
            ),
        )

    def reject(self, quote_id: UUID, *, reason: str, actor_id: UUID | None = None) -> Quote:
        return self._mutate(
            quote_id,
            "quote_reject",
            lambda q: self._engine.reject(q, reason=reason, at=self._clock.now(), actor_id=actor_id),
        )

    def new_version(self, quote_id: UUID, *, actor_id: UUID | None = None) -> Quote:
        """Persist the next revision as a new, separately numbered Draft."""
        source = self._store.load(DocumentType.QUOTE, quote_id)
        successor = self._engine.new_version(
            source, new_id=uuid4(), at=self._clock.now(), actor_id=actor_id
        )
        return self._insert(successor, "quote_new_version")

    # -------------------------------------------------------------------------
    # Sweep
    # -------------------------------------------------------------------------

    def expire_overdue(self, today: date | None = None) -> tuple[Quote, ...]:
        """Expire every sent quote whose validity elapsed before ``today``.

        Quotes changed concurrently are skipped; the next sweep picks them up.
        """
        today = today or self._today()
        expired: list[Quote] = []
        for quote in self._store.find(DocumentType.QUOTE, EXPIRABLE_STATUSES):
            if quote.valid_until >= today:
                continue
            try:
                result = self.expire(quote.id, today)
            except ConcurrencyError:
                logger.warning(
                    "quote_expire_skipped_conflict", extra={"quote_id": str(quote.id)}
                )
                continue
            if result.status == QuoteStatus.EXPIRED:
                expired.append(result)
        logger.info(
            "quote_expiry_sweep_completed",
            extra={"as_of": today.isoformat(), "expired_count": len(expired)},
        )
        return tuple(expired)
