"""
Quote Engine (``billing_modules.quote.engine``).

Responsibility
--------------
Pure lifecycle operations on ``Quote`` values: pricing of required and
optional positions, line editing while the quote is still a draft, the
send / follow-up / negotiation / acceptance flow, expiry and revisions.

Architecture position
---------------------
**Modules layer** -- pure.  ``QuoteService`` wraps each operation in a
load, mutate, recalculate, save cycle.

Invariants enforced
-------------------
* Totals are computed from required lines only.
* Positions are numbered 1..n across required then optional lines.
* Accepted, Rejected and Expired are terminal.
* Lines and discount can only change in Draft or Review.

Failure modes
-------------
* ``InvalidTransitionError`` -- action not allowed from the current status.
* ``EmptyDocumentError`` -- sending a quote without required lines.
* ``InvalidTaxRateError`` -- a line uses a rate outside the configured set.
* ``InvalidDocumentError`` -- payment terms beyond the configured maximum.
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
from billing_kernel.domain.values import ZERO, StatusChange, as_utc, round_money
from billing_kernel.exceptions import (
    EmptyDocumentError,
    InvalidDocumentError,
    InvalidTransitionError,
)
from billing_kernel.logging_config import get_logger
from billing_modules.quote.models import (
    Dispatch,
    FollowUp,
    FollowUpKind,
    Quote,
    QuoteStatus,
    QuoteTerms,
    SendChannel,
)
from billing_modules.quote.workflows import EDITABLE_STATES, QUOTE_WORKFLOW

logger = get_logger("modules.quote.engine")

EXPIRABLE_STATUSES = frozenset({
    QuoteStatus.SENT,
    QuoteStatus.FOLLOW_UP,
    QuoteStatus.NEGOTIATION,
})


class QuoteEngine:
    """Lifecycle operations for customer quotes."""

    def __init__(self, config: BillingConfig | None = None):
        self._config = config or BillingConfig()
        self._allowed_tax_rates = frozenset(self._config.money.allowed_tax_rates)

    def create(
        self,
        *,
        quote_id: UUID,
        customer_id: UUID,
        issue_date: date,
        lines: Iterable[LineItem],
        at: datetime,
        created_by: UUID | None = None,
        valid_until: date | None = None,
        optional_lines: Iterable[LineItem] = (),
        move_id: UUID | None = None,
        terms: QuoteTerms | None = None,
        discount_percent: Decimal = ZERO,
        discount_amount: Decimal = ZERO,
        discount_reason: str | None = None,
    ) -> Quote:
        quote = Quote(
            id=quote_id,
            customer_id=customer_id,
            issue_date=issue_date,
            valid_until=valid_until
            or issue_date + timedelta(days=self._config.quote.validity_days),
            lines=tuple(lines),
            optional_lines=tuple(optional_lines),
            created_by=created_by,
            move_id=move_id,
            terms=terms or QuoteTerms(
                payment_terms_days=self._config.invoice.payment_terms_days
            ),
            discount_percent=discount_percent,
            discount_amount=discount_amount,
            discount_reason=discount_reason,
            status_history=(
                StatusChange(QuoteStatus.DRAFT.value, as_utc(at), created_by, "created"),
            ),
        )
        return self.recalculate(quote)

    def recalculate(self, quote: Quote) -> Quote:
        """Price all positions and recompute totals.  Idempotent."""
        max_terms = self._config.invoice.max_payment_terms_days
        if quote.terms.payment_terms_days > max_terms:
            raise InvalidDocumentError(
                "quote", "payment_terms_days", f"must be between 0 and {max_terms}"
            )
        lines = price_lines(quote.lines, start=1, allowed_tax_rates=self._allowed_tax_rates)
        optional = price_lines(
            quote.optional_lines,
            start=len(lines) + 1,
            allowed_tax_rates=self._allowed_tax_rates,
        )
        totals = calculate_document_totals(
            lines,
            discount_percent=quote.discount_percent,
            discount_amount=quote.discount_amount,
        )
        return replace(
            quote,
            lines=lines,
            optional_lines=optional,
            totals=totals,
            optional_net_total=round_money(sum((l.net_total for l in optional), ZERO)),
        )

    def _transition(
        self,
        quote: Quote,
        target: QuoteStatus,
        action: str,
        *,
        at: datetime,
        actor_id: UUID | None,
        reason: str | None = None,
    ) -> Quote:
        QUOTE_WORKFLOW.require(
            quote.status.value, action, document_id=quote.id, to_state=target.value
        )
        logger.info(
            "quote_status_changed",
            extra={
                "quote_id": str(quote.id),
                "number": quote.number,
                "from_status": quote.status.value,
                "to_status": target.value,
                "action": action,
            },
        )
        return replace(
            quote,
            status=target,
            status_history=quote.status_history
            + (StatusChange(target.value, as_utc(at), actor_id, reason),),
        )

    # -------------------------------------------------------------------------
    # Editing (Draft / Review only)
    # -------------------------------------------------------------------------

    def _require_editable(self, quote: Quote, action: str) -> None:
        if quote.status.value not in EDITABLE_STATES:
            raise InvalidTransitionError(
                "quote",
                str(quote.id),
                quote.status.value,
                action,
                reason="quote can only be edited in Draft or Review",
            )

    def add_line(self, quote: Quote, line: LineItem, *, optional: bool = False) -> Quote:
        self._require_editable(quote, "add_line")
        if optional:
            return self.recalculate(replace(quote, optional_lines=quote.optional_lines + (line,)))
        return self.recalculate(replace(quote, lines=quote.lines + (line,)))

    def remove_line(self, quote: Quote, position: int) -> Quote:
        """Remove the line at ``position``; remaining lines are renumbered."""
        self._require_editable(quote, "remove_line")
        lines = tuple(l for l in quote.lines if l.position != position)
        optional = tuple(l for l in quote.optional_lines if l.position != position)
        if len(lines) + len(optional) == len(quote.lines) + len(quote.optional_lines):
            raise InvalidDocumentError("quote", "position", f"no line at position {position}")
        return self.recalculate(replace(quote, lines=lines, optional_lines=optional))

    def set_discount(
        self,
        quote: Quote,
        *,
        percent: Decimal | None = None,
        amount: Decimal | None = None,
        reason: str | None = None,
    ) -> Quote:
        self._require_editable(quote, "set_discount")
        return self.recalculate(
            replace(
                quote,
                discount_percent=percent or ZERO,
                discount_amount=amount or ZERO,
                discount_reason=reason,
            )
        )

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def submit_for_review(
        self, quote: Quote, *, at: datetime, actor_id: UUID | None = None
    ) -> Quote:
        return self._transition(
            quote, QuoteStatus.REVIEW, "submit_for_review", at=at, actor_id=actor_id
        )

    def send(
        self,
        quote: Quote,
        *,
        channel: SendChannel,
        recipient: str,
        at: datetime,
        actor_id: UUID | None = None,
    ) -> Quote:
        if not quote.lines:
            raise EmptyDocumentError("quote", str(quote.id))
        channel = SendChannel(channel)
        sent = self._transition(
            quote,
            QuoteStatus.SENT,
            "send",
            at=at,
            actor_id=actor_id,
            reason=f"sent via {channel.value}",
        )
        return replace(sent, dispatch=Dispatch(channel, recipient, as_utc(at)))

    def follow_up(
        self,
        quote: Quote,
        *,
        kind: FollowUpKind,
        at: datetime,
        outcome: str | None = None,
        next_step: str | None = None,
        actor_id: UUID | None = None,
    ) -> Quote:
        updated = self._transition(
            quote, QuoteStatus.FOLLOW_UP, "follow_up", at=at, actor_id=actor_id, reason=outcome
        )
        record = FollowUp(FollowUpKind(kind), as_utc(at), outcome, next_step, actor_id)
        return replace(updated, follow_ups=quote.follow_ups + (record,))

    def negotiate(
        self,
        quote: Quote,
        *,
        at: datetime,
        note: str | None = None,
        actor_id: UUID | None = None,
    ) -> Quote:
        return self._transition(
            quote, QuoteStatus.NEGOTIATION, "negotiate", at=at, actor_id=actor_id, reason=note
        )

    def accept(
        self,
        quote: Quote,
        *,
        at: datetime,
        order_reference: str | None = None,
        actor_id: UUID | None = None,
    ) -> Quote:
        accepted = self._transition(
            quote, QuoteStatus.ACCEPTED, "accept", at=at, actor_id=actor_id, reason=order_reference
        )
        return replace(accepted, order_reference=order_reference, accepted_at=as_utc(at))

    def reject(
        self,
        quote: Quote,
        *,
        reason: str,
        at: datetime,
        actor_id: UUID | None = None,
    ) -> Quote:
        rejected = self._transition(
            quote, QuoteStatus.REJECTED, "reject", at=at, actor_id=actor_id, reason=reason
        )
        return replace(rejected, rejection_reason=reason, rejected_at=as_utc(at))

    def expire_if_overdue(self, quote: Quote, *, today: date, at: datetime | None = None) -> Quote:
        """Expire a sent quote whose validity has elapsed; otherwise return it unchanged."""
        if quote.status not in EXPIRABLE_STATUSES or quote.valid_until >= today:
            return quote
        return self._transition(
            quote,
            QuoteStatus.EXPIRED,
            "expire",
            at=at or datetime.combine(today, time(), tzinfo=timezone.utc),
            actor_id=None,
            reason=f"valid until {quote.valid_until.isoformat()}",
        )

    def new_version(
        self,
        quote: Quote,
        *,
        new_id: UUID,
        at: datetime,
        actor_id: UUID | None = None,
    ) -> Quote:
        """
        Start the next revision as an unnumbered Draft.

        Lines, optional lines, terms and discount are copied; the source
        quote is left as it is.
        """
        issue_date = as_utc(at).date()
        revision = quote.revision + 1
        successor = self.create(
            quote_id=new_id,
            customer_id=quote.customer_id,
            issue_date=issue_date,
            lines=quote.lines,
            at=at,
            created_by=actor_id,
            optional_lines=quote.optional_lines,
            move_id=quote.move_id,
            terms=quote.terms,
            discount_percent=quote.discount_percent,
            discount_amount=quote.discount_amount,
            discount_reason=quote.discount_reason,
        )
        logger.info(
            "quote_revision_created",
            extra={
                "source_id": str(quote.id),
                "new_id": str(new_id),
                "revision": revision,
            },
        )
        return replace(
            successor,
            revision=revision,
            predecessor_id=quote.id,
            status_history=(
                StatusChange(
                    QuoteStatus.DRAFT.value,
                    as_utc(at),
                    actor_id,
                    f"revision {revision} of {quote.number or quote.id}",
                ),
            ),
        )
