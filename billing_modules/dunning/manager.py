"""
Dunning Manager (``billing_modules.dunning.manager``).

Responsibility
--------------
Periodic escalation of unpaid invoices: find every open invoice whose due
date lies before the cutoff and raise the next reminder on it.

Architecture position
---------------------
**Modules layer** -- orchestration over ``InvoiceService``.  Each invoice is
escalated in its own unit of work so one failure never blocks the rest of
the run.

Invariants enforced
-------------------
* An invoice at the maximum reminder level is skipped, never escalated.
* An invoice whose latest reminder is younger than the cadence is skipped.
* Because a reminder moves the due date ``cadence_days`` past the cutoff,
  re-running on the same day escalates nothing new.

Failure modes
-------------
* Version conflicts are reported in ``DunningRunResult.conflicts`` and not
  retried; the next run picks the invoice up again.
* Workflow errors raised by an invoice that changed since it was selected
  (paid or cancelled in between) are reported as skipped.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from billing_kernel.domain.clock import Clock, SystemClock
from billing_kernel.domain.values import DocumentType
from billing_kernel.exceptions import ConcurrencyError, WorkflowError
from billing_kernel.logging_config import get_logger
from billing_kernel.services.document_store import DocumentStore
from billing_modules.invoice.engine import REMINDABLE_STATUSES
from billing_modules.invoice.models import Invoice
from billing_modules.invoice.service import InvoiceService

logger = get_logger("modules.dunning.manager")

SKIP_MAX_LEVEL = "max_level_reached"
SKIP_CADENCE = "within_cadence"
SKIP_STATE_CHANGED = "state_changed"


@dataclass(frozen=True)
class Escalation:
    invoice_id: UUID
    number: str | None
    level: int
    fee: Decimal
    due_date: date


@dataclass(frozen=True)
class SkippedInvoice:
    invoice_id: UUID
    number: str | None
    reason: str


@dataclass(frozen=True)
class DunningRunResult:
    """Outcome of one dunning run."""
    cutoff: date
    escalated: tuple[Escalation, ...] = ()
    skipped: tuple[SkippedInvoice, ...] = ()
    conflicts: tuple[UUID, ...] = ()

    @property
    def escalated_count(self) -> int:
        return len(self.escalated)

    @property
    def candidate_count(self) -> int:
        return len(self.escalated) + len(self.skipped) + len(self.conflicts)


class DunningManager:
    """Raises due reminders across all open invoices."""

    def __init__(
        self,
        store: DocumentStore,
        invoices: InvoiceService | None = None,
        clock: Clock | None = None,
    ):
        self._store = store
        self._clock = clock or SystemClock()
        self._invoices = invoices or InvoiceService(store, clock=self._clock)
        self._dunning = self._invoices.engine.config.dunning

    def candidates(self, cutoff: date) -> tuple[Invoice, ...]:
        """Open invoices whose current due date is before ``cutoff``."""
        return tuple(
            invoice
            for invoice in self._store.find(DocumentType.INVOICE, REMINDABLE_STATUSES)
            if invoice.due_date is not None and invoice.due_date < cutoff
        )

    def _skip_reason(self, invoice: Invoice, cutoff: date) -> str | None:
        if invoice.reminder_level >= self._dunning.max_level:
            return SKIP_MAX_LEVEL
        last = invoice.last_reminder
        if last is not None and (cutoff - last.raised_on).days < self._dunning.cadence_days:
            return SKIP_CADENCE
        return None

    def escalate(
        self, invoice: Invoice, cutoff: date, actor_id: UUID | None = None
    ) -> Escalation | SkippedInvoice:
        """
        Raise the next reminder on one invoice, or say why it was skipped.

        Raises:
            ConcurrencyError: the invoice changed between selection and save.
        """
        reason = self._skip_reason(invoice, cutoff)
        if reason is not None:
            return SkippedInvoice(invoice.id, invoice.number, reason)
        try:
            updated = self._invoices.raise_reminder(invoice.id, actor_id=actor_id, as_of=cutoff)
        except WorkflowError as exc:
            logger.warning(
                "dunning_invoice_skipped",
                extra={"invoice_id": str(invoice.id), "error_code": exc.code},
            )
            return SkippedInvoice(invoice.id, invoice.number, SKIP_STATE_CHANGED)
        reminder = updated.last_reminder
        return Escalation(
            invoice_id=updated.id,
            number=updated.number,
            level=reminder.level,
            fee=reminder.fee,
            due_date=reminder.due_date,
        )

    def run(self, cutoff: date | None = None, actor_id: UUID | None = None) -> DunningRunResult:
        cutoff = cutoff or self._clock.today()
        escalated: list[Escalation] = []
        skipped: list[SkippedInvoice] = []
        conflicts: list[UUID] = []

        logger.info("dunning_run_started", extra={"cutoff": cutoff.isoformat()})
        for invoice in self.candidates(cutoff):
            try:
                outcome = self.escalate(invoice, cutoff, actor_id)
            except ConcurrencyError:
                conflicts.append(invoice.id)
                continue
            if isinstance(outcome, Escalation):
                escalated.append(outcome)
            else:
                skipped.append(outcome)

        result = DunningRunResult(
            cutoff=cutoff,
            escalated=tuple(escalated),
            skipped=tuple(skipped),
            conflicts=tuple(conflicts),
        )
        logger.info(
            "dunning_run_completed",
            extra={
                "cutoff": cutoff.isoformat(),
                "escalated_count": len(escalated),
                "skipped_count": len(skipped),
                "conflict_count": len(conflicts),
            },
        )
        return result
