"""
Batch tasks: invoice module (overdue marking, dunning run).

Run them in that order on the same as-of date: marking first turns Sent
invoices into Overdue ones, which the dunning run then escalates.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from billing_batch.domain.types import BatchItemStatus
from billing_batch.tasks.base import (
    BatchItemInput,
    BatchTaskResult,
    DocumentSweep,
    actor_parameter,
    document_items,
    item_document_id,
)
from billing_kernel.domain.values import DocumentType
from billing_kernel.services.document_store import DocumentStore
from billing_modules.dunning.manager import DunningManager, Escalation
from billing_modules.invoice.engine import InvoiceEngine
from billing_modules.invoice.models import InvoiceStatus
from billing_modules.invoice.service import InvoiceService


class MarkOverdueTask(DocumentSweep):
    """Move Sent invoices past their due date to Overdue."""

    task_type = "invoice.mark_overdue"
    description = "Mark sent invoices past their due date as overdue"

    def prepare_items(
        self,
        parameters: dict[str, Any],
        store: DocumentStore,
        as_of: datetime,
    ) -> tuple[BatchItemInput, ...]:
        today = as_of.date()
        return document_items(
            invoice
            for invoice in store.find(DocumentType.INVOICE, [InvoiceStatus.SENT])
            if InvoiceEngine.days_overdue(invoice, today) > 0
        )

    def execute_item(
        self,
        item: BatchItemInput,
        parameters: dict[str, Any],
        store: DocumentStore,
        as_of: datetime,
    ) -> BatchTaskResult:
        service = InvoiceService(store, clock=self._clock, config=self._config)
        invoice = service.refresh(item_document_id(item))
        marked = invoice.status == InvoiceStatus.OVERDUE
        return BatchTaskResult(
            status=BatchItemStatus.SUCCEEDED if marked else BatchItemStatus.SKIPPED,
            result_data={"invoice_id": str(invoice.id), "status": invoice.status.value},
        )


class DunningRunTask(DocumentSweep):
    """Raise the next reminder on every invoice past its due date."""

    task_type = "invoice.dunning_run"
    description = "Escalate reminders on invoices past their due date"

    def _manager(self, store: DocumentStore) -> DunningManager:
        invoices = InvoiceService(store, clock=self._clock, config=self._config)
        return DunningManager(store, invoices=invoices, clock=self._clock)

    def prepare_items(
        self,
        parameters: dict[str, Any],
        store: DocumentStore,
        as_of: datetime,
    ) -> tuple[BatchItemInput, ...]:
        return document_items(self._manager(store).candidates(as_of.date()))

    def execute_item(
        self,
        item: BatchItemInput,
        parameters: dict[str, Any],
        store: DocumentStore,
        as_of: datetime,
    ) -> BatchTaskResult:
        invoice = store.load(DocumentType.INVOICE, item_document_id(item))
        outcome = self._manager(store).escalate(
            invoice, as_of.date(), actor_parameter(parameters)
        )
        if not isinstance(outcome, Escalation):
            return BatchTaskResult(
                status=BatchItemStatus.SKIPPED,
                result_data={"invoice_id": str(outcome.invoice_id), "reason": outcome.reason},
            )
        return BatchTaskResult(
            status=BatchItemStatus.SUCCEEDED,
            result_data={
                "invoice_id": str(outcome.invoice_id),
                "number": outcome.number,
                "level": outcome.level,
                "fee": str(outcome.fee),
                "due_date": outcome.due_date.isoformat(),
            },
        )
