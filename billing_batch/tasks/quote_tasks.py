"""
Batch tasks: quote module (expiry sweep).
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from billing_batch.domain.types import BatchItemStatus
from billing_batch.tasks.base import (
    BatchItemInput,
    BatchTaskResult,
    DocumentSweep,
    document_items,
    item_document_id,
)
from billing_kernel.domain.values import DocumentType
from billing_kernel.services.document_store import DocumentStore
from billing_modules.quote.engine import EXPIRABLE_STATUSES
from billing_modules.quote.models import QuoteStatus
from billing_modules.quote.service import QuoteService


class QuoteExpiryTask(DocumentSweep):
    """Expire sent quotes whose validity date has passed."""

    task_type = "quote.expiry_sweep"
    description = "Expire quotes past their validity date"

    def prepare_items(
        self,
        parameters: dict[str, Any],
        store: DocumentStore,
        as_of: datetime,
    ) -> tuple[BatchItemInput, ...]:
        today = as_of.date()
        return document_items(
            quote
            for quote in store.find(DocumentType.QUOTE, EXPIRABLE_STATUSES)
            if not quote.is_valid_on(today)
        )

    def execute_item(
        self,
        item: BatchItemInput,
        parameters: dict[str, Any],
        store: DocumentStore,
        as_of: datetime,
    ) -> BatchTaskResult:
        service = QuoteService(store, clock=self._clock, config=self._config)
        quote = service.expire(item_document_id(item), as_of.date())
        expired = quote.status == QuoteStatus.EXPIRED
        return BatchTaskResult(
            status=BatchItemStatus.SUCCEEDED if expired else BatchItemStatus.SKIPPED,
            result_data={"quote_id": str(quote.id), "status": quote.status.value},
        )
