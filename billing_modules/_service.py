"""
Shared load / mutate / recalculate / save cycle for the document services.

Every write goes through ``DocumentService._mutate``:

1. open a unit of work on the store,
2. load the current document (fresh version token),
3. apply one engine operation (returns a new immutable document),
4. recalculate, assign the document number on first save,
5. save with the optimistic version check.

Any exception rolls the unit of work back and propagates unchanged.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import replace
from datetime import date
from typing import Any, Generic, TypeVar
from uuid import UUID

from billing_config.schema import BillingConfig
from billing_engines.numbering import DocumentNumberGenerator
from billing_kernel.domain.clock import Clock, SystemClock
from billing_kernel.domain.values import DocumentType
from billing_kernel.exceptions import BillingError
from billing_kernel.logging_config import LogContext, get_logger
from billing_kernel.services.document_store import DocumentStore

D = TypeVar("D")

logger = get_logger("modules.service")


class DocumentService(ABC, Generic[D]):
    """Base for QuoteService, InvoiceService and CostService."""

    document_type: DocumentType

    def __init__(
        self,
        store: DocumentStore,
        clock: Clock | None = None,
        config: BillingConfig | None = None,
        numbering: DocumentNumberGenerator | None = None,
    ):
        self._store = store
        self._clock = clock or SystemClock()
        self._config = config or BillingConfig()
        self._numbering = numbering or DocumentNumberGenerator(
            store, self._config.numbering.prefixes
        )

    @abstractmethod
    def _recalculate(self, document: D) -> D:
        """Recompute derived fields with the document's engine."""

    @abstractmethod
    def _number_year(self, document: D) -> int:
        """Year the document number is drawn from."""

    def _persist(self, document: D) -> D:
        """Recalculate, number on first save, and save.  Caller holds the unit of work."""
        document = self._recalculate(document)
        if document.number is None:
            document = replace(
                document,
                number=self._numbering.next_number(
                    self.document_type, self._number_year(document)
                ),
            )
        return self._store.save(document)

    def _insert(self, document: D, event: str) -> D:
        with LogContext.bind(
            document_type=self.document_type.value, document_id=str(document.id)
        ):
            try:
                with self._store.unit_of_work():
                    saved = self._persist(document)
            except BillingError:
                logger.warning(f"{event}_failed", exc_info=True)
                raise
            logger.info(
                f"{event}_committed",
                extra={"number": saved.number, "status": saved.status.value},
            )
            return saved

    def _mutate(self, document_id: UUID, event: str, operation: Callable[[D], D]) -> D:
        with LogContext.bind(
            document_type=self.document_type.value, document_id=str(document_id)
        ):
            try:
                with self._store.unit_of_work():
                    current = self._store.load(self.document_type, document_id)
                    saved = self._persist(operation(current))
            except BillingError:
                logger.warning(f"{event}_failed", exc_info=True)
                raise
            logger.info(
                f"{event}_committed",
                extra={
                    "number": saved.number,
                    "status": saved.status.value,
                    "version": saved.version,
                },
            )
            return saved

    def get(self, document_id: UUID) -> D:
        return self._store.load(self.document_type, document_id)

    def find(self, statuses: Any = None) -> tuple[D, ...]:
        return self._store.find(self.document_type, statuses)

    def _today(self) -> date:
        return self._clock.today()
