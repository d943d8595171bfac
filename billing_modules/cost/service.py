"""
Cost Module Service - persists CostEngine operations through the store.

Numbers follow ``PK-YYYY-NNNNNN`` with the year taken from the date the cost
was incurred.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

from billing_config.schema import BillingConfig
from billing_engines.numbering import DocumentNumberGenerator
from billing_kernel.domain.clock import Clock
from billing_kernel.domain.values import DocumentType
from billing_kernel.services.document_store import DocumentStore
from billing_modules._service import DocumentService
from billing_modules.cost.engine import CostEngine
from billing_modules.cost.models import (
    ApprovalState,
    Budget,
    CostCategory,
    CostPaymentMethod,
    CostRecord,
    CostStatus,
    CostType,
    QuantityBasis,
    Recurrence,
    Supplier,
)


class CostService(DocumentService[CostRecord]):
    """Transactional cost record operations."""

    document_type = DocumentType.COST

    def __init__(
        self,
        store: DocumentStore,
        clock: Clock | None = None,
        config: BillingConfig | None = None,
        numbering: DocumentNumberGenerator | None = None,
    ):
        super().__init__(store, clock, config, numbering)
        self._engine = CostEngine(self._config)

    @property
    def engine(self) -> CostEngine:
        return self._engine

    def _recalculate(self, record: CostRecord) -> CostRecord:
        return self._engine.recalculate(record)

    def _number_year(self, record: CostRecord) -> int:
        return record.incurred_on.year

    def create(
        self,
        *,
        description: str,
        category: CostCategory,
        cost_type: CostType,
        actor_id: UUID | None = None,
        incurred_on: date | None = None,
        net_amount: Decimal | None = None,
        quantity_basis: QuantityBasis | None = None,
        tax_rate: Decimal | None = None,
        subcategory: str | None = None,
        move_id: UUID | None = None,
        supplier: Supplier | None = None,
        cost_center: str | None = None,
        recurrence: Recurrence | None = None,
        budget: Budget | None = None,
        notes: str | None = None,
        cost_id: UUID | None = None,
    ) -> CostRecord:
        record = self._engine.create(
            cost_id=cost_id or uuid4(),
            description=description,
            category=category,
            cost_type=cost_type,
            incurred_on=incurred_on or self._today(),
            at=self._clock.now(),
            created_by=actor_id,
            net_amount=net_amount,
            quantity_basis=quantity_basis,
            tax_rate=tax_rate,
            subcategory=subcategory,
            move_id=move_id,
            supplier=supplier,
            cost_center=cost_center,
            recurrence=recurrence,
            budget=budget,
            notes=notes,
        )
        return self._insert(record, "cost_create")

    def approve(
        self, cost_id: UUID, *, actor_id: UUID | None = None, comment: str | None = None
    ) -> CostRecord:
        return self._mutate(
            cost_id,
            "cost_approve",
            lambda r: self._engine.approve(
                r, at=self._clock.now(), actor_id=actor_id, comment=comment
            ),
        )

    def reject(self, cost_id: UUID, *, reason: str, actor_id: UUID | None = None) -> CostRecord:
        return self._mutate(
            cost_id,
            "cost_reject",
            lambda r: self._engine.reject(
                r, reason=reason, at=self._clock.now(), actor_id=actor_id
            ),
        )

    def mark_paid(
        self,
        cost_id: UUID,
        *,
        paid_on: date | None = None,
        method: CostPaymentMethod = CostPaymentMethod.BANK_TRANSFER,
        reference: str | None = None,
        actor_id: UUID | None = None,
        comment: str | None = None,
    ) -> CostRecord:
        return self._mutate(
            cost_id,
            "cost_mark_paid",
            lambda r: self._engine.mark_paid(
                r,
                paid_on=paid_on or self._today(),
                at=self._clock.now(),
                method=method,
                reference=reference,
                actor_id=actor_id,
                comment=comment,
            ),
        )

    def cancel(self, cost_id: UUID, *, reason: str, actor_id: UUID | None = None) -> CostRecord:
        return self._mutate(
            cost_id,
            "cost_cancel",
            lambda r: self._engine.cancel(
                r, reason=reason, at=self._clock.now(), actor_id=actor_id
            ),
        )

    def duplicate_recurring(self, cost_id: UUID, *, actor_id: UUID | None = None) -> CostRecord:
        source = self._store.load(DocumentType.COST, cost_id)
        copy = self._engine.duplicate_recurring(
            source, new_id=uuid4(), at=self._clock.now(), actor_id=actor_id
        )
        return self._insert(copy, "cost_duplicate_recurring")

    def pending_approval(self) -> tuple[CostRecord, ...]:
        """Open records still waiting for an approval decision."""
        return tuple(
            record
            for record in self._store.find(DocumentType.COST, [CostStatus.OPEN])
            if record.approval.state == ApprovalState.PENDING
        )
