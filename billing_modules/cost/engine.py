"""
Cost Engine (``billing_modules.cost.engine``).

Responsibility
--------------
Pure operations on ``CostRecord`` values: amount and tax computation,
threshold-based approval, approve / reject / mark paid / cancel, and
duplication of recurring costs.

Architecture position
---------------------
**Modules layer** -- pure.  ``CostService`` persists the results.

Invariants enforced
-------------------
* ``gross_amount = round(net_amount) + round(tax)``, with tax at the record's
  rate; the rate must be a configured rate.
* Approval is required iff the gross amount exceeds the configured
  threshold.  The requirement is decided once, at creation.
* approve / reject need approval Pending; mark_paid needs it settled.
* Each operation appends exactly one ``AuditEntry``.

Failure modes
-------------
* ``InvalidTransitionError`` -- action not allowed in the current payment
  status or approval state.
* ``InvalidTaxRateError`` -- tax rate outside the configured set.
* ``InvalidDocumentError`` -- duplicating a non-recurring record, or
  creating one without an amount.
"""

from __future__ import annotations

import calendar
from dataclasses import replace
from datetime import date, datetime, timedelta
from decimal import Decimal
from uuid import UUID

from billing_config.schema import BillingConfig
from billing_engines.calculator import validate_tax_rate
from billing_kernel.domain.values import HUNDRED, ZERO, as_utc, round_money
from billing_kernel.exceptions import InvalidDocumentError, InvalidTransitionError
from billing_kernel.logging_config import get_logger
from billing_modules.cost.models import (
    Approval,
    ApprovalState,
    AuditAction,
    AuditEntry,
    Budget,
    CostCategory,
    CostPayment,
    CostPaymentMethod,
    CostRecord,
    CostStatus,
    CostType,
    QuantityBasis,
    Recurrence,
    RecurrenceInterval,
    Supplier,
)
from billing_modules.cost.workflows import COST_WORKFLOW

logger = get_logger("modules.cost.engine")


def _add_months(day: date, months: int) -> date:
    """Same day ``months`` later, clamped to the end of shorter months."""
    index = day.month - 1 + months
    year, month = day.year + index // 12, index % 12 + 1
    return date(year, month, min(day.day, calendar.monthrange(year, month)[1]))


def advance(day: date, interval: RecurrenceInterval) -> date:
    if interval == RecurrenceInterval.DAILY:
        return day + timedelta(days=1)
    if interval == RecurrenceInterval.WEEKLY:
        return day + timedelta(weeks=1)
    if interval == RecurrenceInterval.MONTHLY:
        return _add_months(day, 1)
    if interval == RecurrenceInterval.QUARTERLY:
        return _add_months(day, 3)
    return _add_months(day, 12)


class CostEngine:
    """Approval and payment lifecycle for cost records."""

    def __init__(self, config: BillingConfig | None = None):
        self._config = config or BillingConfig()
        self._allowed_tax_rates = frozenset(self._config.money.allowed_tax_rates)

    @property
    def approval_threshold(self) -> Decimal:
        return self._config.cost.approval_threshold

    def create(
        self,
        *,
        cost_id: UUID,
        description: str,
        category: CostCategory,
        cost_type: CostType,
        incurred_on: date,
        at: datetime,
        created_by: UUID | None = None,
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
    ) -> CostRecord:
        """
        Build an Open cost record and decide whether it needs approval.

        Either ``net_amount`` or ``quantity_basis`` must be given; with a
        quantity basis the net amount is derived from it.
        """
        if net_amount is None and quantity_basis is None:
            raise InvalidDocumentError(
                "cost", "net_amount", "net amount or quantity basis is required"
            )
        record = self.recalculate(
            CostRecord(
                id=cost_id,
                description=description,
                category=category,
                cost_type=cost_type,
                incurred_on=incurred_on,
                approval=Approval(state=ApprovalState.PENDING, required=True),
                net_amount=ZERO if net_amount is None else net_amount,
                tax_rate=self._config.money.default_tax_rate if tax_rate is None else tax_rate,
                created_by=created_by,
                subcategory=subcategory,
                quantity_basis=quantity_basis,
                move_id=move_id,
                supplier=supplier,
                cost_center=cost_center,
                recurrence=recurrence,
                budget=budget,
                notes=notes,
                audit=(AuditEntry(AuditAction.CREATED, as_utc(at), created_by),),
            )
        )
        required = record.gross_amount > self.approval_threshold
        approval = (
            Approval(state=ApprovalState.PENDING, required=True)
            if required
            else Approval(
                state=ApprovalState.AUTO_APPROVED,
                required=False,
                decided_at=as_utc(at),
                comment="below approval threshold",
            )
        )
        logger.info(
            "cost_record_created",
            extra={
                "cost_id": str(cost_id),
                "gross_amount": str(record.gross_amount),
                "approval_required": required,
                "threshold": str(self.approval_threshold),
            },
        )
        return replace(record, approval=approval)

    def recalculate(self, record: CostRecord) -> CostRecord:
        """Derive net (from the quantity basis), tax and gross.  Idempotent."""
        rate = validate_tax_rate(record.tax_rate, self._allowed_tax_rates)
        net = record.quantity_basis.net if record.quantity_basis else record.net_amount
        tax = round_money(net * rate / HUNDRED)
        return replace(
            record,
            net_amount=net,
            tax_rate=rate,
            tax_amount=tax,
            gross_amount=round_money(net) + tax,
        )

    def _transition(
        self,
        record: CostRecord,
        target: CostStatus,
        action: str,
        audit_action: AuditAction,
        *,
        at: datetime,
        actor_id: UUID | None,
        comment: str | None,
        **changes,
    ) -> CostRecord:
        COST_WORKFLOW.require(
            record.status.value, action, document_id=record.id, to_state=target.value
        )
        logger.info(
            "cost_status_changed",
            extra={
                "cost_id": str(record.id),
                "number": record.number,
                "from_status": record.status.value,
                "to_status": target.value,
                "action": action,
            },
        )
        return replace(
            record,
            status=target,
            audit=record.audit + (AuditEntry(audit_action, as_utc(at), actor_id, comment),),
            **changes,
        )

    def _require_pending(self, record: CostRecord, action: str) -> None:
        if not record.approval_pending:
            reason = (
                "approval not required"
                if not record.approval.required
                else "approval already decided"
            )
            raise InvalidTransitionError(
                "cost", str(record.id), record.status.value, action, reason=reason
            )

    def approve(
        self,
        record: CostRecord,
        *,
        at: datetime,
        actor_id: UUID | None = None,
        comment: str | None = None,
    ) -> CostRecord:
        self._require_pending(record, "approve")
        return self._transition(
            record,
            CostStatus.APPROVED,
            "approve",
            AuditAction.APPROVED,
            at=at,
            actor_id=actor_id,
            comment=comment,
            approval=replace(
                record.approval,
                state=ApprovalState.APPROVED,
                decided_by=actor_id,
                decided_at=as_utc(at),
                comment=comment,
            ),
        )

    def reject(
        self,
        record: CostRecord,
        *,
        reason: str,
        at: datetime,
        actor_id: UUID | None = None,
    ) -> CostRecord:
        self._require_pending(record, "reject")
        return self._transition(
            record,
            CostStatus.REJECTED,
            "reject",
            AuditAction.REJECTED,
            at=at,
            actor_id=actor_id,
            comment=reason,
            approval=replace(
                record.approval,
                state=ApprovalState.REJECTED,
                decided_by=actor_id,
                decided_at=as_utc(at),
                rejection_reason=reason,
            ),
        )

    def mark_paid(
        self,
        record: CostRecord,
        *,
        paid_on: date,
        at: datetime,
        method: CostPaymentMethod = CostPaymentMethod.BANK_TRANSFER,
        reference: str | None = None,
        actor_id: UUID | None = None,
        comment: str | None = None,
    ) -> CostRecord:
        if record.approval_pending:
            raise InvalidTransitionError(
                "cost",
                str(record.id),
                record.status.value,
                "mark_paid",
                reason="approval pending",
            )
        return self._transition(
            record,
            CostStatus.PAID,
            "mark_paid",
            AuditAction.PAID,
            at=at,
            actor_id=actor_id,
            comment=comment,
            payment=CostPayment(paid_on, CostPaymentMethod(method), reference),
        )

    def cancel(
        self,
        record: CostRecord,
        *,
        reason: str,
        at: datetime,
        actor_id: UUID | None = None,
    ) -> CostRecord:
        return self._transition(
            record,
            CostStatus.CANCELLED,
            "cancel",
            AuditAction.CANCELLED,
            at=at,
            actor_id=actor_id,
            comment=reason,
        )

    def duplicate_recurring(
        self,
        record: CostRecord,
        *,
        new_id: UUID,
        at: datetime,
        actor_id: UUID | None = None,
    ) -> CostRecord:
        """
        Next occurrence of a recurring cost.

        The copy is incurred on the current ``next_due`` date and carries the
        schedule forward by one interval.  Number, payment, approval decision
        and audit history start fresh.
        """
        recurrence = record.recurrence
        if recurrence is None:
            raise InvalidDocumentError("cost", "recurrence", "cost record is not recurring")

        following = advance(recurrence.next_due, recurrence.interval)
        next_recurrence = (
            None
            if recurrence.end_date is not None and following > recurrence.end_date
            else replace(recurrence, next_due=following)
        )
        copy = self.create(
            cost_id=new_id,
            description=record.description,
            category=record.category,
            cost_type=record.cost_type,
            incurred_on=recurrence.next_due,
            at=at,
            created_by=actor_id,
            net_amount=record.net_amount,
            quantity_basis=record.quantity_basis,
            tax_rate=record.tax_rate,
            subcategory=record.subcategory,
            move_id=record.move_id,
            supplier=record.supplier,
            cost_center=record.cost_center,
            recurrence=next_recurrence,
            budget=record.budget,
            notes=record.notes,
        )
        logger.info(
            "cost_recurring_duplicated",
            extra={
                "source_id": str(record.id),
                "new_id": str(new_id),
                "incurred_on": recurrence.next_due.isoformat(),
                "next_due": following.isoformat() if next_recurrence else None,
            },
        )
        return copy
