"""Persistence payload and wire rendering for cost records."""

from __future__ import annotations

from typing import Any

from billing_kernel.domain.values import DocumentType
from billing_modules._serialization import (
    dec_date,
    dec_datetime,
    dec_decimal,
    dec_uuid,
    enc_date,
    enc_datetime,
    enc_decimal,
    enc_money,
    enc_uuid,
)
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
    QuantityUnit,
    Recurrence,
    RecurrenceInterval,
    Supplier,
)


class CostCodec:
    document_type = DocumentType.COST

    def to_payload(self, record: CostRecord) -> dict[str, Any]:
        return self._encode(record, wire=False)

    def to_wire(self, record: CostRecord) -> dict[str, Any]:
        data = self._encode(record, wire=True)
        data["version"] = record.version
        data["approval_pending"] = record.approval_pending
        return data

    def _encode(self, record: CostRecord, wire: bool) -> dict[str, Any]:
        basis = record.quantity_basis
        supplier = record.supplier
        approval = record.approval
        payment = record.payment
        recurrence = record.recurrence
        budget = record.budget
        return {
            "id": str(record.id),
            "number": record.number,
            "description": record.description,
            "category": record.category.value,
            "subcategory": record.subcategory,
            "cost_type": record.cost_type.value,
            "incurred_on": enc_date(record.incurred_on, wire),
            "created_by": enc_uuid(record.created_by),
            "move_id": enc_uuid(record.move_id),
            "cost_center": record.cost_center,
            "notes": record.notes,
            "status": record.status.value,
            "net_amount": enc_money(record.net_amount, wire),
            "tax_rate": enc_decimal(record.tax_rate),
            "tax_amount": enc_money(record.tax_amount, wire),
            "gross_amount": enc_money(record.gross_amount, wire),
            "quantity_basis": None
            if basis is None
            else {
                "quantity": enc_decimal(basis.quantity),
                "unit": basis.unit.value,
                "unit_price": enc_money(basis.unit_price, wire),
            },
            "supplier": None
            if supplier is None
            else {
                "name": supplier.name,
                "supplier_number": supplier.supplier_number,
                "invoice_reference": supplier.invoice_reference,
                "order_reference": supplier.order_reference,
            },
            "approval": {
                "state": approval.state.value,
                "required": approval.required,
                "decided_by": enc_uuid(approval.decided_by),
                "decided_at": enc_datetime(approval.decided_at),
                "comment": approval.comment,
                "rejection_reason": approval.rejection_reason,
            },
            "payment": None
            if payment is None
            else {
                "paid_on": enc_date(payment.paid_on, wire),
                "method": payment.method.value,
                "reference": payment.reference,
            },
            "recurrence": None
            if recurrence is None
            else {
                "interval": recurrence.interval.value,
                "next_due": enc_date(recurrence.next_due, wire),
                "end_date": enc_date(recurrence.end_date, wire),
            },
            "budget": None
            if budget is None
            else {
                "item": budget.item,
                "amount": enc_money(budget.amount, wire),
                "period_start": enc_date(budget.period_start, wire),
                "period_end": enc_date(budget.period_end, wire),
            },
            "audit": [
                {
                    "action": e.action.value,
                    "at": enc_datetime(e.at),
                    "actor_id": enc_uuid(e.actor_id),
                    "comment": e.comment,
                }
                for e in record.audit
            ],
        }

    def from_payload(self, payload: dict[str, Any], *, version: int) -> CostRecord:
        basis = payload.get("quantity_basis")
        supplier = payload.get("supplier")
        approval = payload["approval"]
        payment = payload.get("payment")
        recurrence = payload.get("recurrence")
        budget = payload.get("budget")
        return CostRecord(
            id=dec_uuid(payload["id"]),
            number=payload.get("number"),
            description=payload["description"],
            category=CostCategory(payload["category"]),
            subcategory=payload.get("subcategory"),
            cost_type=CostType(payload["cost_type"]),
            incurred_on=dec_date(payload["incurred_on"]),
            created_by=dec_uuid(payload.get("created_by")),
            move_id=dec_uuid(payload.get("move_id")),
            cost_center=payload.get("cost_center"),
            notes=payload.get("notes"),
            status=CostStatus(payload["status"]),
            net_amount=dec_decimal(payload["net_amount"]),
            tax_rate=dec_decimal(payload["tax_rate"]),
            tax_amount=dec_decimal(payload["tax_amount"]),
            gross_amount=dec_decimal(payload["gross_amount"]),
            quantity_basis=None
            if basis is None
            else QuantityBasis(
                quantity=dec_decimal(basis["quantity"]),
                unit=QuantityUnit(basis["unit"]),
                unit_price=dec_decimal(basis["unit_price"]),
            ),
            supplier=None if supplier is None else Supplier(**supplier),
            approval=Approval(
                state=ApprovalState(approval["state"]),
                required=approval["required"],
                decided_by=dec_uuid(approval.get("decided_by")),
                decided_at=dec_datetime(approval.get("decided_at")),
                comment=approval.get("comment"),
                rejection_reason=approval.get("rejection_reason"),
            ),
            payment=None
            if payment is None
            else CostPayment(
                paid_on=dec_date(payment["paid_on"]),
                method=CostPaymentMethod(payment["method"]),
                reference=payment.get("reference"),
            ),
            recurrence=None
            if recurrence is None
            else Recurrence(
                interval=RecurrenceInterval(recurrence["interval"]),
                next_due=dec_date(recurrence["next_due"]),
                end_date=dec_date(recurrence.get("end_date")),
            ),
            budget=None
            if budget is None
            else Budget(
                amount=dec_decimal(budget["amount"]),
                period_start=dec_date(budget["period_start"]),
                period_end=dec_date(budget["period_end"]),
                item=budget.get("item"),
            ),
            audit=tuple(
                AuditEntry(
                    action=AuditAction(e["action"]),
                    at=dec_datetime(e["at"]),
                    actor_id=dec_uuid(e.get("actor_id")),
                    comment=e.get("comment"),
                )
                for e in payload["audit"]
            ),
            version=version,
        )
