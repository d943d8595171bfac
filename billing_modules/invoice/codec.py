"""Persistence payload and wire rendering for invoices."""

from __future__ import annotations

from typing import Any

from billing_kernel.domain.values import DocumentType
from billing_modules._serialization import (
    dec_date,
    dec_datetime,
    dec_decimal,
    dec_uuid,
    decode_line,
    decode_status_change,
    decode_totals,
    enc_date,
    enc_datetime,
    enc_decimal,
    enc_money,
    enc_uuid,
    encode_line,
    encode_status_change,
    encode_totals,
)
from billing_modules.invoice.models import (
    Delivery,
    DeliveryChannel,
    Invoice,
    InvoiceKind,
    InvoiceStatus,
    Payment,
    PaymentMethod,
    Reminder,
    ServicePeriod,
)


class InvoiceCodec:
    document_type = DocumentType.INVOICE

    def to_payload(self, invoice: Invoice) -> dict[str, Any]:
        return self._encode(invoice, wire=False)

    def to_wire(self, invoice: Invoice) -> dict[str, Any]:
        data = self._encode(invoice, wire=True)
        data["version"] = invoice.version
        data["settlement"] = invoice.settlement.value
        data["reminder_level"] = invoice.reminder_level
        return data

    def _encode(self, invoice: Invoice, wire: bool) -> dict[str, Any]:
        period = invoice.service_period
        delivery = invoice.delivery
        return {
            "id": str(invoice.id),
            "number": invoice.number,
            "kind": invoice.kind.value,
            "customer_id": str(invoice.customer_id),
            "created_by": enc_uuid(invoice.created_by),
            "move_id": enc_uuid(invoice.move_id),
            "quote_id": enc_uuid(invoice.quote_id),
            "issue_date": enc_date(invoice.issue_date, wire),
            "service_period": None
            if period is None
            else {"start": enc_date(period.start, wire), "end": enc_date(period.end, wire)},
            "payment_terms_days": invoice.payment_terms_days,
            "due_date": enc_date(invoice.due_date, wire),
            "status": invoice.status.value,
            "status_history": [encode_status_change(c) for c in invoice.status_history],
            "lines": [encode_line(l, wire) for l in invoice.lines],
            "discount_percent": enc_decimal(invoice.discount_percent),
            "discount_amount": enc_money(invoice.discount_amount, wire),
            "totals": encode_totals(invoice.totals, wire),
            "payments": [
                {
                    "amount": enc_money(p.amount, wire),
                    "paid_on": enc_date(p.paid_on, wire),
                    "method": p.method.value,
                    "reference": p.reference,
                    "note": p.note,
                    "recorded_by": enc_uuid(p.recorded_by),
                }
                for p in invoice.payments
            ],
            "reminders": [
                {
                    "level": r.level,
                    "raised_on": enc_date(r.raised_on, wire),
                    "due_date": enc_date(r.due_date, wire),
                    "fee": enc_money(r.fee, wire),
                    "note": r.note,
                    "raised_by": enc_uuid(r.raised_by),
                }
                for r in invoice.reminders
            ],
            "paid_amount": enc_money(invoice.paid_amount, wire),
            "outstanding_amount": enc_money(invoice.outstanding_amount, wire),
            "delivery": None
            if delivery is None
            else {
                "channel": delivery.channel.value,
                "recipient": delivery.recipient,
                "sent_at": enc_datetime(delivery.sent_at),
            },
            "notes": invoice.notes,
            "cancelled_at": enc_datetime(invoice.cancelled_at),
        }

    def from_payload(self, payload: dict[str, Any], *, version: int) -> Invoice:
        period = payload.get("service_period")
        delivery = payload.get("delivery")
        return Invoice(
            id=dec_uuid(payload["id"]),
            number=payload.get("number"),
            kind=InvoiceKind(payload["kind"]),
            customer_id=dec_uuid(payload["customer_id"]),
            created_by=dec_uuid(payload.get("created_by")),
            move_id=dec_uuid(payload.get("move_id")),
            quote_id=dec_uuid(payload.get("quote_id")),
            issue_date=dec_date(payload["issue_date"]),
            service_period=None
            if period is None
            else ServicePeriod(dec_date(period["start"]), dec_date(period["end"])),
            payment_terms_days=payload["payment_terms_days"],
            due_date=dec_date(payload.get("due_date")),
            status=InvoiceStatus(payload["status"]),
            status_history=tuple(decode_status_change(c) for c in payload["status_history"]),
            lines=tuple(decode_line(l) for l in payload["lines"]),
            discount_percent=dec_decimal(payload["discount_percent"]),
            discount_amount=dec_decimal(payload["discount_amount"]),
            totals=decode_totals(payload["totals"]),
            payments=tuple(
                Payment(
                    amount=dec_decimal(p["amount"]),
                    paid_on=dec_date(p["paid_on"]),
                    method=PaymentMethod(p["method"]),
                    reference=p.get("reference"),
                    note=p.get("note"),
                    recorded_by=dec_uuid(p.get("recorded_by")),
                )
                for p in payload["payments"]
            ),
            reminders=tuple(
                Reminder(
                    level=r["level"],
                    raised_on=dec_date(r["raised_on"]),
                    due_date=dec_date(r["due_date"]),
                    fee=dec_decimal(r["fee"]),
                    note=r.get("note"),
                    raised_by=dec_uuid(r.get("raised_by")),
                )
                for r in payload["reminders"]
            ),
            paid_amount=dec_decimal(payload["paid_amount"]),
            outstanding_amount=dec_decimal(payload["outstanding_amount"]),
            delivery=None
            if delivery is None
            else Delivery(
                channel=DeliveryChannel(delivery["channel"]),
                recipient=delivery["recipient"],
                sent_at=dec_datetime(delivery["sent_at"]),
            ),
            notes=payload.get("notes", ""),
            cancelled_at=dec_datetime(payload.get("cancelled_at")),
            version=version,
        )
