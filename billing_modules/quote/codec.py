"""Persistence payload and wire rendering for quotes."""

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
from billing_modules.quote.models import (
    Dispatch,
    FollowUp,
    FollowUpKind,
    Quote,
    QuoteStatus,
    QuoteTerms,
    SendChannel,
)


class QuoteCodec:
    document_type = DocumentType.QUOTE

    def to_payload(self, quote: Quote) -> dict[str, Any]:
        return self._encode(quote, wire=False)

    def to_wire(self, quote: Quote) -> dict[str, Any]:
        data = self._encode(quote, wire=True)
        data["version"] = quote.version
        return data

    def _encode(self, quote: Quote, wire: bool) -> dict[str, Any]:
        return {
            "id": str(quote.id),
            "number": quote.number,
            "customer_id": str(quote.customer_id),
            "created_by": enc_uuid(quote.created_by),
            "move_id": enc_uuid(quote.move_id),
            "issue_date": enc_date(quote.issue_date, wire),
            "valid_until": enc_date(quote.valid_until, wire),
            "status": quote.status.value,
            "status_history": [encode_status_change(c) for c in quote.status_history],
            "lines": [encode_line(l, wire) for l in quote.lines],
            "optional_lines": [encode_line(l, wire) for l in quote.optional_lines],
            "discount_percent": enc_decimal(quote.discount_percent),
            "discount_amount": enc_money(quote.discount_amount, wire),
            "discount_reason": quote.discount_reason,
            "terms": {
                "payment_terms_days": quote.terms.payment_terms_days,
                "cash_discount_percent": enc_decimal(quote.terms.cash_discount_percent),
                "cash_discount_days": quote.terms.cash_discount_days,
                "deposit_percent": enc_decimal(quote.terms.deposit_percent),
                "remarks": quote.terms.remarks,
            },
            "totals": encode_totals(quote.totals, wire),
            "optional_net_total": enc_money(quote.optional_net_total, wire),
            "revision": quote.revision,
            "predecessor_id": enc_uuid(quote.predecessor_id),
            "dispatch": None
            if quote.dispatch is None
            else {
                "channel": quote.dispatch.channel.value,
                "recipient": quote.dispatch.recipient,
                "sent_at": enc_datetime(quote.dispatch.sent_at),
            },
            "follow_ups": [
                {
                    "kind": f.kind.value,
                    "contacted_at": enc_datetime(f.contacted_at),
                    "outcome": f.outcome,
                    "next_step": f.next_step,
                    "actor_id": enc_uuid(f.actor_id),
                }
                for f in quote.follow_ups
            ],
            "order_reference": quote.order_reference,
            "accepted_at": enc_datetime(quote.accepted_at),
            "rejection_reason": quote.rejection_reason,
            "rejected_at": enc_datetime(quote.rejected_at),
        }

    def from_payload(self, payload: dict[str, Any], *, version: int) -> Quote:
        terms = payload["terms"]
        dispatch = payload.get("dispatch")
        return Quote(
            id=dec_uuid(payload["id"]),
            number=payload.get("number"),
            customer_id=dec_uuid(payload["customer_id"]),
            created_by=dec_uuid(payload.get("created_by")),
            move_id=dec_uuid(payload.get("move_id")),
            issue_date=dec_date(payload["issue_date"]),
            valid_until=dec_date(payload["valid_until"]),
            status=QuoteStatus(payload["status"]),
            status_history=tuple(decode_status_change(c) for c in payload["status_history"]),
            lines=tuple(decode_line(l) for l in payload["lines"]),
            optional_lines=tuple(decode_line(l) for l in payload["optional_lines"]),
            discount_percent=dec_decimal(payload["discount_percent"]),
            discount_amount=dec_decimal(payload["discount_amount"]),
            discount_reason=payload.get("discount_reason"),
            terms=QuoteTerms(
                payment_terms_days=terms["payment_terms_days"],
                cash_discount_percent=dec_decimal(terms["cash_discount_percent"]),
                cash_discount_days=terms["cash_discount_days"],
                deposit_percent=dec_decimal(terms["deposit_percent"]),
                remarks=terms.get("remarks"),
            ),
            totals=decode_totals(payload["totals"]),
            optional_net_total=dec_decimal(payload["optional_net_total"]),
            revision=payload["revision"],
            predecessor_id=dec_uuid(payload.get("predecessor_id")),
            dispatch=None
            if dispatch is None
            else Dispatch(
                channel=SendChannel(dispatch["channel"]),
                recipient=dispatch["recipient"],
                sent_at=dec_datetime(dispatch["sent_at"]),
            ),
            follow_ups=tuple(
                FollowUp(
                    kind=FollowUpKind(f["kind"]),
                    contacted_at=dec_datetime(f["contacted_at"]),
                    outcome=f.get("outcome"),
                    next_step=f.get("next_step"),
                    actor_id=dec_uuid(f.get("actor_id")),
                )
                for f in payload["follow_ups"]
            ),
            order_reference=payload.get("order_reference"),
            accepted_at=dec_datetime(payload.get("accepted_at")),
            rejection_reason=payload.get("rejection_reason"),
            rejected_at=dec_datetime(payload.get("rejected_at")),
            version=version,
        )
