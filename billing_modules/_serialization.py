"""
Payload and wire encoding helpers shared by the document codecs.

Two renderings exist for every document:

* the persistence payload (``wire=False``): lossless.  Decimals keep their
  full precision, dates are ISO dates.
* the wire form (``wire=True``): money as strings with exactly two decimals,
  dates and timestamps as ISO-8601 with time and UTC offset.
"""

from __future__ import annotations

from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Any
from uuid import UUID

from billing_engines.calculator import DocumentTotals, TaxGroup
from billing_kernel.domain.line_items import LineCategory, LineItem, Unit
from billing_kernel.domain.values import StatusChange, as_utc, format_money


def enc_decimal(value: Decimal) -> str:
    return format(value, "f")


def dec_decimal(value: Any) -> Decimal:
    return Decimal(str(value))


def enc_money(value: Decimal, wire: bool) -> str:
    return format_money(value) if wire else enc_decimal(value)


def enc_date(value: date | None, wire: bool) -> str | None:
    if value is None:
        return None
    if wire:
        return datetime.combine(value, time(), tzinfo=timezone.utc).isoformat()
    return value.isoformat()


def dec_date(value: str | None) -> date | None:
    if value is None:
        return None
    return date.fromisoformat(value[:10])


def enc_datetime(value: datetime | None) -> str | None:
    if value is None:
        return None
    return as_utc(value).isoformat()


def dec_datetime(value: str | None) -> datetime | None:
    if value is None:
        return None
    return as_utc(datetime.fromisoformat(value))


def enc_uuid(value: UUID | None) -> str | None:
    return str(value) if value is not None else None


def dec_uuid(value: str | None) -> UUID | None:
    return UUID(value) if value is not None else None


def encode_line(line: LineItem, wire: bool) -> dict[str, Any]:
    return {
        "position": line.position,
        "description": line.description,
        "category": line.category.value,
        "quantity": enc_decimal(line.quantity),
        "unit": line.unit.value,
        "unit_price": enc_money(line.unit_price, wire),
        "discount_percent": enc_decimal(line.discount_percent),
        "discount_amount": enc_money(line.discount_amount, wire),
        "tax_rate": enc_decimal(line.tax_rate),
        "notes": line.notes,
        "net_before_discount": enc_money(line.net_before_discount, wire),
        "discount_total": enc_money(line.discount_total, wire),
        "net_total": enc_money(line.net_total, wire),
        "gross_total": enc_money(line.gross_total, wire),
    }


def decode_line(data: dict[str, Any]) -> LineItem:
    return LineItem(
        description=data["description"],
        quantity=dec_decimal(data["quantity"]),
        unit_price=dec_decimal(data["unit_price"]),
        tax_rate=dec_decimal(data["tax_rate"]),
        unit=Unit(data["unit"]),
        category=LineCategory(data["category"]),
        discount_percent=dec_decimal(data["discount_percent"]),
        discount_amount=dec_decimal(data["discount_amount"]),
        notes=data.get("notes"),
        position=data["position"],
        net_before_discount=dec_decimal(data["net_before_discount"]),
        discount_total=dec_decimal(data["discount_total"]),
        net_total=dec_decimal(data["net_total"]),
        gross_total=dec_decimal(data["gross_total"]),
    )


def encode_status_change(change: StatusChange) -> dict[str, Any]:
    return {
        "status": change.status,
        "changed_at": enc_datetime(change.changed_at),
        "actor_id": enc_uuid(change.actor_id),
        "reason": change.reason,
    }


def decode_status_change(data: dict[str, Any]) -> StatusChange:
    return StatusChange(
        status=data["status"],
        changed_at=dec_datetime(data["changed_at"]),
        actor_id=dec_uuid(data.get("actor_id")),
        reason=data.get("reason"),
    )


def encode_totals(totals: DocumentTotals, wire: bool) -> dict[str, Any]:
    return {
        "net_total": enc_money(totals.net_total, wire),
        "discount_amount": enc_money(totals.discount_amount, wire),
        "discount_percent": enc_decimal(totals.discount_percent),
        "discounted_net": enc_money(totals.discounted_net, wire),
        "tax_groups": [
            {
                "rate": enc_decimal(g.rate),
                "net": enc_money(g.net, wire),
                "tax": enc_money(g.tax, wire),
            }
            for g in totals.tax_groups
        ],
        "tax_total": enc_money(totals.tax_total, wire),
        "gross_total": enc_money(totals.gross_total, wire),
        "discount_gross": enc_money(totals.discount_gross, wire),
    }


def decode_totals(data: dict[str, Any]) -> DocumentTotals:
    return DocumentTotals(
        net_total=dec_decimal(data["net_total"]),
        discount_amount=dec_decimal(data["discount_amount"]),
        discount_percent=dec_decimal(data["discount_percent"]),
        discounted_net=dec_decimal(data["discounted_net"]),
        tax_groups=tuple(
            TaxGroup(
                rate=dec_decimal(g["rate"]),
                net=dec_decimal(g["net"]),
                tax=dec_decimal(g["tax"]),
            )
            for g in data["tax_groups"]
        ),
        tax_total=dec_decimal(data["tax_total"]),
        gross_total=dec_decimal(data["gross_total"]),
        discount_gross=dec_decimal(data.get("discount_gross", "0")),
    )
