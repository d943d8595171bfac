"""
Tests for the document codecs.

The persistence payload must survive a JSON round trip unchanged; the wire
form renders money with two decimals and dates as UTC timestamps.
"""

import json
from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from billing_modules.cost.codec import CostCodec
from billing_modules.cost.engine import CostEngine
from billing_modules.cost.models import (
    Budget,
    CostCategory,
    CostType,
    QuantityBasis,
    QuantityUnit,
    Recurrence,
    RecurrenceInterval,
    Supplier,
)
from billing_modules.invoice.codec import InvoiceCodec
from billing_modules.invoice.engine import InvoiceEngine
from billing_modules.invoice.models import DeliveryChannel, ServicePeriod
from billing_modules.quote.codec import QuoteCodec
from billing_modules.quote.engine import QuoteEngine
from billing_modules.quote.models import FollowUpKind, SendChannel
from tests.factories import ISSUE_DATE, moving_job_lines, packing_line, transport_line

AT = datetime(2024, 3, 1, 10, 0, tzinfo=timezone.utc)


def _through_json(payload):
    return json.loads(json.dumps(payload))


@pytest.fixture
def invoice(config, customer_id, actor_id):
    engine = InvoiceEngine(config)
    invoice = engine.create(
        invoice_id=uuid4(),
        customer_id=customer_id,
        issue_date=ISSUE_DATE,
        lines=[transport_line(discount_percent=Decimal("10")), packing_line()],
        at=AT,
        created_by=actor_id,
        service_period=ServicePeriod(date(2024, 2, 27), date(2024, 2, 28)),
        discount_amount=Decimal("5"),
    )
    invoice = engine.send(invoice, channel=DeliveryChannel.POST, recipient="Hauptstr. 1", at=AT)
    invoice = engine.record_payment(invoice, amount=Decimal("100"), paid_on=date(2024, 3, 4))
    return engine.raise_reminder(invoice, as_of=date(2024, 3, 20), actor_id=actor_id)


@pytest.fixture
def quote(config, customer_id):
    engine = QuoteEngine(config)
    quote = engine.create(
        quote_id=uuid4(),
        customer_id=customer_id,
        issue_date=ISSUE_DATE,
        lines=moving_job_lines(),
        optional_lines=[packing_line(description="Extra boxes")],
        at=AT,
    )
    quote = engine.send(quote, channel=SendChannel.EMAIL, recipient="kunde@example.com", at=AT)
    return engine.follow_up(quote, kind=FollowUpKind.PHONE, at=AT, outcome="interested")


@pytest.fixture
def cost(config, actor_id):
    engine = CostEngine(config)
    record = engine.create(
        cost_id=uuid4(),
        description="Helper hours",
        category=CostCategory.PERSONNEL,
        cost_type=CostType.VARIABLE,
        incurred_on=date(2024, 3, 1),
        at=AT,
        quantity_basis=QuantityBasis(Decimal("12.5"), QuantityUnit.HOURS, Decimal("48")),
        subcategory="wages",
        supplier=Supplier("Umzugshelfer GmbH", invoice_reference="UH-991"),
        recurrence=Recurrence(RecurrenceInterval.WEEKLY, next_due=date(2024, 3, 8)),
        budget=Budget(
            Decimal("2500"), date(2024, 1, 1), date(2024, 3, 31), item="Q1 helpers"
        ),
    )
    return engine.approve(record, at=AT, actor_id=actor_id, comment="ok")


class TestPersistencePayload:
    def test_invoice_round_trip(self, invoice):
        codec = InvoiceCodec()
        restored = codec.from_payload(_through_json(codec.to_payload(invoice)), version=0)
        assert restored == invoice

    def test_quote_round_trip(self, quote):
        codec = QuoteCodec()
        restored = codec.from_payload(_through_json(codec.to_payload(quote)), version=0)
        assert restored == quote

    def test_cost_round_trip(self, cost):
        codec = CostCodec()
        restored = codec.from_payload(_through_json(codec.to_payload(cost)), version=0)
        assert restored == cost

    def test_cost_payload_without_budget_key(self, cost):
        codec = CostCodec()
        payload = _through_json(codec.to_payload(cost))
        del payload["budget"]
        assert codec.from_payload(payload, version=0).budget is None

    def test_version_comes_from_caller(self, invoice):
        codec = InvoiceCodec()
        assert codec.from_payload(codec.to_payload(invoice), version=7).version == 7

    def test_payload_keeps_full_precision(self, config, customer_id):
        engine = InvoiceEngine(config)
        invoice = engine.create(
            invoice_id=uuid4(),
            customer_id=customer_id,
            issue_date=ISSUE_DATE,
            lines=[transport_line(quantity=Decimal("3"), unit_price=Decimal("33.333"))],
            at=AT,
        )
        payload = InvoiceCodec().to_payload(invoice)
        assert payload["lines"][0]["net_total"] == "99.999"
        assert payload["issue_date"] == "2024-03-01"


class TestWireForm:
    def test_invoice_money_has_two_decimals(self, invoice):
        wire = InvoiceCodec().to_wire(invoice)
        assert wire["totals"]["gross_total"] == format(invoice.gross_total, "f")
        assert wire["payments"][0]["amount"] == "100.00"
        assert wire["reminders"][0]["fee"] == "5.00"
        for key in ("paid_amount", "outstanding_amount"):
            assert len(wire[key].split(".")[1]) == 2

    def test_invoice_dates_are_utc_timestamps(self, invoice):
        wire = InvoiceCodec().to_wire(invoice)
        assert wire["issue_date"] == "2024-03-01T00:00:00+00:00"
        assert wire["service_period"]["start"] == "2024-02-27T00:00:00+00:00"
        assert wire["delivery"]["sent_at"] == "2024-03-01T10:00:00+00:00"

    def test_invoice_derived_fields(self, invoice):
        wire = InvoiceCodec().to_wire(invoice)
        assert wire["status"] == "Dunned"
        assert wire["reminder_level"] == 1
        assert wire["settlement"] == "partial"
        assert wire["version"] == 0

    def test_quote_wire(self, quote):
        wire = QuoteCodec().to_wire(quote)
        assert wire["totals"]["gross_total"] == "291.50"
        assert wire["valid_until"] == "2024-03-31T00:00:00+00:00"
        assert wire["status"] == "FollowUp"

    def test_cost_wire(self, cost):
        wire = CostCodec().to_wire(cost)
        assert wire["gross_amount"] == "714.00"
        assert wire["approval_pending"] is False
        assert wire["budget"] == {
            "item": "Q1 helpers",
            "amount": "2500.00",
            "period_start": "2024-01-01T00:00:00+00:00",
            "period_end": "2024-03-31T00:00:00+00:00",
        }
