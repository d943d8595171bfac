"""
Tests for the period summary: revenue, quote conversion, costs and result.
"""

from datetime import date
from decimal import Decimal

import pytest

from billing_modules.cost.models import CostCategory, CostType
from billing_modules.quote.models import SendChannel
from billing_modules.reporting.service import ReportingService
from billing_modules.reporting.summaries import summarize_quotes
from tests.factories import moving_job_lines, transport_line

MARCH = (date(2024, 3, 1), date(2024, 3, 31))


@pytest.fixture
def reporting(store, clock):
    return ReportingService(store, clock=clock)


def test_empty_period(reporting):
    summary = reporting.period_summary(*MARCH)
    assert summary.revenue.invoice_count == 0
    assert summary.quotes.total == 0
    assert summary.quotes.conversion_rate == Decimal("0")
    assert summary.costs.by_category == ()
    assert summary.result == Decimal("0")


def test_end_before_start(reporting):
    with pytest.raises(ValueError):
        reporting.period_summary(date(2024, 3, 31), date(2024, 3, 1))


def test_revenue_excludes_cancelled(reporting, invoice_service, customer_id, clock):
    paid = invoice_service.create(customer_id=customer_id, lines=moving_job_lines())
    invoice_service.send(paid.id)
    invoice_service.record_payment(paid.id, amount=Decimal("150.00"))

    unpaid = invoice_service.create(customer_id=customer_id, lines=[transport_line()])
    invoice_service.send(unpaid.id)

    cancelled = invoice_service.create(customer_id=customer_id, lines=moving_job_lines())
    invoice_service.cancel(cancelled.id, reason="duplicate")

    invoice_service.create(
        customer_id=customer_id, lines=moving_job_lines(), issue_date=date(2024, 4, 2)
    )

    clock.advance(days=20)
    revenue = reporting.period_summary(*MARCH).revenue
    assert revenue.invoice_count == 2
    assert revenue.net_total == Decimal("450.00")
    assert revenue.tax_total == Decimal("79.50")
    assert revenue.gross_total == Decimal("529.50")
    assert revenue.paid_total == Decimal("150.00")
    assert revenue.outstanding_total == Decimal("379.50")
    assert revenue.overdue_count == 2


def test_quote_conversion(reporting, quote_service, customer_id):
    ids = [
        quote_service.create(customer_id=customer_id, lines=moving_job_lines()).id
        for _ in range(4)
    ]
    for quote_id in ids[:3]:
        quote_service.send(quote_id, channel=SendChannel.EMAIL, recipient="x@example.com")
    quote_service.accept(ids[0])
    quote_service.reject(ids[1], reason="price")

    quotes = reporting.period_summary(*MARCH).quotes
    assert quotes.total == 4
    assert quotes.accepted == 1
    assert quotes.rejected == 1
    assert quotes.open == 2
    assert quotes.conversion_rate == Decimal("25.00")
    assert quotes.total_value == Decimal("1166.00")
    assert quotes.converted_value == Decimal("291.50")
    assert quotes.average_value == Decimal("291.50")


def test_costs_by_category_and_result(reporting, cost_service, invoice_service, customer_id):
    invoice_service.create(customer_id=customer_id, lines=moving_job_lines())
    cost_service.create(
        description="Diesel",
        category=CostCategory.FUEL,
        cost_type=CostType.VARIABLE,
        net_amount=Decimal("80.00"),
    )
    cost_service.create(
        description="Helpers",
        category=CostCategory.PERSONNEL,
        cost_type=CostType.VARIABLE,
        net_amount=Decimal("600.00"),
        tax_rate=Decimal("0"),
    )
    rejected = cost_service.create(
        description="Second truck",
        category=CostCategory.VEHICLES,
        cost_type=CostType.ONE_OFF,
        net_amount=Decimal("900.00"),
    )
    cost_service.reject(rejected.id, reason="not needed")

    summary = reporting.period_summary(*MARCH)
    costs = summary.costs
    assert [t.category for t in costs.by_category] == [CostCategory.PERSONNEL, CostCategory.FUEL]
    assert costs.net_total == Decimal("680.00")
    assert costs.gross_total == Decimal("695.20")
    assert costs.pending_approval_count == 1
    assert summary.result == Decimal("-430.00")
    assert summary.generated_at == "2024-03-01T09:00:00+00:00"


def test_summarize_quotes_without_quotes():
    assert summarize_quotes([]).total == 0
