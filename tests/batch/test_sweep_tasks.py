"""
Tests for the billing sweeps run through run_task.

Each sweep runs against both stores; the clock is moved to the as-of date
the way the sweep CLI pins it.
"""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from billing_batch.domain.types import BatchItemStatus, BatchRunStatus
from billing_batch.runner import run_task
from billing_batch.tasks import DunningRunTask, MarkOverdueTask, QuoteExpiryTask
from billing_modules.invoice.models import InvoiceStatus
from billing_modules.quote.models import QuoteStatus, SendChannel
from tests.factories import moving_job_lines


def _as_of(clock, year, month, day):
    as_of = datetime(year, month, day, 12, 0, tzinfo=timezone.utc)
    clock.set_time(as_of)
    return as_of


@pytest.fixture
def sent_invoices(invoice_service, customer_id):
    sent = []
    for _ in range(2):
        invoice = invoice_service.create(customer_id=customer_id, lines=moving_job_lines())
        sent.append(invoice_service.send(invoice.id, recipient="kunde@example.com"))
    return sent


class TestMarkOverdueTask:
    def test_marks_past_due(self, store, clock, config, invoice_service, sent_invoices):
        invoice_service.record_payment(sent_invoices[1].id, amount=Decimal("291.50"))
        as_of = _as_of(clock, 2024, 3, 16)

        run = run_task(MarkOverdueTask(clock, config), store, as_of)
        assert run.status == BatchRunStatus.COMPLETED
        assert run.succeeded == 1
        assert run.item_results[0].item_key == str(sent_invoices[0].id)
        assert invoice_service.get(sent_invoices[0].id).status == InvoiceStatus.OVERDUE

    def test_nothing_due(self, store, clock, config, sent_invoices):
        run = run_task(MarkOverdueTask(clock, config), store, _as_of(clock, 2024, 3, 15))
        assert run.total_items == 0


class TestDunningRunTask:
    def test_escalates_and_reports(self, store, clock, config, invoice_service, sent_invoices):
        as_of = _as_of(clock, 2024, 3, 16)
        run = run_task(DunningRunTask(clock, config), store, as_of)
        assert run.status == BatchRunStatus.COMPLETED
        assert run.succeeded == 2
        data = run.item_results[0].result_data
        assert data["level"] == 1
        assert data["fee"] == "5.00"
        assert data["due_date"] == "2024-03-23"
        for invoice in sent_invoices:
            assert invoice_service.get(invoice.id).status == InvoiceStatus.DUNNED

    def test_rerun_same_day_is_empty(self, store, clock, config, sent_invoices):
        as_of = _as_of(clock, 2024, 3, 16)
        task = DunningRunTask(clock, config)
        run_task(task, store, as_of)
        assert run_task(task, store, as_of).total_items == 0

    def test_max_level_skipped(self, store, clock, config, invoice_service, sent_invoices):
        for _ in range(3):
            invoice_service.raise_reminder(sent_invoices[0].id)
        as_of = _as_of(clock, 2024, 4, 30)
        run = run_task(DunningRunTask(clock, config), store, as_of)
        by_key = {r.item_key: r for r in run.item_results}
        skipped = by_key[str(sent_invoices[0].id)]
        assert skipped.status == BatchItemStatus.SKIPPED
        assert skipped.result_data["reason"] == "max_level_reached"
        assert by_key[str(sent_invoices[1].id)].status == BatchItemStatus.SUCCEEDED

    def test_actor_recorded(self, store, clock, config, invoice_service, sent_invoices, actor_id):
        as_of = _as_of(clock, 2024, 3, 16)
        run_task(DunningRunTask(clock, config), store, as_of, {"actor_id": str(actor_id)})
        reminder = invoice_service.get(sent_invoices[0].id).last_reminder
        assert reminder.raised_by == actor_id


class TestQuoteExpiryTask:
    def test_expires_elapsed_quotes(self, store, clock, config, quote_service, customer_id):
        sent = quote_service.create(customer_id=customer_id, lines=moving_job_lines())
        quote_service.send(sent.id, channel=SendChannel.EMAIL, recipient="x@example.com")
        draft = quote_service.create(customer_id=customer_id, lines=moving_job_lines())

        as_of = _as_of(clock, 2024, 4, 1)
        run = run_task(QuoteExpiryTask(clock, config), store, as_of)
        assert run.succeeded == 1
        assert run.item_results[0].result_data["status"] == "Expired"
        assert quote_service.get(sent.id).status == QuoteStatus.EXPIRED
        assert quote_service.get(draft.id).status == QuoteStatus.DRAFT

    def test_last_valid_day_not_expired(self, store, clock, config, quote_service, customer_id):
        quote = quote_service.create(customer_id=customer_id, lines=moving_job_lines())
        quote_service.send(quote.id, channel=SendChannel.EMAIL, recipient="x@example.com")
        run = run_task(QuoteExpiryTask(clock, config), store, _as_of(clock, 2024, 3, 31))
        assert run.total_items == 0
