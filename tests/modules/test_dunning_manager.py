"""
Tests for DunningManager runs over stored invoices.
"""

from dataclasses import replace
from datetime import date
from decimal import Decimal

import pytest

from billing_modules.dunning.manager import (
    SKIP_CADENCE,
    SKIP_MAX_LEVEL,
    SKIP_STATE_CHANGED,
    DunningManager,
    Escalation,
    SkippedInvoice,
)
from billing_modules.invoice.models import InvoiceStatus
from tests.factories import moving_job_lines


@pytest.fixture
def manager(store, invoice_service, clock):
    return DunningManager(store, invoices=invoice_service, clock=clock)


@pytest.fixture
def sent_invoice(invoice_service, customer_id):
    invoice = invoice_service.create(customer_id=customer_id, lines=moving_job_lines())
    return invoice_service.send(invoice.id, recipient="kunde@example.com")


class TestCandidates:
    def test_only_past_due(self, manager, sent_invoice):
        assert manager.candidates(date(2024, 3, 15)) == ()
        assert [i.id for i in manager.candidates(date(2024, 3, 16))] == [sent_invoice.id]

    def test_drafts_and_paid_excluded(self, manager, invoice_service, customer_id, sent_invoice):
        invoice_service.create(customer_id=customer_id, lines=moving_job_lines())
        invoice_service.record_payment(sent_invoice.id, amount=Decimal("291.50"))
        assert manager.candidates(date(2024, 6, 1)) == ()


class TestRun:
    def test_escalates_one_level(self, manager, invoice_service, sent_invoice):
        result = manager.run(date(2024, 3, 16))
        assert result.escalated_count == 1
        escalation = result.escalated[0]
        assert escalation.invoice_id == sent_invoice.id
        assert escalation.number == sent_invoice.number
        assert escalation.level == 1
        assert escalation.fee == Decimal("5.00")
        assert escalation.due_date == date(2024, 3, 23)

        stored = invoice_service.get(sent_invoice.id)
        assert stored.status == InvoiceStatus.DUNNED
        assert stored.reminder_level == 1

    def test_rerun_same_day_does_nothing(self, manager, sent_invoice):
        manager.run(date(2024, 3, 16))
        again = manager.run(date(2024, 3, 16))
        assert again.candidate_count == 0

    def test_full_escalation_then_max_level(self, manager, invoice_service, sent_invoice):
        for cutoff in (date(2024, 3, 16), date(2024, 3, 24), date(2024, 4, 1)):
            assert manager.run(cutoff).escalated_count == 1
        assert invoice_service.get(sent_invoice.id).reminder_level == 3

        result = manager.run(date(2024, 4, 30))
        assert result.escalated_count == 0
        assert [s.reason for s in result.skipped] == [SKIP_MAX_LEVEL]

    def test_run_defaults_to_clock_today(self, manager, clock, sent_invoice):
        clock.advance(days=20)
        result = manager.run()
        assert result.cutoff == date(2024, 3, 21)
        assert result.escalated_count == 1

    def test_run_logs_summary(self, manager, sent_invoice, captured_logs):
        manager.run(date(2024, 3, 16))
        completed = [r for r in captured_logs() if r["message"] == "dunning_run_completed"]
        assert completed[0]["escalated_count"] == 1
        assert completed[0]["conflict_count"] == 0


class TestEscalate:
    def test_within_cadence_skipped(self, manager, invoice_service, sent_invoice):
        dunned = invoice_service.raise_reminder(sent_invoice.id, as_of=date(2024, 3, 16))
        outcome = manager.escalate(replace(dunned, due_date=date(2024, 3, 1)), date(2024, 3, 20))
        assert isinstance(outcome, SkippedInvoice)
        assert outcome.reason == SKIP_CADENCE

    def test_paid_since_selection_is_skipped(self, manager, invoice_service, sent_invoice):
        stale = sent_invoice
        invoice_service.record_payment(sent_invoice.id, amount=Decimal("291.50"))
        outcome = manager.escalate(stale, date(2024, 3, 16))
        assert isinstance(outcome, SkippedInvoice)
        assert outcome.reason == SKIP_STATE_CHANGED

    def test_escalation_returned(self, manager, sent_invoice, actor_id):
        outcome = manager.escalate(sent_invoice, date(2024, 3, 16), actor_id=actor_id)
        assert isinstance(outcome, Escalation)
        assert outcome.level == 1
