"""
Tests for CostEngine: amounts, threshold approval, payment lifecycle and
recurring duplication.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from billing_kernel.exceptions import (
    InvalidAmountError,
    InvalidDocumentError,
    InvalidTaxRateError,
    InvalidTransitionError,
)
from billing_modules.cost.engine import CostEngine, advance
from billing_modules.cost.models import (
    ApprovalState,
    AuditAction,
    Budget,
    CostCategory,
    CostStatus,
    CostType,
    QuantityBasis,
    QuantityUnit,
    Recurrence,
    RecurrenceInterval,
)

AT = datetime(2024, 3, 1, 10, 0, tzinfo=timezone.utc)


@pytest.fixture
def engine(config):
    return CostEngine(config)


def _create(engine, **overrides):
    values = dict(
        cost_id=uuid4(),
        description="Diesel for truck B-MV 100",
        category=CostCategory.FUEL,
        cost_type=CostType.VARIABLE,
        incurred_on=date(2024, 3, 1),
        at=AT,
        net_amount=Decimal("100.00"),
    )
    values.update(overrides)
    return engine.create(**values)


class TestAmounts:
    def test_gross_from_net(self, engine):
        record = _create(engine)
        assert record.tax_amount == Decimal("19.00")
        assert record.gross_amount == Decimal("119.00")
        assert record.status == CostStatus.OPEN

    def test_quantity_basis_sets_net(self, engine):
        basis = QuantityBasis(Decimal("8"), QuantityUnit.HOURS, Decimal("22.50"))
        record = _create(engine, net_amount=None, quantity_basis=basis, tax_rate=Decimal("0"))
        assert record.net_amount == Decimal("180.00")
        assert record.gross_amount == Decimal("180.00")

    def test_amount_required(self, engine):
        with pytest.raises(InvalidDocumentError):
            _create(engine, net_amount=None)

    def test_negative_amount_rejected(self, engine):
        with pytest.raises(InvalidAmountError):
            _create(engine, net_amount=Decimal("-1"))

    def test_unconfigured_rate_rejected(self, engine):
        with pytest.raises(InvalidTaxRateError):
            _create(engine, tax_rate=Decimal("16"))

    def test_subcategory_must_match_category(self, engine):
        assert _create(engine, subcategory="diesel").subcategory == "diesel"
        with pytest.raises(InvalidDocumentError):
            _create(engine, subcategory="boxes")

    def test_recalculate_is_idempotent(self, engine):
        record = _create(engine)
        assert engine.recalculate(record) == record


class TestApprovalThreshold:
    def test_at_threshold_is_auto_approved(self, engine):
        record = _create(engine, net_amount=Decimal("420.17"))
        assert record.gross_amount == Decimal("500.00")
        assert record.approval.state == ApprovalState.AUTO_APPROVED
        assert not record.approval.required

    def test_above_threshold_needs_approval(self, engine):
        record = _create(engine, net_amount=Decimal("420.18"))
        assert record.gross_amount == Decimal("500.01")
        assert record.approval_pending
        assert record.approval.required

    def test_approve(self, engine, actor_id):
        record = _create(engine, net_amount=Decimal("1000"))
        approved = engine.approve(record, at=AT, actor_id=actor_id, comment="ok")
        assert approved.status == CostStatus.APPROVED
        assert approved.approval.state == ApprovalState.APPROVED
        assert approved.approval.decided_by == actor_id
        assert [a.action for a in approved.audit] == [AuditAction.CREATED, AuditAction.APPROVED]

    def test_reject(self, engine):
        record = _create(engine, net_amount=Decimal("1000"))
        rejected = engine.reject(record, reason="not budgeted", at=AT)
        assert rejected.status == CostStatus.REJECTED
        assert rejected.approval.rejection_reason == "not budgeted"
        with pytest.raises(InvalidTransitionError):
            engine.mark_paid(rejected, paid_on=date(2024, 3, 5), at=AT)

    def test_auto_approved_cannot_be_approved(self, engine):
        record = _create(engine)
        with pytest.raises(InvalidTransitionError) as exc_info:
            engine.approve(record, at=AT)
        assert exc_info.value.reason == "approval not required"

    def test_second_decision_rejected(self, engine):
        approved = engine.approve(_create(engine, net_amount=Decimal("1000")), at=AT)
        with pytest.raises(InvalidTransitionError):
            engine.reject(approved, reason="changed mind", at=AT)


class TestPayment:
    def test_auto_approved_paid_directly(self, engine):
        paid = engine.mark_paid(_create(engine), paid_on=date(2024, 3, 5), at=AT, reference="TX-1")
        assert paid.status == CostStatus.PAID
        assert paid.payment.paid_on == date(2024, 3, 5)
        assert paid.payment.reference == "TX-1"

    def test_pending_cannot_be_paid(self, engine):
        record = _create(engine, net_amount=Decimal("1000"))
        with pytest.raises(InvalidTransitionError) as exc_info:
            engine.mark_paid(record, paid_on=date(2024, 3, 5), at=AT)
        assert exc_info.value.reason == "approval pending"

    def test_approved_then_paid(self, engine):
        approved = engine.approve(_create(engine, net_amount=Decimal("1000")), at=AT)
        paid = engine.mark_paid(approved, paid_on=date(2024, 3, 5), at=AT)
        assert paid.status == CostStatus.PAID
        assert len(paid.audit) == 3

    def test_paid_is_terminal(self, engine):
        paid = engine.mark_paid(_create(engine), paid_on=date(2024, 3, 5), at=AT)
        with pytest.raises(InvalidTransitionError):
            engine.cancel(paid, reason="oops", at=AT)

    def test_cancel_rejected_record(self, engine):
        rejected = engine.reject(_create(engine, net_amount=Decimal("1000")), reason="no", at=AT)
        cancelled = engine.cancel(rejected, reason="archived", at=AT)
        assert cancelled.status == CostStatus.CANCELLED
        assert cancelled.audit[-1].comment == "archived"


class TestRecurring:
    @pytest.mark.parametrize(
        "interval, start, expected",
        [
            (RecurrenceInterval.DAILY, date(2024, 2, 28), date(2024, 2, 29)),
            (RecurrenceInterval.WEEKLY, date(2024, 3, 1), date(2024, 3, 8)),
            (RecurrenceInterval.MONTHLY, date(2024, 1, 31), date(2024, 2, 29)),
            (RecurrenceInterval.QUARTERLY, date(2024, 11, 30), date(2025, 2, 28)),
            (RecurrenceInterval.YEARLY, date(2024, 2, 29), date(2025, 2, 28)),
        ],
    )
    def test_advance(self, interval, start, expected):
        assert advance(start, interval) == expected

    def test_duplicate_carries_schedule_forward(self, engine):
        record = _create(
            engine,
            description="Warehouse rent",
            category=CostCategory.RENT,
            cost_type=CostType.FIXED,
            net_amount=Decimal("400"),
            recurrence=Recurrence(RecurrenceInterval.MONTHLY, next_due=date(2024, 4, 1)),
        )
        paid = engine.mark_paid(record, paid_on=date(2024, 3, 2), at=AT)
        copy = engine.duplicate_recurring(paid, new_id=uuid4(), at=AT)
        assert copy.incurred_on == date(2024, 4, 1)
        assert copy.recurrence.next_due == date(2024, 5, 1)
        assert copy.status == CostStatus.OPEN
        assert copy.payment is None
        assert copy.number is None
        assert len(copy.audit) == 1

    def test_schedule_ends(self, engine):
        record = _create(
            engine,
            recurrence=Recurrence(
                RecurrenceInterval.MONTHLY,
                next_due=date(2024, 4, 1),
                end_date=date(2024, 4, 15),
            ),
        )
        copy = engine.duplicate_recurring(record, new_id=uuid4(), at=AT)
        assert copy.recurrence is None

    def test_non_recurring_cannot_be_duplicated(self, engine):
        with pytest.raises(InvalidDocumentError):
            engine.duplicate_recurring(_create(engine), new_id=uuid4(), at=AT)

    def test_recurrence_end_before_next_due(self):
        with pytest.raises(InvalidDocumentError):
            Recurrence(RecurrenceInterval.WEEKLY, next_due=date(2024, 4, 1), end_date=date(2024, 3, 1))


class TestBudget:
    def test_budget_kept_on_record(self, engine):
        budget = Budget(Decimal("1200"), date(2024, 1, 1), date(2024, 12, 31), item="Fuel 2024")
        record = _create(engine, budget=budget)
        assert record.budget == budget
        assert record.budget.amount == Decimal("1200")

    def test_recurring_copy_keeps_budget(self, engine):
        budget = Budget(Decimal("4800"), date(2024, 1, 1), date(2024, 12, 31), item="Rent")
        record = _create(
            engine,
            recurrence=Recurrence(RecurrenceInterval.MONTHLY, next_due=date(2024, 4, 1)),
            budget=budget,
        )
        assert engine.duplicate_recurring(record, new_id=uuid4(), at=AT).budget == budget

    @pytest.mark.parametrize(
        "start, end, expected",
        [
            (date(2024, 3, 1), date(2024, 3, 31), True),
            (date(2024, 3, 31), date(2024, 4, 30), True),
            (date(2024, 2, 1), date(2024, 3, 1), True),
            (date(2024, 4, 1), date(2024, 4, 30), False),
            (date(2024, 1, 1), date(2024, 2, 29), False),
        ],
    )
    def test_overlaps_inclusive(self, start, end, expected):
        budget = Budget(Decimal("100"), date(2024, 3, 1), date(2024, 3, 31))
        assert budget.overlaps(start, end) is expected

    def test_negative_amount_rejected(self):
        with pytest.raises(InvalidAmountError):
            Budget(Decimal("-1"), date(2024, 1, 1), date(2024, 1, 31))

    def test_period_end_before_start(self):
        with pytest.raises(InvalidDocumentError):
            Budget(Decimal("100"), date(2024, 2, 1), date(2024, 1, 31))
