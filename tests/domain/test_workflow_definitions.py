"""
Tests for the workflow value objects and the three document state machines.
"""

import pytest

from billing_kernel.domain.workflow import Transition, Workflow
from billing_kernel.exceptions import InvalidTransitionError
from billing_modules.cost.workflows import COST_WORKFLOW
from billing_modules.invoice.workflows import INVOICE_WORKFLOW
from billing_modules.quote.workflows import QUOTE_WORKFLOW

ALL_WORKFLOWS = [QUOTE_WORKFLOW, INVOICE_WORKFLOW, COST_WORKFLOW]


class TestWorkflowDefinition:
    def test_unknown_state_rejected(self):
        with pytest.raises(ValueError, match="unknown state"):
            Workflow(
                name="broken",
                description="",
                initial_state="A",
                states=("A",),
                transitions=(Transition("A", "B", action="go"),),
            )

    def test_initial_state_must_exist(self):
        with pytest.raises(ValueError, match="initial state"):
            Workflow(name="broken", description="", initial_state="X", states=("A",), transitions=())

    def test_terminal_state_cannot_have_outgoing(self):
        with pytest.raises(ValueError, match="terminal state"):
            Workflow(
                name="broken",
                description="",
                initial_state="A",
                states=("A", "B"),
                transitions=(Transition("A", "B", action="go"), Transition("B", "A", action="back")),
                terminal_states=("B",),
            )

    def test_require_raises_typed_error(self):
        with pytest.raises(InvalidTransitionError) as exc_info:
            QUOTE_WORKFLOW.require("Accepted", "accept", document_id="q-1")
        err = exc_info.value
        assert err.code == "INVALID_TRANSITION"
        assert err.from_status == "Accepted"
        assert err.action == "accept"
        assert err.document_id == "q-1"


@pytest.mark.parametrize("workflow", ALL_WORKFLOWS, ids=lambda w: w.name)
def test_terminal_states_are_dead_ends(workflow):
    for state in workflow.terminal_states:
        assert workflow.actions_from(state) == frozenset()


class TestQuoteWorkflow:
    def test_terminal_states(self):
        assert set(QUOTE_WORKFLOW.terminal_states) == {"Accepted", "Rejected", "Expired"}

    @pytest.mark.parametrize("state", ["Draft", "Review", "Sent", "FollowUp", "Negotiation"])
    def test_open_states_can_be_accepted_and_rejected(self, state):
        assert QUOTE_WORKFLOW.can(state, "accept")
        assert QUOTE_WORKFLOW.can(state, "reject")

    def test_only_sent_quotes_expire(self):
        assert not QUOTE_WORKFLOW.can("Draft", "expire")
        assert not QUOTE_WORKFLOW.can("Review", "expire")
        assert QUOTE_WORKFLOW.can("Negotiation", "expire")

    def test_follow_up_can_repeat(self):
        assert QUOTE_WORKFLOW.can("FollowUp", "follow_up", "FollowUp")


class TestInvoiceWorkflow:
    def test_terminal_states(self):
        assert set(INVOICE_WORKFLOW.terminal_states) == {"Paid", "Cancelled"}

    def test_send_only_from_draft(self):
        assert INVOICE_WORKFLOW.actions_from("Draft") >= {"send", "cancel"}
        assert not INVOICE_WORKFLOW.can("Sent", "send")

    def test_overdue_only_from_sent(self):
        assert INVOICE_WORKFLOW.can("Sent", "mark_overdue")
        assert not INVOICE_WORKFLOW.can("PartiallyPaid", "mark_overdue")

    def test_draft_cannot_be_reminded(self):
        assert not INVOICE_WORKFLOW.can("Draft", "remind")
        assert INVOICE_WORKFLOW.can("Dunned", "remind", "Dunned")


class TestCostWorkflow:
    def test_paid_and_cancelled_are_terminal(self):
        assert set(COST_WORKFLOW.terminal_states) == {"Paid", "Cancelled"}

    def test_rejected_can_only_be_cancelled(self):
        assert COST_WORKFLOW.actions_from("Rejected") == frozenset({"cancel"})

    def test_open_can_be_paid_directly(self):
        assert COST_WORKFLOW.can("Open", "mark_paid", "Paid")
