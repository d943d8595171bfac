"""
Cost Approval Workflow.

Payment-status state machine for cost records.  The approval sub-state is
checked by ``CostEngine`` through the guards named here.
"""

from billing_kernel.domain.workflow import Guard, Transition, Workflow
from billing_kernel.logging_config import get_logger
from billing_modules.cost.models import CostStatus

logger = get_logger("modules.cost.workflows")

OPEN = CostStatus.OPEN.value
APPROVED = CostStatus.APPROVED.value
REJECTED = CostStatus.REJECTED.value
PAID = CostStatus.PAID.value
CANCELLED = CostStatus.CANCELLED.value


# -----------------------------------------------------------------------------
# Guards
# -----------------------------------------------------------------------------

APPROVAL_PENDING = Guard(
    name="approval_pending",
    description="Gross amount exceeded the threshold and no decision was made yet",
)

APPROVAL_SETTLED = Guard(
    name="approval_settled",
    description="Approval is not pending (approved or auto-approved)",
)


# -----------------------------------------------------------------------------
# Cost Workflow
# -----------------------------------------------------------------------------

COST_WORKFLOW = Workflow(
    name="cost",
    description="Cost record approval and payment",
    initial_state=OPEN,
    states=(OPEN, APPROVED, REJECTED, PAID, CANCELLED),
    transitions=(
        Transition(OPEN, APPROVED, action="approve", guard=APPROVAL_PENDING),
        Transition(OPEN, REJECTED, action="reject", guard=APPROVAL_PENDING),
        Transition(OPEN, PAID, action="mark_paid", guard=APPROVAL_SETTLED),
        Transition(APPROVED, PAID, action="mark_paid", guard=APPROVAL_SETTLED),
        *(Transition(state, CANCELLED, action="cancel") for state in (OPEN, APPROVED, REJECTED)),
    ),
    terminal_states=(PAID, CANCELLED),
)

logger.info(
    "cost_workflow_registered",
    extra={
        "workflow_name": COST_WORKFLOW.name,
        "state_count": len(COST_WORKFLOW.states),
        "transition_count": len(COST_WORKFLOW.transitions),
        "initial_state": COST_WORKFLOW.initial_state,
    },
)
