"""
Invoice Workflow.

State machine for the customer invoice lifecycle.  Settlement and overdue
transitions are not requested by callers; ``InvoiceEngine.recalculate``
derives them from the balance and validates them against this table.
"""

from billing_kernel.domain.workflow import Guard, Transition, Workflow
from billing_kernel.logging_config import get_logger
from billing_modules.invoice.models import InvoiceStatus

logger = get_logger("modules.invoice.workflows")

DRAFT = InvoiceStatus.DRAFT.value
SENT = InvoiceStatus.SENT.value
PARTIALLY_PAID = InvoiceStatus.PARTIALLY_PAID.value
PAID = InvoiceStatus.PAID.value
OVERDUE = InvoiceStatus.OVERDUE.value
CANCELLED = InvoiceStatus.CANCELLED.value
DUNNED = InvoiceStatus.DUNNED.value


# -----------------------------------------------------------------------------
# Guards
# -----------------------------------------------------------------------------

BALANCE_ZERO = Guard(
    name="balance_zero",
    description="Outstanding amount is below one cent",
)

BALANCE_REDUCED = Guard(
    name="balance_reduced",
    description="Outstanding amount is positive but below the gross total",
)

PAST_DUE_UNPAID = Guard(
    name="past_due_unpaid",
    description="Due date has passed and nothing has been paid",
)

BELOW_MAX_REMINDER_LEVEL = Guard(
    name="below_max_reminder_level",
    description="Fewer reminders than the configured maximum level",
)

_OPEN_STATES = (DRAFT, SENT, PARTIALLY_PAID, OVERDUE, DUNNED)


# -----------------------------------------------------------------------------
# Invoice Workflow
# -----------------------------------------------------------------------------

INVOICE_WORKFLOW = Workflow(
    name="invoice",
    description="Customer invoice lifecycle",
    initial_state=DRAFT,
    states=(DRAFT, SENT, PARTIALLY_PAID, PAID, OVERDUE, CANCELLED, DUNNED),
    transitions=(
        Transition(DRAFT, SENT, action="send"),
        *(
            Transition(state, PARTIALLY_PAID, action="settle", guard=BALANCE_REDUCED)
            for state in _OPEN_STATES
            if state != PARTIALLY_PAID
        ),
        *(Transition(state, PAID, action="settle", guard=BALANCE_ZERO) for state in _OPEN_STATES),
        Transition(SENT, OVERDUE, action="mark_overdue", guard=PAST_DUE_UNPAID),
        *(
            Transition(state, DUNNED, action="remind", guard=BELOW_MAX_REMINDER_LEVEL)
            for state in (SENT, PARTIALLY_PAID, OVERDUE, DUNNED)
        ),
        *(Transition(state, CANCELLED, action="cancel") for state in _OPEN_STATES),
    ),
    terminal_states=(PAID, CANCELLED),
)

logger.info(
    "invoice_workflow_registered",
    extra={
        "workflow_name": INVOICE_WORKFLOW.name,
        "state_count": len(INVOICE_WORKFLOW.states),
        "transition_count": len(INVOICE_WORKFLOW.transitions),
        "initial_state": INVOICE_WORKFLOW.initial_state,
    },
)
