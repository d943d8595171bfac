"""
Quote Workflow.

State machine for the quote lifecycle, from draft to acceptance,
rejection or expiry.
"""

from billing_kernel.domain.workflow import Guard, Transition, Workflow
from billing_kernel.logging_config import get_logger
from billing_modules.quote.models import QuoteStatus

logger = get_logger("modules.quote.workflows")

DRAFT = QuoteStatus.DRAFT.value
REVIEW = QuoteStatus.REVIEW.value
SENT = QuoteStatus.SENT.value
FOLLOW_UP = QuoteStatus.FOLLOW_UP.value
NEGOTIATION = QuoteStatus.NEGOTIATION.value
ACCEPTED = QuoteStatus.ACCEPTED.value
REJECTED = QuoteStatus.REJECTED.value
EXPIRED = QuoteStatus.EXPIRED.value

VALIDITY_ELAPSED = Guard(
    name="validity_elapsed",
    description="valid_until is before the current business date",
)

_OPEN_STATES = (DRAFT, REVIEW, SENT, FOLLOW_UP, NEGOTIATION)
EDITABLE_STATES = frozenset({DRAFT, REVIEW})

QUOTE_WORKFLOW = Workflow(
    name="quote",
    description="Customer quote lifecycle",
    initial_state=DRAFT,
    states=(DRAFT, REVIEW, SENT, FOLLOW_UP, NEGOTIATION, ACCEPTED, REJECTED, EXPIRED),
    transitions=(
        Transition(DRAFT, REVIEW, action="submit_for_review"),
        Transition(DRAFT, SENT, action="send"),
        Transition(REVIEW, SENT, action="send"),
        Transition(SENT, FOLLOW_UP, action="follow_up"),
        Transition(FOLLOW_UP, FOLLOW_UP, action="follow_up"),
        Transition(SENT, NEGOTIATION, action="negotiate"),
        Transition(FOLLOW_UP, NEGOTIATION, action="negotiate"),
        *(Transition(state, ACCEPTED, action="accept") for state in _OPEN_STATES),
        *(Transition(state, REJECTED, action="reject") for state in _OPEN_STATES),
        *(
            Transition(state, EXPIRED, action="expire", guard=VALIDITY_ELAPSED)
            for state in (SENT, FOLLOW_UP, NEGOTIATION)
        ),
    ),
    terminal_states=(ACCEPTED, REJECTED, EXPIRED),
)

logger.info(
    "quote_workflow_registered",
    extra={
        "workflow_name": QUOTE_WORKFLOW.name,
        "state_count": len(QUOTE_WORKFLOW.states),
        "transition_count": len(QUOTE_WORKFLOW.transitions),
        "initial_state": QUOTE_WORKFLOW.initial_state,
    },
)
