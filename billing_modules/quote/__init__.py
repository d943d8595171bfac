"""Customer quotes (Angebote): pricing, dispatch, follow-up and conversion."""

from billing_modules.quote.codec import QuoteCodec
from billing_modules.quote.engine import QuoteEngine
from billing_modules.quote.models import (
    Dispatch,
    FollowUp,
    FollowUpKind,
    Quote,
    QuoteStatus,
    QuoteTerms,
    SendChannel,
)
from billing_modules.quote.service import QuoteService
from billing_modules.quote.workflows import QUOTE_WORKFLOW

__all__ = [
    "Dispatch",
    "FollowUp",
    "FollowUpKind",
    "QUOTE_WORKFLOW",
    "Quote",
    "QuoteCodec",
    "QuoteEngine",
    "QuoteService",
    "QuoteStatus",
    "QuoteTerms",
    "SendChannel",
]
