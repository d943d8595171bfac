"""ORM models for the billing kernel."""

from billing_kernel.models.document import StoredDocument
from billing_kernel.models.sequence import SequenceCounter

__all__ = [
    "StoredDocument",
    "SequenceCounter",
]
