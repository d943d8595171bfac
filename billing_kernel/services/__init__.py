"""Persistence services for the billing kernel."""

from billing_kernel.services.document_store import (
    DocumentCodec,
    DocumentStore,
    InMemoryDocumentStore,
    SequenceSource,
)
from billing_kernel.services.sequence_service import SequenceService, sequence_name_for
from billing_kernel.services.sql_document_store import SqlDocumentStore

__all__ = [
    "DocumentCodec",
    "DocumentStore",
    "InMemoryDocumentStore",
    "SequenceSource",
    "SequenceService",
    "SqlDocumentStore",
    "sequence_name_for",
]
