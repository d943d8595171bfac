"""
Codec registry (``billing_modules.registry``).

The SQL store is handed its codecs by the caller so that the kernel never
imports the document modules.  ``default_codecs()`` is that mapping for all
three document types; ``build_sql_store()`` wires it to a session.
"""

from __future__ import annotations

from sqlalchemy.orm import Session

from billing_kernel.domain.values import DocumentType
from billing_kernel.services.document_store import DocumentCodec
from billing_kernel.services.sql_document_store import SqlDocumentStore
from billing_modules.cost.codec import CostCodec
from billing_modules.invoice.codec import InvoiceCodec
from billing_modules.quote.codec import QuoteCodec


def default_codecs() -> dict[DocumentType, DocumentCodec]:
    return {
        DocumentType.QUOTE: QuoteCodec(),
        DocumentType.INVOICE: InvoiceCodec(),
        DocumentType.COST: CostCodec(),
    }


def build_sql_store(session: Session) -> SqlDocumentStore:
    return SqlDocumentStore(session, default_codecs())
