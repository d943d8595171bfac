"""
DocumentStore -- persistence collaborator contract and in-memory store.

Responsibility:
    Defines what the engines and services need from persistence: load a
    document by type and id, save it with an optimistic version check,
    allocate the next sequence value for numbering, list committed
    documents, and run a group of operations as one unit of work.

Architecture position:
    Kernel > Services.  The SQL implementation lives in
    ``sql_document_store``; ``InMemoryDocumentStore`` backs tests, scripts
    and single-process tooling.

Invariants enforced:
    - save() succeeds only when the stored version equals the document's
      version; the returned document carries version + 1.
    - next_sequence() is an atomic increment-and-read per (type, year).
    - A document number, once stored, belongs to exactly one document.

Failure modes:
    - DocumentNotFoundError from load().
    - VersionConflictError from save().
"""

from __future__ import annotations

import threading
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from dataclasses import replace
from typing import Any, ContextManager, Protocol, runtime_checkable
from uuid import UUID

from billing_kernel.domain.values import DocumentType
from billing_kernel.exceptions import (
    DocumentNotFoundError,
    InvalidDocumentError,
    VersionConflictError,
)
from billing_kernel.logging_config import get_logger

logger = get_logger("services.document_store")


@runtime_checkable
class SequenceSource(Protocol):
    """Atomic per-(type, year) counter."""

    def next_sequence(self, document_type: DocumentType, year: int) -> int:
        ...


class DocumentCodec(Protocol):
    """Converts one document type to and from its JSON payload."""

    document_type: DocumentType

    def to_payload(self, document: Any) -> dict[str, Any]:
        ...

    def from_payload(self, payload: dict[str, Any], *, version: int) -> Any:
        ...


class DocumentStore(SequenceSource, Protocol):
    """Persistence collaborator used by every service."""

    def load(self, document_type: DocumentType, document_id: UUID) -> Any:
        ...

    def save(self, document: Any) -> Any:
        ...

    def find(
        self,
        document_type: DocumentType,
        statuses: Iterable[str] | None = None,
    ) -> tuple[Any, ...]:
        ...

    def unit_of_work(self) -> ContextManager[None]:
        ...


def status_value(document: Any) -> str:
    status = document.status
    return getattr(status, "value", status)


class InMemoryDocumentStore:
    """
    Thread-safe in-memory DocumentStore.

    A unit of work holds the store lock for its whole duration and restores
    the previous document state if it exits with an exception.  Sequence
    values consumed inside a failed unit of work are not returned.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._documents: dict[tuple[DocumentType, UUID], Any] = {}
        self._numbers: dict[str, UUID] = {}
        self._counters: dict[tuple[DocumentType, int], int] = {}

    def load(self, document_type: DocumentType, document_id: UUID) -> Any:
        with self._lock:
            document = self._documents.get((DocumentType(document_type), document_id))
        if document is None:
            raise DocumentNotFoundError(DocumentType(document_type).value, str(document_id))
        return document

    def save(self, document: Any) -> Any:
        key = (document.document_type, document.id)
        with self._lock:
            stored = self._documents.get(key)
            stored_version = stored.version if stored is not None else 0
            if stored_version != document.version:
                logger.warning(
                    "document_version_conflict",
                    extra={
                        "document_type": document.document_type.value,
                        "document_id": str(document.id),
                        "expected_version": document.version,
                        "actual_version": stored_version,
                    },
                )
                raise VersionConflictError(
                    document.document_type.value,
                    str(document.id),
                    document.version,
                    stored_version if stored is not None else None,
                )
            if stored is not None and stored.number and stored.number != document.number:
                raise InvalidDocumentError(
                    document.document_type.value,
                    "number",
                    f"number {stored.number} is immutable once assigned",
                )
            if document.number:
                owner = self._numbers.get(document.number)
                if owner is not None and owner != document.id:
                    raise InvalidDocumentError(
                        document.document_type.value,
                        "number",
                        f"number {document.number} already used",
                    )
                self._numbers[document.number] = document.id

            saved = replace(document, version=document.version + 1)
            self._documents[key] = saved
        return saved

    def find(
        self,
        document_type: DocumentType,
        statuses: Iterable[str] | None = None,
    ) -> tuple[Any, ...]:
        wanted = None if statuses is None else {getattr(s, "value", s) for s in statuses}
        with self._lock:
            documents = [
                doc
                for (doc_type, _), doc in self._documents.items()
                if doc_type == DocumentType(document_type)
                and (wanted is None or status_value(doc) in wanted)
            ]
        return tuple(sorted(documents, key=lambda d: (d.number or "", str(d.id))))

    def next_sequence(self, document_type: DocumentType, year: int) -> int:
        key = (DocumentType(document_type), year)
        with self._lock:
            value = self._counters.get(key, 0) + 1
            self._counters[key] = value
        return value

    @contextmanager
    def unit_of_work(self) -> Iterator[None]:
        with self._lock:
            documents = dict(self._documents)
            numbers = dict(self._numbers)
            try:
                yield
            except Exception:
                self._documents = documents
                self._numbers = numbers
                raise
