"""
SqlDocumentStore -- SQLAlchemy-backed DocumentStore.

Responsibility:
    Persists billing documents as StoredDocument rows (JSON payload plus
    mirrored number/status columns) and allocates document sequences
    through SequenceService.

Architecture position:
    Kernel > Services.  Receives the per-type codecs from the caller; the
    kernel never imports the document modules.

Invariants enforced:
    - Optimistic concurrency: an update only applies ``WHERE version =
      <loaded version>``; zero affected rows is a VersionConflictError.
    - unit_of_work() commits on success and rolls back on any exception.
      Nested units join the outermost one.

Failure modes:
    - DocumentNotFoundError when no row matches type and id.
    - VersionConflictError on a stale update or a duplicate insert.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from contextlib import contextmanager
from dataclasses import replace
from typing import Any
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from billing_kernel.domain.values import DocumentType
from billing_kernel.exceptions import DocumentNotFoundError, VersionConflictError
from billing_kernel.logging_config import get_logger
from billing_kernel.models.document import StoredDocument
from billing_kernel.services.document_store import DocumentCodec, status_value
from billing_kernel.services.sequence_service import SequenceService, sequence_name_for

logger = get_logger("services.sql_document_store")


class SqlDocumentStore:
    """DocumentStore over one SQLAlchemy session."""

    def __init__(self, session: Session, codecs: Mapping[DocumentType, DocumentCodec]):
        self._session = session
        self._codecs = dict(codecs)
        self._sequences = SequenceService(session)
        self._depth = 0

    def _codec(self, document_type: DocumentType) -> DocumentCodec:
        try:
            return self._codecs[DocumentType(document_type)]
        except KeyError:
            raise ValueError(f"No codec registered for {document_type}") from None

    def load(self, document_type: DocumentType, document_id: UUID) -> Any:
        document_type = DocumentType(document_type)
        row = self._session.execute(
            select(StoredDocument)
            .where(StoredDocument.id == document_id)
            .where(StoredDocument.document_type == document_type.value)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if row is None:
            raise DocumentNotFoundError(document_type.value, str(document_id))
        return self._codec(document_type).from_payload(row.payload, version=row.version)

    def save(self, document: Any) -> Any:
        document_type = DocumentType(document.document_type)
        payload = self._codec(document_type).to_payload(document)
        new_version = document.version + 1

        if document.version == 0:
            self._session.add(
                StoredDocument(
                    id=document.id,
                    document_type=document_type.value,
                    number=document.number,
                    status=status_value(document),
                    version=new_version,
                    payload=payload,
                )
            )
            try:
                self._session.flush()
            except IntegrityError as exc:
                raise VersionConflictError(
                    document_type.value, str(document.id), 0, None
                ) from exc
        else:
            result = self._session.execute(
                update(StoredDocument)
                .where(StoredDocument.id == document.id)
                .where(StoredDocument.version == document.version)
                .values(
                    number=document.number,
                    status=status_value(document),
                    version=new_version,
                    payload=payload,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                actual = self._session.execute(
                    select(StoredDocument.version).where(StoredDocument.id == document.id)
                ).scalar_one_or_none()
                logger.warning(
                    "document_version_conflict",
                    extra={
                        "document_type": document_type.value,
                        "document_id": str(document.id),
                        "expected_version": document.version,
                        "actual_version": actual,
                    },
                )
                raise VersionConflictError(
                    document_type.value, str(document.id), document.version, actual
                )

        logger.debug(
            "document_saved",
            extra={
                "document_type": document_type.value,
                "document_id": str(document.id),
                "number": document.number,
                "version": new_version,
            },
        )
        return replace(document, version=new_version)

    def find(
        self,
        document_type: DocumentType,
        statuses: Iterable[str] | None = None,
    ) -> tuple[Any, ...]:
        document_type = DocumentType(document_type)
        stmt = select(StoredDocument).where(
            StoredDocument.document_type == document_type.value
        )
        if statuses is not None:
            stmt = stmt.where(
                StoredDocument.status.in_([getattr(s, "value", s) for s in statuses])
            )
        stmt = stmt.order_by(StoredDocument.number, StoredDocument.id).execution_options(
            populate_existing=True
        )
        codec = self._codec(document_type)
        return tuple(
            codec.from_payload(row.payload, version=row.version)
            for row in self._session.execute(stmt).scalars()
        )

    def next_sequence(self, document_type: DocumentType, year: int) -> int:
        return self._sequences.next_value(sequence_name_for(document_type, year))

    @contextmanager
    def unit_of_work(self) -> Iterator[None]:
        self._depth += 1
        try:
            yield
        except Exception:
            if self._depth == 1:
                self._session.rollback()
            raise
        else:
            if self._depth == 1:
                self._session.commit()
        finally:
            self._depth -= 1
