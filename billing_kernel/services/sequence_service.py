"""
SequenceService -- monotonic sequence allocation via locked counter rows.

Responsibility:
    Provides strictly increasing sequence numbers for document numbering.
    A dedicated counter table with row-level locking (``SELECT ... FOR
    UPDATE``) guarantees uniqueness and ordering under concurrent access.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.
    Called by SqlDocumentStore.next_sequence().

Invariants enforced:
    - Sequence values are strictly increasing per name.  Counting existing
      documents or MAX()+1 is FORBIDDEN; the locked counter row is the sole
      source of truth for the next value.
    - Transactional: the increment becomes visible when the caller's
      transaction commits.  Rollback returns the value.

Failure modes:
    - RuntimeError for a database dialect without an upsert construct.
"""

from sqlalchemy import select
from sqlalchemy.orm import Session

from billing_kernel.domain.values import DocumentType
from billing_kernel.logging_config import get_logger
from billing_kernel.models.sequence import SequenceCounter

logger = get_logger("services.sequence")


def sequence_name_for(document_type: DocumentType, year: int) -> str:
    return f"{DocumentType(document_type).value}:{year:04d}"


class SequenceService:
    """
    Service for generating transactional sequence numbers.

    Does NOT call ``session.commit()``; the caller controls boundaries.

    Usage:
        with session_scope() as session:
            seq = SequenceService(session).next_value("invoice:2024")
    """

    def __init__(self, session: Session):
        self._session = session

    def next_value(self, sequence_name: str) -> int:
        """
        Lock the counter row (creating it on first use), increment it and
        return the new value.  Always > 0.
        """
        self._ensure_counter(sequence_name)

        # Expire cached counter objects so the locked read is fresh
        self._session.expire_all()

        counter = self._session.execute(
            select(SequenceCounter)
            .where(SequenceCounter.name == sequence_name)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one()

        counter.current_value += 1
        self._session.flush()
        logger.debug(
            "sequence_allocated",
            extra={"sequence_name": sequence_name, "value": counter.current_value},
        )
        return counter.current_value

    def current_value(self, sequence_name: str) -> int | None:
        counter = self._session.execute(
            select(SequenceCounter).where(SequenceCounter.name == sequence_name)
        ).scalar_one_or_none()

        return counter.current_value if counter else None

    def reset(self, sequence_name: str, value: int = 0) -> None:
        """
        Reset a sequence to a specific value.

        WARNING: tests and data migrations only.  Resetting a live sequence
        re-issues document numbers.
        """
        self._ensure_counter(sequence_name)
        counter = self._session.execute(
            select(SequenceCounter)
            .where(SequenceCounter.name == sequence_name)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one()
        counter.current_value = value
        self._session.flush()

    def _ensure_counter(self, sequence_name: str) -> None:
        """Insert the counter row at 0 unless it exists.

        The insert ignores a concurrent creator instead of failing, so no
        savepoint dance is needed.
        """
        dialect = self._session.get_bind().dialect.name
        if dialect == "postgresql":
            from sqlalchemy.dialects.postgresql import insert
        elif dialect == "sqlite":
            from sqlalchemy.dialects.sqlite import insert
        else:
            raise RuntimeError(f"Unsupported database dialect for sequences: {dialect}")

        stmt = (
            insert(SequenceCounter)
            .values(name=sequence_name, current_value=0)
            .on_conflict_do_nothing(index_elements=["name"])
        )
        self._session.execute(stmt)
