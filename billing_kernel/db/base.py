"""
Module: billing_kernel.db.base
Responsibility: Declarative base for the two billing tables
    (``documents`` and ``sequence_counters``).
Architecture position: Kernel > DB.  Lowest-level import target within the
    kernel.  MUST NOT import from models/, services/ or domain/.

Invariants enforced:
    - Primary keys are the domain UUIDs themselves, stored as String(36) so
      the same schema runs on PostgreSQL and SQLite.  A document row's id is
      the document's id; there is no surrogate key.
    - Timestamps are timezone-aware.
"""

from datetime import datetime
from typing import ClassVar
from uuid import UUID, uuid4

from sqlalchemy import DateTime, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class UUIDString(TypeDecorator):
    """UUID column stored as text."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return None if value is None else str(value)

    def process_result_value(self, value, dialect):
        return None if value is None else UUID(value)


class Base(DeclarativeBase):
    type_annotation_map: ClassVar[dict] = {
        datetime: DateTime(timezone=True),
        UUID: UUIDString(),
    }

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)


class TrackedBase(Base):
    """Adds database-maintained ``created_at`` / ``updated_at``."""

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now(), nullable=False
    )
