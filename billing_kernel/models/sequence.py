"""Sequence counter rows backing document number allocation."""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from billing_kernel.db.base import Base


class SequenceCounter(Base):
    """
    One row per named sequence (``"<document_type>:<year>"``).

    Row-level locking on this table serializes concurrent allocations.
    """

    __tablename__ = "sequence_counters"

    name: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        unique=True,
    )

    current_value: Mapped[int] = mapped_column(
        nullable=False,
        default=0,
    )
