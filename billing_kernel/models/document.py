"""
Module: billing_kernel.models.document
Responsibility: ORM row holding one persisted billing document (quote,
    invoice or cost record).
Architecture position: Kernel > Models.  Imported by the SQL document store.

The domain document is stored as a lossless JSON payload produced by the
document's codec.  ``number`` and ``status`` are mirrored into columns so that
sweeps and reports can filter without decoding every payload.  ``version`` is
the optimistic-concurrency token compared on every update.
"""

from typing import Any

from sqlalchemy import JSON, Index, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from billing_kernel.db.base import TrackedBase

PayloadType = JSON().with_variant(JSONB(), "postgresql")


class StoredDocument(TrackedBase):
    """Persisted billing document."""

    __tablename__ = "documents"
    __table_args__ = (
        UniqueConstraint("number", name="uq_documents_number"),
        Index("idx_documents_type_status", "document_type", "status"),
    )

    document_type: Mapped[str] = mapped_column(String(20), nullable=False)

    number: Mapped[str | None] = mapped_column(String(30), nullable=True)

    status: Mapped[str] = mapped_column(String(30), nullable=False)

    version: Mapped[int] = mapped_column(nullable=False, default=1)

    payload: Mapped[dict[str, Any]] = mapped_column(PayloadType, nullable=False)

    def __repr__(self) -> str:
        return (
            f"<StoredDocument {self.document_type} {self.number or self.id} "
            f"{self.status} v{self.version}>"
        )
