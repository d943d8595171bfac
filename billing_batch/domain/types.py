"""
billing_batch.domain.types -- Pure frozen dataclasses for batch sweeps.

Invariants enforced:
    - All DTOs are frozen dataclasses (immutable).
    - Every prepared item yields exactly one BatchItemResult.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any


# =============================================================================
# Status enums
# =============================================================================


class BatchRunStatus(str, Enum):
    """Run-level outcome."""

    COMPLETED = "completed"  # No item failed
    PARTIALLY_COMPLETED = "partially_completed"  # Some items failed
    FAILED = "failed"  # Every item failed, or preparation failed


class BatchItemStatus(str, Enum):
    """Per-item outcome within a run."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"  # Nothing to do (already handled, not yet due)


# =============================================================================
# Result DTOs
# =============================================================================


@dataclass(frozen=True)
class BatchItemResult:
    """Immutable result of processing a single item."""

    item_index: int  # 0-indexed position in the run
    item_key: str  # Business identifier (document id)
    status: BatchItemStatus
    error_code: str | None = None
    error_message: str | None = None
    result_data: dict[str, Any] | None = None
    duration_ms: int = 0


@dataclass(frozen=True)
class BatchRunResult:
    """Immutable result of running one task."""

    run_id: str
    task_type: str
    status: BatchRunStatus
    as_of: datetime
    item_results: tuple[BatchItemResult, ...] = ()
    duration_ms: int = 0
    error_summary: str | None = None

    @property
    def total_items(self) -> int:
        return len(self.item_results)

    def count(self, status: BatchItemStatus) -> int:
        return sum(1 for r in self.item_results if r.status == status)

    @property
    def succeeded(self) -> int:
        return self.count(BatchItemStatus.SUCCEEDED)

    @property
    def failed(self) -> int:
        return self.count(BatchItemStatus.FAILED)

    @property
    def skipped(self) -> int:
        return self.count(BatchItemStatus.SKIPPED)
