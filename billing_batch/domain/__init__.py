"""
billing_batch.domain -- Pure types for batch sweeps.

ZERO I/O.  All types are frozen dataclasses.
"""

from billing_batch.domain.types import (
    BatchItemResult,
    BatchItemStatus,
    BatchRunResult,
    BatchRunStatus,
)

__all__ = [
    "BatchItemResult",
    "BatchItemStatus",
    "BatchRunResult",
    "BatchRunStatus",
]
