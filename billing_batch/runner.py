"""
run_task -- item-isolated sweep execution.

Contract:
    Runs one ``BatchTask`` against a ``DocumentStore``: prepare the items,
    execute each, collect one ``BatchItemResult`` per item.

Architecture: billing_batch.  Imports from billing_batch.domain,
    billing_batch.tasks.base, and the kernel.

Invariants enforced:
    - One failing item never stops the run; every item gets a result.
    - Each item's service call owns its unit of work, so a failed item
      leaves no partial writes behind.
    - Every log line of the run carries ``batch_run_id``.

Failure modes:
    - BillingError from an item -> FAILED with the exception's ``code``.
    - Any other exception from an item -> FAILED with UNHANDLED_EXCEPTION.
    - Exception from ``prepare_items`` -> run FAILED with no items.
"""

from __future__ import annotations

import time
from datetime import datetime
from typing import Any
from uuid import uuid4

from billing_batch.domain.types import (
    BatchItemResult,
    BatchItemStatus,
    BatchRunResult,
    BatchRunStatus,
)
from billing_batch.tasks.base import BatchTask
from billing_kernel.exceptions import BillingError
from billing_kernel.logging_config import LogContext, get_logger
from billing_kernel.services.document_store import DocumentStore

logger = get_logger("batch.runner")


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


def _run_status(succeeded: int, failed: int, skipped: int) -> BatchRunStatus:
    if failed == 0:
        return BatchRunStatus.COMPLETED
    if succeeded == 0 and skipped == 0:
        return BatchRunStatus.FAILED
    return BatchRunStatus.PARTIALLY_COMPLETED


def run_task(
    task: BatchTask,
    store: DocumentStore,
    as_of: datetime,
    parameters: dict[str, Any] | None = None,
) -> BatchRunResult:
    """Execute ``task`` over every item it prepares as of ``as_of``."""
    parameters = parameters or {}
    run_id = str(uuid4())
    start_time = time.monotonic()

    with LogContext.bind(batch_run_id=run_id):
        logger.info(
            "batch_run_started",
            extra={"task_type": task.task_type, "as_of": as_of.isoformat()},
        )

        try:
            items = task.prepare_items(parameters=parameters, store=store, as_of=as_of)
        except Exception as exc:
            logger.exception("batch_prepare_failed", extra={"task_type": task.task_type})
            return BatchRunResult(
                run_id=run_id,
                task_type=task.task_type,
                status=BatchRunStatus.FAILED,
                as_of=as_of,
                duration_ms=_elapsed_ms(start_time),
                error_summary=f"prepare_items failed: {exc}",
            )

        item_results: list[BatchItemResult] = []
        for batch_item in items:
            item_start = time.monotonic()
            try:
                result = task.execute_item(
                    item=batch_item,
                    parameters=parameters,
                    store=store,
                    as_of=as_of,
                )
                item_result = BatchItemResult(
                    item_index=batch_item.item_index,
                    item_key=batch_item.item_key,
                    status=result.status,
                    error_code=result.error_code,
                    error_message=result.error_message,
                    result_data=result.result_data,
                    duration_ms=_elapsed_ms(item_start),
                )
            except BillingError as exc:
                logger.warning(
                    "batch_item_failed",
                    extra={"item_key": batch_item.item_key, "error_code": exc.code},
                )
                item_result = BatchItemResult(
                    item_index=batch_item.item_index,
                    item_key=batch_item.item_key,
                    status=BatchItemStatus.FAILED,
                    error_code=exc.code,
                    error_message=str(exc),
                    duration_ms=_elapsed_ms(item_start),
                )
            except Exception as exc:
                logger.exception(
                    "batch_item_failed",
                    extra={"item_key": batch_item.item_key, "error_code": "UNHANDLED_EXCEPTION"},
                )
                item_result = BatchItemResult(
                    item_index=batch_item.item_index,
                    item_key=batch_item.item_key,
                    status=BatchItemStatus.FAILED,
                    error_code="UNHANDLED_EXCEPTION",
                    error_message=str(exc),
                    duration_ms=_elapsed_ms(item_start),
                )
            item_results.append(item_result)

        counts = {s: sum(1 for r in item_results if r.status == s) for s in BatchItemStatus}
        failed = counts[BatchItemStatus.FAILED]
        status = _run_status(
            counts[BatchItemStatus.SUCCEEDED], failed, counts[BatchItemStatus.SKIPPED]
        )
        run = BatchRunResult(
            run_id=run_id,
            task_type=task.task_type,
            status=status,
            as_of=as_of,
            item_results=tuple(item_results),
            duration_ms=_elapsed_ms(start_time),
            error_summary=f"{failed} item(s) failed" if failed else None,
        )

        logger.info(
            "batch_run_completed",
            extra={
                "task_type": task.task_type,
                "status": status.value,
                "total_items": run.total_items,
                "succeeded": run.succeeded,
                "failed": run.failed,
                "skipped": run.skipped,
                "duration_ms": run.duration_ms,
            },
        )
        return run
