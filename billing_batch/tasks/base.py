"""
Sweep task contract, the shared document-sweep base, and TaskRegistry.

Contract:
    A task selects the documents a run should touch (``prepare_items``) and
    then handles them one at a time (``execute_item``).  Selection reads
    committed documents only; each ``execute_item`` delegates to a module
    service, whose unit of work covers exactly that document.

Architecture:
    billing_batch/tasks.  Imports billing_batch.domain and the kernel only;
    the concrete tasks in the sibling modules import billing_modules.

Invariants enforced:
    - A registry holds one task per ``task_type``.
    - Item keys are document ids, so a run result points straight at the
      documents it touched.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol, runtime_checkable
from uuid import UUID

from billing_batch.domain.types import BatchItemStatus
from billing_config.schema import BillingConfig
from billing_kernel.domain.clock import Clock
from billing_kernel.services.document_store import DocumentStore


@dataclass(frozen=True)
class BatchItemInput:
    """One unit of work in a run, produced by ``prepare_items``."""

    item_index: int
    item_key: str
    payload: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class BatchTaskResult:
    """What ``execute_item`` reports back to the runner."""

    status: BatchItemStatus
    result_data: dict[str, Any] | None = None
    error_code: str | None = None
    error_message: str | None = None


@runtime_checkable
class BatchTask(Protocol):
    """Anything the runner can execute.

    Raising from ``execute_item`` is allowed; the runner turns the
    exception into a FAILED item and moves on.  Tasks never retry: a
    document skipped or lost to a version conflict is selected again by the
    next run.
    """

    @property
    def task_type(self) -> str: ...

    @property
    def description(self) -> str: ...

    def prepare_items(
        self,
        parameters: dict[str, Any],
        store: DocumentStore,
        as_of: datetime,
    ) -> tuple[BatchItemInput, ...]: ...

    def execute_item(
        self,
        item: BatchItemInput,
        parameters: dict[str, Any],
        store: DocumentStore,
        as_of: datetime,
    ) -> BatchTaskResult: ...


# =============================================================================
# Document sweeps
# =============================================================================


def document_items(documents: Iterable[Any]) -> tuple[BatchItemInput, ...]:
    """One item per document, keyed by its id, in the given order."""
    return tuple(
        BatchItemInput(
            item_index=index,
            item_key=str(document.id),
            payload={"document_id": str(document.id), "number": document.number},
        )
        for index, document in enumerate(documents)
    )


def item_document_id(item: BatchItemInput) -> UUID:
    return UUID(item.payload["document_id"])


def actor_parameter(parameters: dict[str, Any]) -> UUID | None:
    """The optional ``actor_id`` run parameter, recorded on every change."""
    actor = parameters.get("actor_id")
    return UUID(str(actor)) if actor else None


class DocumentSweep:
    """Base for the module sweeps.

    Holds the clock and configuration handed to the module services the
    task builds per item.  Subclasses set ``task_type`` and ``description``
    and implement the two protocol methods.
    """

    task_type: str
    description: str

    def __init__(self, clock: Clock | None = None, config: BillingConfig | None = None):
        self._clock = clock
        self._config = config


# =============================================================================
# Registry
# =============================================================================


class TaskRegistry:
    """Tasks by ``task_type``; the sweep CLI resolves its ``--task`` values here."""

    def __init__(self) -> None:
        self._tasks: dict[str, BatchTask] = {}

    def register(self, task: BatchTask) -> None:
        if task.task_type in self._tasks:
            raise ValueError(f"Task type '{task.task_type}' is already registered")
        self._tasks[task.task_type] = task

    def get(self, task_type: str) -> BatchTask:
        if task_type not in self._tasks:
            raise KeyError(
                f"No task registered for type '{task_type}'. "
                f"Available: {', '.join(self.list_tasks()) or 'none'}"
            )
        return self._tasks[task_type]

    def list_tasks(self) -> tuple[str, ...]:
        return tuple(sorted(self._tasks))

    def __len__(self) -> int:
        return len(self._tasks)

    def __contains__(self, task_type: object) -> bool:
        return task_type in self._tasks
