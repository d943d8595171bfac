"""
billing_batch.tasks -- Task protocol, registry, and module task implementations.

``base.py`` imports nothing from billing_modules; the module task files
import from their respective billing_modules packages.
"""

from __future__ import annotations

from billing_batch.tasks.base import (
    BatchItemInput,
    BatchTask,
    BatchTaskResult,
    TaskRegistry,
)
from billing_batch.tasks.invoice_tasks import DunningRunTask, MarkOverdueTask
from billing_batch.tasks.quote_tasks import QuoteExpiryTask
from billing_config.schema import BillingConfig
from billing_kernel.domain.clock import Clock


def default_task_registry(
    clock: Clock | None = None, config: BillingConfig | None = None
) -> TaskRegistry:
    """Registry holding every billing sweep."""
    registry = TaskRegistry()
    registry.register(DunningRunTask(clock, config))
    registry.register(MarkOverdueTask(clock, config))
    registry.register(QuoteExpiryTask(clock, config))
    return registry


__all__ = [
    "BatchItemInput",
    "BatchTask",
    "BatchTaskResult",
    "DunningRunTask",
    "MarkOverdueTask",
    "QuoteExpiryTask",
    "TaskRegistry",
    "default_task_registry",
]
