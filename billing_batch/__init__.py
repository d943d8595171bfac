"""
billing_batch -- scheduled sweeps over billing documents.

Wraps the periodic module operations (dunning run, quote expiry) in a
uniform task framework: a task prepares one item per eligible document and
executes each item in its own unit of work, so one failure never aborts the
rest of the run.

Architecture:
    billing_batch/ is a top-level package.  Nothing in kernel/, engines/ or
    modules/ imports from billing_batch.  ``scripts/run_sweeps.py`` is the
    command-line entry point for external schedulers.
"""

from billing_batch.runner import run_task
from billing_batch.tasks import default_task_registry

__all__ = ["default_task_registry", "run_task"]
