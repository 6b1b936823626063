"""Convergence of derived objects: create-or-update, conflict retry, cleanup."""

from index_lifecycle.reconcile.comparators import (
    are_config_objects_same,
    are_scheduled_jobs_same,
)
from index_lifecycle.reconcile.converger import Converger
from index_lifecycle.reconcile.indexmanagement import IndexManagementReconciler
from index_lifecycle.reconcile.orphans import (
    existing_job_names,
    expected_job_names,
    remove_orphaned_jobs,
)
from index_lifecycle.reconcile.retry import DEFAULT_RETRY, RetryPolicy, retry_on_conflict

__all__ = [
    "DEFAULT_RETRY",
    "Converger",
    "IndexManagementReconciler",
    "RetryPolicy",
    "are_config_objects_same",
    "are_scheduled_jobs_same",
    "existing_job_names",
    "expected_job_names",
    "remove_orphaned_jobs",
    "retry_on_conflict",
]
