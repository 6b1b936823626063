"""Orphan collector: removes scheduled jobs no mapping asks for anymore.

Cleanup is best effort: a job that is already gone counts as removed, and
a failed delete is logged without stopping the removal of the others.
"""

from __future__ import annotations

import logging

from index_lifecycle.builder.jobs import job_name
from index_lifecycle.errors import NotFoundError, ReconcileError, StoreError
from index_lifecycle.models import (
    ClusterIdentity,
    IndexManagementPolicy,
    JobVariant,
    ObjectKind,
    PolicyMapping,
)
from index_lifecycle.store.base import Deadline, ObjectStore

logger = logging.getLogger(__name__)


def expected_job_names(
    cluster_name: str,
    mappings: list[PolicyMapping],
    policies: dict[str, IndexManagementPolicy],
) -> set[str]:
    """Names of the jobs the current mappings call for."""
    expected: set[str] = set()
    for mapping in mappings:
        policy = policies.get(mapping.policy_ref)
        if policy is None:
            logger.warning(
                "Policy mapping %s references unknown policy %s",
                mapping.name, mapping.policy_ref,
            )
            continue
        if policy.phases.hot is not None:
            expected.add(job_name(cluster_name, JobVariant.ROLLOVER, mapping.name))
        if policy.phases.delete is not None:
            expected.add(job_name(cluster_name, JobVariant.DELETE, mapping.name))
    return expected


def existing_job_names(
    store: ObjectStore,
    namespace: str,
    labels: dict[str, str],
    deadline: Deadline | None = None,
) -> set[str]:
    """Names of the index management jobs present in *namespace*."""
    try:
        jobs = store.list(ObjectKind.SCHEDULED_JOB, namespace, labels, deadline)
    except StoreError as e:
        raise ReconcileError(
            "failed to list cron jobs", namespace=namespace, labels=labels,
        ) from e
    return {job.metadata.name for job in jobs}


def remove_orphaned_jobs(
    store: ObjectStore,
    cluster: ClusterIdentity,
    mappings: list[PolicyMapping],
    policies: dict[str, IndexManagementPolicy],
    labels: dict[str, str],
    deadline: Deadline | None = None,
) -> None:
    """Delete every labelled job that no mapping expects.

    Raises ReconcileError only when the existing jobs cannot be listed.
    """
    expected = expected_job_names(cluster.name, mappings, policies)
    existing = existing_job_names(store, cluster.namespace, labels, deadline)

    for name in sorted(existing - expected):
        try:
            store.delete(ObjectKind.SCHEDULED_JOB, cluster.namespace, name, deadline)
        except NotFoundError:
            logger.debug("Cron job %s/%s already removed", cluster.namespace, name)
            continue
        except StoreError:
            logger.exception(
                "Failed to remove cron job %s/%s", cluster.namespace, name,
            )
            continue
        logger.info("Removed orphaned cron job %s/%s", cluster.namespace, name)
