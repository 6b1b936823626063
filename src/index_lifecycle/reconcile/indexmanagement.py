"""IndexManagementReconciler: one reconciliation pass for a cluster.

The pass:
  1. Converge the scripts config object
  2. For each policy mapping, in order:
     a. translate the policy and converge the rollover job (hot phase)
     b. translate the policy and converge the delete job (delete phase)
  3. Remove jobs that no mapping expects anymore

A failure on one object is recorded in the PassReport and the pass moves
on; only cancellation aborts it.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TypeVar

from index_lifecycle.builder.jobs import build_delete_job, build_rollover_job, job_name
from index_lifecycle.builder.scripts import build_script_config
from index_lifecycle.defaults import DEFAULTS, ReconcilerDefaults
from index_lifecycle.errors import CancelledError, IndexManagementError
from index_lifecycle.models import (
    ClusterIdentity,
    IndexManagementPolicy,
    IndexManagementSpec,
    JobVariant,
    ObjectFailure,
    ObjectKind,
    PassReport,
    PolicyMapping,
    ReconcileOutcome,
    ReconcileResult,
)
from index_lifecycle.policy.translator import (
    rollover_conditions,
    schedule_for,
    threshold_millis,
)
from index_lifecycle.reconcile.comparators import (
    are_config_objects_same,
    are_scheduled_jobs_same,
)
from index_lifecycle.reconcile.converger import Converger
from index_lifecycle.reconcile.orphans import remove_orphaned_jobs
from index_lifecycle.reconcile.retry import DEFAULT_RETRY, RetryPolicy
from index_lifecycle.store.base import Deadline, ObjectStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


class IndexManagementReconciler:
    """Reconciles the derived objects of one cluster against its policies.

    Usage::

        reconciler = IndexManagementReconciler(store, cluster)
        report = reconciler.reconcile(spec, deadline=Deadline(timeout=60))
        if not report.ok:
            ...
    """

    def __init__(
        self,
        store: ObjectStore,
        cluster: ClusterIdentity,
        defaults: ReconcilerDefaults = DEFAULTS,
        retry_policy: RetryPolicy = DEFAULT_RETRY,
    ) -> None:
        self._store = store
        self._cluster = cluster
        self._defaults = defaults
        self._converger = Converger(store, retry_policy)

    @property
    def cluster(self) -> ClusterIdentity:
        return self._cluster

    # --- Per-object entry points ---

    def reconcile_script_config(self, deadline: Deadline | None = None) -> ReconcileResult:
        desired = build_script_config(self._cluster, self._defaults)
        return self._converger.reconcile(
            desired, are_config_objects_same, cluster=self._cluster.name, deadline=deadline,
        )

    def reconcile_rollover_job(
        self,
        policy: IndexManagementPolicy,
        mapping: PolicyMapping,
        deadline: Deadline | None = None,
    ) -> ReconcileResult:
        name = job_name(self._cluster.name, JobVariant.ROLLOVER, mapping.name)
        hot = policy.phases.hot
        if hot is None:
            logger.info(
                "Skipping rollover cronjob for policymapping %s; hot phase not defined",
                mapping.name,
            )
            return self._skipped(name, mapping)

        schedule = self._with_mapping(mapping, schedule_for, policy.poll_interval)
        conditions = rollover_conditions(
            hot, self._cluster.primary_shards, self._defaults.shard_size_gb,
        )
        desired = build_rollover_job(
            self._cluster, mapping.name, schedule, conditions, self._defaults,
        )
        return self._converger.reconcile(
            desired, are_scheduled_jobs_same,
            cluster=self._cluster.name, mapping=mapping.name, deadline=deadline,
        )

    def reconcile_delete_job(
        self,
        policy: IndexManagementPolicy,
        mapping: PolicyMapping,
        deadline: Deadline | None = None,
    ) -> ReconcileResult:
        name = job_name(self._cluster.name, JobVariant.DELETE, mapping.name)
        delete = policy.phases.delete
        if delete is None:
            logger.info(
                "Skipping delete cronjob for policymapping %s; delete phase not defined",
                mapping.name,
            )
            return self._skipped(name, mapping)

        schedule = self._with_mapping(mapping, schedule_for, policy.poll_interval)
        min_age = self._with_mapping(mapping, threshold_millis, delete.min_age)
        desired = build_delete_job(self._cluster, mapping.name, schedule, min_age, self._defaults)
        return self._converger.reconcile(
            desired, are_scheduled_jobs_same,
            cluster=self._cluster.name, mapping=mapping.name, deadline=deadline,
        )

    def remove_jobs_for_mappings(
        self,
        mappings: list[PolicyMapping],
        policies: dict[str, IndexManagementPolicy],
        deadline: Deadline | None = None,
    ) -> None:
        remove_orphaned_jobs(
            self._store, self._cluster, mappings, policies, self._defaults.labels, deadline,
        )

    # --- Full pass ---

    def reconcile(
        self, spec: IndexManagementSpec, deadline: Deadline | None = None,
    ) -> PassReport:
        """Run one reconciliation pass; raises only CancelledError."""
        report = PassReport(cluster=self._cluster.name, namespace=self._cluster.namespace)
        policies = spec.policy_map()

        self._attempt(report, self._defaults.config_name, None,
                      lambda: self.reconcile_script_config(deadline))

        for mapping in spec.mappings:
            policy = policies.get(mapping.policy_ref)
            if policy is None:
                report.failures.append(ObjectFailure(
                    name=mapping.name,
                    mapping=mapping.name,
                    error_type="PolicyNotFound",
                    message=f"policy {mapping.policy_ref!r} is not defined",
                ))
                continue
            for variant, reconcile in (
                (JobVariant.ROLLOVER, self.reconcile_rollover_job),
                (JobVariant.DELETE, self.reconcile_delete_job),
            ):
                name = job_name(self._cluster.name, variant, mapping.name)
                self._attempt(report, name, mapping.name,
                              lambda r=reconcile, p=policy, m=mapping: r(p, m, deadline))

        try:
            self.remove_jobs_for_mappings(spec.mappings, policies, deadline)
        except CancelledError:
            raise
        except IndexManagementError as e:
            self._record_failure(report, "orphan-cleanup", None, e)

        logger.info(
            "Reconciled index management for %s/%s: %d objects, %d failures",
            self._cluster.namespace, self._cluster.name,
            len(report.results), len(report.failures),
        )
        return report

    # --- Private ---

    def _attempt(
        self,
        report: PassReport,
        name: str,
        mapping: str | None,
        fn: Callable[[], ReconcileResult],
    ) -> None:
        try:
            result = fn()
        except CancelledError:
            raise
        except IndexManagementError as e:
            self._record_failure(report, name, mapping, e)
            return
        if result.outcome != ReconcileOutcome.SKIPPED:
            report.results.append(result)

    def _record_failure(
        self, report: PassReport, name: str, mapping: str | None, error: Exception,
    ) -> None:
        logger.error("Failed to reconcile %s: %s", name, error)
        report.failures.append(ObjectFailure(
            name=name,
            mapping=mapping,
            error_type=type(error).__name__,
            message=str(error),
        ))

    def _with_mapping(self, mapping: PolicyMapping, translate: Callable[[str], T], value: str) -> T:
        try:
            return translate(value)
        except IndexManagementError as e:
            e.context.update(policymapping=mapping.name, cluster=self._cluster.name)
            raise

    def _skipped(self, name: str, mapping: PolicyMapping) -> ReconcileResult:
        return ReconcileResult(
            kind=ObjectKind.SCHEDULED_JOB,
            name=name,
            outcome=ReconcileOutcome.SKIPPED,
            mapping=mapping.name,
        )
