"""Tests for IndexManagementReconciler (full reconciliation passes)."""

from __future__ import annotations

import base64
import json

import pytest

from index_lifecycle.defaults import DEFAULTS
from index_lifecycle.errors import CancelledError, StoreError
from index_lifecycle.models import (
    IndexManagementPolicy,
    IndexManagementSpec,
    ObjectKind,
    PolicyMapping,
    PolicyPhases,
    ReconcileOutcome,
)
from index_lifecycle.reconcile.indexmanagement import IndexManagementReconciler
from index_lifecycle.reconcile.orphans import existing_job_names
from index_lifecycle.store.base import Deadline


@pytest.fixture
def reconciler(store, cluster, fast_retry) -> IndexManagementReconciler:
    return IndexManagementReconciler(store, cluster, retry_policy=fast_retry)


def _outcomes(report) -> dict[str, ReconcileOutcome]:
    return {r.name: r.outcome for r in report.results}


def _jobs(store, cluster) -> set[str]:
    return existing_job_names(store, cluster.namespace, DEFAULTS.labels)


# --- Full pass ---


class TestFullPass:
    def test_first_pass_creates_everything(self, reconciler, store, spec):
        report = reconciler.reconcile(spec)

        assert report.ok
        assert _outcomes(report) == {
            "indexmanagement-scripts": ReconcileOutcome.CREATED,
            "elasticsearch-rollover-infra": ReconcileOutcome.CREATED,
            "elasticsearch-delete-infra": ReconcileOutcome.CREATED,
            "elasticsearch-rollover-app": ReconcileOutcome.CREATED,
        }
        assert len(store) == 4

    def test_second_pass_writes_nothing(self, reconciler, store, spec):
        reconciler.reconcile(spec)
        updates_before = store.count("update")

        report = reconciler.reconcile(spec)

        assert set(_outcomes(report).values()) == {ReconcileOutcome.UNCHANGED}
        assert store.count("update") == updates_before == 0
        assert store.count("delete") == 0

    def test_rollover_payload_uses_shard_default(self, reconciler, store, spec, cluster):
        reconciler.reconcile(spec)

        job = store.get(ObjectKind.SCHEDULED_JOB, cluster.namespace, "elasticsearch-rollover-infra")
        env = {e.name: e.value for e in job.spec.containers[0].env}
        payload = json.loads(base64.b64decode(env["PAYLOAD"]))
        assert payload == {"conditions": {"max_age": "8h", "max_size": "120gb"}}
        assert job.spec.schedule == "*/15 * * * *"

    def test_delete_job_min_age(self, reconciler, store, spec, cluster):
        reconciler.reconcile(spec)

        job = store.get(ObjectKind.SCHEDULED_JOB, cluster.namespace, "elasticsearch-delete-infra")
        env = {e.name: e.value for e in job.spec.containers[0].env}
        assert env["MIN_AGE"] == str(7 * 86_400_000)

    def test_poll_interval_change_updates_schedule(self, reconciler, store, spec, cluster):
        reconciler.reconcile(spec)
        spec.policies[0].poll_interval = "5m"

        report = reconciler.reconcile(spec)

        outcomes = _outcomes(report)
        assert outcomes["elasticsearch-rollover-infra"] == ReconcileOutcome.UPDATED
        assert outcomes["elasticsearch-delete-infra"] == ReconcileOutcome.UPDATED
        assert outcomes["elasticsearch-rollover-app"] == ReconcileOutcome.UNCHANGED
        job = store.get(ObjectKind.SCHEDULED_JOB, cluster.namespace, "elasticsearch-delete-infra")
        assert job.spec.schedule == "*/5 * * * *"

    def test_policy_without_phases_yields_nothing(self, reconciler, store, cluster):
        spec = IndexManagementSpec(
            policies=[IndexManagementPolicy(name="idle", poll_interval="1m", phases=PolicyPhases())],
            mappings=[PolicyMapping(name="audit", policy_ref="idle")],
        )

        report = reconciler.reconcile(spec)

        assert report.ok
        assert _outcomes(report) == {"indexmanagement-scripts": ReconcileOutcome.CREATED}
        assert _jobs(store, cluster) == set()

    def test_report_serializes(self, reconciler, spec):
        data = reconciler.reconcile(spec).to_dict()
        assert data["cluster"] == "elasticsearch"
        assert data["namespace"] == "openshift-logging"
        assert data["results"][0]["outcome"] == "created"
        assert data["failures"] == []


# --- Orphans across passes ---


class TestOrphanRemoval:
    def test_dropped_mapping_jobs_removed(self, reconciler, store, spec, cluster):
        reconciler.reconcile(spec)
        spec.mappings = [m for m in spec.mappings if m.name != "infra"]

        reconciler.reconcile(spec)

        assert _jobs(store, cluster) == {"elasticsearch-rollover-app"}

    def test_dropped_delete_phase_removes_delete_job(self, reconciler, store, spec, cluster):
        reconciler.reconcile(spec)
        spec.policies[0].phases.delete = None

        reconciler.reconcile(spec)

        assert _jobs(store, cluster) == {
            "elasticsearch-rollover-infra",
            "elasticsearch-rollover-app",
        }

    def test_listing_failure_recorded(self, reconciler, store, spec):
        store.fail_next("list", StoreError("timeout"))

        report = reconciler.reconcile(spec)

        assert not report.ok
        assert [(f.name, f.error_type) for f in report.failures] == [
            ("orphan-cleanup", "ReconcileError"),
        ]
        assert len(report.results) == 4


# --- Failure isolation ---


class TestFailureIsolation:
    def test_bad_poll_interval_isolated_to_its_mapping(self, reconciler, store, spec, cluster):
        spec.policies.append(IndexManagementPolicy.model_validate({
            "name": "broken",
            "poll_interval": "1h30m",
            "phases": {"hot": {}, "delete": {"min_age": "1d"}},
        }))
        spec.mappings.append(PolicyMapping(name="audit", policy_ref="broken"))

        report = reconciler.reconcile(spec)

        assert {f.name for f in report.failures} == {
            "elasticsearch-rollover-audit",
            "elasticsearch-delete-audit",
        }
        failure = report.failures[0]
        assert failure.error_type == "InvalidScheduleError"
        assert failure.mapping == "audit"
        assert "policymapping=audit" in failure.message
        assert len(report.results) == 4

    def test_bad_min_age(self, reconciler, spec):
        spec.policies[0].phases.delete.min_age = "7y"

        report = reconciler.reconcile(spec)

        assert [(f.name, f.error_type) for f in report.failures] == [
            ("elasticsearch-delete-infra", "InvalidDurationError"),
        ]
        assert "elasticsearch-rollover-infra" in _outcomes(report)

    def test_unknown_policy(self, reconciler, store, spec, cluster):
        spec.mappings.append(PolicyMapping(name="orphaned", policy_ref="nope"))

        report = reconciler.reconcile(spec)

        assert [(f.name, f.error_type) for f in report.failures] == [
            ("orphaned", "PolicyNotFound"),
        ]
        assert "'nope'" in report.failures[0].message
        assert not any("orphaned" in name for name in _jobs(store, cluster))

    def test_unknown_policy_removes_previous_jobs(self, reconciler, store, spec, cluster):
        reconciler.reconcile(spec)
        spec.mappings[0].policy_ref = "renamed-away"

        reconciler.reconcile(spec)

        assert _jobs(store, cluster) == {"elasticsearch-rollover-app"}

    def test_config_failure_does_not_stop_jobs(self, reconciler, store, spec, cluster):
        store.fail_next("create", StoreError("quota exceeded"))

        report = reconciler.reconcile(spec)

        assert [(f.name, f.error_type) for f in report.failures] == [
            ("indexmanagement-scripts", "ReconcileError"),
        ]
        assert len(_jobs(store, cluster)) == 3


# --- Cancellation ---


class TestCancellation:
    def test_cancelled_pass_aborts(self, reconciler, store, spec):
        deadline = Deadline()
        deadline.cancel()

        with pytest.raises(CancelledError):
            reconciler.reconcile(spec, deadline)
        assert store.calls == []
