"""Shared fixtures for index-lifecycle tests."""

from __future__ import annotations

import pytest

from index_lifecycle.models import (
    ClusterIdentity,
    DeletePhase,
    HotPhase,
    HotPhaseActions,
    IndexManagementPolicy,
    IndexManagementSpec,
    PolicyMapping,
    PolicyPhases,
    RolloverAction,
    Toleration,
)
from index_lifecycle.reconcile.retry import RetryPolicy
from index_lifecycle.store.memory import InMemoryObjectStore

# No back-off between conflict retries in tests
FAST_RETRY = RetryPolicy(max_attempts=5, delay=0.0, jitter=0.0)


@pytest.fixture
def cluster() -> ClusterIdentity:
    return ClusterIdentity(
        name="elasticsearch",
        namespace="openshift-logging",
        uid="0f6a-uid",
        image="quay.io/openshift/origin-logging-elasticsearch6:latest",
        node_selector={"node-role.kubernetes.io/infra": ""},
        tolerations=[Toleration(key="infra", operator="Exists", effect="NoSchedule")],
        primary_shards=3,
    )


@pytest.fixture
def fast_retry() -> RetryPolicy:
    return FAST_RETRY


@pytest.fixture
def store() -> InMemoryObjectStore:
    return InMemoryObjectStore()


@pytest.fixture
def full_policy() -> IndexManagementPolicy:
    return IndexManagementPolicy(
        name="infra-policy",
        poll_interval="15m",
        phases=PolicyPhases(
            hot=HotPhase(actions=HotPhaseActions(rollover=RolloverAction(max_age="8h"))),
            delete=DeletePhase(min_age="7d"),
        ),
    )


@pytest.fixture
def spec(full_policy: IndexManagementPolicy) -> IndexManagementSpec:
    return IndexManagementSpec(
        policies=[
            full_policy,
            IndexManagementPolicy(
                name="hot-only",
                poll_interval="30m",
                phases=PolicyPhases(
                    hot=HotPhase(actions=HotPhaseActions(rollover=RolloverAction(max_docs=1000))),
                ),
            ),
        ],
        mappings=[
            PolicyMapping(name="infra", policy_ref="infra-policy", aliases=["infra"]),
            PolicyMapping(name="app", policy_ref="hot-only", aliases=["app"]),
        ],
    )
