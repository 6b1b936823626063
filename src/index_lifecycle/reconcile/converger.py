"""Converger: create-or-update of one derived object.

Protocol:
  1. Create the desired object. Success ends the reconcile.
  2. AlreadyExistsError switches to the update path; any other create
     failure is reported and not retried.
  3. Update path, under the conflict retry policy:
     fetch current, compare with the sameness predicate, then
     no write if same, otherwise overwrite the kind's mutable fields
     with the desired ones and update. A version conflict starts a fresh
     fetch-compare-write attempt.

Repeated reconciles of an unchanged object never write, so the remote
resource version only moves when something actually changed.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Callable
from typing import Any

from index_lifecycle.errors import (
    AlreadyExistsError,
    ReconcileError,
    StoreError,
)
from index_lifecycle.models import (
    DerivedObject,
    ReconcileOutcome,
    ReconcileResult,
)
from index_lifecycle.reconcile.retry import DEFAULT_RETRY, RetryPolicy, retry_on_conflict
from index_lifecycle.store.base import Deadline, ObjectStore

logger = logging.getLogger(__name__)

SamenessPredicate = Callable[[Any, Any], bool]


class Converger:
    """Drives a single derived object towards its desired state."""

    def __init__(self, store: ObjectStore, retry_policy: RetryPolicy = DEFAULT_RETRY) -> None:
        self._store = store
        self._retry_policy = retry_policy

    def reconcile(
        self,
        desired: DerivedObject,
        sameness: SamenessPredicate,
        *,
        cluster: str,
        mapping: str | None = None,
        deadline: Deadline | None = None,
    ) -> ReconcileResult:
        """Create *desired* or bring the existing object in line with it.

        Raises ReconcileError (wrapping the store error) on failure and
        CancelledError if *deadline* is cancelled or expires.
        """
        kind = desired.kind
        name = desired.metadata.name
        namespace = desired.metadata.namespace
        label = kind.value.lower()
        context = {"name": name, "cluster": cluster, "namespace": namespace}

        try:
            self._store.create(desired, deadline)
        except AlreadyExistsError:
            logger.debug("%s %s/%s already exists, checking for drift", kind, namespace, name)
        except StoreError as e:
            raise ReconcileError(f"failed to create {label} for cluster", **context) from e
        else:
            logger.info("Created %s %s/%s", kind, namespace, name)
            return ReconcileResult(
                kind=kind, name=name, outcome=ReconcileOutcome.CREATED, mapping=mapping,
            )

        def fetch_compare_write() -> ReconcileOutcome:
            current = self._store.get(kind, namespace, name, deadline)
            if sameness(current, desired):
                return ReconcileOutcome.UNCHANGED
            for field in desired.mutable_fields:
                setattr(current, field, copy.deepcopy(getattr(desired, field)))
            self._store.update(current, deadline)
            return ReconcileOutcome.UPDATED

        try:
            outcome = retry_on_conflict(fetch_compare_write, self._retry_policy, deadline)
        except StoreError as e:
            raise ReconcileError(f"failed to update {label} for cluster", **context) from e

        if outcome == ReconcileOutcome.UPDATED:
            logger.info("Updated %s %s/%s", kind, namespace, name)
        else:
            logger.debug("%s %s/%s is up to date", kind, namespace, name)
        return ReconcileResult(kind=kind, name=name, outcome=outcome, mapping=mapping)
