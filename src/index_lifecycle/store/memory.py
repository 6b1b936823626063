"""In-memory object store.

Behaves like the remote store as far as the reconciler can tell: objects
are copied on the way in and out, every write bumps a resource version,
and updates carrying a stale version are rejected with ConflictError.
Used for dry runs and tests.
"""

from __future__ import annotations

import threading
from collections import deque

from index_lifecycle.errors import AlreadyExistsError, ConflictError, NotFoundError
from index_lifecycle.models import DerivedObject, ObjectKind
from index_lifecycle.store.base import Deadline

_Key = tuple[ObjectKind, str, str]


class InMemoryObjectStore:
    """Versioned dict-backed store with call recording and failure injection.

    ``calls`` records ``(operation, name)`` for every round trip, in order.
    ``fail_next("update", ConflictError(...))`` makes the next update raise
    the given error instead of touching the store.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._objects: dict[_Key, DerivedObject] = {}
        self._version = 0
        self._failures: dict[str, deque[Exception]] = {}
        self.calls: list[tuple[str, str]] = []

    def __len__(self) -> int:
        return len(self._objects)

    def fail_next(self, operation: str, *errors: Exception) -> None:
        """Queue errors to be raised by the next calls to *operation*."""
        with self._lock:
            self._failures.setdefault(operation, deque()).extend(errors)

    def count(self, operation: str) -> int:
        return sum(1 for op, _ in self.calls if op == operation)

    def seed(self, obj: DerivedObject) -> DerivedObject:
        """Insert *obj* directly, bypassing call recording."""
        with self._lock:
            stored = self._store(obj)
        return stored.model_copy(deep=True)

    # --- ObjectStore protocol ---

    def create(self, obj: DerivedObject, deadline: Deadline | None = None) -> DerivedObject:
        self._begin("create", obj.metadata.name, deadline)
        with self._lock:
            key = self._key_of(obj)
            if key in self._objects:
                raise AlreadyExistsError(
                    "object already exists", kind=obj.kind, name=obj.metadata.name,
                )
            stored = self._store(obj)
        return stored.model_copy(deep=True)

    def get(
        self, kind: ObjectKind, namespace: str, name: str,
        deadline: Deadline | None = None,
    ) -> DerivedObject:
        self._begin("get", name, deadline)
        with self._lock:
            current = self._objects.get((kind, namespace, name))
            if current is None:
                raise NotFoundError("object not found", kind=kind, namespace=namespace, name=name)
            return current.model_copy(deep=True)

    def update(self, obj: DerivedObject, deadline: Deadline | None = None) -> DerivedObject:
        self._begin("update", obj.metadata.name, deadline)
        with self._lock:
            key = self._key_of(obj)
            current = self._objects.get(key)
            if current is None:
                raise NotFoundError("object not found", kind=obj.kind, name=obj.metadata.name)
            if obj.metadata.resource_version != current.metadata.resource_version:
                raise ConflictError(
                    "the object has been modified; please apply your changes to the latest version",
                    kind=obj.kind,
                    name=obj.metadata.name,
                )
            stored = self._store(obj)
        return stored.model_copy(deep=True)

    def delete(
        self, kind: ObjectKind, namespace: str, name: str,
        deadline: Deadline | None = None,
    ) -> None:
        self._begin("delete", name, deadline)
        with self._lock:
            if self._objects.pop((kind, namespace, name), None) is None:
                raise NotFoundError("object not found", kind=kind, namespace=namespace, name=name)

    def list(
        self, kind: ObjectKind, namespace: str, labels: dict[str, str],
        deadline: Deadline | None = None,
    ) -> list[DerivedObject]:
        self._begin("list", namespace, deadline)
        with self._lock:
            return [
                obj.model_copy(deep=True)
                for (k, ns, _), obj in sorted(self._objects.items(), key=lambda item: item[0][2])
                if k == kind
                and ns == namespace
                and all(obj.metadata.labels.get(lk) == lv for lk, lv in labels.items())
            ]

    # --- Private ---

    def _begin(self, operation: str, name: str, deadline: Deadline | None) -> None:
        if deadline is not None:
            deadline.check()
        with self._lock:
            self.calls.append((operation, name))
            pending = self._failures.get(operation)
            if pending:
                raise pending.popleft()

    def _key_of(self, obj: DerivedObject) -> _Key:
        return (obj.kind, obj.metadata.namespace, obj.metadata.name)

    def _store(self, obj: DerivedObject) -> DerivedObject:
        self._version += 1
        stored = obj.model_copy(deep=True)
        stored.metadata.resource_version = str(self._version)
        self._objects[self._key_of(obj)] = stored
        return stored
