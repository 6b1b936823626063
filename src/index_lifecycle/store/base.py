"""Object store protocol and call deadlines.

The ObjectStore protocol defines the interface for the remote, versioned
store holding derived objects. Any object with the five methods below
satisfies the protocol: no inheritance required. Every method blocks
until the store answers and raises one of the classified store errors:

- AlreadyExistsError: create of an existing object
- NotFoundError: get/delete of a missing object
- ConflictError: update with a stale resource version
- StoreError: anything else
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from typing import Protocol, runtime_checkable

from index_lifecycle.errors import CancelledError
from index_lifecycle.models import DerivedObject, ObjectKind


class Deadline:
    """An optional timeout plus a cancellation signal shared by store calls.

    ``check()`` raises CancelledError once the signal is set or the
    timeout has passed. ``sleep()`` is interruptible by ``cancel()``.
    """

    def __init__(
        self,
        timeout: float | None = None,
        cancel_event: threading.Event | None = None,
        _clock: Callable[[], float] | None = None,
    ) -> None:
        self._clock = _clock or time.monotonic
        self._expires_at = None if timeout is None else self._clock() + timeout
        self._event = cancel_event or threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def remaining(self) -> float | None:
        """Seconds left before the deadline, or None when unbounded."""
        if self._expires_at is None:
            return None
        return max(self._expires_at - self._clock(), 0.0)

    def check(self) -> None:
        if self._event.is_set():
            raise CancelledError("operation cancelled")
        remaining = self.remaining()
        if remaining is not None and remaining <= 0:
            raise CancelledError("deadline exceeded")

    def sleep(self, seconds: float) -> None:
        remaining = self.remaining()
        if remaining is not None:
            seconds = min(seconds, remaining)
        self._event.wait(max(seconds, 0.0))
        self.check()


@runtime_checkable
class ObjectStore(Protocol):
    """Protocol for derived object stores."""

    def create(self, obj: DerivedObject, deadline: Deadline | None = None) -> DerivedObject:
        """Create *obj*; the returned copy carries the new resource version."""
        ...

    def get(
        self, kind: ObjectKind, namespace: str, name: str,
        deadline: Deadline | None = None,
    ) -> DerivedObject:
        """Fetch the current object."""
        ...

    def update(self, obj: DerivedObject, deadline: Deadline | None = None) -> DerivedObject:
        """Replace *obj* if its resource version is still current."""
        ...

    def delete(
        self, kind: ObjectKind, namespace: str, name: str,
        deadline: Deadline | None = None,
    ) -> None:
        """Delete an object."""
        ...

    def list(
        self, kind: ObjectKind, namespace: str, labels: dict[str, str],
        deadline: Deadline | None = None,
    ) -> list[DerivedObject]:
        """List objects in *namespace* carrying all of *labels*."""
        ...
