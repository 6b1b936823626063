"""Error taxonomy for index-lifecycle reconciliation.

Every error carries a keyword context (object name, cluster, namespace,
policy mapping, ...) so a failure can be diagnosed from the message alone
without inspecting the object store.
"""

from __future__ import annotations

from typing import Any


class IndexManagementError(Exception):
    """Base class for all reconciliation errors."""

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = {k: v for k, v in context.items() if v is not None}

    def __str__(self) -> str:
        if not self.context:
            return self.message
        details = ", ".join(f"{k}={v}" for k, v in self.context.items())
        return f"{self.message} ({details})"


# --- Translation ---


class TranslationError(IndexManagementError):
    """A policy field could not be translated into a schedule or threshold."""


class InvalidScheduleError(TranslationError):
    """The poll interval cannot be expressed as a cron schedule."""


class InvalidDurationError(TranslationError):
    """A duration string has an unknown unit or a non-numeric magnitude."""


class SerializationError(IndexManagementError):
    """A job payload could not be encoded."""


# --- Object store ---


class StoreError(IndexManagementError):
    """A store round trip failed for a reason that is not retried."""


class AlreadyExistsError(StoreError):
    """Create was rejected because the object already exists."""


class NotFoundError(StoreError):
    """The object does not exist."""


class ConflictError(StoreError):
    """Update was rejected because the object's resource version is stale."""


class CancelledError(IndexManagementError):
    """The caller cancelled the operation or its deadline passed."""


# --- Reconciliation ---


class ReconcileError(IndexManagementError):
    """Converging a derived object failed; ``__cause__`` holds the store error."""


class ConfigError(IndexManagementError):
    """The project configuration file is invalid."""


class PolicyLoadError(IndexManagementError):
    """The policy/mapping document cannot be loaded or validated."""
