"""index-lifecycle: keeps index management cron jobs aligned with lifecycle policy."""

__version__ = "0.4.0"

from index_lifecycle.builder import build_delete_job, build_rollover_job, build_script_config
from index_lifecycle.config import IndexLifecycleConfig, find_config, load_config
from index_lifecycle.defaults import DEFAULTS, ReconcilerDefaults
from index_lifecycle.errors import (
    AlreadyExistsError,
    CancelledError,
    ConflictError,
    IndexManagementError,
    InvalidDurationError,
    InvalidScheduleError,
    NotFoundError,
    ReconcileError,
    SerializationError,
    StoreError,
)
from index_lifecycle.models import (
    ClusterIdentity,
    ConfigObject,
    IndexManagementPolicy,
    IndexManagementSpec,
    PassReport,
    PolicyMapping,
    ReconcileOutcome,
    ReconcileResult,
    RolloverConditions,
    ScheduledJob,
)
from index_lifecycle.policy import (
    load_index_management,
    rollover_conditions,
    schedule_for,
    threshold_millis,
)
from index_lifecycle.reconcile import (
    Converger,
    IndexManagementReconciler,
    RetryPolicy,
    retry_on_conflict,
)
from index_lifecycle.store import Deadline, InMemoryObjectStore, KubernetesObjectStore, ObjectStore

__all__ = [
    "AlreadyExistsError",
    "CancelledError",
    "ClusterIdentity",
    "ConfigObject",
    "ConflictError",
    "Converger",
    "DEFAULTS",
    "Deadline",
    "IndexLifecycleConfig",
    "IndexManagementError",
    "IndexManagementPolicy",
    "IndexManagementReconciler",
    "IndexManagementSpec",
    "InMemoryObjectStore",
    "InvalidDurationError",
    "InvalidScheduleError",
    "KubernetesObjectStore",
    "NotFoundError",
    "ObjectStore",
    "PassReport",
    "PolicyMapping",
    "ReconcileError",
    "ReconcileOutcome",
    "ReconcileResult",
    "ReconcilerDefaults",
    "RetryPolicy",
    "RolloverConditions",
    "ScheduledJob",
    "SerializationError",
    "StoreError",
    "build_delete_job",
    "build_rollover_job",
    "build_script_config",
    "find_config",
    "load_config",
    "load_index_management",
    "retry_on_conflict",
    "rollover_conditions",
    "schedule_for",
    "threshold_millis",
    "__version__",
]
