"""Default tables for derived objects.

The defaults are an immutable model handed to the builder and the
reconciler at construction time. Individual values can be overridden
from the ``defaults:`` block of ``index-lifecycle.yaml``.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ReconcilerDefaults(BaseModel):
    """Constants shared by every derived object of a cluster."""

    model_config = ConfigDict(frozen=True)

    labels: dict[str, str] = Field(default_factory=lambda: {
        "provider": "openshift",
        "component": "indexManagement",
        "logging-infra": "indexManagement",
    })
    container_name: str = "indexmanagement"
    config_name: str = "indexmanagement-scripts"
    cpu_request: str = "100m"
    memory_request: str = "32Mi"
    successful_jobs_history_limit: int = Field(1, ge=0)
    failed_jobs_history_limit: int = Field(1, ge=0)
    termination_grace_period_seconds: int = Field(300, ge=0)
    shard_size_gb: int = Field(40, ge=1)
    """Default rollover size per primary shard, in gigabytes."""

    scripts_mount_path: str = "/tmp/scripts"
    certs_mount_path: str = "/etc/indexmanagement/keys"
    scripts_mode: int = 0o777
    elasticsearch_port: int = 9200


DEFAULTS = ReconcilerDefaults()
