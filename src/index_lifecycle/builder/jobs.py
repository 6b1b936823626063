"""Desired-state builder for index management scheduled jobs.

Each policy mapping yields up to two jobs: a rollover job when its policy
has a hot phase and a delete job when it has a delete phase. Both share a
single template; the job variant only selects the script that runs and
the environment handed to it.
"""

from __future__ import annotations

import base64
import json

from index_lifecycle.defaults import DEFAULTS, ReconcilerDefaults
from index_lifecycle.errors import SerializationError
from index_lifecycle.models import (
    ClusterIdentity,
    ContainerSpec,
    EnvVar,
    JobVariant,
    ObjectMeta,
    ResourceRequirements,
    RolloverConditions,
    ScheduledJob,
    ScheduledJobSpec,
    Volume,
    VolumeMount,
)

OS_NODE_LABEL = "kubernetes.io/os"
LINUX_VALUE = "linux"


def job_name(cluster_name: str, variant: JobVariant, mapping_name: str) -> str:
    """Deterministic name of the job for a (cluster, variant, mapping)."""
    return f"{cluster_name}-{variant.value}-{mapping_name}"


def ensure_linux_node_selector(selector: dict[str, str] | None) -> dict[str, str]:
    """Return a copy of *selector* that pins pods to Linux nodes.

    An OS label already set by the operator is kept as is.
    """
    merged = dict(selector or {})
    merged.setdefault(OS_NODE_LABEL, LINUX_VALUE)
    return merged


def encode_rollover_payload(conditions: RolloverConditions) -> str:
    """Base64-encode ``{"conditions": ...}`` for the rollover script."""
    try:
        payload = json.dumps(
            {"conditions": conditions.model_dump(mode="json", exclude_none=True)},
            separators=(",", ":"),
            allow_nan=False,
        )
    except (TypeError, ValueError) as e:
        raise SerializationError(
            f"failed to serialize the rollover conditions to JSON: {e}"
        ) from e
    return base64.b64encode(payload.encode("utf-8")).decode("ascii")


def _variant_command(variant: JobVariant, defaults: ReconcilerDefaults) -> tuple[list[str], list[str]]:
    script = f"{defaults.scripts_mount_path}/{variant.value}"
    return ["bash"], ["-c", script]


def new_scheduled_job(
    cluster: ClusterIdentity,
    variant: JobVariant,
    mapping_name: str,
    schedule: str,
    env: list[EnvVar],
    defaults: ReconcilerDefaults = DEFAULTS,
) -> ScheduledJob:
    """Build a job from the shared index management template."""
    name = job_name(cluster.name, variant, mapping_name)
    command, args = _variant_command(variant, defaults)

    container = ContainerSpec(
        name=defaults.container_name,
        image=cluster.image,
        command=command,
        args=args,
        env=[
            EnvVar(
                name="ES_SERVICE",
                value=f"https://{cluster.name}:{defaults.elasticsearch_port}",
            ),
            *env,
        ],
        resources=ResourceRequirements(
            requests={
                "memory": defaults.memory_request,
                "cpu": defaults.cpu_request,
            },
        ),
        volume_mounts=[
            VolumeMount(name="certs", mount_path=defaults.certs_mount_path, read_only=True),
            VolumeMount(name="scripts", mount_path=defaults.scripts_mount_path),
        ],
    )

    return ScheduledJob(
        metadata=ObjectMeta(
            name=name,
            namespace=cluster.namespace,
            labels=dict(defaults.labels),
            owner_references=cluster.owner_references(),
        ),
        spec=ScheduledJobSpec(
            schedule=schedule,
            concurrency_policy="Forbid",
            successful_jobs_history_limit=defaults.successful_jobs_history_limit,
            failed_jobs_history_limit=defaults.failed_jobs_history_limit,
            backoff_limit=0,
            parallelism=1,
            service_account_name=cluster.name,
            containers=[container],
            volumes=[
                Volume(name="certs", secret_name=cluster.name),
                Volume(
                    name="scripts",
                    config_map_name=defaults.config_name,
                    default_mode=defaults.scripts_mode,
                ),
            ],
            node_selector=ensure_linux_node_selector(cluster.node_selector),
            tolerations=list(cluster.tolerations),
            restart_policy="Never",
            termination_grace_period_seconds=defaults.termination_grace_period_seconds,
        ),
    )


def build_rollover_job(
    cluster: ClusterIdentity,
    mapping_name: str,
    schedule: str,
    conditions: RolloverConditions,
    defaults: ReconcilerDefaults = DEFAULTS,
) -> ScheduledJob:
    """Build the rollover job; raises SerializationError if the payload cannot be encoded."""
    try:
        payload = encode_rollover_payload(conditions)
    except SerializationError as e:
        e.context.update(policymapping=mapping_name, cluster=cluster.name)
        raise
    env = [
        EnvVar(name="PAYLOAD", value=payload),
        EnvVar(name="POLICY_MAPPING", value=mapping_name),
    ]
    return new_scheduled_job(cluster, JobVariant.ROLLOVER, mapping_name, schedule, env, defaults)


def build_delete_job(
    cluster: ClusterIdentity,
    mapping_name: str,
    schedule: str,
    min_age_millis: int,
    defaults: ReconcilerDefaults = DEFAULTS,
) -> ScheduledJob:
    env = [
        EnvVar(name="POLICY_MAPPING", value=mapping_name),
        EnvVar(name="MIN_AGE", value=str(min_age_millis)),
    ]
    return new_scheduled_job(cluster, JobVariant.DELETE, mapping_name, schedule, env, defaults)
