"""Core data models for index-lifecycle.

Defines the schemas for:
- Index management policies and policy mappings (declarative input)
- Cluster identity (who owns the derived objects)
- Rollover conditions (translated hot-phase thresholds)
- Derived objects (scheduled jobs and the scripts config object)
- Reconciliation results (what a pass did)
"""

from __future__ import annotations

import enum
from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field

# --- Enums ---


class ObjectKind(enum.StrEnum):
    SCHEDULED_JOB = "CronJob"
    CONFIG_OBJECT = "ConfigMap"


class JobVariant(enum.StrEnum):
    """The closed set of scheduled job flavours derived from a policy."""

    ROLLOVER = "rollover"
    DELETE = "delete"


class ReconcileOutcome(enum.StrEnum):
    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"
    SKIPPED = "skipped"


# --- Policy Schema ---


class RolloverAction(BaseModel):
    """Thresholds that trigger a rollover; any subset may be set."""

    max_age: str | None = None
    max_docs: int | None = Field(None, ge=1)
    max_size: str | None = None


class HotPhaseActions(BaseModel):
    rollover: RolloverAction | None = None


class HotPhase(BaseModel):
    actions: HotPhaseActions = Field(default_factory=HotPhaseActions)


class DeletePhase(BaseModel):
    min_age: str


class PolicyPhases(BaseModel):
    hot: HotPhase | None = None
    delete: DeletePhase | None = None


class IndexManagementPolicy(BaseModel):
    """A named lifecycle rule set.

    A policy without a hot phase schedules no rollover job and a policy
    without a delete phase schedules no delete job.
    """

    name: str = Field(..., pattern=r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?$")
    poll_interval: str
    phases: PolicyPhases = Field(default_factory=PolicyPhases)


class PolicyMapping(BaseModel):
    """Binds an index alias rule to a named policy."""

    name: str = Field(..., pattern=r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?$")
    policy_ref: str
    aliases: list[str] = Field(default_factory=list)


class IndexManagementSpec(BaseModel):
    """The full declarative input for one cluster."""

    policies: list[IndexManagementPolicy] = Field(default_factory=list)
    mappings: list[PolicyMapping] = Field(default_factory=list)

    def policy_map(self) -> dict[str, IndexManagementPolicy]:
        return {p.name: p for p in self.policies}


class RolloverConditions(BaseModel):
    """Serialized into the rollover job payload; unset fields are omitted."""

    max_age: str | None = None
    max_docs: int | None = None
    max_size: str | None = None

    def is_empty(self) -> bool:
        return not self.model_dump(exclude_none=True)


# --- Cluster Identity ---


class Toleration(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str | None = None
    operator: str | None = None
    value: str | None = None
    effect: str | None = None
    toleration_seconds: int | None = None


class OwnerReference(BaseModel):
    api_version: str
    kind: str
    name: str
    uid: str
    controller: bool = True


class ClusterIdentity(BaseModel):
    """The cluster the derived objects belong to.

    Supplied by the caller and treated as immutable for the duration of
    a reconciliation pass.
    """

    name: str
    namespace: str
    uid: str = ""
    image: str
    node_selector: dict[str, str] = Field(default_factory=dict)
    tolerations: list[Toleration] = Field(default_factory=list)
    primary_shards: int = Field(1, ge=0)
    owner_api_version: str = "logging.openshift.io/v1"
    owner_kind: str = "Elasticsearch"

    def owner_references(self) -> list[OwnerReference]:
        """The controller reference for derived objects; empty when the uid is unknown."""
        return [self.owner_reference()] if self.uid else []

    def owner_reference(self) -> OwnerReference:
        return OwnerReference(
            api_version=self.owner_api_version,
            kind=self.owner_kind,
            name=self.name,
            uid=self.uid,
        )


# --- Derived Objects ---


class ObjectMeta(BaseModel):
    name: str
    namespace: str
    labels: dict[str, str] = Field(default_factory=dict)
    owner_references: list[OwnerReference] = Field(default_factory=list)
    resource_version: str | None = None


class EnvVar(BaseModel):
    name: str
    value: str = ""


class VolumeMount(BaseModel):
    name: str
    mount_path: str
    read_only: bool = False


class Volume(BaseModel):
    """A pod volume backed by either a secret or a config map."""

    name: str
    secret_name: str | None = None
    config_map_name: str | None = None
    default_mode: int | None = None


class ResourceRequirements(BaseModel):
    requests: dict[str, str] = Field(default_factory=dict)
    limits: dict[str, str] = Field(default_factory=dict)


class ContainerSpec(BaseModel):
    name: str
    image: str
    image_pull_policy: str = "IfNotPresent"
    command: list[str] = Field(default_factory=list)
    args: list[str] = Field(default_factory=list)
    env: list[EnvVar] = Field(default_factory=list)
    resources: ResourceRequirements = Field(default_factory=ResourceRequirements)
    volume_mounts: list[VolumeMount] = Field(default_factory=list)


class ScheduledJobSpec(BaseModel):
    schedule: str
    suspend: bool | None = None
    concurrency_policy: str = "Forbid"
    successful_jobs_history_limit: int = 1
    failed_jobs_history_limit: int = 1
    backoff_limit: int = 0
    parallelism: int = 1
    service_account_name: str = ""
    containers: list[ContainerSpec] = Field(default_factory=list)
    volumes: list[Volume] = Field(default_factory=list)
    node_selector: dict[str, str] = Field(default_factory=dict)
    tolerations: list[Toleration] = Field(default_factory=list)
    restart_policy: str = "Never"
    termination_grace_period_seconds: int = 300


class ScheduledJob(BaseModel):
    """A derived CronJob. Only ``spec`` is overwritten on update."""

    kind: ClassVar[ObjectKind] = ObjectKind.SCHEDULED_JOB
    mutable_fields: ClassVar[tuple[str, ...]] = ("spec",)

    metadata: ObjectMeta
    spec: ScheduledJobSpec


class ConfigObject(BaseModel):
    """A derived ConfigMap. Only ``data`` is overwritten on update."""

    kind: ClassVar[ObjectKind] = ObjectKind.CONFIG_OBJECT
    mutable_fields: ClassVar[tuple[str, ...]] = ("data",)

    metadata: ObjectMeta
    data: dict[str, str] = Field(default_factory=dict)


DerivedObject = ScheduledJob | ConfigObject

KIND_MODELS: dict[ObjectKind, type[ScheduledJob] | type[ConfigObject]] = {
    ObjectKind.SCHEDULED_JOB: ScheduledJob,
    ObjectKind.CONFIG_OBJECT: ConfigObject,
}


# --- Reconciliation Results ---


class ReconcileResult(BaseModel):
    """What the converger did with one derived object."""

    kind: ObjectKind
    name: str
    outcome: ReconcileOutcome
    mapping: str | None = None


class ObjectFailure(BaseModel):
    """A derived object that could not be converged during a pass."""

    name: str
    mapping: str | None = None
    error_type: str
    message: str


class PassReport(BaseModel):
    """The outcome of one reconciliation pass."""

    cluster: str
    namespace: str
    results: list[ReconcileResult] = Field(default_factory=list)
    failures: list[ObjectFailure] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures

    def to_dict(self) -> dict:
        return self.model_dump(mode="json")
