"""KubernetesObjectStore: derived objects stored as CronJobs and ConfigMaps.

Uses the official ``kubernetes`` Python client. Supports kubeconfig file
(optionally with a context) or in-cluster config. Objects are converted
to camelCase manifests on the way out and only the fields the reconciler
owns are read back, so server-populated fields never show up as drift.
Updates are written over the manifest last fetched with ``get``, so
annotations, finalizers and spec fields set by others survive a replace.

Requires: ``pip install index-lifecycle[k8s]``
"""

from __future__ import annotations

import copy
import json
from typing import Any

from index_lifecycle.errors import (
    AlreadyExistsError,
    ConflictError,
    NotFoundError,
    StoreError,
)
from index_lifecycle.models import (
    ConfigObject,
    ContainerSpec,
    DerivedObject,
    EnvVar,
    ObjectKind,
    ObjectMeta,
    OwnerReference,
    ResourceRequirements,
    ScheduledJob,
    ScheduledJobSpec,
    Toleration,
    Volume,
    VolumeMount,
)
from index_lifecycle.store.base import Deadline


def _check_kubernetes_available() -> None:
    """Raise ImportError with helpful message if kubernetes is not installed."""
    try:
        import kubernetes  # noqa: F401
    except ImportError:
        raise ImportError(
            "The 'kubernetes' package is required for KubernetesObjectStore. "
            "Install it with: pip install index-lifecycle[k8s]"
        ) from None


# --- Manifest conversion ---


def _meta_to_manifest(meta: ObjectMeta) -> dict[str, Any]:
    manifest: dict[str, Any] = {
        "name": meta.name,
        "namespace": meta.namespace,
        "labels": dict(meta.labels),
    }
    if meta.owner_references:
        manifest["ownerReferences"] = [
            {
                "apiVersion": ref.api_version,
                "kind": ref.kind,
                "name": ref.name,
                "uid": ref.uid,
                "controller": ref.controller,
            }
            for ref in meta.owner_references
        ]
    if meta.resource_version is not None:
        manifest["resourceVersion"] = meta.resource_version
    return manifest


def _meta_from_manifest(manifest: dict[str, Any]) -> ObjectMeta:
    return ObjectMeta(
        name=manifest["name"],
        namespace=manifest.get("namespace", ""),
        labels=manifest.get("labels") or {},
        owner_references=[
            OwnerReference(
                api_version=ref.get("apiVersion", ""),
                kind=ref.get("kind", ""),
                name=ref.get("name", ""),
                uid=ref.get("uid", ""),
                controller=bool(ref.get("controller", False)),
            )
            for ref in manifest.get("ownerReferences") or []
        ],
        resource_version=manifest.get("resourceVersion"),
    )


def _toleration_to_manifest(toleration: Toleration) -> dict[str, Any]:
    manifest = {
        "key": toleration.key,
        "operator": toleration.operator,
        "value": toleration.value,
        "effect": toleration.effect,
        "tolerationSeconds": toleration.toleration_seconds,
    }
    return {k: v for k, v in manifest.items() if v is not None}


def _container_to_manifest(container: ContainerSpec) -> dict[str, Any]:
    resources: dict[str, Any] = {}
    if container.resources.requests:
        resources["requests"] = dict(container.resources.requests)
    if container.resources.limits:
        resources["limits"] = dict(container.resources.limits)
    return {
        "name": container.name,
        "image": container.image,
        "imagePullPolicy": container.image_pull_policy,
        "command": list(container.command),
        "args": list(container.args),
        "env": [{"name": e.name, "value": e.value} for e in container.env],
        "resources": resources,
        "volumeMounts": [
            {"name": m.name, "mountPath": m.mount_path, "readOnly": m.read_only}
            for m in container.volume_mounts
        ],
    }


def _container_from_manifest(manifest: dict[str, Any]) -> ContainerSpec:
    resources = manifest.get("resources") or {}
    return ContainerSpec(
        name=manifest["name"],
        image=manifest.get("image", ""),
        image_pull_policy=manifest.get("imagePullPolicy", "IfNotPresent"),
        command=manifest.get("command") or [],
        args=manifest.get("args") or [],
        env=[
            EnvVar(name=e["name"], value=e.get("value") or "")
            for e in manifest.get("env") or []
        ],
        resources=ResourceRequirements(
            requests={k: str(v) for k, v in (resources.get("requests") or {}).items()},
            limits={k: str(v) for k, v in (resources.get("limits") or {}).items()},
        ),
        volume_mounts=[
            VolumeMount(
                name=m["name"],
                mount_path=m.get("mountPath", ""),
                read_only=bool(m.get("readOnly", False)),
            )
            for m in manifest.get("volumeMounts") or []
        ],
    )


def _volume_to_manifest(volume: Volume) -> dict[str, Any]:
    manifest: dict[str, Any] = {"name": volume.name}
    if volume.secret_name is not None:
        manifest["secret"] = {"secretName": volume.secret_name}
    if volume.config_map_name is not None:
        config_map: dict[str, Any] = {"name": volume.config_map_name}
        if volume.default_mode is not None:
            config_map["defaultMode"] = volume.default_mode
        manifest["configMap"] = config_map
    return manifest


def _volume_from_manifest(manifest: dict[str, Any]) -> Volume:
    secret = manifest.get("secret") or {}
    config_map = manifest.get("configMap") or {}
    return Volume(
        name=manifest["name"],
        secret_name=secret.get("secretName"),
        config_map_name=config_map.get("name"),
        default_mode=config_map.get("defaultMode"),
    )


def to_manifest(obj: DerivedObject) -> dict[str, Any]:
    """Render a derived object as a Kubernetes manifest dict."""
    if isinstance(obj, ConfigObject):
        return {
            "apiVersion": "v1",
            "kind": "ConfigMap",
            "metadata": _meta_to_manifest(obj.metadata),
            "data": dict(obj.data),
        }

    spec = obj.spec
    pod_spec: dict[str, Any] = {
        "serviceAccountName": spec.service_account_name,
        "containers": [_container_to_manifest(c) for c in spec.containers],
        "volumes": [_volume_to_manifest(v) for v in spec.volumes],
        "nodeSelector": dict(spec.node_selector),
        "tolerations": [_toleration_to_manifest(t) for t in spec.tolerations],
        "restartPolicy": spec.restart_policy,
        "terminationGracePeriodSeconds": spec.termination_grace_period_seconds,
    }
    cron_spec: dict[str, Any] = {
        "schedule": spec.schedule,
        "concurrencyPolicy": spec.concurrency_policy,
        "successfulJobsHistoryLimit": spec.successful_jobs_history_limit,
        "failedJobsHistoryLimit": spec.failed_jobs_history_limit,
        "jobTemplate": {
            "spec": {
                "backoffLimit": spec.backoff_limit,
                "parallelism": spec.parallelism,
                "template": {
                    "metadata": {
                        "name": obj.metadata.name,
                        "namespace": obj.metadata.namespace,
                        "labels": dict(obj.metadata.labels),
                    },
                    "spec": pod_spec,
                },
            },
        },
    }
    if spec.suspend is not None:
        cron_spec["suspend"] = spec.suspend
    return {
        "apiVersion": "batch/v1",
        "kind": "CronJob",
        "metadata": _meta_to_manifest(obj.metadata),
        "spec": cron_spec,
    }


def from_manifest(kind: ObjectKind, manifest: dict[str, Any]) -> DerivedObject:
    """Read the owned fields of a Kubernetes manifest back into a model."""
    metadata = _meta_from_manifest(manifest.get("metadata") or {})
    if kind == ObjectKind.CONFIG_OBJECT:
        return ConfigObject(metadata=metadata, data=manifest.get("data") or {})

    cron_spec = manifest.get("spec") or {}
    job_spec = (cron_spec.get("jobTemplate") or {}).get("spec") or {}
    pod_spec = (job_spec.get("template") or {}).get("spec") or {}
    return ScheduledJob(
        metadata=metadata,
        spec=ScheduledJobSpec(
            schedule=cron_spec.get("schedule", ""),
            suspend=cron_spec.get("suspend"),
            concurrency_policy=cron_spec.get("concurrencyPolicy", "Allow"),
            successful_jobs_history_limit=cron_spec.get("successfulJobsHistoryLimit", 3),
            failed_jobs_history_limit=cron_spec.get("failedJobsHistoryLimit", 1),
            backoff_limit=job_spec.get("backoffLimit", 6),
            parallelism=job_spec.get("parallelism", 1),
            service_account_name=pod_spec.get("serviceAccountName", ""),
            containers=[_container_from_manifest(c) for c in pod_spec.get("containers") or []],
            volumes=[_volume_from_manifest(v) for v in pod_spec.get("volumes") or []],
            node_selector=pod_spec.get("nodeSelector") or {},
            tolerations=[
                Toleration(
                    key=t.get("key"),
                    operator=t.get("operator"),
                    value=t.get("value"),
                    effect=t.get("effect"),
                    toleration_seconds=t.get("tolerationSeconds"),
                )
                for t in pod_spec.get("tolerations") or []
            ],
            restart_policy=pod_spec.get("restartPolicy", "Always"),
            termination_grace_period_seconds=pod_spec.get("terminationGracePeriodSeconds", 30),
        ),
    )


def merge_manifest(live: dict[str, Any], obj: DerivedObject) -> dict[str, Any]:
    """Overlay the owned fields of *obj* onto a fetched manifest.

    Labels, owner references and the resource version come from *obj*'s
    metadata. A ConfigMap's ``data`` is replaced as a whole; the top-level
    keys of a CronJob ``spec`` are replaced one by one. Everything else in
    *live* is kept, except ``status``.
    """
    desired = to_manifest(obj)
    merged = copy.deepcopy(live)
    merged.pop("status", None)
    metadata = merged.get("metadata") or {}
    merged["metadata"] = metadata
    for key in ("labels", "ownerReferences", "resourceVersion"):
        if key in desired["metadata"]:
            metadata[key] = desired["metadata"][key]
    if isinstance(obj, ConfigObject):
        merged["data"] = desired["data"]
    else:
        spec = merged.get("spec") or {}
        spec.update(desired["spec"])
        merged["spec"] = spec
    return merged


# --- Error classification ---


def _status_reason(exc: Exception) -> str | None:
    body = getattr(exc, "body", None)
    if not body:
        return None
    try:
        return json.loads(body).get("reason")
    except (TypeError, ValueError, AttributeError):
        return None


def classify_error(
    exc: Exception, operation: str, kind: ObjectKind, namespace: str, name: str,
) -> StoreError:
    """Map a client exception onto the store error taxonomy."""
    context = {"operation": operation, "kind": kind.value, "namespace": namespace, "name": name}
    # Detect kubernetes ApiException by class name to avoid import
    if type(exc).__name__ != "ApiException":
        return StoreError(f"k8s store error: {exc}", **context)

    status = getattr(exc, "status", None)
    if status == 404:
        return NotFoundError("object not found", **context)
    if status == 409:
        reason = _status_reason(exc) or ("AlreadyExists" if operation == "create" else "Conflict")
        if reason == "AlreadyExists":
            return AlreadyExistsError("object already exists", **context)
        return ConflictError("object was modified concurrently", **context)
    return StoreError(f"k8s API error ({status}): {getattr(exc, 'reason', '')}", **context)


class KubernetesObjectStore:
    """ObjectStore backed by the Kubernetes API.

    Requires: ``pip install index-lifecycle[k8s]``

    Scheduled jobs map to ``batch/v1`` CronJobs and config objects to
    ConfigMaps. A Deadline's remaining time is forwarded to every call as
    the client request timeout.
    """

    _METHODS: dict[ObjectKind, tuple[str, str]] = {
        ObjectKind.SCHEDULED_JOB: ("BatchV1Api", "cron_job"),
        ObjectKind.CONFIG_OBJECT: ("CoreV1Api", "config_map"),
    }

    def __init__(
        self,
        kubeconfig: str | None = None,
        context: str | None = None,
        in_cluster: bool = False,
        api_client: Any = None,
    ) -> None:
        _check_kubernetes_available()
        self._kubeconfig = kubeconfig
        self._context = context
        self._in_cluster = in_cluster
        self._api_client = api_client
        self._apis: dict[str, Any] = {}
        # Last manifest read by get(), keyed by kind, namespace and name.
        self._fetched: dict[tuple[ObjectKind, str, str], dict[str, Any]] = {}

    # --- ObjectStore protocol ---

    def create(self, obj: DerivedObject, deadline: Deadline | None = None) -> DerivedObject:
        ns, name = obj.metadata.namespace, obj.metadata.name
        result = self._call(
            obj.kind, "create", ns, name, deadline,
            namespace=ns, body=to_manifest(obj),
        )
        return self._read_back(obj.kind, result)

    def get(
        self, kind: ObjectKind, namespace: str, name: str,
        deadline: Deadline | None = None,
    ) -> DerivedObject:
        result = self._call(kind, "read", namespace, name, deadline, name=name, namespace=namespace)
        manifest = self._to_dict(result)
        self._fetched[(kind, namespace, name)] = manifest
        return from_manifest(kind, manifest)

    def update(self, obj: DerivedObject, deadline: Deadline | None = None) -> DerivedObject:
        """Replace the object, keeping fields it does not own.

        The body is the manifest last fetched with ``get`` when its resource
        version matches *obj*'s, with the owned fields overlaid. Otherwise
        the rendered manifest is sent as is.
        """
        ns, name = obj.metadata.namespace, obj.metadata.name
        live = self._fetched.pop((obj.kind, ns, name), None)
        version = ((live or {}).get("metadata") or {}).get("resourceVersion")
        if live is not None and version == obj.metadata.resource_version:
            body = merge_manifest(live, obj)
        else:
            body = to_manifest(obj)
        result = self._call(
            obj.kind, "replace", ns, name, deadline,
            name=name, namespace=ns, body=body,
        )
        return self._read_back(obj.kind, result)

    def delete(
        self, kind: ObjectKind, namespace: str, name: str,
        deadline: Deadline | None = None,
    ) -> None:
        self._call(
            kind, "delete", namespace, name, deadline,
            name=name, namespace=namespace, propagation_policy="Background",
        )

    def list(
        self, kind: ObjectKind, namespace: str, labels: dict[str, str],
        deadline: Deadline | None = None,
    ) -> list[DerivedObject]:
        selector = ",".join(f"{k}={v}" for k, v in sorted(labels.items()))
        result = self._call(
            kind, "list", namespace, "", deadline,
            namespace=namespace, label_selector=selector,
        )
        return [self._read_back(kind, item) for item in result.items]

    # --- Private: client setup ---

    def _get_api_client(self) -> Any:
        """Build a kubernetes ApiClient from constructor config."""
        if self._api_client is not None:
            return self._api_client

        from kubernetes import client, config

        if self._in_cluster:
            config.load_incluster_config()
        else:
            kwargs: dict[str, Any] = {}
            if self._kubeconfig:
                kwargs["config_file"] = self._kubeconfig
            if self._context:
                kwargs["context"] = self._context
            config.load_kube_config(**kwargs)
        self._api_client = client.ApiClient()
        return self._api_client

    def _get_api_instance(self, api_class_name: str) -> Any:
        """Instantiate (once) the appropriate API class."""
        if api_class_name not in self._apis:
            from kubernetes import client

            api_cls = getattr(client, api_class_name)
            self._apis[api_class_name] = api_cls(self._get_api_client())
        return self._apis[api_class_name]

    # --- Private: calls ---

    def _call(
        self,
        kind: ObjectKind,
        verb: str,
        ns: str,
        obj_name: str,
        deadline: Deadline | None,
        /,
        **kwargs: Any,
    ) -> Any:
        """Invoke ``<verb>_namespaced_<resource>`` with *kwargs*.

        *ns* and *obj_name* only label errors; the client arguments all
        travel in *kwargs*.
        """
        if deadline is not None:
            deadline.check()
            remaining = deadline.remaining()
            if remaining is not None:
                kwargs["_request_timeout"] = remaining

        api_class, resource = self._METHODS[kind]
        try:
            api = self._get_api_instance(api_class)
            method = getattr(api, f"{verb}_namespaced_{resource}")
            return method(**kwargs)
        except Exception as exc:
            raise classify_error(exc, verb, kind, ns, obj_name) from exc

    def _to_dict(self, result: Any) -> dict[str, Any]:
        """Convert a client model (or plain dict) into a manifest dict."""
        if isinstance(result, dict):
            return result
        return self._get_api_client().sanitize_for_serialization(result)

    def _read_back(self, kind: ObjectKind, result: Any) -> DerivedObject:
        return from_manifest(kind, self._to_dict(result))
