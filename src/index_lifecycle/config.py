"""Config file loading and auto-discovery for index-lifecycle.

Searches for ``index-lifecycle.yaml`` in the current directory and parent
directories, parses it, and resolves relative paths against the config
file's location. Example::

    cluster:
      name: elasticsearch
      namespace: openshift-logging
      image: quay.io/openshift/origin-logging-elasticsearch6:latest
      primary_shards: 3
    index_management: ./index-management.yaml
    kubeconfig: ~/.kube/config
    retry:
      max_attempts: 5
    defaults:
      memory_request: 64Mi
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from index_lifecycle.defaults import DEFAULTS, ReconcilerDefaults
from index_lifecycle.errors import ConfigError
from index_lifecycle.models import ClusterIdentity
from index_lifecycle.reconcile.retry import DEFAULT_RETRY, RetryPolicy

CONFIG_FILENAME = "index-lifecycle.yaml"


@dataclass(frozen=True)
class IndexLifecycleConfig:
    """Parsed index-lifecycle project configuration."""

    config_path: Path | None = None
    cluster: dict[str, Any] | None = None
    index_management: str | None = None
    kubeconfig: str | None = None
    context: str | None = None
    in_cluster: bool = False
    timeout: float | None = None
    retry: dict[str, Any] | None = None
    defaults: dict[str, Any] | None = None

    def cluster_identity(self) -> ClusterIdentity:
        """Validate the ``cluster`` block. Raises ConfigError if missing or invalid."""
        if not self.cluster:
            raise ConfigError("no cluster configured", config=self.config_path)
        try:
            return ClusterIdentity(**self.cluster)
        except (ValidationError, TypeError) as e:
            raise ConfigError(f"invalid cluster block: {e}", config=self.config_path) from e

    def retry_policy(self) -> RetryPolicy:
        if not self.retry:
            return DEFAULT_RETRY
        try:
            return RetryPolicy(**self.retry)
        except (ValidationError, TypeError) as e:
            raise ConfigError(f"invalid retry block: {e}", config=self.config_path) from e

    def reconciler_defaults(self) -> ReconcilerDefaults:
        if not self.defaults:
            return DEFAULTS
        try:
            return ReconcilerDefaults(**{**DEFAULTS.model_dump(), **self.defaults})
        except (ValidationError, TypeError) as e:
            raise ConfigError(f"invalid defaults block: {e}", config=self.config_path) from e


def find_config(start: Path | None = None) -> Path | None:
    """Walk from *start* (default ``cwd()``) up to the filesystem root.

    Returns the first ``index-lifecycle.yaml`` found, or ``None``.
    """
    current = (start or Path.cwd()).resolve()
    while True:
        candidate = current / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            return None
        current = parent


def load_config(
    path: str | Path | None = None,
    *,
    auto_discover: bool = True,
) -> IndexLifecycleConfig:
    """Load an index-lifecycle config file.

    Resolution order:

    1. Explicit *path* (error if it doesn't exist).
    2. Auto-discover by walking parent directories.
    3. Return an empty ``IndexLifecycleConfig`` (all defaults).
    """
    config_path: Path | None = None

    if path is not None:
        config_path = Path(path).resolve()
        if not config_path.is_file():
            msg = f"Config file not found: {config_path}"
            raise FileNotFoundError(msg)
    elif auto_discover:
        config_path = find_config()

    if config_path is None:
        return IndexLifecycleConfig()

    return _parse_config(config_path)


def _parse_config(config_path: Path) -> IndexLifecycleConfig:
    """Read and parse a YAML config file, resolving relative paths."""
    text = config_path.read_text(encoding="utf-8")
    try:
        data = yaml.safe_load(text) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid YAML: {e}", config=config_path) from e

    if not isinstance(data, dict):
        raise ConfigError(
            f"expected a YAML mapping, got {type(data).__name__}", config=config_path,
        )

    base = config_path.parent

    def _resolve(key: str) -> str | None:
        val = data.get(key)
        if val is None:
            return None
        return str((base / Path(val).expanduser()).resolve())

    timeout = data.get("timeout")
    if timeout is not None and not isinstance(timeout, (int, float)):
        raise ConfigError("timeout must be a number of seconds", config=config_path)
    return IndexLifecycleConfig(
        config_path=config_path,
        cluster=data.get("cluster"),
        index_management=_resolve("index_management"),
        kubeconfig=_resolve("kubeconfig"),
        context=data.get("context"),
        in_cluster=bool(data.get("in_cluster", False)),
        timeout=float(timeout) if timeout is not None else None,
        retry=data.get("retry"),
        defaults=data.get("defaults"),
    )
