"""index-lifecycle CLI: command-line interface for index-lifecycle.

Commands:
    validate    Validate the config and translate every policy mapping
    render      Print the derived objects a pass would converge
    reconcile   Run one reconciliation pass against the cluster
"""

from __future__ import annotations

import json
import logging
import sys
from typing import Any, NoReturn

import click
import yaml

from index_lifecycle import __version__
from index_lifecycle.builder.jobs import build_delete_job, build_rollover_job
from index_lifecycle.builder.scripts import build_script_config
from index_lifecycle.config import IndexLifecycleConfig, load_config
from index_lifecycle.errors import CancelledError, IndexManagementError
from index_lifecycle.models import (
    ClusterIdentity,
    DerivedObject,
    IndexManagementSpec,
)
from index_lifecycle.policy.loader import load_index_management
from index_lifecycle.policy.translator import (
    rollover_conditions,
    schedule_for,
    threshold_millis,
)
from index_lifecycle.reconcile.indexmanagement import IndexManagementReconciler
from index_lifecycle.store.base import Deadline, ObjectStore
from index_lifecycle.store.kubernetes import KubernetesObjectStore, to_manifest
from index_lifecycle.store.memory import InMemoryObjectStore

DEFAULT_INDEX_MANAGEMENT = "./index-management.yaml"


def _fail(message: str) -> NoReturn:
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


def _load(
    config_path: str | None, index_management: str | None,
) -> tuple[IndexLifecycleConfig, ClusterIdentity, IndexManagementSpec]:
    """Load config, cluster identity and policy document; exit 1 on error."""
    try:
        cfg = load_config(config_path)
    except FileNotFoundError as e:
        _fail(str(e))
    except IndexManagementError as e:
        _fail(str(e))

    path = index_management or cfg.index_management or DEFAULT_INDEX_MANAGEMENT
    try:
        cluster = cfg.cluster_identity()
        spec = load_index_management(path)
    except IndexManagementError as e:
        _fail(str(e))
    return cfg, cluster, spec


def _desired_objects(
    cfg: IndexLifecycleConfig, cluster: ClusterIdentity, spec: IndexManagementSpec,
) -> tuple[list[DerivedObject], list[str]]:
    """Build every derived object; collect per-mapping errors instead of failing."""
    defaults = cfg.reconciler_defaults()
    objects: list[DerivedObject] = [build_script_config(cluster, defaults)]
    errors: list[str] = []
    policies = spec.policy_map()

    for mapping in spec.mappings:
        policy = policies.get(mapping.policy_ref)
        if policy is None:
            errors.append(f"{mapping.name}: policy {mapping.policy_ref!r} is not defined")
            continue
        try:
            if policy.phases.hot is not None or policy.phases.delete is not None:
                schedule = schedule_for(policy.poll_interval)
            if policy.phases.hot is not None:
                conditions = rollover_conditions(
                    policy.phases.hot, cluster.primary_shards, defaults.shard_size_gb,
                )
                objects.append(build_rollover_job(
                    cluster, mapping.name, schedule, conditions, defaults,
                ))
            if policy.phases.delete is not None:
                min_age = threshold_millis(policy.phases.delete.min_age)
                objects.append(build_delete_job(
                    cluster, mapping.name, schedule, min_age, defaults,
                ))
        except IndexManagementError as e:
            errors.append(f"{mapping.name}: {e}")

    return objects, errors


# --- Root group ---


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Logging verbosity.",
)
def cli(log_level: str) -> None:
    """index-lifecycle: keep index management cron jobs aligned with policy."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# --- validate command ---


@cli.command()
@click.option("--config", "config_path", default=None, help="Path to index-lifecycle.yaml.")
@click.option("--index-management", default=None, help="Path to the policy/mapping document.")
def validate(config_path: str | None, index_management: str | None) -> None:
    """Validate configuration and translate every policy mapping."""
    cfg, cluster, spec = _load(config_path, index_management)
    objects, errors = _desired_objects(cfg, cluster, spec)

    click.echo(
        f"Cluster {cluster.namespace}/{cluster.name}: "
        f"{len(spec.policies)} policies, {len(spec.mappings)} mappings, "
        f"{len(objects)} derived objects"
    )
    if errors:
        for error in errors:
            click.echo(f"  FAIL  {error}", err=True)
        sys.exit(1)
    click.echo("OK")


# --- render command ---


@cli.command()
@click.option("--config", "config_path", default=None, help="Path to index-lifecycle.yaml.")
@click.option("--index-management", default=None, help="Path to the policy/mapping document.")
@click.option("--json-output", is_flag=True, help="Output as JSON instead of YAML.")
def render(config_path: str | None, index_management: str | None, json_output: bool) -> None:
    """Print the manifests a reconciliation pass would converge."""
    cfg, cluster, spec = _load(config_path, index_management)
    objects, errors = _desired_objects(cfg, cluster, spec)
    manifests: list[dict[str, Any]] = [to_manifest(obj) for obj in objects]

    if json_output:
        click.echo(json.dumps(manifests, indent=2))
    else:
        click.echo(yaml.safe_dump_all(manifests, default_flow_style=False, sort_keys=False), nl=False)

    for error in errors:
        click.echo(f"Skipped {error}", err=True)
    if errors:
        sys.exit(1)


# --- reconcile command ---


@cli.command()
@click.option("--config", "config_path", default=None, help="Path to index-lifecycle.yaml.")
@click.option("--index-management", default=None, help="Path to the policy/mapping document.")
@click.option("--dry-run", is_flag=True, help="Reconcile against an empty in-memory store.")
@click.option("--timeout", type=float, default=None, help="Deadline for the pass, in seconds.")
@click.option("--json-output", is_flag=True, help="Output the pass report as JSON.")
def reconcile(
    config_path: str | None,
    index_management: str | None,
    dry_run: bool,
    timeout: float | None,
    json_output: bool,
) -> None:
    """Run one reconciliation pass."""
    cfg, cluster, spec = _load(config_path, index_management)

    store: ObjectStore
    if dry_run:
        store = InMemoryObjectStore()
    else:
        try:
            store = KubernetesObjectStore(
                kubeconfig=cfg.kubeconfig, context=cfg.context, in_cluster=cfg.in_cluster,
            )
        except ImportError as e:
            _fail(str(e))

    if timeout is None:
        timeout = cfg.timeout
    try:
        reconciler = IndexManagementReconciler(
            store, cluster, cfg.reconciler_defaults(), cfg.retry_policy(),
        )
        report = reconciler.reconcile(spec, Deadline(timeout))
    except CancelledError as e:
        _fail(f"reconciliation aborted: {e}")
    except IndexManagementError as e:
        _fail(str(e))

    if json_output:
        click.echo(json.dumps(report.to_dict(), indent=2))
    else:
        prefix = "[dry-run] " if dry_run else ""
        for result in report.results:
            click.echo(f"{prefix}{result.outcome.upper():9s}  {result.kind}  {result.name}")
        for failure in report.failures:
            click.echo(f"{prefix}FAILED     {failure.name}: {failure.message}", err=True)

    if not report.ok:
        sys.exit(1)
