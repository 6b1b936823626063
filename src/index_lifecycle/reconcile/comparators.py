"""Sameness predicates for derived objects.

Only the fields the reconciler owns take part in a comparison. Fields the
store maintains itself (status, resource version, defaulted pod fields)
are ignored so that they never register as drift.
"""

from __future__ import annotations

from index_lifecycle.models import (
    ConfigObject,
    EnvVar,
    ResourceRequirements,
    ScheduledJob,
    Toleration,
)


def are_string_maps_same(lhs: dict[str, str] | None, rhs: dict[str, str] | None) -> bool:
    """Map equality where a missing map equals an empty one."""
    return (lhs or {}) == (rhs or {})


def are_tolerations_same(lhs: list[Toleration], rhs: list[Toleration]) -> bool:
    """Order-insensitive, set semantics."""
    return set(lhs) == set(rhs)


def are_resource_requirements_same(lhs: ResourceRequirements, rhs: ResourceRequirements) -> bool:
    return (
        are_string_maps_same(lhs.requests, rhs.requests)
        and are_string_maps_same(lhs.limits, rhs.limits)
    )


def env_value_equal(lhs: list[EnvVar], rhs: list[EnvVar]) -> bool:
    """Env lists are equal when they define the same names with the same values."""
    if len(lhs) != len(rhs):
        return False
    return {e.name: e.value for e in lhs} == {e.name: e.value for e in rhs}


def are_scheduled_jobs_same(current: ScheduledJob, desired: ScheduledJob) -> bool:
    """Compare the owned fields of two scheduled jobs.

    A schedule mismatch is written into *current* before reporting the
    jobs as different, so schedule drift is always corrected.
    """
    lhs, rhs = current.spec, desired.spec

    if len(lhs.containers) != len(rhs.containers):
        return False
    if not are_string_maps_same(lhs.node_selector, rhs.node_selector):
        return False
    if not are_tolerations_same(lhs.tolerations, rhs.tolerations):
        return False
    if lhs.schedule != rhs.schedule:
        lhs.schedule = rhs.schedule
        return False
    if lhs.suspend is not None and rhs.suspend is not None and lhs.suspend != rhs.suspend:
        return False

    for container, other in zip(lhs.containers, rhs.containers, strict=True):
        if container.name != other.name:
            return False
        if container.image != other.image:
            return False
        if container.command != other.command:
            return False
        if container.args != other.args:
            return False
        if not are_resource_requirements_same(container.resources, other.resources):
            return False
        if not env_value_equal(container.env, other.env):
            return False

    return True


def are_config_objects_same(current: ConfigObject, desired: ConfigObject) -> bool:
    return current.data == desired.data
