"""Desired-state builder: derived jobs and the scripts config object."""

from index_lifecycle.builder.jobs import (
    build_delete_job,
    build_rollover_job,
    encode_rollover_payload,
    ensure_linux_node_selector,
    job_name,
    new_scheduled_job,
)
from index_lifecycle.builder.scripts import SCRIPT_BUNDLE, build_script_config

__all__ = [
    "SCRIPT_BUNDLE",
    "build_delete_job",
    "build_rollover_job",
    "build_script_config",
    "encode_rollover_payload",
    "ensure_linux_node_selector",
    "job_name",
    "new_scheduled_job",
]
