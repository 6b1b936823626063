"""Policy loading and translation."""

from index_lifecycle.policy.loader import load_index_management, parse_index_management
from index_lifecycle.policy.translator import rollover_conditions, schedule_for, threshold_millis

__all__ = [
    "load_index_management",
    "parse_index_management",
    "rollover_conditions",
    "schedule_for",
    "threshold_millis",
]
