#!/usr/bin/env python3
"""Demo: Reconciliation passes against an in-memory store.

Shows the lifecycle of the derived objects across three passes:
the first pass creates everything, the second writes nothing, and the
third picks up a changed poll interval and a dropped mapping.

Run from the project root:
    python examples/demo_reconcile.py
"""

from __future__ import annotations

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "src"))

from index_lifecycle import (
    IndexManagementReconciler,
    InMemoryObjectStore,
    PassReport,
    ReconcileOutcome,
    load_config,
    load_index_management,
)

# ANSI colors
GREEN = "\033[92m"
RED = "\033[91m"
YELLOW = "\033[93m"
BOLD = "\033[1m"
DIM = "\033[2m"
RESET = "\033[0m"

COLORS = {
    ReconcileOutcome.CREATED: GREEN,
    ReconcileOutcome.UPDATED: YELLOW,
    ReconcileOutcome.UNCHANGED: DIM,
}


def _print_report(title: str, report: PassReport, store: InMemoryObjectStore) -> None:
    print(f"\n{BOLD}{title}{RESET}")
    for result in report.results:
        color = COLORS.get(result.outcome, "")
        print(f"  {color}{result.outcome.upper():<10}{RESET} {result.kind:<10} {result.name}")
    for failure in report.failures:
        print(f"  {RED}{'FAILED':<10}{RESET} {failure.name}: {failure.message}")
    print(f"  {DIM}writes: create={store.count('create')} update={store.count('update')} "
          f"delete={store.count('delete')}{RESET}")


def main() -> None:
    project = Path(__file__).resolve().parent / "project"
    cfg = load_config(project / "index-lifecycle.yaml")
    spec = load_index_management(cfg.index_management)

    store = InMemoryObjectStore()
    reconciler = IndexManagementReconciler(
        store, cfg.cluster_identity(), cfg.reconciler_defaults(), cfg.retry_policy(),
    )

    _print_report("Pass 1: empty store", reconciler.reconcile(spec), store)
    _print_report("Pass 2: nothing changed", reconciler.reconcile(spec), store)

    spec.policies[0].poll_interval = "5m"
    spec.mappings = [m for m in spec.mappings if m.name != "audit"]
    _print_report("Pass 3: infra polls every 5m, audit mapping removed",
                  reconciler.reconcile(spec), store)


if __name__ == "__main__":
    main()
