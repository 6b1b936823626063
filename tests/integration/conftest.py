"""Integration test fixtures and infrastructure detection.

Run with:  pytest tests/integration/ -m integration -v
Requires:  Kind cluster 'index-lifecycle-test' and the kubernetes extra.
Tests skip automatically if the cluster is not available.
"""

from __future__ import annotations

import contextlib
import os
import shutil
import subprocess
import tempfile
from collections.abc import Generator

import pytest

from index_lifecycle.models import ClusterIdentity

# ---------------------------------------------------------------------------
# Infrastructure detection (evaluated once at import time)
# ---------------------------------------------------------------------------

KIND_CLUSTER_NAME = "index-lifecycle-test"
KIND_CONTEXT = f"kind-{KIND_CLUSTER_NAME}"
TEST_NAMESPACE = "index-lifecycle-inttest"


def _is_kind_running() -> bool:
    kubectl = shutil.which("kubectl")
    if kubectl is None:
        return False
    try:
        result = subprocess.run(
            [kubectl, "cluster-info", "--context", KIND_CONTEXT],
            capture_output=True, text=True, timeout=10,
        )
        return result.returncode == 0
    except (subprocess.TimeoutExpired, OSError):
        return False


KIND_AVAILABLE = _is_kind_running()

skip_no_kind = pytest.mark.skipif(
    not KIND_AVAILABLE,
    reason=f"Kind cluster '{KIND_CLUSTER_NAME}' not running. Run: kind create cluster --name {KIND_CLUSTER_NAME}",
)


# ---------------------------------------------------------------------------
# Kind / Kubernetes fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(scope="session")
def kind_kubeconfig() -> Generator[str, None, None]:
    """Export Kind kubeconfig to a temp file. Cleaned up after session."""
    kind_bin = shutil.which("kind")
    if kind_bin is None:
        pytest.skip("kind binary not found in PATH")

    try:
        result = subprocess.run(
            [kind_bin, "get", "kubeconfig", "--name", KIND_CLUSTER_NAME],
            capture_output=True, text=True, timeout=10,
        )
    except (subprocess.TimeoutExpired, OSError):
        pytest.skip("Failed to get Kind kubeconfig")

    if result.returncode != 0:
        pytest.skip(f"Failed to get Kind kubeconfig: {result.stderr.strip()}")

    fd, path = tempfile.mkstemp(suffix=".kubeconfig")
    with os.fdopen(fd, "w") as f:
        f.write(result.stdout)

    yield path

    with contextlib.suppress(OSError):
        os.unlink(path)


@pytest.fixture(scope="session")
def kind_namespace(kind_kubeconfig: str) -> Generator[str, None, None]:
    """Create the test namespace; delete it (and everything in it) afterwards."""
    kubectl = shutil.which("kubectl")
    base = [kubectl, "--kubeconfig", kind_kubeconfig, "--context", KIND_CONTEXT]
    subprocess.run(
        [*base, "create", "namespace", TEST_NAMESPACE],
        capture_output=True, text=True, timeout=30,
    )
    yield TEST_NAMESPACE
    subprocess.run(
        [*base, "delete", "namespace", TEST_NAMESPACE, "--wait=false"],
        capture_output=True, text=True, timeout=30,
    )


@pytest.fixture(scope="session")
def k8s_store(kind_kubeconfig: str):
    """KubernetesObjectStore wired to the Kind cluster."""
    from index_lifecycle.store.kubernetes import KubernetesObjectStore
    return KubernetesObjectStore(kubeconfig=kind_kubeconfig, context=KIND_CONTEXT)


@pytest.fixture
def kind_cluster(kind_namespace: str) -> ClusterIdentity:
    # No uid: Kind has no Elasticsearch resource to own the derived objects
    return ClusterIdentity(
        name="elasticsearch",
        namespace=kind_namespace,
        image="busybox:1.36",
        primary_shards=1,
    )
