"""Tests for the index-lifecycle config loader (index-lifecycle.yaml)."""

from pathlib import Path

import pytest

from index_lifecycle.config import (
    IndexLifecycleConfig,
    find_config,
    load_config,
)
from index_lifecycle.defaults import DEFAULTS
from index_lifecycle.errors import ConfigError
from index_lifecycle.reconcile.retry import DEFAULT_RETRY

CLUSTER_BLOCK = (
    "cluster:\n"
    "  name: elasticsearch\n"
    "  namespace: openshift-logging\n"
    "  image: quay.io/openshift/origin-logging-elasticsearch6:latest\n"
)

# --- find_config ---


class TestFindConfig:
    def test_finds_in_start_dir(self, tmp_path: Path):
        cfg = tmp_path / "index-lifecycle.yaml"
        cfg.write_text(CLUSTER_BLOCK, encoding="utf-8")
        assert find_config(tmp_path) == cfg

    def test_finds_in_parent(self, tmp_path: Path):
        cfg = tmp_path / "index-lifecycle.yaml"
        cfg.write_text(CLUSTER_BLOCK, encoding="utf-8")
        child = tmp_path / "sub" / "deep"
        child.mkdir(parents=True)
        assert find_config(child) == cfg

    def test_returns_none_when_missing(self, tmp_path: Path):
        assert find_config(tmp_path) is None

    def test_ignores_directories_named_config(self, tmp_path: Path):
        (tmp_path / "index-lifecycle.yaml").mkdir()
        assert find_config(tmp_path) is None


# --- load_config ---


class TestLoadConfig:
    def test_explicit_path(self, tmp_path: Path):
        cfg_path = tmp_path / "index-lifecycle.yaml"
        cfg_path.write_text(
            CLUSTER_BLOCK
            + "index_management: ./policies/im.yaml\n"
            "context: dev\n"
            "timeout: 60\n",
            encoding="utf-8",
        )
        cfg = load_config(cfg_path)
        assert cfg.config_path == cfg_path.resolve()
        assert cfg.index_management == str((tmp_path / "policies" / "im.yaml").resolve())
        assert cfg.context == "dev"
        assert cfg.timeout == 60.0
        assert cfg.in_cluster is False

    def test_explicit_path_not_found(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError, match="not found"):
            load_config(tmp_path / "nope.yaml")

    def test_auto_discover(self, tmp_path: Path, monkeypatch):
        (tmp_path / "index-lifecycle.yaml").write_text("in_cluster: true\n", encoding="utf-8")
        monkeypatch.chdir(tmp_path)
        cfg = load_config()
        assert cfg.in_cluster is True

    def test_no_config_returns_defaults(self, tmp_path: Path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        cfg = load_config()
        assert cfg == IndexLifecycleConfig()

    def test_auto_discover_disabled(self, tmp_path: Path, monkeypatch):
        (tmp_path / "index-lifecycle.yaml").write_text("in_cluster: true\n", encoding="utf-8")
        monkeypatch.chdir(tmp_path)
        assert load_config(auto_discover=False).in_cluster is False

    def test_empty_file(self, tmp_path: Path):
        cfg_path = tmp_path / "index-lifecycle.yaml"
        cfg_path.write_text("", encoding="utf-8")
        assert load_config(cfg_path).cluster is None

    def test_invalid_yaml(self, tmp_path: Path):
        cfg_path = tmp_path / "index-lifecycle.yaml"
        cfg_path.write_text("cluster: [unclosed\n", encoding="utf-8")
        with pytest.raises(ConfigError, match="invalid YAML"):
            load_config(cfg_path)

    def test_non_mapping(self, tmp_path: Path):
        cfg_path = tmp_path / "index-lifecycle.yaml"
        cfg_path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ConfigError, match="expected a YAML mapping"):
            load_config(cfg_path)

    def test_non_numeric_timeout(self, tmp_path: Path):
        cfg_path = tmp_path / "index-lifecycle.yaml"
        cfg_path.write_text("timeout: soon\n", encoding="utf-8")
        with pytest.raises(ConfigError, match="timeout"):
            load_config(cfg_path)


# --- Typed accessors ---


class TestAccessors:
    def test_cluster_identity(self, tmp_path: Path):
        cfg_path = tmp_path / "index-lifecycle.yaml"
        cfg_path.write_text(CLUSTER_BLOCK + "  primary_shards: 5\n", encoding="utf-8")
        cluster = load_config(cfg_path).cluster_identity()
        assert cluster.name == "elasticsearch"
        assert cluster.primary_shards == 5

    def test_missing_cluster(self):
        with pytest.raises(ConfigError, match="no cluster configured"):
            IndexLifecycleConfig().cluster_identity()

    def test_invalid_cluster(self):
        cfg = IndexLifecycleConfig(cluster={"name": "es"})
        with pytest.raises(ConfigError, match="invalid cluster block"):
            cfg.cluster_identity()

    def test_retry_defaults(self):
        assert IndexLifecycleConfig().retry_policy() == DEFAULT_RETRY

    def test_retry_override(self):
        policy = IndexLifecycleConfig(retry={"max_attempts": 8}).retry_policy()
        assert policy.max_attempts == 8
        assert policy.delay == DEFAULT_RETRY.delay

    def test_invalid_retry(self):
        with pytest.raises(ConfigError, match="invalid retry block"):
            IndexLifecycleConfig(retry={"max_attempts": 0}).retry_policy()

    def test_defaults_override_merges(self):
        defaults = IndexLifecycleConfig(defaults={"memory_request": "64Mi"}).reconciler_defaults()
        assert defaults.memory_request == "64Mi"
        assert defaults.cpu_request == DEFAULTS.cpu_request
        assert defaults.labels == DEFAULTS.labels

    def test_no_defaults_block(self):
        assert IndexLifecycleConfig().reconciler_defaults() is DEFAULTS

    def test_invalid_defaults(self):
        with pytest.raises(ConfigError, match="invalid defaults block"):
            IndexLifecycleConfig(defaults={"shard_size_gb": "lots"}).reconciler_defaults()
