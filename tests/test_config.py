"""Tests for config loading and overrides."""

import pytest

from etcd_backup.config import BackupConfig, apply_overrides, load_config, resolve_config_path
from etcd_backup.errors import ConfigError


def write_config(path, text):
    path.write_text(text, encoding="utf-8")
    return path


def test_defaults_without_config_file():
    cfg = load_config()
    assert cfg == BackupConfig()
    assert cfg.namespace == "ocp-etcd-backup"
    assert cfg.pvc_name == "etcd-backup-pvc"
    assert cfg.node_selector_query == "node-role.kubernetes.io/master="


def test_resolve_config_path_precedence(monkeypatch, tmp_path):
    assert resolve_config_path(None) is None

    monkeypatch.setenv("APP_CONFIG", str(tmp_path / "env.yaml"))
    assert resolve_config_path(None) == tmp_path / "env.yaml"
    assert resolve_config_path(str(tmp_path / "cli.yaml")) == tmp_path / "cli.yaml"


def test_load_from_file(tmp_path):
    path = write_config(tmp_path / "config.yaml", (
        "namespace: backups\n"
        "image: registry.example/cli:v1\n"
        "pvcName: etcd-pvc\n"
        "nodeLabel: node-role.kubernetes.io/control-plane\n"
        "suffixLength: 6\n"
        "backoffLimit: 0\n"
    ))
    cfg = load_config(str(path))

    assert cfg.namespace == "backups"
    assert cfg.image == "registry.example/cli:v1"
    assert cfg.pvc_name == "etcd-pvc"
    assert cfg.suffix_length == 6
    assert cfg.backoff_limit == 0
    assert cfg.node_selector_query == "node-role.kubernetes.io/control-plane="
    # untouched keys keep their defaults
    assert cfg.mount_path == "/backups"


def test_load_from_app_config_env(monkeypatch, tmp_path):
    path = write_config(tmp_path / "env.yaml", "namespace: from-env\n")
    monkeypatch.setenv("APP_CONFIG", str(path))
    assert load_config().namespace == "from-env"


def test_cli_overrides_file(tmp_path):
    path = write_config(tmp_path / "config.yaml", "namespace: backups\npvcName: file-pvc\n")
    cfg = load_config(str(path), namespace="cli-ns", pvc_name=None)

    assert cfg.namespace == "cli-ns"
    assert cfg.pvc_name == "file-pvc"


def test_empty_file_uses_defaults(tmp_path):
    path = write_config(tmp_path / "config.yaml", "")
    assert load_config(str(path)) == BackupConfig()


def test_explicit_label_selector_wins():
    cfg = apply_overrides(BackupConfig(), label_selector="role=etcd")
    assert cfg.node_selector_query == "role=etcd"


def test_missing_explicit_file(tmp_path):
    with pytest.raises(ConfigError, match="not found"):
        load_config(str(tmp_path / "nope.yaml"))


def test_non_mapping_root(tmp_path):
    path = write_config(tmp_path / "config.yaml", "- a\n- b\n")
    with pytest.raises(ConfigError, match="mapping"):
        load_config(str(path))


def test_invalid_yaml(tmp_path):
    path = write_config(tmp_path / "config.yaml", "namespace: [unclosed\n")
    with pytest.raises(ConfigError, match="Failed to read"):
        load_config(str(path))


def test_unknown_key(tmp_path):
    path = write_config(tmp_path / "config.yaml", "namespace: x\npvc: y\n")
    with pytest.raises(ConfigError, match="pvc"):
        load_config(str(path))


@pytest.mark.parametrize("text", [
    "suffixLength: 0\n",
    "suffixLength: '4'\n",
    "backoffLimit: true\n",
    "namespace: ''\n",
    "image: 3\n",
])
def test_invalid_values(tmp_path, text):
    path = write_config(tmp_path / "config.yaml", text)
    with pytest.raises(ConfigError):
        load_config(str(path))


def test_unknown_override_field():
    with pytest.raises(ConfigError):
        apply_overrides(BackupConfig(), pvc="x")
