"""Configuration loading for etcd-backup.

The YAML config is optional. When present it looks like::

    namespace: ocp-etcd-backup
    image: registry.redhat.io/openshift4/ose-cli:v4.8
    pvcName: etcd-backup-pvc
    nodeLabel: node-role.kubernetes.io/master
    serviceAccount: etcd-backup   # optional
    backoffLimit: 0               # optional

Every key maps to a ``BackupConfig`` field. Command-line flags override
values from the file.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

import yaml

from etcd_backup.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("/config/config.yaml")

# YAML key -> BackupConfig field
_YAML_KEYS = {
    "namespace": "namespace",
    "image": "image",
    "pvcName": "pvc_name",
    "nodeLabel": "node_label",
    "labelSelector": "label_selector",
    "fieldSelector": "field_selector",
    "kubeconfig": "kubeconfig",
    "context": "context",
    "jobPrefix": "job_prefix",
    "suffixLength": "suffix_length",
    "mountPath": "mount_path",
    "backupScript": "backup_script",
    "tempBackupDir": "temp_backup_dir",
    "tempTarball": "temp_tarball",
    "imagePullPolicy": "image_pull_policy",
    "serviceAccount": "service_account",
    "backoffLimit": "backoff_limit",
    "ttlSecondsAfterFinished": "ttl_seconds_after_finished",
}

_INT_FIELDS = {"suffix_length", "backoff_limit", "ttl_seconds_after_finished"}


@dataclass(frozen=True)
class BackupConfig:
    """Settings for one backup run."""
    namespace: str = "ocp-etcd-backup"
    image: str = "registry.redhat.io/openshift4/ose-cli:v4.8"
    pvc_name: str = "etcd-backup-pvc"
    node_label: str = "node-role.kubernetes.io/master"
    label_selector: str | None = None
    field_selector: str | None = None
    kubeconfig: str | None = None
    context: str | None = None
    job_prefix: str = "etcd-backup"
    suffix_length: int = 4
    mount_path: str = "/backups"
    backup_script: str = "/usr/local/bin/cluster-backup.sh"
    temp_backup_dir: str = "/tmp/assets/backup"
    temp_tarball: str = "/tmp/etcd_backup.tar.gz"
    image_pull_policy: str = "IfNotPresent"
    service_account: str | None = None
    backoff_limit: int | None = None
    ttl_seconds_after_finished: int | None = None

    @property
    def node_selector_query(self) -> str:
        """Label selector used to list control-plane nodes."""
        if self.label_selector:
            return self.label_selector
        return f"{self.node_label}="


def resolve_config_path(cli_path: str | None) -> Path | None:
    """Resolve the config file path from CLI, env, or default.

    Returns None when no path was given and the default file does not exist,
    in which case built-in defaults are used.
    """
    if cli_path:
        return Path(cli_path)
    env_path = os.getenv("APP_CONFIG")
    if env_path:
        return Path(env_path)
    if DEFAULT_CONFIG_PATH.exists():
        return DEFAULT_CONFIG_PATH
    return None


def read_config_file(path: Path) -> dict[str, Any]:
    """Read a YAML config file and return its root mapping."""
    try:
        with path.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except FileNotFoundError:
        raise ConfigError(f"Config file not found: {path}")
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"Failed to read config {path}: {exc}")

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config root must be a mapping: {path}")
    return data


def config_from_mapping(data: dict[str, Any]) -> BackupConfig:
    """Build a BackupConfig from camelCase YAML keys."""
    unknown = sorted(set(data) - set(_YAML_KEYS))
    if unknown:
        raise ConfigError(f"Unknown config keys: {', '.join(unknown)}")

    values = {_YAML_KEYS[key]: value for key, value in data.items()}
    return apply_overrides(BackupConfig(), **values)


def apply_overrides(cfg: BackupConfig, **overrides: Any) -> BackupConfig:
    """Return a copy of cfg with every non-None override applied."""
    known = {f.name for f in fields(BackupConfig)}
    changes = {}
    for name, value in overrides.items():
        if name not in known:
            raise ConfigError(f"Unknown config field: {name}")
        if value is None:
            continue
        if name in _INT_FIELDS:
            # bool is an int subclass, reject it explicitly
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigError(f"{name} must be an integer, got {value!r}")
        elif not isinstance(value, str) or not value:
            raise ConfigError(f"{name} must be a non-empty string, got {value!r}")
        changes[name] = value

    if changes.get("suffix_length", cfg.suffix_length) < 1:
        raise ConfigError("suffix_length must be at least 1")

    return replace(cfg, **changes)


def load_config(cli_path: str | None = None, **overrides: Any) -> BackupConfig:
    """Load config from file (if any) and apply command-line overrides."""
    path = resolve_config_path(cli_path)
    if path is None:
        logger.debug("No config file found, using built-in defaults")
        cfg = BackupConfig()
    else:
        logger.debug(f"Loading config from {path}")
        cfg = config_from_mapping(read_config_file(path))
    return apply_overrides(cfg, **overrides)
