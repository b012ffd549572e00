"""Print the backup Job manifest without submitting it."""

import argparse

import yaml

from etcd_backup.config import BackupConfig
from etcd_backup.job import build_backup_job
from etcd_backup.utils import find_control_plane_node, load_kube_client


def handle_manifest(args: argparse.Namespace, cfg: BackupConfig) -> None:
    """Build the Job and print it as YAML.

    The cluster is only contacted when no ``--node`` is given.
    """
    node_name = args.node
    if not node_name:
        v1, _ = load_kube_client(cfg.kubeconfig, cfg.context)
        node_name = find_control_plane_node(v1, cfg.node_selector_query, cfg.field_selector)

    job = build_backup_job(node_name, cfg)
    print(yaml.safe_dump(job.to_manifest(), sort_keys=False), end='', flush=True)
