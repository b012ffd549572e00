"""Submit the backup Job."""

import argparse
import logging

from etcd_backup.config import BackupConfig
from etcd_backup.job import build_backup_job
from etcd_backup.monitor import JobMonitor, wait_for_job
from etcd_backup.utils import find_control_plane_node, load_kube_client, submit_job

logger = logging.getLogger(__name__)


def handle_run(args: argparse.Namespace, cfg: BackupConfig) -> None:
    """Find a control-plane node, build the Job and submit it.

    Without ``--wait`` this returns as soon as the API accepted the Job.
    """
    v1, batch = load_kube_client(cfg.kubeconfig, cfg.context)

    node_name = args.node
    if not node_name:
        node_name = find_control_plane_node(v1, cfg.node_selector_query, cfg.field_selector)
    logger.info(f"Backing up etcd via node {node_name}")

    job = build_backup_job(node_name, cfg)
    submit_job(batch, job)
    print(f"job.batch/{job.name} created", flush=True)

    if not args.wait:
        return

    logger.info(f"Waiting for Job {job.namespace}/{job.name} to finish...")
    monitor = JobMonitor(v1, job.name, job.namespace)
    monitor.start()
    try:
        wait_for_job(batch, job.name, job.namespace, timeout=args.timeout)
    finally:
        monitor.stop()
