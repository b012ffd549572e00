"""Build the etcd backup Job.

The Job runs an ``ose-cli`` container that drives ``oc debug node/<node>``
against a control-plane node. Each stage enters a privileged debug pod and
chroots into the host filesystem:

1. run the cluster backup script into a temporary directory
2. tar/gzip that directory to a temporary archive
3. stream the archive through the debug shell into the PVC mount
4. remove the temporary directory and archive

All four stages are chained into a single ``/bin/bash -c`` command, so a
failure in any of them fails the Job as a whole.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from typing import Any

from kubernetes import client

from etcd_backup.config import BackupConfig

VOLUME_NAME = "etcd-backup-mount"
RESTART_POLICY = "Never"
SHELL = ["/bin/bash", "-c"]
ARCHIVE_NAME = "backup_$(date +%Y-%m-%d_%H-%M_%Z).db.tgz"


def random_suffix(length: int) -> str:
    """Return ``length`` random lowercase hex characters.

    Used to keep repeated runs from clashing on the Job name. Collisions are
    unlikely, not impossible; a clash surfaces as a 409 on submission.
    """
    if length < 1:
        raise ValueError(f"Suffix length must be at least 1, got {length}")
    # token_hex(n) yields 2n chars
    return secrets.token_hex((length + 1) // 2)[:length]


def debug_prefix(node_name: str) -> str:
    """Command prefix that runs the rest of the line on the node's host."""
    return f"oc debug node/{node_name} -- chroot /host"


def build_backup_stages(node_name: str, cfg: BackupConfig) -> list[str]:
    """Return the backup, archive, transfer and cleanup stages in order."""
    prefix = debug_prefix(node_name)
    backup_dir = cfg.temp_backup_dir
    tarball = cfg.temp_tarball

    backup = f"{prefix} {cfg.backup_script} {backup_dir}"
    archive = f"{prefix} tar czf {tarball} {backup_dir}"
    # cat through the debug shell so nothing has to be mounted on the host
    transfer = f"{prefix} cat {tarball} > {cfg.mount_path.rstrip('/')}/{ARCHIVE_NAME}"
    cleanup = f"{prefix} rm -rf {backup_dir} && {prefix} rm -f {tarball}"
    return [backup, archive, transfer, cleanup]


def build_backup_command(node_name: str, cfg: BackupConfig) -> str:
    """Chain all stages into one shell command."""
    return " && ".join(build_backup_stages(node_name, cfg))


@dataclass(frozen=True)
class BackupJob:
    """Everything needed to submit one backup Job."""
    name: str
    namespace: str
    image: str
    command: str
    claim_name: str
    mount_path: str
    node_selector: dict[str, str]
    image_pull_policy: str = "IfNotPresent"
    restart_policy: str = RESTART_POLICY
    volume_name: str = VOLUME_NAME
    service_account: str | None = None
    backoff_limit: int | None = None
    ttl_seconds_after_finished: int | None = None

    def to_v1_job(self) -> client.V1Job:
        """Convert to a kubernetes client V1Job."""
        container = client.V1Container(
            name=self.name,
            image=self.image,
            image_pull_policy=self.image_pull_policy,
            command=[*SHELL, self.command],
            volume_mounts=[
                client.V1VolumeMount(name=self.volume_name, mount_path=self.mount_path)
            ]
        )
        pod_spec = client.V1PodSpec(
            containers=[container],
            restart_policy=self.restart_policy,
            service_account_name=self.service_account,
            node_selector=dict(self.node_selector),
            volumes=[
                client.V1Volume(
                    name=self.volume_name,
                    persistent_volume_claim=client.V1PersistentVolumeClaimVolumeSource(
                        claim_name=self.claim_name
                    )
                )
            ]
        )
        return client.V1Job(
            api_version="batch/v1",
            kind="Job",
            metadata=client.V1ObjectMeta(
                name=self.name,
                namespace=self.namespace,
                labels={"app": "etcd-backup", "managed-by": "etcd-backup"}
            ),
            spec=client.V1JobSpec(
                backoff_limit=self.backoff_limit,
                ttl_seconds_after_finished=self.ttl_seconds_after_finished,
                template=client.V1PodTemplateSpec(
                    metadata=client.V1ObjectMeta(labels={"app": "etcd-backup"}),
                    spec=pod_spec
                )
            )
        )

    def to_manifest(self) -> dict[str, Any]:
        """Convert to a plain manifest dict (camelCase keys, unset fields dropped)."""
        return client.ApiClient().sanitize_for_serialization(self.to_v1_job())


def build_backup_job(node_name: str, cfg: BackupConfig, suffix: str | None = None) -> BackupJob:
    """Build the backup Job for ``node_name``.

    Nothing is checked against the cluster here: the node, image, claim and
    backup script are assumed to exist. Problems show up as Job failure.

    Args:
        node_name: Control-plane node the backup runs against
        cfg: Backup settings (namespace, image, PVC, paths)
        suffix: Name suffix; random when omitted

    Returns:
        BackupJob ready for submission
    """
    if suffix is None:
        suffix = random_suffix(cfg.suffix_length)
    return BackupJob(
        name=f"{cfg.job_prefix}-{suffix}",
        namespace=cfg.namespace,
        image=cfg.image,
        command=build_backup_command(node_name, cfg),
        claim_name=cfg.pvc_name,
        mount_path=cfg.mount_path,
        node_selector={cfg.node_label: ""},
        image_pull_policy=cfg.image_pull_policy,
        service_account=cfg.service_account,
        backoff_limit=cfg.backoff_limit,
        ttl_seconds_after_finished=cfg.ttl_seconds_after_finished,
    )
