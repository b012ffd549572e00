"""Error types for etcd-backup.

Every fallible step raises one of these; ``main()`` maps them to exit codes.
"""


class EtcdBackupError(Exception):
    """Base class for all etcd-backup failures."""

    exit_code = 1


class ConfigError(EtcdBackupError):
    """Config file missing, unreadable or invalid."""

    exit_code = 2


class ClientConfigError(EtcdBackupError):
    """Neither kubeconfig nor in-cluster config could be loaded."""

    exit_code = 3


class NodeLookupError(EtcdBackupError):
    """Listing control-plane nodes failed."""

    exit_code = 4


class SubmissionError(EtcdBackupError):
    """Creating the backup Job failed."""

    exit_code = 5


class NoControlPlaneNodeError(EtcdBackupError):
    """Node listing succeeded but returned no nodes."""

    exit_code = 6


class JobFailedError(EtcdBackupError):
    """Backup Job failed or did not finish in time (``run --wait`` only)."""

    exit_code = 1
