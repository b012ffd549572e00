"""etcd-backup - submit one-shot etcd backup Jobs to OpenShift clusters."""

__version__ = '1.0.0'
