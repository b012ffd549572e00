"""Kubernetes client helpers: config loading, node lookup, Job submission."""

import logging

import yaml
from kubernetes import client, config
from kubernetes.client.rest import ApiException
from kubernetes.config.config_exception import ConfigException

from etcd_backup.errors import (
    ClientConfigError,
    NodeLookupError,
    NoControlPlaneNodeError,
    SubmissionError,
)
from etcd_backup.job import BackupJob

logger = logging.getLogger(__name__)


def load_kube_client(
    kubeconfig: str | None = None,
    context: str | None = None
) -> tuple[client.CoreV1Api, client.BatchV1Api]:
    """Load cluster credentials and return API clients.

    An explicit kubeconfig or context must load. Without either, the default
    kubeconfig location is tried first, then in-cluster config.

    Args:
        kubeconfig: Path to kubeconfig file (optional)
        context: Kubeconfig context to use (optional)

    Returns:
        Tuple of (CoreV1Api, BatchV1Api)

    Raises:
        ClientConfigError: If no configuration could be loaded
    """
    try:
        config.load_kube_config(config_file=kubeconfig, context=context)
        logger.debug(f"Loaded kubeconfig {kubeconfig or '(default location)'}")
    except (ConfigException, OSError, yaml.YAMLError) as exc:
        # no in-cluster fallback once a kubeconfig or context was named
        if kubeconfig or context:
            source = kubeconfig or "(default location)"
            if context:
                source += f" context {context}"
            raise ClientConfigError(f"Failed to load kubeconfig {source}: {exc}")
        try:
            config.load_incluster_config()
            logger.debug("Loaded in-cluster config")
        except ConfigException as inner:
            raise ClientConfigError(
                f"Failed to load kubeconfig ({exc}) or in-cluster config ({inner})"
            )

    return client.CoreV1Api(), client.BatchV1Api()


def find_control_plane_node(
    v1: client.CoreV1Api,
    label_selector: str,
    field_selector: str | None = None
) -> str:
    """Return the name of the first node matching the selectors.

    Raises:
        NodeLookupError: If the node list call fails
        NoControlPlaneNodeError: If no node matches
    """
    kwargs = {"label_selector": label_selector}
    if field_selector:
        kwargs["field_selector"] = field_selector

    try:
        nodes = v1.list_node(**kwargs)
    except ApiException as exc:
        raise NodeLookupError(
            f"Failed to list nodes with selector '{label_selector}': "
            f"{exc.status} {exc.reason}"
        )
    except Exception as exc:
        raise NodeLookupError(f"Unexpected error listing nodes: {exc}")

    items = nodes.items or []
    if not items:
        selectors = label_selector
        if field_selector:
            selectors += f", fields '{field_selector}'"
        raise NoControlPlaneNodeError(f"No control-plane node found (labels '{selectors}')")

    node_name = items[0].metadata.name
    if len(items) > 1:
        logger.debug(f"{len(items)} nodes matched, using the first: {node_name}")
    return node_name


def submit_job(batch: client.BatchV1Api, job: BackupJob) -> client.V1Job:
    """Create the backup Job.

    Raises:
        SubmissionError: If the API rejects the Job or cannot be reached
    """
    try:
        created = batch.create_namespaced_job(job.namespace, job.to_v1_job())
    except ApiException as exc:
        if exc.status == 409:
            raise SubmissionError(
                f"Job {job.namespace}/{job.name} already exists (name collision), retry the run"
            )
        raise SubmissionError(
            f"Failed to create Job {job.namespace}/{job.name}: {exc.status} {exc.reason}"
        )
    except Exception as exc:
        raise SubmissionError(f"Unexpected error creating Job {job.namespace}/{job.name}: {exc}")

    logger.debug(f"Created Job {job.namespace}/{job.name}")
    return created
