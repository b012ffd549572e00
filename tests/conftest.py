"""Shared pytest fixtures for etcd-backup tests.

Provides:
- Isolation from any real config file or APP_CONFIG in the environment
- Node list builders and mocked CoreV1Api/BatchV1Api clients
"""

from unittest.mock import MagicMock

import pytest
from kubernetes import client

from etcd_backup import config as config_module


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path):
    """Never read /config/config.yaml or $APP_CONFIG during tests."""
    monkeypatch.delenv("APP_CONFIG", raising=False)
    monkeypatch.setattr(config_module, "DEFAULT_CONFIG_PATH", tmp_path / "absent.yaml")


def make_node_list(*names: str) -> client.V1NodeList:
    """Build a V1NodeList containing nodes with the given names."""
    return client.V1NodeList(
        items=[client.V1Node(metadata=client.V1ObjectMeta(name=name)) for name in names]
    )


@pytest.fixture
def v1():
    """CoreV1Api mock that lists three control-plane nodes."""
    api = MagicMock(spec=client.CoreV1Api)
    api.list_node.return_value = make_node_list("master-0", "master-1", "master-2")
    return api


@pytest.fixture
def batch():
    """BatchV1Api mock that echoes the created Job back."""
    api = MagicMock(spec=client.BatchV1Api)
    api.create_namespaced_job.side_effect = lambda namespace, body: body
    return api


@pytest.fixture
def node_list():
    """Factory fixture: node_list("a", "b") -> V1NodeList."""
    return make_node_list
