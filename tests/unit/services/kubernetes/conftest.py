"""Shared fixtures for pod replacement engine tests."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from fake_cluster import FakeCluster

from kube_dev_swap.integrations.kubernetes.client import KubernetesClient
from kube_dev_swap.integrations.kubernetes.config import PodReplaceSettings
from kube_dev_swap.services.kubernetes.image_resolver import ConfigImageResolver


@pytest.fixture
def mock_k8s_client() -> MagicMock:
    """Create a mock Kubernetes client that translates errors like the real one."""
    mock_client = MagicMock()
    mock_client.default_namespace = "default"
    mock_client.translate_api_exception.side_effect = KubernetesClient.translate_api_exception
    return mock_client


@pytest.fixture
def fast_settings() -> PodReplaceSettings:
    """Settings with waits short enough for unit tests."""
    return PodReplaceSettings(
        replaced_lookup_timeout=0.05,
        revert_lookup_timeout=0.05,
        select_timeout=0.5,
        terminate_timeout=0.5,
        delete_poll_interval=0.01,
        terminate_poll_interval=0.01,
    )


@pytest.fixture
def cluster() -> FakeCluster:
    """An empty in-memory cluster."""
    return FakeCluster()


@pytest.fixture
def image_resolver() -> ConfigImageResolver:
    """Resolver with no configured images; literal references pass through."""
    return ConfigImageResolver()
