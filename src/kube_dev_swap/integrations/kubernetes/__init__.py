"""Kubernetes integration - API client, configuration and error types."""

from kube_dev_swap.integrations.kubernetes.client import KubernetesClient
from kube_dev_swap.integrations.kubernetes.config import (
    ClusterConfig,
    KubernetesAuthConfig,
    KubernetesDefaultsConfig,
    KubernetesPluginConfig,
    PodReplaceSettings,
)
from kube_dev_swap.integrations.kubernetes.exceptions import (
    KubernetesAuthError,
    KubernetesConflictError,
    KubernetesConnectionError,
    KubernetesError,
    KubernetesNotFoundError,
    KubernetesTimeoutError,
    KubernetesValidationError,
)

__all__ = [
    "ClusterConfig",
    "KubernetesAuthConfig",
    "KubernetesAuthError",
    "KubernetesClient",
    "KubernetesConflictError",
    "KubernetesConnectionError",
    "KubernetesDefaultsConfig",
    "KubernetesError",
    "KubernetesNotFoundError",
    "KubernetesPluginConfig",
    "KubernetesTimeoutError",
    "KubernetesValidationError",
    "PodReplaceSettings",
]
