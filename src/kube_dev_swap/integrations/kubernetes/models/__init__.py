"""Kubernetes resource models."""

from kube_dev_swap.integrations.kubernetes.models.base import (
    K8sEntityBase,
    OwnerReference,
    get_controller_of,
)
from kube_dev_swap.integrations.kubernetes.models.replacement import (
    PatchOperation,
    ReplaceAction,
    ReplacedPodSummary,
    ReplacementSpec,
    ReplaceResult,
    SelectedPodContainer,
)

__all__ = [
    "K8sEntityBase",
    "OwnerReference",
    "PatchOperation",
    "ReplaceAction",
    "ReplaceResult",
    "ReplacedPodSummary",
    "ReplacementSpec",
    "SelectedPodContainer",
    "get_controller_of",
]
