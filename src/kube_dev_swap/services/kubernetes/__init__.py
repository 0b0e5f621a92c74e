"""Pod replacement engine.

Swaps a pod of a managed workload for a developer-controlled variant while
the owning ReplicaSet, Deployment or StatefulSet is scaled to zero, and
reverts the swap on demand.
"""

from kube_dev_swap.services.kubernetes.base import K8sBaseManager
from kube_dev_swap.services.kubernetes.cancellation import CancellationToken
from kube_dev_swap.services.kubernetes.controller_resolver import ControllerResolver
from kube_dev_swap.services.kubernetes.controllers import (
    CONTROLLER_API,
    Controller,
    DeploymentController,
    ReplicaSetController,
    StatefulSetController,
    controller_from_kind,
)
from kube_dev_swap.services.kubernetes.fingerprint import ChangeFingerprinter, canonical_hash
from kube_dev_swap.services.kubernetes.image_resolver import (
    ConfigImageResolver,
    ImageResolver,
    compare_image_names,
)
from kube_dev_swap.services.kubernetes.patch_applier import JsonPatchApplier, PatchApplier
from kube_dev_swap.services.kubernetes.pod_replacer import PodReplacer
from kube_dev_swap.services.kubernetes.pod_transform import PodTransform, safe_concat_name
from kube_dev_swap.services.kubernetes.scale_coordinator import ScaleCoordinator
from kube_dev_swap.services.kubernetes.target_selector import (
    LabelTargetSelector,
    SelectionOptions,
    TargetSelector,
)
from kube_dev_swap.services.kubernetes.termination import TerminationWaiter

__all__ = [
    "CONTROLLER_API",
    "CancellationToken",
    "ChangeFingerprinter",
    "ConfigImageResolver",
    "Controller",
    "ControllerResolver",
    "DeploymentController",
    "ImageResolver",
    "JsonPatchApplier",
    "K8sBaseManager",
    "LabelTargetSelector",
    "PatchApplier",
    "PodReplacer",
    "PodTransform",
    "ReplicaSetController",
    "ScaleCoordinator",
    "SelectionOptions",
    "StatefulSetController",
    "TargetSelector",
    "TerminationWaiter",
    "canonical_hash",
    "compare_image_names",
    "controller_from_kind",
    "safe_concat_name",
]
