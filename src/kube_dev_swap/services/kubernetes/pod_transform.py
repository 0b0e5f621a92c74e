"""Construction of replacement pod bodies."""

from __future__ import annotations

import copy
import hashlib
from typing import TYPE_CHECKING, Any

import structlog

from kube_dev_swap.integrations.kubernetes.exceptions import (
    AmbiguousContainerError,
    PodTransformError,
)
from kube_dev_swap.integrations.kubernetes.models.markers import (
    CONFIG_HASH_ANNOTATION,
    CONTROLLER_POD_LABELS,
    IMAGE_NAME_LABEL,
    MATCHED_CONTAINER_ANNOTATION,
    PARENT_HASH_ANNOTATION,
    PARENT_KIND_ANNOTATION,
    PARENT_NAME_ANNOTATION,
    REPLACED_LABEL,
)
from kube_dev_swap.integrations.kubernetes.serialization import get_path
from kube_dev_swap.services.kubernetes.image_resolver import compare_image_names
from kube_dev_swap.services.kubernetes.patch_applier import JsonPatchApplier

if TYPE_CHECKING:
    from kube_dev_swap.integrations.kubernetes.models.replacement import (
        ReplacementSpec,
        SelectedPodContainer,
    )
    from kube_dev_swap.services.kubernetes.controllers import Controller
    from kube_dev_swap.services.kubernetes.image_resolver import ImageResolver
    from kube_dev_swap.services.kubernetes.patch_applier import PatchApplier

logger = structlog.get_logger()

MAX_NAME_LENGTH = 63
NAME_HASH_LENGTH = 8


def safe_concat_name(*parts: str, max_length: int = MAX_NAME_LENGTH) -> str:
    """Join ``parts`` with dashes, keeping the result a valid DNS label.

    Names longer than ``max_length`` are truncated and suffixed with a short
    hash of the full name, so distinct long names stay distinct.

    Example:
        >>> safe_concat_name("web-7d4b9c", "kswap")
        'web-7d4b9c-kswap'
    """
    name = "-".join(part for part in parts if part)
    if len(name) <= max_length:
        return name
    digest = hashlib.sha256(name.encode("utf-8")).hexdigest()[:NAME_HASH_LENGTH]
    prefix = name[: max_length - NAME_HASH_LENGTH - 1].rstrip("-.")
    return f"{prefix}-{digest}"


class PodTransform:
    """Builds the replacement pod from the selected source pod."""

    def __init__(
        self,
        image_resolver: ImageResolver,
        patch_applier: PatchApplier | None = None,
        name_suffix: str = "kswap",
    ) -> None:
        self._image_resolver = image_resolver
        self._patch_applier = patch_applier or JsonPatchApplier()
        self._name_suffix = name_suffix

    def replace_image(self, pod_spec: dict[str, Any], spec: ReplacementSpec) -> str:
        """Swap the image of the matched container in ``pod_spec`` in place.

        Args:
            pod_spec: The ``spec`` of a pod or pod template.
            spec: Replacement spec; ``replace_image`` must be set.

        Returns:
            Name of the container whose image was swapped.

        Raises:
            AmbiguousContainerError: The container cannot be determined.
            PodTransformError: No container qualifies.
            ImageResolveError: The image expression or name does not resolve.
        """
        if not spec.replace_image:
            raise PodTransformError("no replace image configured")
        image = self._image_resolver.resolve_image(spec.replace_image)
        containers: list[dict[str, Any]] = pod_spec.get("containers") or []

        if spec.image_name:
            container = self._match_by_image(containers, spec)
        else:
            container = self._match_by_name(containers, spec)

        logger.debug(
            "replacing_container_image",
            container=container.get("name"),
            old_image=container.get("image"),
            new_image=image,
        )
        container["image"] = image
        return str(container.get("name", ""))

    @staticmethod
    def _match_by_name(
        containers: list[dict[str, Any]], spec: ReplacementSpec
    ) -> dict[str, Any]:
        if not containers:
            raise PodTransformError("pod has no containers")
        if not spec.container_name:
            if len(containers) > 1:
                raise AmbiguousContainerError(
                    f"pod has {len(containers)} containers, "
                    "set containerName to choose the one to replace"
                )
            return containers[0]
        for container in containers:
            if container.get("name") == spec.container_name:
                return container
        raise PodTransformError(f"container {spec.container_name} not found in pod")

    def _match_by_image(
        self, containers: list[dict[str, Any]], spec: ReplacementSpec
    ) -> dict[str, Any]:
        selectors = self._image_resolver.resolve_selector(str(spec.image_name))
        if len(selectors) != 1:
            raise AmbiguousContainerError(
                f"unexpected amount of image selectors for {spec.image_name}: {len(selectors)}"
            )
        if spec.container_name:
            return self._match_by_name(containers, spec)
        if len(containers) == 1:
            return containers[0]
        matches = [
            container
            for container in containers
            if compare_image_names(selectors[0], str(container.get("image", "")))
        ]
        if not matches:
            raise PodTransformError(f"no container runs an image matching {selectors[0]}")
        if len(matches) > 1:
            names = ", ".join(str(c.get("name", "")) for c in matches)
            raise AmbiguousContainerError(
                f"{len(matches)} containers run an image matching {selectors[0]} ({names}), "
                "set containerName to choose the one to replace"
            )
        return matches[0]

    def build_replacement(
        self,
        selected: SelectedPodContainer,
        controller: Controller,
        spec: ReplacementSpec,
        *,
        parent_hash: str,
        config_hash: str,
    ) -> dict[str, Any]:
        """Build the body of the replacement pod.

        The source pod is deep-copied; its identity, status and controller
        labels are dropped, the image swap and patches are applied, and the
        replacement markers are stamped.

        Args:
            selected: The pod and container chosen by the target selector.
            controller: The controller that owns the source pod.
            spec: Replacement spec.
            parent_hash: Fingerprint of the controller's pod template.
            config_hash: Fingerprint of ``spec``.

        Returns:
            API-shaped pod dict ready to be created.
        """
        pod = copy.deepcopy(selected.pod)
        pod_spec = pod.get("spec")
        if not isinstance(pod_spec, dict):
            raise PodTransformError(f"pod {selected.pod_name} has no spec")

        if spec.replace_image:
            self.replace_image(pod_spec, spec)

        if spec.patches:
            pod = self._patch_applier.apply(pod, spec.patches)
            if not isinstance(pod, dict) or not isinstance(pod.get("spec"), dict):
                raise PodTransformError("patched object is not a pod")

        labels = dict(get_path(pod, "metadata", "labels", default={}))
        annotations = dict(get_path(pod, "metadata", "annotations", default={}))
        for key in CONTROLLER_POD_LABELS:
            labels.pop(key, None)

        labels[REPLACED_LABEL] = "true"
        if spec.image_name:
            labels[IMAGE_NAME_LABEL] = spec.image_name

        annotations[MATCHED_CONTAINER_ANNOTATION] = selected.container_name
        annotations[PARENT_KIND_ANNOTATION] = controller.kind
        annotations[PARENT_NAME_ANNOTATION] = controller.name
        annotations[PARENT_HASH_ANNOTATION] = parent_hash
        annotations[CONFIG_HASH_ANNOTATION] = config_hash

        pod["metadata"] = {
            "name": safe_concat_name(selected.pod_name, self._name_suffix),
            "namespace": selected.namespace,
            "labels": labels,
            "annotations": annotations,
        }
        pod.pop("status", None)
        return pod
