"""Selection of the pod and container a replace or revert operates on."""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Protocol

from pydantic import BaseModel, ConfigDict, Field, field_validator

from kube_dev_swap.integrations.kubernetes.exceptions import (
    KubernetesTimeoutError,
    PodSelectionNotFoundError,
)
from kube_dev_swap.integrations.kubernetes.models.replacement import SelectedPodContainer
from kube_dev_swap.integrations.kubernetes.serialization import get_path, to_dict
from kube_dev_swap.services.kubernetes.base import K8sBaseManager
from kube_dev_swap.services.kubernetes.image_resolver import compare_image_names
from kube_dev_swap.services.kubernetes.polling import poll_until

if TYPE_CHECKING:
    from kube_dev_swap.integrations.kubernetes.client import KubernetesClient
    from kube_dev_swap.services.kubernetes.cancellation import CancellationToken

Picker = Callable[[list[SelectedPodContainer]], SelectedPodContainer]


class SelectionOptions(BaseModel):
    """Criteria and wait behaviour for a single-container selection."""

    model_config = ConfigDict(extra="forbid")

    namespace: str | None = None
    label_selector: dict[str, str] | None = None
    image_selector: list[str] = Field(default_factory=list)
    container_name: str | None = None
    timeout: float = 300
    allow_pick: bool = False
    wait_until_not_terminating: bool = True
    poll_interval: float = 1.0
    skip_init_containers: bool = True

    @field_validator("timeout", "poll_interval")
    @classmethod
    def validate_positive(cls, v: float) -> float:
        """Validate durations are positive."""
        if v <= 0:
            raise ValueError("durations must be positive")
        return v

    def label_selector_string(self) -> str | None:
        """Render the label selector in ``k=v,k2=v2`` form."""
        if not self.label_selector:
            return None
        return ",".join(f"{k}={v}" for k, v in sorted(self.label_selector.items()))

    def describe(self) -> str:
        parts = []
        if self.label_selector:
            parts.append(f"labels {self.label_selector_string()}")
        if self.image_selector:
            parts.append(f"image {', '.join(self.image_selector)}")
        if self.container_name:
            parts.append(f"container {self.container_name}")
        return " and ".join(parts) or "any pod"


class TargetSelector(Protocol):
    """Finds exactly one pod and container matching some criteria."""

    def select_single_container(self, options: SelectionOptions) -> SelectedPodContainer:
        """Return the matching pod and container.

        Raises:
            PodSelectionNotFoundError: Nothing matched within the timeout.
        """
        ...


def _is_terminating(pod: dict[str, Any]) -> bool:
    return get_path(pod, "metadata", "deletionTimestamp") is not None


class LabelTargetSelector(K8sBaseManager):
    """Target selector that lists pods by label and filters their containers.

    When several pods match, the newest running pod wins unless
    ``allow_pick`` is set and a ``picker`` was supplied, in which case the
    picker chooses among all candidates.
    """

    _entity_name = "pod"

    def __init__(
        self,
        client: KubernetesClient,
        cancel: CancellationToken | None = None,
        picker: Picker | None = None,
    ) -> None:
        super().__init__(client, cancel)
        self._picker = picker

    def select_single_container(self, options: SelectionOptions) -> SelectedPodContainer:
        """Wait, bounded by ``options.timeout``, for a matching container.

        Raises:
            PodSelectionNotFoundError: No usable candidate appeared in time.
        """
        namespace = self._resolve_namespace(options.namespace)
        found: list[SelectedPodContainer] = []

        def attempt() -> bool:
            candidates = self.list_candidates(options, namespace)
            if options.wait_until_not_terminating:
                candidates = [c for c in candidates if not _is_terminating(c.pod)]
            found[:] = candidates
            return bool(candidates)

        try:
            poll_until(
                attempt,
                timeout=options.timeout,
                interval=options.poll_interval,
                cancel=self._cancel,
                description=f"pod matching {options.describe()}",
            )
        except KubernetesTimeoutError as e:
            raise PodSelectionNotFoundError(
                f"no pod matching {options.describe()} found in namespace {namespace}",
                namespace=namespace,
            ) from e

        if len(found) > 1 and options.allow_pick and self._picker is not None:
            return self._picker(found)
        selected = found[0]
        self._log.debug(
            "selected_pod",
            name=selected.pod_name,
            namespace=namespace,
            container=selected.container_name,
            candidates=len(found),
        )
        return selected

    def list_candidates(
        self, options: SelectionOptions, namespace: str | None = None
    ) -> list[SelectedPodContainer]:
        """List matching pods, one candidate per pod, best candidate first."""
        ns = self._resolve_namespace(namespace or options.namespace)
        selector = options.label_selector_string()

        self._check_cancelled("list pods")
        kwargs: dict[str, Any] = {}
        if selector:
            kwargs["label_selector"] = selector
        try:
            result = self._client.core_v1.list_namespaced_pod(namespace=ns, **kwargs)
        except Exception as e:
            self._handle_api_error(e, "Pod", None, ns)

        candidates = []
        for item in to_dict(result).get("items") or []:
            container = self._match_container(item, options)
            if container is not None:
                candidates.append(SelectedPodContainer(pod=item, container=container))

        candidates.sort(
            key=lambda c: str(get_path(c.pod, "metadata", "creationTimestamp", default="")),
            reverse=True,
        )
        candidates.sort(key=lambda c: get_path(c.pod, "status", "phase") != "Running")
        return candidates

    @staticmethod
    def _match_container(pod: dict[str, Any], options: SelectionOptions) -> dict[str, Any] | None:
        containers = list(get_path(pod, "spec", "containers", default=[]))
        if not options.skip_init_containers:
            containers = list(get_path(pod, "spec", "initContainers", default=[])) + containers

        for container in containers:
            if options.container_name and container.get("name") != options.container_name:
                continue
            if options.image_selector and not any(
                compare_image_names(selector, str(container.get("image", "")))
                for selector in options.image_selector
            ):
                continue
            return container
        return None
