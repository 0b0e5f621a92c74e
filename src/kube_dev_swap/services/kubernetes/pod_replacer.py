"""Pod replacement orchestration.

``PodReplacer.replace_pod`` substitutes one pod of a managed workload with a
developer variant while the owning controller is scaled to zero;
``PodReplacer.revert_replace_pod`` undoes it. Both are idempotent and safe to
re-run after a partial failure: the state they need lives in annotations on
the replacement pod and on the quiesced controller.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any, TypeVar

from kube_dev_swap.integrations.kubernetes.config import PodReplaceSettings
from kube_dev_swap.integrations.kubernetes.exceptions import (
    ControllerNotFoundError,
    KubernetesError,
    OperationCancelledError,
    PodReplaceError,
    PodSelectionNotFoundError,
    UnsupportedOwnerError,
)
from kube_dev_swap.integrations.kubernetes.models.markers import (
    CONFIG_HASH_ANNOTATION,
    PARENT_HASH_ANNOTATION,
    PARENT_KIND_ANNOTATION,
    PARENT_NAME_ANNOTATION,
    REPLACED_LABEL,
)
from kube_dev_swap.integrations.kubernetes.models.replacement import (
    ReplaceAction,
    ReplacedPodSummary,
    ReplacementSpec,
    ReplaceResult,
    SelectedPodContainer,
)
from kube_dev_swap.integrations.kubernetes.serialization import get_path, to_dict
from kube_dev_swap.services.kubernetes.base import K8sBaseManager
from kube_dev_swap.services.kubernetes.cancellation import CancellationToken
from kube_dev_swap.services.kubernetes.controller_resolver import ControllerResolver
from kube_dev_swap.services.kubernetes.fingerprint import ChangeFingerprinter
from kube_dev_swap.services.kubernetes.pod_transform import PodTransform
from kube_dev_swap.services.kubernetes.scale_coordinator import ScaleCoordinator
from kube_dev_swap.services.kubernetes.target_selector import (
    LabelTargetSelector,
    SelectionOptions,
)
from kube_dev_swap.services.kubernetes.termination import TerminationWaiter

if TYPE_CHECKING:
    from kube_dev_swap.integrations.kubernetes.client import KubernetesClient
    from kube_dev_swap.services.kubernetes.controllers import Controller
    from kube_dev_swap.services.kubernetes.image_resolver import ImageResolver
    from kube_dev_swap.services.kubernetes.patch_applier import PatchApplier
    from kube_dev_swap.services.kubernetes.target_selector import TargetSelector

T = TypeVar("T")


class PodReplacer(K8sBaseManager):
    """Replaces pods of ReplicaSets, Deployments and StatefulSets.

    One instance serves one flow at a time. All collaborators share the
    instance's cancellation token; cancelling it aborts the running call at
    the next API call or poll tick with ``OperationCancelledError``.

    Example:
        ```python
        replacer = PodReplacer(client, image_resolver=resolver)
        result = replacer.replace_pod(
            ReplacementSpec(label_selector={"app": "api"}, replace_image="api:debug")
        )
        ```
    """

    _entity_name = "pod_replace"

    def __init__(
        self,
        client: KubernetesClient,
        image_resolver: ImageResolver,
        *,
        target_selector: TargetSelector | None = None,
        patch_applier: PatchApplier | None = None,
        settings: PodReplaceSettings | None = None,
        cancel: CancellationToken | None = None,
    ) -> None:
        super().__init__(client, cancel)
        self._settings = settings or PodReplaceSettings()
        self._image_resolver = image_resolver
        self._selector = target_selector or LabelTargetSelector(client, self._cancel)
        self._resolver = ControllerResolver(client, self._cancel)
        self._scaler = ScaleCoordinator(client, self._cancel)
        self._waiter = TerminationWaiter(client, self._cancel, self._settings)
        self._transform = PodTransform(
            image_resolver, patch_applier, name_suffix=self._settings.name_suffix
        )
        self._fingerprinter = ChangeFingerprinter(self._transform)

    @property
    def cancel_token(self) -> CancellationToken:
        return self._cancel

    # =========================================================================
    # Public operations
    # =========================================================================

    def replace_pod(self, spec: ReplacementSpec) -> ReplaceResult:
        """Replace the pod selected by ``spec``.

        An up-to-date replacement is left alone; a stale one is deleted, its
        parent restored, and a new replacement built from a fresh target.

        Returns:
            What was done and which pod now serves as the replacement.

        Raises:
            PodReplaceError: A step failed; ``step`` names it.
        """
        namespace = self._resolve_namespace(spec.namespace)
        self._log.info("replacing_pod", selection=spec.describe(), namespace=namespace)

        action = ReplaceAction.CREATED
        existing = self.find_replaced_pod(spec, self._settings.replaced_lookup_timeout)
        if existing is not None:
            if not self._update_needed(existing, spec):
                self._log.info(
                    "replacement_up_to_date", name=existing.pod_name, namespace=namespace
                )
                annotations = existing.annotations
                return ReplaceResult(
                    action=ReplaceAction.UNCHANGED,
                    pod_name=existing.pod_name,
                    namespace=existing.namespace,
                    parent_kind=annotations[PARENT_KIND_ANNOTATION],
                    parent_name=annotations[PARENT_NAME_ANNOTATION],
                )
            action = ReplaceAction.RECREATED

        options = self._target_options(spec)
        selected = self._step(
            "find replaceable pod", self._selector.select_single_container, options
        )
        controller = self._step("get pod parent", self._resolver.resolve, selected.pod)
        body = self._replace(selected, controller, spec)

        return ReplaceResult(
            action=action,
            pod_name=str(get_path(body, "metadata", "name")),
            namespace=str(get_path(body, "metadata", "namespace")),
            parent_kind=controller.kind,
            parent_name=controller.name,
        )

    def revert_replace_pod(self, spec: ReplacementSpec) -> SelectedPodContainer | None:
        """Delete the replacement selected by ``spec`` and restore its parent.

        Returns:
            The replacement that was removed, or None when there was none.

        Raises:
            PodReplaceError: A step failed; ``step`` names it.
        """
        replaced = self.find_replaced_pod(spec, self._settings.revert_lookup_timeout)
        if replaced is None:
            self._log.info(
                "no_replaced_pod_found",
                selection=spec.describe(),
                namespace=self._resolve_namespace(spec.namespace),
            )
            return None

        parent = self._lookup_parent(replaced)
        self._step("delete replaced pod", self._waiter.delete_and_await, replaced.pod)
        if parent is None:
            return replaced

        self._step("scale up parent", self._scaler.restore, parent)
        self._log.info(
            "reverted_replaced_pod",
            name=replaced.pod_name,
            namespace=replaced.namespace,
            parent_kind=parent.kind,
            parent_name=parent.name,
        )
        return replaced

    def find_replaced_pod(
        self, spec: ReplacementSpec, timeout: float | None = None
    ) -> SelectedPodContainer | None:
        """Find the existing replacement for ``spec``, if any.

        Raises:
            ValueError: If ``spec`` has neither an image name nor a label
                selector.
        """
        if not spec.image_name and not spec.label_selector:
            raise ValueError("neither image name nor label selector is set")

        options = SelectionOptions(
            namespace=self._resolve_namespace(spec.namespace),
            label_selector=spec.selection_labels(),
            container_name=spec.container_name,
            timeout=timeout or self._settings.replaced_lookup_timeout,
            poll_interval=self._settings.delete_poll_interval,
            allow_pick=False,
            wait_until_not_terminating=True,
        )
        try:
            return self._step("find replaced pod", self._selector.select_single_container, options)
        except PodSelectionNotFoundError:
            return None

    def list_replaced_pods(self, namespace: str | None = None) -> list[ReplacedPodSummary]:
        """List all replacement pods in ``namespace``."""
        ns = self._resolve_namespace(namespace)
        self._check_cancelled("list replaced pods")
        try:
            result = self._client.core_v1.list_namespaced_pod(
                namespace=ns, label_selector=f"{REPLACED_LABEL}=true"
            )
        except Exception as e:
            self._handle_api_error(e, "Pod", None, ns)

        items = to_dict(result).get("items") or []
        self._log.debug("listed_replaced_pods", namespace=ns, count=len(items))
        return [ReplacedPodSummary.from_dict(item) for item in items]

    # =========================================================================
    # Steps
    # =========================================================================

    def _step(self, name: str, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Run one named step.

        Engine errors propagate unchanged; anything else is wrapped in
        ``PodReplaceError`` carrying the step name.
        """
        self._check_cancelled(name)
        try:
            return func(*args, **kwargs)
        except PodReplaceError:
            raise
        except KubernetesError as e:
            raise PodReplaceError(
                e.message,
                step=name,
                original_error=e,
                resource_type=e.resource_type,
                resource_name=e.resource_name,
                namespace=e.namespace,
            ) from e
        except Exception as e:
            raise PodReplaceError(str(e), step=name, original_error=e) from e

    def _target_options(self, spec: ReplacementSpec) -> SelectionOptions:
        image_selector: list[str] = []
        if spec.image_name:
            image_selector = self._step(
                "resolve image selector", self._image_resolver.resolve_selector, spec.image_name
            )
        return SelectionOptions(
            namespace=self._resolve_namespace(spec.namespace),
            label_selector=spec.label_selector,
            image_selector=image_selector,
            container_name=spec.container_name,
            timeout=self._settings.select_timeout,
            poll_interval=self._settings.delete_poll_interval,
            allow_pick=False,
            wait_until_not_terminating=True,
            skip_init_containers=True,
        )

    def _lookup_parent(self, replaced: SelectedPodContainer) -> Controller | None:
        """Fetch the parent recorded on a replacement.

        Returns None when the annotations are missing, the parent is gone or
        its kind is unsupported. Any other read failure is raised.
        """
        annotations = replaced.annotations
        kind = annotations.get(PARENT_KIND_ANNOTATION)
        name = annotations.get(PARENT_NAME_ANNOTATION)
        if not kind or not name:
            self._log.info(
                "replaced_pod_missing_parent_annotations",
                name=replaced.pod_name,
                namespace=replaced.namespace,
            )
            return None

        try:
            return self._step(
                "get pod parent", self._resolver.get_by_kind, kind, name, replaced.namespace
            )
        except (ControllerNotFoundError, UnsupportedOwnerError) as e:
            self._log.info(
                "replaced_pod_parent_lookup_failed",
                name=replaced.pod_name,
                namespace=replaced.namespace,
                parent_kind=kind,
                parent_name=name,
                error=str(e),
            )
            return None

    def _update_needed(self, existing: SelectedPodContainer, spec: ReplacementSpec) -> bool:
        """Decide whether an existing replacement must be rebuilt.

        Stale replacements are deleted and their parent restored before this
        returns True.
        """
        parent = self._lookup_parent(existing)
        if parent is None:
            self._step("delete replaced pod", self._waiter.delete_and_await, existing.pod)
            return True

        parent_hash = self._step(
            "hash parent pod template", self._fingerprinter.fingerprint_controller, parent, spec
        )
        config_hash = self._step("hash config", self._fingerprinter.fingerprint_spec, spec)

        annotations = existing.annotations
        if (
            annotations.get(PARENT_HASH_ANNOTATION) == parent_hash
            and annotations.get(CONFIG_HASH_ANNOTATION) == config_hash
        ):
            try:
                self._scaler.quiesce(parent)
            except OperationCancelledError:
                raise
            except KubernetesError as e:
                self._log.warning(
                    "requiesce_parent_failed",
                    kind=parent.kind,
                    name=parent.name,
                    namespace=parent.namespace,
                    error=str(e),
                )
            return False

        self._log.info(
            "replacement_changed",
            name=existing.pod_name,
            namespace=existing.namespace,
            parent_changed=annotations.get(PARENT_HASH_ANNOTATION) != parent_hash,
            config_changed=annotations.get(CONFIG_HASH_ANNOTATION) != config_hash,
        )
        self._step("delete replaced pod", self._waiter.delete_and_await, existing.pod)
        self._step("scale up parent", self._scaler.restore, parent)
        return True

    def _replace(
        self,
        selected: SelectedPodContainer,
        controller: Controller,
        spec: ReplacementSpec,
    ) -> dict[str, Any]:
        """Build the replacement, quiesce the parent, swap the pods."""
        parent_hash = self._step(
            "hash parent pod template", self._fingerprinter.fingerprint_controller, controller, spec
        )
        config_hash = self._step("hash config", self._fingerprinter.fingerprint_spec, spec)
        body = self._step(
            "build replacement pod",
            self._transform.build_replacement,
            selected,
            controller,
            spec,
            parent_hash=parent_hash,
            config_hash=config_hash,
        )

        self._step("scale down parent", self._scaler.quiesce, controller)
        self._log.info(
            "scaled_down_parent",
            kind=controller.kind,
            name=controller.name,
            namespace=controller.namespace,
        )

        try:
            self._step(
                "wait for original pod to terminate",
                self._waiter.await_original_terminated,
                selected.pod,
                controller.kind,
            )
            self._step("create replacement pod", self._create_pod, body)
        except PodReplaceError:
            self._restore_after_failure(controller)
            raise
        return body

    def _restore_after_failure(self, controller: Controller) -> None:
        """Scale a parent back up that was quiesced without a replacement.

        Once quiesced, the parent has no pod left for a later run to select,
        so the recorded replica count is restored before the error
        propagates. Runs with a fresh token, also after cancellation.
        """
        resolver = ControllerResolver(self._client)
        scaler = ScaleCoordinator(self._client)
        try:
            current = resolver.get_by_kind(controller.kind, controller.name, controller.namespace)
            scaler.restore(current)
        except KubernetesError as e:
            self._log.warning(
                "restore_after_failure_failed",
                kind=controller.kind,
                name=controller.name,
                namespace=controller.namespace,
                error=str(e),
            )
            return
        self._log.info(
            "restored_parent_after_failure",
            kind=controller.kind,
            name=controller.name,
            namespace=controller.namespace,
        )

    def _create_pod(self, body: dict[str, Any]) -> None:
        name = str(get_path(body, "metadata", "name"))
        namespace = self._resolve_namespace(get_path(body, "metadata", "namespace"))
        self._check_cancelled("create replacement pod")
        try:
            self._client.core_v1.create_namespaced_pod(namespace=namespace, body=body)
        except Exception as e:
            self._handle_api_error(e, "Pod", name, namespace)
        self._log.info("created_replacement_pod", name=name, namespace=namespace)
