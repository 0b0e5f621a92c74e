"""Quiescing and restoring owning controllers."""

from __future__ import annotations

from typing import Any

from kube_dev_swap.integrations.kubernetes.exceptions import ScaleError
from kube_dev_swap.integrations.kubernetes.models.markers import REPLICAS_ANNOTATION
from kube_dev_swap.integrations.kubernetes.serialization import get_path
from kube_dev_swap.services.kubernetes.base import K8sBaseManager
from kube_dev_swap.services.kubernetes.controllers import Controller
from kube_dev_swap.utils.merge import create_merge_patch

MERGE_PATCH_CONTENT_TYPE = "application/merge-patch+json"


class ScaleCoordinator(K8sBaseManager):
    """Scales a controller to zero and back.

    The replica count before quiescing is recorded on the controller itself
    under ``REPLICAS_ANNOTATION``; it is the only place this state lives.
    Patches are merge-patch diffs between the fetched and the mutated body,
    so only the replicas field and the annotation are sent.
    """

    _entity_name = "controller"

    def quiesce(self, controller: Controller) -> bool:
        """Record the replica count and scale the controller to zero.

        Returns:
            True if a patch was sent, False if the controller already runs
            zero replicas.
        """
        replicas = controller.get_replicas()
        if replicas == 0:
            self._log.debug(
                "controller_already_quiesced", kind=controller.kind, name=controller.name
            )
            return False

        updated = controller.copy()
        updated.annotations()[REPLICAS_ANNOTATION] = str(replicas)
        updated.set_replicas(0)

        self._log.info(
            "quiescing_controller",
            kind=controller.kind,
            name=controller.name,
            namespace=controller.namespace,
            replicas=replicas,
        )
        self._patch(controller, create_merge_patch(controller.body, updated.body))
        return True

    def restore(self, controller: Controller) -> bool:
        """Scale the controller back to its recorded replica count.

        Returns:
            True if a patch was sent, False if no count was recorded.

        Raises:
            ScaleError: If the recorded count is not a non-negative integer.
        """
        annotations = get_path(controller.body, "metadata", "annotations", default={})
        recorded = annotations.get(REPLICAS_ANNOTATION)
        if not recorded:
            return False

        try:
            replicas = int(recorded)
        except ValueError as e:
            raise ScaleError(
                f"invalid {REPLICAS_ANNOTATION} annotation {recorded!r}",
                original_error=e,
                resource_type=controller.kind,
                resource_name=controller.name,
                namespace=controller.namespace,
            ) from e
        if replicas < 0:
            raise ScaleError(
                f"invalid {REPLICAS_ANNOTATION} annotation {recorded!r}",
                resource_type=controller.kind,
                resource_name=controller.name,
                namespace=controller.namespace,
            )

        updated = controller.copy()
        del updated.annotations()[REPLICAS_ANNOTATION]
        if replicas > 0:
            updated.set_replicas(replicas)

        self._log.info(
            "restoring_controller",
            kind=controller.kind,
            name=controller.name,
            namespace=controller.namespace,
            replicas=replicas,
        )
        self._patch(controller, create_merge_patch(controller.body, updated.body))
        return True

    def _patch(self, controller: Controller, patch: dict[str, Any]) -> None:
        namespace = self._resolve_namespace(controller.namespace)
        self._check_cancelled(f"patch {controller.kind}")
        patch_method = getattr(self._client.apps_v1, controller.api.patch)
        try:
            patch_method(
                name=controller.name,
                namespace=namespace,
                body=patch,
                _content_type=MERGE_PATCH_CONTENT_TYPE,
            )
        except Exception as e:
            self._handle_api_error(e, controller.kind, controller.name, namespace)
