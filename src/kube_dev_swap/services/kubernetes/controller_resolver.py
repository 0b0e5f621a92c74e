"""Resolution of a pod's owning controller."""

from __future__ import annotations

from typing import Any

from kube_dev_swap.integrations.kubernetes.exceptions import (
    ControllerNotFoundError,
    KubernetesNotFoundError,
    NoOwnerError,
    UnsupportedOwnerError,
)
from kube_dev_swap.integrations.kubernetes.models.base import get_controller_of
from kube_dev_swap.integrations.kubernetes.serialization import get_path, to_dict
from kube_dev_swap.services.kubernetes.base import K8sBaseManager
from kube_dev_swap.services.kubernetes.controllers import (
    CONTROLLER_API,
    CONTROLLER_KINDS,
    Controller,
    controller_from_kind,
)


class ControllerResolver(K8sBaseManager):
    """Walks owner references from a pod up to the controller to quiesce.

    Supported chains are ``Pod -> ReplicaSet``, ``Pod -> ReplicaSet ->
    Deployment`` and ``Pod -> StatefulSet``.
    """

    _entity_name = "controller"

    def resolve(self, pod: dict[str, Any]) -> Controller:
        """Return the controller that owns ``pod``.

        Args:
            pod: API-shaped pod dict.

        Raises:
            NoOwnerError: The pod has no controlling owner reference.
            UnsupportedOwnerError: The chain ends in an unsupported kind.
            ControllerNotFoundError: A referenced controller no longer exists.
        """
        pod_name = get_path(pod, "metadata", "name", default="")
        namespace = get_path(pod, "metadata", "namespace", default="")

        owner = get_controller_of(pod)
        if owner is None or not owner.kind or not owner.name:
            raise NoOwnerError(pod_name, namespace)

        if owner.kind == "ReplicaSet":
            replica_set = self.get_by_kind("ReplicaSet", owner.name, namespace)
            rs_owner = get_controller_of(replica_set.body)
            if rs_owner is None:
                return replica_set
            if rs_owner.kind != "Deployment" or not rs_owner.name:
                raise UnsupportedOwnerError(
                    str(rs_owner.kind), str(rs_owner.name), f"ReplicaSet {owner.name}"
                )
            return self.get_by_kind("Deployment", rs_owner.name, namespace)

        if owner.kind == "StatefulSet":
            return self.get_by_kind("StatefulSet", owner.name, namespace)

        raise UnsupportedOwnerError(owner.kind, owner.name, f"pod {pod_name}")

    def get_by_kind(self, kind: str, name: str, namespace: str | None = None) -> Controller:
        """Fetch a controller by kind and name.

        Raises:
            UnsupportedOwnerError: ``kind`` is not a supported controller kind.
            ControllerNotFoundError: The controller does not exist.
        """
        if kind not in CONTROLLER_KINDS:
            raise UnsupportedOwnerError(kind, name, "replaced pod")

        ns = self._resolve_namespace(namespace)
        self._check_cancelled(f"get {kind}")
        self._log.debug("reading_controller", kind=kind, name=name, namespace=ns)

        read = getattr(self._client.apps_v1, CONTROLLER_API[kind].read)
        try:
            result = read(name=name, namespace=ns)
        except Exception as e:
            translated = self._client.translate_api_exception(
                e, resource_type=kind, resource_name=name, namespace=ns
            )
            if isinstance(translated, KubernetesNotFoundError):
                raise ControllerNotFoundError(kind, name, ns) from e
            raise translated from e

        return controller_from_kind(kind, to_dict(result))
