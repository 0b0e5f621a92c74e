"""Owning controller kinds supported by the pod replacement engine.

A closed set of three kinds shares one base class. Kind-specific behaviour is
limited to the API method names in ``CONTROLLER_API``; everything else
(replica access, pod template, annotations) reads the same paths of the
API-shaped body for every kind.
"""

from __future__ import annotations

import copy
from typing import Any, ClassVar, NamedTuple

from kube_dev_swap.integrations.kubernetes.serialization import ensure_map, get_path


class ControllerApi(NamedTuple):
    """``AppsV1Api`` method names used for one controller kind."""

    read: str
    patch: str


CONTROLLER_API: dict[str, ControllerApi] = {
    "ReplicaSet": ControllerApi(
        read="read_namespaced_replica_set",
        patch="patch_namespaced_replica_set",
    ),
    "Deployment": ControllerApi(
        read="read_namespaced_deployment",
        patch="patch_namespaced_deployment",
    ),
    "StatefulSet": ControllerApi(
        read="read_namespaced_stateful_set",
        patch="patch_namespaced_stateful_set",
    ),
}


class Controller:
    """A fetched controller object.

    The body is an API-shaped dict owned by this instance. Use :meth:`copy`
    before mutating when the original is still needed (e.g. to compute a
    merge patch).
    """

    kind: ClassVar[str] = ""

    def __init__(self, body: dict[str, Any]) -> None:
        self.body = body

    def __repr__(self) -> str:
        return f"{type(self).__name__}(namespace={self.namespace!r}, name={self.name!r})"

    @property
    def api(self) -> ControllerApi:
        return CONTROLLER_API[self.kind]

    @property
    def name(self) -> str:
        return str(get_path(self.body, "metadata", "name", default=""))

    @property
    def namespace(self) -> str:
        return str(get_path(self.body, "metadata", "namespace", default=""))

    def identity(self) -> tuple[str, str, str]:
        """Return ``(kind, namespace, name)``."""
        return (self.kind, self.namespace, self.name)

    def get_replicas(self) -> int:
        """Desired replica count; the API server default of 1 when unset."""
        replicas = get_path(self.body, "spec", "replicas")
        return 1 if replicas is None else int(replicas)

    def set_replicas(self, replicas: int) -> None:
        ensure_map(self.body, "spec")["replicas"] = replicas

    def template(self) -> dict[str, Any]:
        """The pod template (``spec.template``), not copied."""
        return ensure_map(self.body, "spec", "template")

    def annotations(self) -> dict[str, str]:
        """Mutable annotations map, created when missing."""
        return ensure_map(self.body, "metadata", "annotations")

    def copy(self) -> Controller:
        """Return a deep copy of this controller."""
        return type(self)(copy.deepcopy(self.body))


class ReplicaSetController(Controller):
    kind = "ReplicaSet"


class DeploymentController(Controller):
    kind = "Deployment"


class StatefulSetController(Controller):
    kind = "StatefulSet"


CONTROLLER_KINDS: dict[str, type[Controller]] = {
    cls.kind: cls
    for cls in (ReplicaSetController, DeploymentController, StatefulSetController)
}


def controller_from_kind(kind: str, body: dict[str, Any]) -> Controller:
    """Wrap an API-shaped body in the controller class for ``kind``.

    Raises:
        KeyError: If ``kind`` is not a supported controller kind.
    """
    return CONTROLLER_KINDS[kind](body)
