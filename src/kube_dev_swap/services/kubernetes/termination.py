"""Waiting for pods to go away."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from kube_dev_swap.integrations.kubernetes.config import PodReplaceSettings
from kube_dev_swap.integrations.kubernetes.exceptions import KubernetesNotFoundError
from kube_dev_swap.integrations.kubernetes.serialization import get_path, to_dict
from kube_dev_swap.services.kubernetes.base import K8sBaseManager
from kube_dev_swap.services.kubernetes.cancellation import CancellationToken
from kube_dev_swap.services.kubernetes.polling import poll_until

if TYPE_CHECKING:
    from kube_dev_swap.integrations.kubernetes.client import KubernetesClient


class TerminationWaiter(K8sBaseManager):
    """Deletes pods and waits, bounded, for them to terminate."""

    _entity_name = "pod"

    def __init__(
        self,
        client: KubernetesClient,
        cancel: CancellationToken | None = None,
        settings: PodReplaceSettings | None = None,
    ) -> None:
        super().__init__(client, cancel)
        self._settings = settings or PodReplaceSettings()

    def delete_and_await(self, pod: dict[str, Any], timeout: float | None = None) -> None:
        """Delete ``pod`` and wait until the API no longer returns it.

        A pod that is already gone counts as deleted.

        Raises:
            KubernetesTimeoutError: The pod still exists after ``timeout``.
        """
        name, namespace = self._identity(pod)
        timeout = timeout or self._settings.terminate_timeout

        self._check_cancelled("delete pod")
        self._log.info("deleting_pod", name=name, namespace=namespace)
        try:
            self._client.core_v1.delete_namespaced_pod(name=name, namespace=namespace)
        except Exception as e:
            translated = self._client.translate_api_exception(
                e, resource_type="Pod", resource_name=name, namespace=namespace
            )
            if not isinstance(translated, KubernetesNotFoundError):
                raise translated from e
            self._log.debug("pod_already_deleted", name=name, namespace=namespace)
            return

        poll_until(
            lambda: self._read_pod(name, namespace) is None,
            timeout=timeout,
            interval=self._settings.delete_poll_interval,
            cancel=self._cancel,
            description=f"pod {namespace}/{name} to be deleted",
        )
        self._log.info("deleted_pod", name=name, namespace=namespace)

    def await_original_terminated(
        self,
        pod: dict[str, Any],
        parent_kind: str,
        timeout: float | None = None,
    ) -> None:
        """Wait until the original pod releases its place.

        Pods of ReplicaSets and Deployments count as terminated once their
        deletion started. StatefulSet pods keep a stable identity and must be
        fully gone before a pod with the same volumes may start.

        Raises:
            KubernetesTimeoutError: The pod did not terminate in time.
        """
        name, namespace = self._identity(pod)
        timeout = timeout or self._settings.terminate_timeout
        require_absent = parent_kind == "StatefulSet"

        def terminated() -> bool:
            current = self._read_pod(name, namespace)
            if current is None:
                return True
            if require_absent:
                return False
            return get_path(current, "metadata", "deletionTimestamp") is not None

        self._log.info(
            "waiting_for_pod_termination",
            name=name,
            namespace=namespace,
            parent_kind=parent_kind,
        )
        poll_until(
            terminated,
            timeout=timeout,
            interval=self._settings.terminate_poll_interval,
            cancel=self._cancel,
            description=f"pod {namespace}/{name} to terminate",
        )

    def _identity(self, pod: dict[str, Any]) -> tuple[str, str]:
        name = str(get_path(pod, "metadata", "name", default=""))
        namespace = self._resolve_namespace(get_path(pod, "metadata", "namespace"))
        return name, namespace

    def _read_pod(self, name: str, namespace: str) -> dict[str, Any] | None:
        """Read a pod; None when it does not exist."""
        try:
            return to_dict(self._client.core_v1.read_namespaced_pod(name=name, namespace=namespace))
        except Exception as e:
            translated = self._client.translate_api_exception(
                e, resource_type="Pod", resource_name=name, namespace=namespace
            )
            if isinstance(translated, KubernetesNotFoundError):
                return None
            raise translated from e
