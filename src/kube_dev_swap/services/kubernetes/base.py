"""Base manager for Kubernetes service managers.

Provides shared infrastructure for the pod replacement components: client
access, namespace resolution, cancellation checks and error translation.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, NoReturn

import structlog

from kube_dev_swap.services.kubernetes.cancellation import CancellationToken

if TYPE_CHECKING:
    from kube_dev_swap.integrations.kubernetes.client import KubernetesClient

logger = structlog.get_logger()


class K8sBaseManager:
    """Base class for Kubernetes service managers.

    Subclasses set ``_entity_name`` for structured log context.

    Example:
        >>> class ScaleCoordinator(K8sBaseManager):
        ...     _entity_name = "controller"
    """

    _entity_name: str = ""

    def __init__(
        self,
        client: KubernetesClient,
        cancel: CancellationToken | None = None,
    ) -> None:
        """Initialize the manager.

        Args:
            client: Kubernetes API client instance.
            cancel: Cancellation token shared by one replace/revert call.
        """
        self._client = client
        self._cancel = cancel or CancellationToken()
        self._log = logger.bind(entity=self._entity_name)

    def _resolve_namespace(self, namespace: str | None) -> str:
        """Resolve namespace, falling back to the client default."""
        return namespace or self._client.default_namespace

    def _check_cancelled(self, step: str | None = None) -> None:
        """Raise OperationCancelledError when the caller cancelled."""
        self._cancel.raise_if_cancelled(step)

    def _handle_api_error(
        self,
        e: Exception,
        resource_type: str | None = None,
        resource_name: str | None = None,
        namespace: str | None = None,
    ) -> NoReturn:
        """Translate a Kubernetes API exception and re-raise.

        Raises:
            KubernetesError: Always raises an appropriate subclass.
        """
        raise self._client.translate_api_exception(
            e,
            resource_type=resource_type,
            resource_name=resource_name,
            namespace=namespace,
        ) from e
