"""Kubernetes API client wrapper.

Wraps the official kubernetes Python client with kubeconfig / in-cluster
loading, context switching, lazy API group initialization, retry logic for
connection failures and consistent error translation.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from kube_dev_swap.integrations.kubernetes.exceptions import (
    KubernetesAuthError,
    KubernetesConflictError,
    KubernetesConnectionError,
    KubernetesError,
    KubernetesNotFoundError,
    KubernetesValidationError,
)

if TYPE_CHECKING:
    from kubernetes.client import AppsV1Api, CoreV1Api, VersionApi

    from kube_dev_swap.integrations.kubernetes.config import KubernetesPluginConfig

logger = structlog.get_logger()


class KubernetesClient:
    """Kubernetes API client used by the pod replacement engine.

    Only the API groups the engine touches are exposed: ``core_v1`` for pods
    and ``apps_v1`` for ReplicaSets, Deployments and StatefulSets.

    Example:
        ```python
        from kube_dev_swap.integrations.kubernetes import (
            KubernetesClient,
            KubernetesPluginConfig,
        )

        with KubernetesClient(KubernetesPluginConfig.from_env()) as client:
            pods = client.core_v1.list_namespaced_pod(client.default_namespace)
        ```
    """

    def __init__(self, plugin_config: KubernetesPluginConfig) -> None:
        """Initialize the client and load cluster credentials.

        Args:
            plugin_config: Complete plugin configuration.
        """
        self._config = plugin_config
        self._retries = plugin_config.defaults.retry_attempts
        self._current_context: str | None = None

        self._core_v1: CoreV1Api | None = None
        self._apps_v1: AppsV1Api | None = None
        self._version_api: VersionApi | None = None

        self._load_config()

        logger.info(
            "Kubernetes client initialized",
            context=self._current_context,
            default_namespace=plugin_config.get_active_namespace(),
        )

    def _load_config(self) -> None:
        """Load Kubernetes configuration from kubeconfig or in-cluster."""
        from kubernetes import config
        from kubernetes.config import ConfigException

        active_context = self._config.get_active_context()
        kubeconfig_path = self._config.get_active_kubeconfig()

        try:
            config.load_kube_config(config_file=kubeconfig_path, context=active_context)
            self._current_context = active_context or self._read_current_context(
                kubeconfig_path
            )
            logger.debug("loaded_kubeconfig", context=active_context, kubeconfig=kubeconfig_path)
        except ConfigException:
            try:
                config.load_incluster_config()
                self._current_context = "in-cluster"
                logger.debug("loaded_incluster_config")
            except ConfigException as e:
                raise KubernetesConnectionError(
                    message="Cannot load Kubernetes configuration. "
                    "Ensure kubeconfig exists or running inside a cluster.",
                    original_error=e,
                ) from e

        if self._config.auth.type == "token" and self._config.auth.token:
            self._apply_token_auth(self._config.auth.token)

        self._invalidate_api_cache()

    @staticmethod
    def _read_current_context(kubeconfig_path: str | None) -> str | None:
        from kubernetes import config
        from kubernetes.config import ConfigException

        try:
            _, active = config.list_kube_config_contexts(config_file=kubeconfig_path)
        except ConfigException:
            return None
        return active.get("name") if active else None

    @staticmethod
    def _apply_token_auth(token: str) -> None:
        """Replace kubeconfig credentials with a bearer token."""
        from kubernetes.client import Configuration

        configuration = Configuration.get_default_copy()
        configuration.api_key = {"authorization": f"Bearer {token}"}
        Configuration.set_default(configuration)
        logger.debug("applied_token_auth")

    def _invalidate_api_cache(self) -> None:
        """Clear cached API group instances."""
        self._core_v1 = None
        self._apps_v1 = None
        self._version_api = None

    # =========================================================================
    # Lazy API Group Accessors
    # =========================================================================

    @property
    def core_v1(self) -> CoreV1Api:
        """Get CoreV1Api instance (pods)."""
        if self._core_v1 is None:
            from kubernetes.client import CoreV1Api

            self._core_v1 = CoreV1Api()
        return self._core_v1

    @property
    def apps_v1(self) -> AppsV1Api:
        """Get AppsV1Api instance (replicasets, deployments, statefulsets)."""
        if self._apps_v1 is None:
            from kubernetes.client import AppsV1Api

            self._apps_v1 = AppsV1Api()
        return self._apps_v1

    @property
    def version_api(self) -> VersionApi:
        """Get VersionApi instance for cluster version info."""
        if self._version_api is None:
            from kubernetes.client import VersionApi

            self._version_api = VersionApi()
        return self._version_api

    # =========================================================================
    # Context Management
    # =========================================================================

    def switch_context(self, context_name: str) -> None:
        """Switch to a different Kubernetes context.

        Args:
            context_name: A kubeconfig context name or a named cluster from
                the plugin config.

        Raises:
            KubernetesConnectionError: If the context cannot be loaded.
        """
        from kubernetes import config
        from kubernetes.config import ConfigException

        kubeconfig_path = None
        if context_name in self._config.clusters:
            cluster_cfg = self._config.clusters[context_name]
            context_name = cluster_cfg.context
            kubeconfig_path = cluster_cfg.kubeconfig

        try:
            config.load_kube_config(config_file=kubeconfig_path, context=context_name)
        except ConfigException as e:
            raise KubernetesConnectionError(
                message=f"Failed to switch to context '{context_name}'",
                original_error=e,
            ) from e

        self._current_context = context_name
        self._invalidate_api_cache()
        logger.info("switched_context", context=context_name)

    def get_current_context(self) -> str:
        """Get the current active context name."""
        return self._current_context or "unknown"

    # =========================================================================
    # Error Translation
    # =========================================================================

    @staticmethod
    def translate_api_exception(
        e: Exception,
        resource_type: str | None = None,
        resource_name: str | None = None,
        namespace: str | None = None,
    ) -> KubernetesError:
        """Translate a kubernetes ApiException to a KubernetesError subclass.

        Args:
            e: The original exception.
            resource_type: Kind of resource being operated on.
            resource_name: Name of the resource.
            namespace: Namespace of the resource.

        Returns:
            An appropriate KubernetesError subclass.
        """
        from kubernetes.client import ApiException
        from urllib3.exceptions import HTTPError

        if isinstance(e, KubernetesError):
            return e

        if isinstance(e, HTTPError):
            return KubernetesConnectionError(
                message=f"Kubernetes API unreachable: {e}",
                original_error=e,
            )

        if not isinstance(e, ApiException):
            return KubernetesError(
                message=str(e),
                resource_type=resource_type,
                resource_name=resource_name,
                namespace=namespace,
            )

        status = e.status

        if status in (401, 403):
            return KubernetesAuthError(
                message=e.reason or "Authentication/authorization failed",
                status_code=status,
                reason=e.reason,
            )

        if status == 404:
            return KubernetesNotFoundError(
                resource_type=resource_type,
                resource_name=resource_name,
                namespace=namespace,
            )

        if status == 409:
            return KubernetesConflictError(
                resource_type=resource_type,
                resource_name=resource_name,
                namespace=namespace,
            )

        if status in (400, 422):
            return KubernetesValidationError(
                message=e.reason or "Validation failed",
                status_code=status,
            )

        return KubernetesError(
            message=e.reason or f"Kubernetes API error: {status}",
            status_code=status,
            resource_type=resource_type,
            resource_name=resource_name,
            namespace=namespace,
        )

    # =========================================================================
    # Retry Decorator
    # =========================================================================

    def make_retry_decorator(self) -> Any:
        """Create a retry decorator for transient connection errors.

        Returns:
            A tenacity retry decorator configured with exponential backoff.
        """
        return retry(
            retry=retry_if_exception_type(KubernetesConnectionError),
            stop=stop_after_attempt(max(self._retries, 1)),
            wait=wait_exponential(multiplier=1, min=1, max=10),
            reraise=True,
        )

    # =========================================================================
    # Connection Check
    # =========================================================================

    def check_connection(self) -> bool:
        """Check if the Kubernetes API server answers."""
        try:
            self.version_api.get_code(_request_timeout=self.timeout)
            return True
        except Exception:
            return False

    def get_cluster_version(self) -> str:
        """Get the Kubernetes cluster version string (e.g. "v1.30").

        Connection failures are retried ``defaults.retry_attempts`` times.

        Raises:
            KubernetesConnectionError: If the cluster is unreachable.
        """

        @self.make_retry_decorator()
        def fetch() -> Any:
            try:
                return self.version_api.get_code(_request_timeout=self.timeout)
            except Exception as e:
                raise KubernetesConnectionError(
                    message="Failed to get cluster version",
                    original_error=e,
                ) from e

        version_info = fetch()
        return f"v{version_info.major}.{version_info.minor}"

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def default_namespace(self) -> str:
        """Get the default namespace from config."""
        return self._config.get_active_namespace()

    @property
    def timeout(self) -> int:
        """Get the configured API timeout."""
        return self._config.get_active_timeout()

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def close(self) -> None:
        """Close the client and release resources."""
        self._invalidate_api_cache()
        logger.debug("Kubernetes client closed")

    def __enter__(self) -> KubernetesClient:
        """Context manager entry."""
        return self

    def __exit__(self, *args: Any) -> None:
        """Context manager exit."""
        self.close()
