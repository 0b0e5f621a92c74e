"""Kubernetes integration and pod replacement exceptions."""

from __future__ import annotations


class KubernetesError(Exception):
    """Base exception for Kubernetes operations.

    Attributes:
        message: Human-readable error message.
        status_code: HTTP status code from the Kubernetes API (if any).
        resource_type: Kind of the resource involved (e.g. "Pod").
        resource_name: Name of the resource involved.
        namespace: Namespace of the resource.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        resource_type: str | None = None,
        resource_name: str | None = None,
        namespace: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.resource_type = resource_type
        self.resource_name = resource_name
        self.namespace = namespace

    def __str__(self) -> str:
        """Return string representation of the error."""
        parts = [self.message]
        if self.status_code:
            parts.append(f"(status: {self.status_code})")
        if self.resource_type and self.resource_name:
            loc = f"[{self.resource_type}/{self.resource_name}"
            if self.namespace:
                loc += f" in {self.namespace}"
            loc += "]"
            parts.append(loc)
        return " ".join(parts)


class KubernetesConnectionError(KubernetesError):
    """Raised when the cluster cannot be reached or kubeconfig cannot be loaded."""

    def __init__(
        self,
        message: str = "Failed to connect to Kubernetes cluster",
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message=message)
        self.original_error = original_error


class KubernetesAuthError(KubernetesError):
    """Raised on 401/403 responses."""

    def __init__(
        self,
        message: str = "Kubernetes authentication/authorization failed",
        status_code: int | None = 401,
        reason: str | None = None,
    ) -> None:
        super().__init__(message=message, status_code=status_code)
        self.reason = reason


class KubernetesNotFoundError(KubernetesError):
    """Raised when a requested resource does not exist (404)."""

    def __init__(
        self,
        message: str = "Kubernetes resource not found",
        resource_type: str | None = None,
        resource_name: str | None = None,
        namespace: str | None = None,
    ) -> None:
        if resource_type and resource_name:
            message = f"{resource_type} '{resource_name}' not found"
            if namespace:
                message += f" in namespace '{namespace}'"
        super().__init__(
            message=message,
            status_code=404,
            resource_type=resource_type,
            resource_name=resource_name,
            namespace=namespace,
        )


class KubernetesValidationError(KubernetesError):
    """Raised when the API rejects a body (400/422)."""

    def __init__(
        self,
        message: str = "Invalid resource specification",
        status_code: int | None = 422,
    ) -> None:
        super().__init__(message=message, status_code=status_code)


class KubernetesConflictError(KubernetesError):
    """Raised on 409: the object already exists or was modified concurrently."""

    def __init__(
        self,
        message: str = "Resource conflict",
        resource_type: str | None = None,
        resource_name: str | None = None,
        namespace: str | None = None,
    ) -> None:
        if resource_type and resource_name:
            message = f"{resource_type} '{resource_name}' conflicts with the cluster state"
            if namespace:
                message += f" in namespace '{namespace}'"
        super().__init__(
            message=message,
            status_code=409,
            resource_type=resource_type,
            resource_name=resource_name,
            namespace=namespace,
        )


class KubernetesTimeoutError(KubernetesError):
    """Raised when a bounded wait on the cluster runs out of time."""

    def __init__(
        self,
        message: str = "Kubernetes operation timed out",
        timeout_seconds: float | None = None,
    ) -> None:
        if timeout_seconds:
            message = f"{message} (after {timeout_seconds:g}s)"
        super().__init__(message=message)
        self.timeout_seconds = timeout_seconds


# =============================================================================
# Pod replacement errors
# =============================================================================


class PodReplaceError(KubernetesError):
    """Base exception for the pod replacement engine.

    Attributes:
        step: Name of the replace/revert step that failed, if known.
        original_error: The underlying exception when this error wraps one.
    """

    def __init__(
        self,
        message: str,
        step: str | None = None,
        original_error: Exception | None = None,
        resource_type: str | None = None,
        resource_name: str | None = None,
        namespace: str | None = None,
    ) -> None:
        if step:
            message = f"{step}: {message}"
        super().__init__(
            message=message,
            resource_type=resource_type,
            resource_name=resource_name,
            namespace=namespace,
        )
        self.step = step
        self.original_error = original_error


class NoOwnerError(PodReplaceError):
    """Raised when a pod has no controlling owner reference."""

    def __init__(self, pod_name: str, namespace: str | None = None) -> None:
        super().__init__(
            message="pod was not created by a ReplicaSet, Deployment or StatefulSet, "
            "replacing only works for pods owned by one of those resources",
            resource_type="Pod",
            resource_name=pod_name,
            namespace=namespace,
        )


class UnsupportedOwnerError(PodReplaceError):
    """Raised when the ownership chain ends in an unsupported controller kind."""

    def __init__(self, owner_kind: str, owner_name: str, child: str) -> None:
        super().__init__(message=f"unrecognized owner of {child}: {owner_kind} {owner_name}")
        self.owner_kind = owner_kind
        self.owner_name = owner_name


class ControllerNotFoundError(PodReplaceError):
    """Raised when an owner reference points to a controller that is gone."""

    def __init__(self, kind: str, name: str, namespace: str | None = None) -> None:
        super().__init__(
            message=f"owning {kind} {name} does not exist anymore",
            resource_type=kind,
            resource_name=name,
            namespace=namespace,
        )


class AmbiguousContainerError(PodReplaceError):
    """Raised when the container to swap cannot be determined unambiguously."""


class PodTransformError(PodReplaceError):
    """Raised when the replacement pod body cannot be built."""


class ScaleError(PodReplaceError):
    """Raised when a controller's recorded replica count is unusable."""


class FingerprintError(PodReplaceError):
    """Raised when an object cannot be serialized for hashing."""


class ImageResolveError(PodReplaceError):
    """Raised when an image name or replace-image expression cannot be resolved."""


class PodSelectionNotFoundError(PodReplaceError):
    """Raised by target selectors when no matching pod was found in time."""


class OperationCancelledError(PodReplaceError):
    """Raised when the caller cancelled a running replace or revert."""

    def __init__(self, step: str | None = None) -> None:
        super().__init__(message="operation cancelled", step=step)
