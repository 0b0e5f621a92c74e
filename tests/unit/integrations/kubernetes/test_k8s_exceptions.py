"""Unit tests for the Kubernetes exception hierarchy."""

from __future__ import annotations

import pytest

from kube_dev_swap.integrations.kubernetes.exceptions import (
    AmbiguousContainerError,
    ControllerNotFoundError,
    KubernetesConflictError,
    KubernetesError,
    KubernetesNotFoundError,
    KubernetesTimeoutError,
    NoOwnerError,
    OperationCancelledError,
    PodReplaceError,
    PodSelectionNotFoundError,
    UnsupportedOwnerError,
)


@pytest.mark.unit
@pytest.mark.kubernetes
class TestKubernetesError:
    """Test base error formatting."""

    def test_message_only(self) -> None:
        assert str(KubernetesError("boom")) == "boom"

    def test_with_status_and_location(self) -> None:
        error = KubernetesError(
            "boom", status_code=500, resource_type="Pod", resource_name="web", namespace="shop"
        )

        assert str(error) == "boom (status: 500) [Pod/web in shop]"

    def test_not_found_message(self) -> None:
        error = KubernetesNotFoundError(resource_type="Deployment", resource_name="web")

        assert error.message == "Deployment 'web' not found"
        assert error.status_code == 404

    def test_conflict_message(self) -> None:
        error = KubernetesConflictError(
            resource_type="Pod", resource_name="web-kswap", namespace="shop"
        )

        assert "conflicts with the cluster state in namespace 'shop'" in error.message

    def test_timeout_message(self) -> None:
        error = KubernetesTimeoutError("Timed out waiting for pod", timeout_seconds=2.5)

        assert error.message == "Timed out waiting for pod (after 2.5s)"
        assert error.timeout_seconds == 2.5


@pytest.mark.unit
@pytest.mark.kubernetes
class TestPodReplaceErrors:
    """Test the pod replacement error hierarchy."""

    @pytest.mark.parametrize(
        "error",
        [
            NoOwnerError("web"),
            UnsupportedOwnerError("DaemonSet", "agent", "pod agent-x"),
            ControllerNotFoundError("Deployment", "web"),
            AmbiguousContainerError("two containers"),
            PodSelectionNotFoundError("none"),
            OperationCancelledError(),
        ],
    )
    def test_hierarchy(self, error: PodReplaceError) -> None:
        assert isinstance(error, PodReplaceError)
        assert isinstance(error, KubernetesError)

    def test_step_prefix(self) -> None:
        cause = KubernetesNotFoundError()
        error = PodReplaceError("gone", step="scale up parent", original_error=cause)

        assert str(error) == "scale up parent: gone"
        assert error.step == "scale up parent"
        assert error.original_error is cause

    def test_cancelled(self) -> None:
        error = OperationCancelledError("delete pod")

        assert str(error) == "delete pod: operation cancelled"
        assert error.step == "delete pod"

    def test_no_owner(self) -> None:
        error = NoOwnerError("web", "shop")

        assert error.resource_name == "web"
        assert "[Pod/web in shop]" in str(error)
