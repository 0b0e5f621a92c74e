"""Unit tests for shared Kubernetes command helpers."""

from __future__ import annotations

import signal
from collections.abc import Iterator
from io import StringIO
from unittest.mock import patch

import pytest
import typer
from rich.console import Console

from kube_dev_swap.integrations.kubernetes.exceptions import (
    AmbiguousContainerError,
    KubernetesAuthError,
    KubernetesConnectionError,
    KubernetesError,
    KubernetesNotFoundError,
    KubernetesTimeoutError,
    KubernetesValidationError,
    NoOwnerError,
    OperationCancelledError,
    PodReplaceError,
    PodSelectionNotFoundError,
)
from kube_dev_swap.plugins.kubernetes.commands.base import (
    cancel_on_interrupt,
    handle_k8s_error,
    parse_label_selector,
)
from kube_dev_swap.services.kubernetes.cancellation import CancellationToken


@pytest.fixture
def output() -> Iterator[StringIO]:
    """Capture what handle_k8s_error prints."""
    buffer = StringIO()
    console = Console(file=buffer, width=200, color_system=None)
    with patch("kube_dev_swap.plugins.kubernetes.commands.base.console", console):
        yield buffer


@pytest.mark.unit
class TestParseLabelSelector:
    """Tests for parse_label_selector."""

    def test_single_pair(self) -> None:
        assert parse_label_selector("app=api") == {"app": "api"}

    def test_multiple_pairs_with_spaces(self) -> None:
        assert parse_label_selector(" app = api , tier=backend,") == {
            "app": "api",
            "tier": "backend",
        }

    def test_empty_value_allowed(self) -> None:
        assert parse_label_selector("debug=") == {"debug": ""}

    @pytest.mark.parametrize("selector", ["app", "=api", "app=api,tier"])
    def test_invalid_pair(self, selector: str) -> None:
        with pytest.raises(typer.BadParameter, match="use key=value"):
            parse_label_selector(selector)

    def test_empty_selector(self) -> None:
        with pytest.raises(typer.BadParameter, match="empty"):
            parse_label_selector(" , ")


@pytest.mark.unit
class TestCancelOnInterrupt:
    """Tests for the SIGINT to cancellation bridge."""

    def test_sigint_cancels_token(self, output: StringIO) -> None:
        token = CancellationToken()

        with cancel_on_interrupt(token):
            handler = signal.getsignal(signal.SIGINT)
            assert callable(handler)
            handler(signal.SIGINT, None)

        assert token.cancelled
        assert "Cancelling" in output.getvalue()

    def test_previous_handler_restored(self) -> None:
        previous = signal.getsignal(signal.SIGINT)

        with cancel_on_interrupt(CancellationToken()):
            assert signal.getsignal(signal.SIGINT) is not previous

        assert signal.getsignal(signal.SIGINT) is previous

    def test_previous_handler_restored_on_error(self) -> None:
        previous = signal.getsignal(signal.SIGINT)

        with pytest.raises(RuntimeError), cancel_on_interrupt(CancellationToken()):
            raise RuntimeError("boom")

        assert signal.getsignal(signal.SIGINT) is previous


@pytest.mark.unit
class TestHandleK8sError:
    """Tests for handle_k8s_error."""

    @pytest.mark.parametrize(
        ("error", "expected"),
        [
            (KubernetesConnectionError("unreachable"), "Cannot connect"),
            (KubernetesAuthError("forbidden", status_code=403), "Authentication"),
            (KubernetesTimeoutError("too slow"), "timed out"),
            (AmbiguousContainerError("two containers"), "which container"),
            (NoOwnerError("api-0", "dev"), "cannot be replaced"),
            (PodSelectionNotFoundError("no pod"), "No matching pod"),
            (
                KubernetesNotFoundError(resource_type="Pod", resource_name="api"),
                "Resource not found",
            ),
            (KubernetesValidationError("bad field"), "Validation failed"),
            (OperationCancelledError("quiesce"), "Re-run the same command"),
        ],
    )
    def test_messages(self, output: StringIO, error: KubernetesError, expected: str) -> None:
        with pytest.raises(typer.Exit) as exc_info:
            handle_k8s_error(error)

        assert exc_info.value.exit_code == 1
        assert expected in output.getvalue()

    def test_wrapped_cause_decides_category(self, output: StringIO) -> None:
        cause = KubernetesAuthError("pods is forbidden", status_code=403)
        error = PodReplaceError(
            "pods is forbidden", step="create replacement pod", original_error=cause
        )

        with pytest.raises(typer.Exit):
            handle_k8s_error(error)

        text = output.getvalue()
        assert "Authentication" in text
        assert "create replacement pod" in text

    def test_generic_error_shows_status(self, output: StringIO) -> None:
        with pytest.raises(typer.Exit):
            handle_k8s_error(KubernetesError("server exploded", status_code=500))

        text = output.getvalue()
        assert "server exploded" in text
        assert "HTTP Status: 500" in text
