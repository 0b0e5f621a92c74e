"""Shared options and error handling for Kubernetes CLI commands."""

from __future__ import annotations

import signal
from collections.abc import Iterator
from contextlib import contextmanager
from types import FrameType
from typing import TYPE_CHECKING, Annotated, NoReturn

import structlog
import typer
from rich.console import Console

from kube_dev_swap.integrations.kubernetes.exceptions import (
    AmbiguousContainerError,
    ImageResolveError,
    KubernetesAuthError,
    KubernetesConflictError,
    KubernetesConnectionError,
    KubernetesError,
    KubernetesNotFoundError,
    KubernetesTimeoutError,
    KubernetesValidationError,
    NoOwnerError,
    OperationCancelledError,
    PodReplaceError,
    PodSelectionNotFoundError,
    UnsupportedOwnerError,
)
from kube_dev_swap.plugins.kubernetes.formatters import OutputFormat

if TYPE_CHECKING:
    from kube_dev_swap.services.kubernetes.cancellation import CancellationToken

console = Console()
logger = structlog.get_logger()


# =============================================================================
# Common Typer Option Annotations
# =============================================================================

OutputOption = Annotated[
    OutputFormat,
    typer.Option(
        "--output",
        "-o",
        help="Output format: table, json, or yaml",
        case_sensitive=False,
    ),
]

NamespaceOption = Annotated[
    str | None,
    typer.Option(
        "--namespace",
        "-n",
        help="Kubernetes namespace (defaults to config or 'default')",
    ),
]

LabelSelectorOption = Annotated[
    str | None,
    typer.Option(
        "--selector",
        "-l",
        help="Label selector of the pods to replace (e.g. 'app=api,tier=backend')",
    ),
]

ImageNameOption = Annotated[
    str | None,
    typer.Option(
        "--image-name",
        "-i",
        help="Name of an image from the project file whose pods to replace",
    ),
]

ContainerOption = Annotated[
    str | None,
    typer.Option(
        "--container",
        "-c",
        help="Container to replace in multi-container pods",
    ),
]

ReplaceImageOption = Annotated[
    str | None,
    typer.Option(
        "--replace-image",
        help="Image for the replaced container, e.g. 'image(api):debug'",
    ),
]


# =============================================================================
# Parsing
# =============================================================================


def parse_label_selector(selector: str) -> dict[str, str]:
    """Parse ``k=v,k2=v2`` into a dict.

    Raises:
        typer.BadParameter: If a pair has no ``=``.
    """
    labels: dict[str, str] = {}
    for pair in selector.split(","):
        pair = pair.strip()
        if not pair:
            continue
        key, sep, value = pair.partition("=")
        if not sep or not key.strip():
            raise typer.BadParameter(f"invalid label '{pair}', use key=value")
        labels[key.strip()] = value.strip()
    if not labels:
        raise typer.BadParameter("label selector is empty")
    return labels


# =============================================================================
# Cancellation
# =============================================================================


@contextmanager
def cancel_on_interrupt(token: CancellationToken) -> Iterator[None]:
    """Turn SIGINT into a cancellation request while the block runs.

    The engine then stops at its next API call or poll tick with
    ``OperationCancelledError``, leaving a state the next run resumes from.
    """

    def handler(signum: int, frame: FrameType | None) -> None:
        logger.warning("cancellation_requested", signal=signum)
        console.print("\n[yellow]Cancelling after the current step...[/yellow]")
        token.cancel()

    previous = signal.signal(signal.SIGINT, handler)
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, previous)


# =============================================================================
# Error Handling
# =============================================================================


def handle_k8s_error(error: KubernetesError) -> NoReturn:
    """Print a Kubernetes or pod replacement error and exit.

    Raises:
        typer.Exit: Always exits with code 1.
    """
    cause = error.original_error if isinstance(error, PodReplaceError) else None
    shown = cause if isinstance(cause, KubernetesError) else error

    if isinstance(error, OperationCancelledError):
        console.print("[yellow]Cancelled.[/yellow] Re-run the same command to resume.")

    elif isinstance(shown, KubernetesConnectionError):
        console.print("[red]Error:[/red] Cannot connect to Kubernetes cluster")
        console.print(f"  {error.message}")
        if shown.original_error:
            console.print(f"  Cause: {shown.original_error}")
        console.print(
            "\n[dim]Hint: Check that your kubeconfig is valid and the cluster is reachable.[/dim]"
        )

    elif isinstance(shown, KubernetesAuthError):
        console.print("[red]Error:[/red] Authentication/authorization failed")
        console.print(f"  {error.message}")
        console.print(
            "\n[dim]Hint: Replacing pods needs get/list/create/delete on pods and "
            "get/patch on replicasets, deployments and statefulsets.[/dim]"
        )

    elif isinstance(shown, KubernetesTimeoutError):
        console.print("[red]Error:[/red] Operation timed out")
        console.print(f"  {error.message}")
        console.print(
            "\n[dim]Hint: Raise the wait with KSWAP_REPLACE_TIMEOUT; "
            "re-running resumes where it stopped.[/dim]"
        )

    elif isinstance(error, AmbiguousContainerError):
        console.print("[red]Error:[/red] Cannot tell which container to replace")
        console.print(f"  {error.message}")
        console.print("\n[dim]Hint: Set containerName (or --container).[/dim]")

    elif isinstance(error, NoOwnerError | UnsupportedOwnerError):
        console.print("[red]Error:[/red] Pod cannot be replaced")
        console.print(f"  {error.message}")

    elif isinstance(error, PodSelectionNotFoundError):
        console.print("[red]Error:[/red] No matching pod found")
        console.print(f"  {error.message}")

    elif isinstance(error, ImageResolveError):
        console.print("[red]Error:[/red] Cannot resolve image")
        console.print(f"  {error.message}")
        console.print("\n[dim]Hint: Check the images section of the project file.[/dim]")

    elif isinstance(shown, KubernetesNotFoundError):
        console.print("[red]Error:[/red] Resource not found")
        console.print(f"  {error.message}")

    elif isinstance(shown, KubernetesValidationError):
        console.print("[red]Error:[/red] Validation failed")
        console.print(f"  {error.message}")

    elif isinstance(shown, KubernetesConflictError):
        console.print("[red]Error:[/red] Resource conflict")
        console.print(f"  {error.message}")

    else:
        console.print(f"[red]Error:[/red] {error.message}")
        if error.status_code:
            console.print(f"  HTTP Status: {error.status_code}")

    raise typer.Exit(1)
