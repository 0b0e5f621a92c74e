"""CLI commands for replacing pods and reverting replacements.

Examples:
    kswap k8s replace                 # every entry under replacePods
    kswap k8s replace api             # the entry named "api"
    kswap k8s replace -l app=api --replace-image registry.local/api:debug
    kswap k8s revert api
    kswap k8s replaced -o json
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Annotated, Any

import typer
from pydantic import ValidationError

from kube_dev_swap.integrations.kubernetes.exceptions import KubernetesError
from kube_dev_swap.integrations.kubernetes.models.replacement import ReplacementSpec
from kube_dev_swap.plugins.kubernetes.commands.base import (
    ContainerOption,
    ImageNameOption,
    LabelSelectorOption,
    NamespaceOption,
    OutputOption,
    ReplaceImageOption,
    cancel_on_interrupt,
    console,
    handle_k8s_error,
    parse_label_selector,
)
from kube_dev_swap.plugins.kubernetes.formatters import OutputFormat, get_formatter

if TYPE_CHECKING:
    from kube_dev_swap.core.config.models import ProjectConfig
    from kube_dev_swap.services.kubernetes import PodReplacer

RESULT_COLUMNS = [
    ("name", "Name"),
    ("action", "Action"),
    ("pod_name", "Pod"),
    ("namespace", "Namespace"),
    ("parent", "Parent"),
]

REVERT_COLUMNS = [
    ("name", "Name"),
    ("reverted", "Reverted"),
    ("pod_name", "Pod"),
    ("namespace", "Namespace"),
]

REPLACED_COLUMNS = [
    ("name", "Name"),
    ("namespace", "Namespace"),
    ("phase", "Status"),
    ("container", "Container"),
    ("parent_kind", "Parent Kind"),
    ("parent_name", "Parent"),
    ("terminating", "Terminating"),
    ("age", "Age"),
]

NameArgument = Annotated[
    str | None,
    typer.Argument(help="Name of a replacePods entry (default: all entries)"),
]


# =============================================================================
# Helpers
# =============================================================================


def resolve_specs(
    project: ProjectConfig | None,
    name: str | None,
    *,
    image_name: str | None = None,
    selector: str | None = None,
    container: str | None = None,
    replace_image: str | None = None,
    namespace: str | None = None,
) -> list[tuple[str, ReplacementSpec]]:
    """Collect the replacement specs a command should run.

    An ad-hoc spec built from ``--image-name``/``--selector`` takes
    precedence; otherwise the named entry, or all entries, of ``replacePods``.

    Raises:
        typer.BadParameter: Invalid ad-hoc options or unknown entry name.
    """
    if image_name or selector:
        try:
            spec = ReplacementSpec(
                image_name=image_name,
                label_selector=parse_label_selector(selector) if selector else None,
                container_name=container,
                replace_image=replace_image,
                namespace=namespace,
            )
        except ValidationError as e:
            raise typer.BadParameter(str(e.errors()[0]["msg"])) from e
        return [(name or spec.describe(), spec)]

    if project is None:
        raise typer.BadParameter(
            "no project file found; pass --image-name or --selector, or run 'kswap init'"
        )

    if name is not None:
        try:
            spec = project.get_replacement(name)
        except KeyError:
            raise typer.BadParameter(f"no replacePods entry named '{name}'") from None
        entries = [(name, spec)]
    else:
        entries = list(project.replace_pods.items())

    if namespace:
        entries = [(n, s.model_copy(update={"namespace": namespace})) for n, s in entries]
    return entries


def _result_row(name: str, result: Any) -> dict[str, Any]:
    return {
        "name": name,
        "action": str(result.action),
        "pod_name": result.pod_name,
        "namespace": result.namespace,
        "parent": f"{result.parent_kind}/{result.parent_name}",
    }


# =============================================================================
# Registration
# =============================================================================


def register_replace_commands(
    app: typer.Typer,
    get_replacer: Callable[[], PodReplacer],
    get_project: Callable[[], ProjectConfig | None],
) -> None:
    """Register replace, revert and replaced commands.

    Args:
        app: Typer app to register commands on.
        get_replacer: Factory returning a PodReplacer for one invocation.
        get_project: Returns the loaded project config, if any.
    """

    @app.command("replace")
    def replace(
        name: NameArgument = None,
        image_name: ImageNameOption = None,
        selector: LabelSelectorOption = None,
        container: ContainerOption = None,
        replace_image: ReplaceImageOption = None,
        namespace: NamespaceOption = None,
        output: OutputOption = OutputFormat.TABLE,
    ) -> None:
        """Replace pods with their development variants.

        Examples:
            kswap k8s replace
            kswap k8s replace api
            kswap k8s replace -l app=api --replace-image registry.local/api:debug
        """
        specs = resolve_specs(
            get_project(),
            name,
            image_name=image_name,
            selector=selector,
            container=container,
            replace_image=replace_image,
            namespace=namespace,
        )
        if not specs:
            console.print("[yellow]No replacePods configured.[/yellow]")
            return

        rows = []
        try:
            replacer = get_replacer()
            with cancel_on_interrupt(replacer.cancel_token):
                for spec_name, spec in specs:
                    result = replacer.replace_pod(spec)
                    rows.append(_result_row(spec_name, result))
        except KubernetesError as e:
            handle_k8s_error(e)

        get_formatter(output, console).format_list(rows, RESULT_COLUMNS, title="Replaced Pods")

    @app.command("revert")
    def revert(
        name: NameArgument = None,
        image_name: ImageNameOption = None,
        selector: LabelSelectorOption = None,
        container: ContainerOption = None,
        namespace: NamespaceOption = None,
        output: OutputOption = OutputFormat.TABLE,
    ) -> None:
        """Delete replacement pods and scale their controllers back up.

        Examples:
            kswap k8s revert
            kswap k8s revert api
            kswap k8s revert -l app=api
        """
        specs = resolve_specs(
            get_project(),
            name,
            image_name=image_name,
            selector=selector,
            container=container,
            namespace=namespace,
        )
        if not specs:
            console.print("[yellow]No replacePods configured.[/yellow]")
            return

        rows = []
        try:
            replacer = get_replacer()
            with cancel_on_interrupt(replacer.cancel_token):
                for spec_name, spec in specs:
                    reverted = replacer.revert_replace_pod(spec)
                    rows.append(
                        {
                            "name": spec_name,
                            "reverted": reverted is not None,
                            "pod_name": reverted.pod_name if reverted else None,
                            "namespace": reverted.namespace if reverted else spec.namespace,
                        }
                    )
        except KubernetesError as e:
            handle_k8s_error(e)

        get_formatter(output, console).format_list(rows, REVERT_COLUMNS, title="Reverted Pods")

    @app.command("replaced")
    def replaced(
        namespace: NamespaceOption = None,
        output: OutputOption = OutputFormat.TABLE,
    ) -> None:
        """List replacement pods and the controllers they stand in for.

        Examples:
            kswap k8s replaced
            kswap k8s replaced -n staging -o yaml
        """
        try:
            pods = get_replacer().list_replaced_pods(namespace)
        except KubernetesError as e:
            handle_k8s_error(e)

        get_formatter(output, console).format_list(pods, REPLACED_COLUMNS, title="Replaced Pods")
