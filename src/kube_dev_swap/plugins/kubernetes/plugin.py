"""Kubernetes plugin implementation.

Registers the ``k8s`` command group: pod replacement (``replace``,
``revert``, ``replaced``) and cluster connectivity (``status``).
"""

from __future__ import annotations

import structlog
import typer
from rich.console import Console

from kube_dev_swap.cli.output import Table
from kube_dev_swap.core.plugins.base import Plugin, hookimpl
from kube_dev_swap.integrations.kubernetes.client import KubernetesClient
from kube_dev_swap.integrations.kubernetes.config import KubernetesPluginConfig
from kube_dev_swap.integrations.kubernetes.exceptions import KubernetesError
from kube_dev_swap.plugins.kubernetes.commands.base import OutputOption, handle_k8s_error
from kube_dev_swap.plugins.kubernetes.formatters import OutputFormat, get_formatter
from kube_dev_swap.services.kubernetes import ConfigImageResolver, PodReplacer

logger = structlog.get_logger()
console = Console()


class KubernetesPlugin(Plugin):
    """Pod replacement plugin.

    The cluster client is created on first use, so commands that never touch
    the cluster (and ``--help``) work without a kubeconfig.
    """

    name = "kubernetes"
    version = "0.1.0"
    description = "Replace pods of Kubernetes workloads with development variants"

    def __init__(self) -> None:
        super().__init__()
        self._client: KubernetesClient | None = None
        self._plugin_config: KubernetesPluginConfig | None = None
        self._context: str | None = None

    def on_initialize(self) -> None:
        """Parse the plugin settings; environment variables override them."""
        self._plugin_config = KubernetesPluginConfig.from_env(self._config or {})
        self._client = None
        logger.debug(
            "Kubernetes plugin initialized",
            namespace=self._plugin_config.get_active_namespace(),
        )

    @property
    def plugin_config(self) -> KubernetesPluginConfig:
        if self._plugin_config is None:
            self._plugin_config = KubernetesPluginConfig.from_env()
        return self._plugin_config

    def get_client(self) -> KubernetesClient:
        """Return the cluster client, creating it on first use.

        Raises:
            KubernetesConnectionError: If no cluster configuration can be loaded.
        """
        if self._client is None:
            self._client = KubernetesClient(self.plugin_config)
            if self._context:
                self._client.switch_context(self._context)
        return self._client

    def get_replacer(self) -> PodReplacer:
        """Create a PodReplacer for one command invocation."""
        project = self.project
        resolver = ConfigImageResolver.from_config(project) if project else ConfigImageResolver()
        return PodReplacer(
            self.get_client(),
            image_resolver=resolver,
            settings=self.plugin_config.pod_replace,
        )

    @hookimpl
    def cleanup(self) -> None:
        """Close the cluster client if one was created."""
        if self._client is not None:
            self._client.close()
            self._client = None
        super().cleanup()

    @hookimpl
    def register_commands(self, app: typer.Typer) -> None:
        """Register Kubernetes commands with the CLI."""
        from kube_dev_swap.plugins.kubernetes.commands import register_replace_commands

        k8s_app = typer.Typer(
            name="k8s",
            help="Replace pods of Kubernetes workloads",
            no_args_is_help=True,
        )

        @k8s_app.callback()
        def k8s(
            context: str | None = typer.Option(
                None,
                "--context",
                help="Kubeconfig context or configured cluster name to use.",
            ),
        ) -> None:
            """Replace pods of Kubernetes workloads."""
            if context != self._context:
                self._context = context
                self._client = None

        self._register_status_command(k8s_app)
        register_replace_commands(k8s_app, self.get_replacer, lambda: self.project)

        app.add_typer(k8s_app, name="k8s")
        logger.debug("Kubernetes commands registered")

    def _register_status_command(self, app: typer.Typer) -> None:
        @app.command()
        def status(
            output: OutputOption = OutputFormat.TABLE,
        ) -> None:
            """Show cluster connectivity and pod replacement settings.

            Examples:
                kswap k8s status
                kswap k8s status --output json
            """
            try:
                client = self.get_client()
                connected = client.check_connection()
                data: dict[str, str] = {
                    "context": client.get_current_context(),
                    "namespace": client.default_namespace,
                    "connected": "yes" if connected else "no",
                }
                if connected:
                    try:
                        data["cluster_version"] = client.get_cluster_version()
                    except KubernetesError:
                        data["cluster_version"] = "unknown"
            except KubernetesError as e:
                handle_k8s_error(e)

            settings = self.plugin_config.pod_replace
            data["terminate_timeout"] = f"{settings.terminate_timeout:g}s"
            data["select_timeout"] = f"{settings.select_timeout:g}s"

            if output != OutputFormat.TABLE:
                get_formatter(output, console).format_dict(data, title="Kubernetes Status")
                return

            table = Table(title="Kubernetes Status")
            table.add_column("Property", style="cyan")
            table.add_column("Value", style="green")
            table.add_row("Context", data["context"])
            table.add_row("Namespace", data["namespace"])
            table.add_row("Connected", "[green]Yes[/green]" if connected else "[red]No[/red]")
            if connected:
                table.add_row("Cluster Version", data["cluster_version"])
            table.add_row("Terminate Timeout", data["terminate_timeout"])
            table.add_row("Select Timeout", data["select_timeout"])
            console.print(table)
