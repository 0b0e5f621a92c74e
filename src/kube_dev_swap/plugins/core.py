"""Built-in core plugin."""

from __future__ import annotations

from typing import TYPE_CHECKING

import typer
from rich.console import Console

from kube_dev_swap.cli.output import Table
from kube_dev_swap.core.plugins.base import Plugin, hookimpl

if TYPE_CHECKING:
    from kube_dev_swap.core.plugins.manager import PluginManager

console = Console()


class CorePlugin(Plugin):
    """Core plugin providing the ``plugins`` command."""

    name = "core"
    version = "0.1.0"
    description = "Core kswap functionality"

    def __init__(self, manager: PluginManager | None = None) -> None:
        super().__init__()
        self._manager = manager

    @hookimpl
    def register_commands(self, app: typer.Typer) -> None:
        """Register core commands."""

        @app.command("plugins")
        def list_plugins() -> None:
            """List loaded plugins."""
            table = Table(title="Installed Plugins")
            table.add_column("Name", style="cyan")
            table.add_column("Version", style="green")
            table.add_column("Description")

            plugins = (
                self._manager.list_plugins()
                if self._manager
                else [{"name": self.name, "version": self.version, "description": self.description}]
            )
            for info in plugins:
                table.add_row(info["name"], info["version"], info["description"])

            console.print(table)
