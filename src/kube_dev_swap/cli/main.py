"""Main CLI entry point using Typer."""

from __future__ import annotations

from pathlib import Path

import structlog
import typer
from rich.console import Console

from kube_dev_swap import __version__
from kube_dev_swap.cli.commands import init, status
from kube_dev_swap.core.config.models import CONFIG_FILE, load_config
from kube_dev_swap.core.plugins.manager import PluginManager
from kube_dev_swap.logging.config import configure_logging
from kube_dev_swap.plugins.core import CorePlugin
from kube_dev_swap.plugins.kubernetes.plugin import KubernetesPlugin

app = typer.Typer(
    name="kswap",
    help="Swap pods of running Kubernetes workloads for development variants.",
    add_completion=True,
    no_args_is_help=True,
)

console = Console()
logger = structlog.get_logger()
plugin_manager = PluginManager()

# Commands that must work without a valid project file
CONFIG_FREE_COMMANDS = ("init", "status")


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"kswap version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose output.",
    ),
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Enable debug mode.",
    ),
    config: Path = typer.Option(
        CONFIG_FILE,
        "--config",
        "-c",
        envvar="KSWAP_CONFIG",
        help="Project file to use.",
    ),
) -> None:
    """kswap - swap pods of running workloads for development variants."""
    configure_logging(verbose=verbose, debug=debug)

    if ctx.invoked_subcommand in CONFIG_FREE_COMMANDS:
        return

    try:
        project = load_config(config)
    except ValueError as e:
        console.print(f"[red]Error:[/red] Invalid project file {config}")
        console.print(f"  {e}")
        raise typer.Exit(1) from e

    logger.debug("Loaded project config", path=str(config), found=project is not None)
    plugin_manager.initialize_all(project)
    ctx.call_on_close(plugin_manager.cleanup_all)


def load_plugins() -> None:
    """Register built-in and entry point plugins and their commands."""
    plugin_manager.register(CorePlugin(plugin_manager))
    plugin_manager.register(KubernetesPlugin())
    for name in plugin_manager.discover_plugins():
        plugin_manager.load_plugin(name)
    plugin_manager.register_commands(app)


app.add_typer(init.app, name="init")
app.command()(status.status)
load_plugins()


if __name__ == "__main__":
    app()
