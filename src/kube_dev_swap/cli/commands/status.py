"""Status command for showing local environment and project status."""

from __future__ import annotations

import platform
from pathlib import Path

import structlog
import typer
from rich.console import Console

from kube_dev_swap import __version__
from kube_dev_swap.cli.output import Table
from kube_dev_swap.core.config.models import CONFIG_FILE, load_config
from kube_dev_swap.logging.config import LOG_FILE

console = Console()
logger = structlog.get_logger()


def status(
    config: Path = typer.Option(
        CONFIG_FILE,
        "--config",
        "-c",
        help="Project file to inspect.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Show detailed status information.",
    ),
) -> None:
    """Show kswap version, project file and log locations."""
    logger.info("Checking status", config=str(config), verbose=verbose)

    table = Table(title="kswap Status")
    table.add_column("Component", style="cyan", no_wrap=True)
    table.add_column("Status", style="green")
    table.add_column("Details", style="dim")

    table.add_row("CLI Version", __version__, "kswap")
    table.add_row("Python", platform.python_version(), platform.python_implementation())
    if verbose:
        table.add_row("Platform", platform.system(), platform.release())
        table.add_row("Log File", str(LOG_FILE), "exists" if LOG_FILE.exists() else "not created")

    problem: str | None = None
    try:
        project = load_config(config)
    except ValueError as e:
        project = None
        problem = str(e).splitlines()[0]

    if problem:
        table.add_row("Project File", "[red]invalid[/red]", problem)
    elif project is None:
        table.add_row("Project File", "[yellow]missing[/yellow]", str(config))
    else:
        table.add_row("Project File", "found", str(config))
        table.add_row("Images", str(len(project.images)), ", ".join(project.images) or "-")
        table.add_row(
            "Replacements", str(len(project.replace_pods)), ", ".join(project.replace_pods) or "-"
        )

    console.print(table)

    if project is None and problem is None:
        console.print(
            "\n[yellow]No project file found.[/yellow] Run [bold]kswap init[/bold] to create one."
        )
    logger.info("Status check complete")
