"""Init command for creating a project file."""

from __future__ import annotations

from pathlib import Path

import structlog
import typer
from rich.console import Console
from rich.panel import Panel

from kube_dev_swap.core.config.models import CONFIG_FILE, ImageConfig, ProjectConfig
from kube_dev_swap.integrations.kubernetes.models.replacement import ReplacementSpec

app = typer.Typer(help="Create a kswap.yaml project file.")
console = Console()
logger = structlog.get_logger()


def starter_config(image: str | None = None) -> ProjectConfig:
    """Build the config written by ``kswap init``."""
    if not image:
        return ProjectConfig()
    return ProjectConfig(
        images={"app": ImageConfig(image=image, tags=["dev"])},
        replace_pods={
            "app": ReplacementSpec(image_name="app", replace_image="image(app):tag(app)"),
        },
    )


@app.callback(invoke_without_command=True)
def init(
    ctx: typer.Context,
    path: Path = typer.Option(
        CONFIG_FILE,
        "--path",
        "-p",
        help="Where to write the project file.",
    ),
    image: str | None = typer.Option(
        None,
        "--image",
        "-i",
        help="Add an image named 'app' and a replacement for it.",
    ),
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Overwrite an existing project file.",
    ),
) -> None:
    """Initialize a kswap project in the current directory."""
    if ctx.invoked_subcommand is not None:
        return

    logger.info("Initializing project config", path=str(path), image=image)

    if path.exists() and not force:
        console.print(f"[yellow]Configuration already exists at {path}[/yellow]")
        console.print("Use --force to overwrite.")
        raise typer.Exit(code=1)

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(starter_config(image).to_yaml())

    console.print(
        Panel(
            f"[green]Project initialized![/green]\n\n"
            f"Configuration created at: {path}\n\n"
            f"Next steps:\n"
            f"  1. Describe the pods to swap under [bold]replacePods[/bold]\n"
            f"  2. Run [bold]kswap k8s replace[/bold]",
            title="kswap init",
            border_style="green",
        )
    )
    logger.info("Project config initialized", config_file=str(path))
