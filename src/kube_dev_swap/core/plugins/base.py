"""Base plugin interface and specifications using pluggy."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pluggy

if TYPE_CHECKING:
    import typer

    from kube_dev_swap.core.config.models import ProjectConfig

hookspec = pluggy.HookspecMarker("kube_dev_swap")
hookimpl = pluggy.HookimplMarker("kube_dev_swap")


class _PluginSpec:
    """Plugin hook specifications."""

    @hookspec
    def initialize(self, config: dict[str, Any], project: ProjectConfig | None) -> None:
        """Initialize the plugin.

        Args:
            config: The plugin's own section of the project file.
            project: The whole project config, None when no file exists.
        """

    @hookspec
    def register_commands(self, app: typer.Typer) -> None:
        """Register CLI commands with the main application."""

    @hookspec
    def cleanup(self) -> None:
        """Cleanup plugin resources on shutdown."""


class Plugin:
    """Base class for all plugins.

    Subclasses must set ``name`` and ``version``.
    """

    name: str = "base"
    version: str = "0.0.0"
    description: str = ""

    def __init__(self) -> None:
        if self.name == "base":
            raise ValueError(f"{self.__class__.__name__} must define 'name' class attribute")
        if self.version == "0.0.0":
            raise ValueError(f"{self.__class__.__name__} must define 'version' class attribute")
        self._config: dict[str, Any] = {}
        self._project: ProjectConfig | None = None
        self._initialized: bool = False

    @hookimpl
    def initialize(self, config: dict[str, Any], project: ProjectConfig | None) -> None:
        """Store configuration and run :meth:`on_initialize`."""
        self._config = config
        self._project = project
        self._initialized = True
        self.on_initialize()

    def on_initialize(self) -> None:
        """Hook for subclasses to perform initialization logic."""

    @hookimpl
    def register_commands(self, app: typer.Typer) -> None:
        """Register CLI commands. Override in subclasses."""

    @hookimpl
    def cleanup(self) -> None:
        """Cleanup resources. Override in subclasses."""
        self._initialized = False

    def get_config(self, key: str, default: Any = None) -> Any:
        """Get a configuration value."""
        return self._config.get(key, default)

    @property
    def project(self) -> ProjectConfig | None:
        return self._project

    @property
    def is_initialized(self) -> bool:
        """Check if the plugin is initialized."""
        return self._initialized
