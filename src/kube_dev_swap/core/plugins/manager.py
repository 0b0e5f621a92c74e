"""Plugin manager for loading and managing plugins."""

from __future__ import annotations

import importlib.metadata
from typing import TYPE_CHECKING, Any

import pluggy
import structlog

from kube_dev_swap.core.plugins.base import Plugin, _PluginSpec

if TYPE_CHECKING:
    import typer

    from kube_dev_swap.core.config.models import ProjectConfig

logger = structlog.get_logger()


class PluginManager:
    """Manages plugin discovery, loading, and lifecycle."""

    NAMESPACE = "kube_dev_swap.plugins"

    def __init__(self) -> None:
        self._pm = pluggy.PluginManager("kube_dev_swap")
        self._pm.add_hookspecs(_PluginSpec)
        self._plugins: dict[str, Plugin] = {}

    def register(self, plugin: Plugin) -> None:
        """Register an already instantiated plugin."""
        if plugin.name in self._plugins:
            logger.debug("Plugin already loaded", name=plugin.name)
            return
        self._pm.register(plugin, name=plugin.name)
        self._plugins[plugin.name] = plugin
        logger.debug("Registered plugin", name=plugin.name, version=plugin.version)

    def discover_plugins(self) -> list[str]:
        """Discover available plugins from entry points.

        Returns:
            List of discovered plugin names.
        """
        discovered = []
        for ep in importlib.metadata.entry_points(group=self.NAMESPACE):
            discovered.append(ep.name)
            logger.debug("Discovered plugin", name=ep.name, value=ep.value)
        return discovered

    def load_plugin(self, name: str) -> bool:
        """Load a plugin by name from entry points.

        Returns:
            True if the plugin is loaded, False if it was not found or failed
            to load.
        """
        if name in self._plugins:
            return True

        for ep in importlib.metadata.entry_points(group=self.NAMESPACE):
            if ep.name != name:
                continue
            try:
                plugin_class = ep.load()
                plugin = plugin_class() if callable(plugin_class) else plugin_class
            except Exception as e:
                logger.error("Failed to load plugin", name=name, error=str(e))
                return False
            self.register(plugin)
            logger.info("Loaded plugin", name=name, version=plugin.version)
            return True

        logger.warning("Plugin not found", name=name)
        return False

    def initialize_all(self, project: ProjectConfig | None) -> None:
        """Initialize all loaded plugins with their project file settings."""
        for name, plugin in self._plugins.items():
            settings = project.plugins.settings_for(name) if project else {}
            try:
                plugin.initialize(settings, project)
            except Exception as e:
                logger.error("Failed to initialize plugin", name=name, error=str(e))

    def register_commands(self, app: typer.Typer) -> None:
        """Register commands from all loaded plugins."""
        self._pm.hook.register_commands(app=app)

    def cleanup_all(self) -> None:
        """Cleanup all loaded plugins."""
        self._pm.hook.cleanup()

    def get_plugin(self, name: str) -> Plugin | None:
        """Get a loaded plugin by name."""
        return self._plugins.get(name)

    def list_plugins(self) -> list[dict[str, Any]]:
        """List all loaded plugins with their info."""
        return [
            {
                "name": p.name,
                "version": p.version,
                "description": p.description,
                "initialized": p.is_initialized,
            }
            for p in self._plugins.values()
        ]
