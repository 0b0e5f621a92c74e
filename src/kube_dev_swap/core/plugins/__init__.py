"""Plugin system for kube_dev_swap."""

from kube_dev_swap.core.plugins.base import Plugin, hookimpl, hookspec
from kube_dev_swap.core.plugins.manager import PluginManager

__all__ = ["Plugin", "PluginManager", "hookimpl", "hookspec"]
