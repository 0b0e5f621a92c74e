"""Kubernetes CLI command modules."""

from kube_dev_swap.plugins.kubernetes.commands.replace import register_replace_commands

__all__ = ["register_replace_commands"]
