"""Kubernetes plugin: pod replacement commands."""

from kube_dev_swap.plugins.kubernetes.plugin import KubernetesPlugin

__all__ = ["KubernetesPlugin"]
