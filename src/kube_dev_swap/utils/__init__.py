"""Utility functions for kube_dev_swap."""

from kube_dev_swap.utils.merge import create_merge_patch

__all__ = ["create_merge_patch"]
