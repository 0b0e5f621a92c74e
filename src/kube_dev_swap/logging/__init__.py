"""Logging configuration for kube_dev_swap."""

from kube_dev_swap.logging.config import configure_logging, get_logger

__all__ = ["configure_logging", "get_logger"]
