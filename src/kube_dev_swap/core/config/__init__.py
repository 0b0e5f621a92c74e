"""Project configuration with Pydantic validation."""

from kube_dev_swap.core.config.models import (
    GeneratedImage,
    ImageConfig,
    PluginsConfig,
    ProjectConfig,
    load_config,
    load_raw_config,
)

__all__ = [
    "GeneratedImage",
    "ImageConfig",
    "PluginsConfig",
    "ProjectConfig",
    "load_config",
    "load_raw_config",
]
