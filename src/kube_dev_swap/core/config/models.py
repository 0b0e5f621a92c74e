"""Project configuration models.

The project file (``kswap.yaml`` in the working directory by default) names
the images a project builds, the tags last built for them, and the pod
replacements to run::

    version: v1
    images:
      api:
        image: registry.local/team/api
        tags: [dev]
    replacePods:
      api:
        imageName: api
        replaceImage: image(api):debug
        patches:
          - op: add
            path: /spec/containers/0/env
            value: [{name: DEBUG, value: "1"}]
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

from kube_dev_swap.integrations.kubernetes.models.replacement import ReplacementSpec

CONFIG_FILE = Path(os.environ.get("KSWAP_CONFIG", "kswap.yaml"))

SUPPORTED_VERSIONS = ("v1",)


class ImageConfig(BaseModel):
    """An image the project builds."""

    model_config = ConfigDict(extra="forbid")

    image: str
    tags: list[str] = Field(default_factory=list)

    @field_validator("image")
    @classmethod
    def validate_image(cls, v: str) -> str:
        """Image must not be empty."""
        if not v.strip():
            raise ValueError("image must not be empty")
        return v.strip()


class GeneratedImage(BaseModel):
    """The last built reference of an image."""

    model_config = ConfigDict(extra="forbid")

    image: str
    tag: str


class PluginsConfig(BaseModel):
    """Which plugins are enabled and their settings.

    Plugin settings live under the plugin's name, e.g. ``plugins.kubernetes``.
    """

    model_config = ConfigDict(extra="allow")

    enabled: list[str] = Field(default_factory=lambda: ["core", "kubernetes"])

    def settings_for(self, name: str) -> dict[str, Any]:
        """Return the settings dict of plugin ``name``."""
        settings = (self.model_extra or {}).get(name)
        return dict(settings) if isinstance(settings, dict) else {}


class ProjectConfig(BaseModel):
    """Root of the project file."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    version: str = "v1"
    images: dict[str, ImageConfig] = Field(default_factory=dict)
    generated: dict[str, GeneratedImage] = Field(default_factory=dict)
    replace_pods: dict[str, ReplacementSpec] = Field(default_factory=dict, alias="replacePods")
    plugins: PluginsConfig = Field(default_factory=PluginsConfig)

    @field_validator("version")
    @classmethod
    def validate_version(cls, v: str) -> str:
        """Validate the config version is supported."""
        if v not in SUPPORTED_VERSIONS:
            raise ValueError(f"Invalid version: {v}. Must be one of {SUPPORTED_VERSIONS}")
        return v

    def get_replacement(self, name: str) -> ReplacementSpec:
        """Return the replacement named ``name``.

        Raises:
            KeyError: If no such replacement is configured.
        """
        if name not in self.replace_pods:
            raise KeyError(name)
        return self.replace_pods[name]

    def to_yaml(self) -> str:
        """Render the config as YAML with a comment header."""
        data = self.model_dump(by_alias=True, exclude_none=True, mode="json")
        header = (
            "# kube-dev-swap project configuration\n"
            "# Run 'kswap k8s replace' to swap the pods listed under replacePods.\n\n"
        )
        return header + yaml.safe_dump(data, default_flow_style=False, sort_keys=False)


def load_raw_config(path: Path | None = None) -> dict[str, Any]:
    """Load the project file without validation.

    Returns:
        The parsed YAML mapping, or an empty dict when the file is absent.

    Raises:
        ValueError: If the file is not valid YAML or not a mapping.
    """
    config_path = path or CONFIG_FILE
    if not config_path.exists():
        return {}
    try:
        data = yaml.safe_load(config_path.read_text())
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {config_path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML in {config_path}: expected a mapping")
    return data


def load_config(path: Path | None = None) -> ProjectConfig | None:
    """Load and validate the project file.

    Returns:
        The config, or None when the file does not exist.

    Raises:
        ValueError: If the file is not valid YAML.
        pydantic.ValidationError: If the content does not validate.
    """
    config_path = path or CONFIG_FILE
    if not config_path.exists():
        return None
    return ProjectConfig.model_validate(load_raw_config(config_path))
