"""Unit tests for the project file models and loaders."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from kube_dev_swap.core.config.models import (
    ImageConfig,
    PluginsConfig,
    ProjectConfig,
    load_config,
    load_raw_config,
)
from kube_dev_swap.integrations.kubernetes.models.replacement import ReplacementSpec


@pytest.mark.unit
class TestProjectConfig:
    """Tests for ProjectConfig validation."""

    def test_defaults(self) -> None:
        config = ProjectConfig()

        assert config.version == "v1"
        assert config.images == {}
        assert config.replace_pods == {}
        assert config.plugins.enabled == ["core", "kubernetes"]

    def test_replace_pods_alias(self) -> None:
        config = ProjectConfig.model_validate(
            {"replacePods": {"api": {"imageName": "api", "replaceImage": "busybox"}}}
        )

        spec = config.replace_pods["api"]
        assert spec.image_name == "api"
        assert spec.replace_image == "busybox"

    def test_unsupported_version_rejected(self) -> None:
        with pytest.raises(ValidationError, match="Invalid version"):
            ProjectConfig(version="v2")

    def test_unknown_key_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ProjectConfig.model_validate({"deployments": []})

    def test_replacement_needs_one_selection(self) -> None:
        with pytest.raises(ValidationError, match="exactly one"):
            ProjectConfig.model_validate({"replacePods": {"api": {"replaceImage": "busybox"}}})

    def test_get_replacement(self) -> None:
        spec = ReplacementSpec(image_name="api")
        config = ProjectConfig(replace_pods={"api": spec})

        assert config.get_replacement("api") is spec
        with pytest.raises(KeyError):
            config.get_replacement("worker")

    def test_to_yaml_uses_aliases(self) -> None:
        config = ProjectConfig(
            images={"api": ImageConfig(image="registry.local/api", tags=["dev"])},
            replace_pods={"api": ReplacementSpec(image_name="api", replace_image="image(api)")},
        )

        rendered = config.to_yaml()

        assert rendered.startswith("# kube-dev-swap project configuration")
        data = yaml.safe_load(rendered)
        assert data["replacePods"]["api"]["imageName"] == "api"
        assert "containerName" not in data["replacePods"]["api"]
        assert ProjectConfig.model_validate(data) == config


@pytest.mark.unit
class TestImageConfig:
    """Tests for ImageConfig."""

    def test_strips_image(self) -> None:
        assert ImageConfig(image="  registry.local/api ").image == "registry.local/api"

    def test_empty_image_rejected(self) -> None:
        with pytest.raises(ValidationError, match="must not be empty"):
            ImageConfig(image="  ")


@pytest.mark.unit
class TestPluginsConfig:
    """Tests for per-plugin settings."""

    def test_settings_for_plugin(self) -> None:
        plugins = PluginsConfig.model_validate(
            {"kubernetes": {"active_cluster": "dev"}, "other": "not-a-mapping"}
        )

        assert plugins.settings_for("kubernetes") == {"active_cluster": "dev"}
        assert plugins.settings_for("other") == {}
        assert plugins.settings_for("missing") == {}

    def test_settings_are_copies(self) -> None:
        plugins = PluginsConfig.model_validate({"kubernetes": {"active_cluster": "dev"}})

        plugins.settings_for("kubernetes")["active_cluster"] = "prod"

        assert plugins.settings_for("kubernetes") == {"active_cluster": "dev"}


@pytest.mark.unit
class TestLoaders:
    """Tests for load_raw_config and load_config."""

    def test_missing_file(self, tmp_path: Path) -> None:
        path = tmp_path / "kswap.yaml"

        assert load_raw_config(path) == {}
        assert load_config(path) is None

    def test_empty_file(self, tmp_path: Path) -> None:
        path = tmp_path / "kswap.yaml"
        path.write_text("")

        assert load_raw_config(path) == {}
        assert load_config(path) == ProjectConfig()

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "kswap.yaml"
        path.write_text("images: [unclosed")

        with pytest.raises(ValueError, match="Invalid YAML"):
            load_raw_config(path)

    def test_non_mapping(self, tmp_path: Path) -> None:
        path = tmp_path / "kswap.yaml"
        path.write_text("- a\n- b\n")

        with pytest.raises(ValueError, match="expected a mapping"):
            load_config(path)

    def test_load_project_file(self, project_file: Path) -> None:
        config = load_config(project_file)

        assert config is not None
        assert config.images["api"].image == "registry.local/team/api"
        assert set(config.replace_pods) == {"api", "worker"}
        assert config.replace_pods["worker"].label_selector == {"app": "worker"}
