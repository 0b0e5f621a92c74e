"""Shared pytest fixtures for kube_dev_swap tests."""

from __future__ import annotations

import os
from pathlib import Path

import pytest
import typer
from typer.testing import CliRunner

from kube_dev_swap.cli.main import app


@pytest.fixture
def cli_runner() -> CliRunner:
    """Create a Typer CLI test runner."""
    return CliRunner()


@pytest.fixture
def cli_app() -> typer.Typer:
    """Return the CLI app for testing."""
    return app


@pytest.fixture
def project_file(tmp_path: Path) -> Path:
    """Write a project file with one image and two replacements."""
    config_path = tmp_path / "kswap.yaml"
    config_path.write_text(
        """
version: v1
images:
  api:
    image: registry.local/team/api
    tags: [dev]
replacePods:
  api:
    imageName: api
    replaceImage: image(api):debug
  worker:
    labelSelector:
      app: worker
    replaceImage: busybox:1.36
"""
    )
    return config_path


@pytest.fixture(autouse=True)
def reset_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Clear KSWAP_ environment variables for each test."""
    for key in list(os.environ.keys()):
        if key.startswith("KSWAP_"):
            monkeypatch.delenv(key, raising=False)
