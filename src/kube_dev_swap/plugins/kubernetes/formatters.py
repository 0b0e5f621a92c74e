"""Output formatters for Kubernetes CLI commands.

Commands render either a rich table, JSON or YAML, chosen by ``--output``.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from collections.abc import Sequence
from enum import StrEnum
from typing import Any

import yaml
from rich.console import Console

from kube_dev_swap.cli.output import Table


class OutputFormat(StrEnum):
    """Supported output formats for CLI commands."""

    TABLE = "table"
    JSON = "json"
    YAML = "yaml"


def _as_data(item: Any) -> Any:
    if hasattr(item, "model_dump"):
        return item.model_dump(mode="json", exclude_none=True)
    return item


class K8sFormatter(ABC):
    """Base class for output formatters."""

    def __init__(self, console: Console) -> None:
        self.console = console

    @abstractmethod
    def format_list(
        self,
        items: Sequence[Any],
        columns: list[tuple[str, str]],
        title: str = "",
    ) -> None:
        """Display a list of models or dicts."""

    @abstractmethod
    def format_dict(self, data: dict[str, Any], title: str = "") -> None:
        """Display a flat mapping."""


class TableFormatter(K8sFormatter):
    """Rich table output."""

    def format_list(
        self,
        items: Sequence[Any],
        columns: list[tuple[str, str]],
        title: str = "",
    ) -> None:
        table = Table(title=title, show_header=True)
        for _field, header in columns:
            table.add_column(header, style="cyan" if header in ("Name", "Pod") else None)

        for item in items:
            table.add_row(*(self._cell(self._field(item, field)) for field, _header in columns))

        self.console.print(table)
        self.console.print(f"\n[dim]Total: {len(items)}[/dim]")

    def format_dict(self, data: dict[str, Any], title: str = "") -> None:
        table = Table(title=title, show_header=True)
        table.add_column("Key", style="cyan", no_wrap=True)
        table.add_column("Value", style="green")
        for key, value in data.items():
            table.add_row(key, self._cell(value))
        self.console.print(table)

    @staticmethod
    def _field(item: Any, field: str) -> Any:
        if isinstance(item, dict):
            return item.get(field)
        return getattr(item, field, None)

    @staticmethod
    def _cell(value: Any) -> str:
        if value is None:
            return "-"
        if isinstance(value, bool):
            return "Yes" if value else "No"
        if isinstance(value, dict | list):
            return json.dumps(value)
        return str(value)


class JsonFormatter(K8sFormatter):
    """JSON output."""

    def format_list(
        self,
        items: Sequence[Any],
        columns: list[tuple[str, str]],
        title: str = "",
    ) -> None:
        data = [_as_data(item) for item in items]
        self.console.print_json(json.dumps({"data": data, "total": len(data)}, default=str))

    def format_dict(self, data: dict[str, Any], title: str = "") -> None:
        self.console.print_json(json.dumps(data, default=str))


class YamlFormatter(K8sFormatter):
    """YAML output."""

    def format_list(
        self,
        items: Sequence[Any],
        columns: list[tuple[str, str]],
        title: str = "",
    ) -> None:
        data = [_as_data(item) for item in items]
        self.console.print(
            yaml.safe_dump(data, default_flow_style=False, sort_keys=False), markup=False
        )

    def format_dict(self, data: dict[str, Any], title: str = "") -> None:
        self.console.print(
            yaml.safe_dump(data, default_flow_style=False, sort_keys=False), markup=False
        )


def get_formatter(format_type: OutputFormat, console: Console | None = None) -> K8sFormatter:
    """Return the formatter for ``format_type``."""
    formatters: dict[OutputFormat, type[K8sFormatter]] = {
        OutputFormat.TABLE: TableFormatter,
        OutputFormat.JSON: JsonFormatter,
        OutputFormat.YAML: YamlFormatter,
    }
    return formatters.get(format_type, TableFormatter)(console or Console())
