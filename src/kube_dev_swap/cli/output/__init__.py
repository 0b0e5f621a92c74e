"""Shared CLI output helpers.

Usage:
    from kube_dev_swap.cli.output import Table

    table = Table(title="Replaced Pods")
    table.add_column("Name", style="cyan")
    table.add_row("api-7d4b9c-kswap")
    console.print(table)
"""

from kube_dev_swap.cli.output.table import Table

__all__ = ["Table"]
