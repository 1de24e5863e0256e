"""Shared CLI output formatters."""

from __future__ import annotations

import json
from typing import Any

from rich.console import Console
from rich.table import Table

from hana_mcp.tools.models import ToolDescriptor  # noqa: TC001

console = Console()
# stdout belongs to the stdio transport while serving.
err_console = Console(stderr=True)


def print_tools_table(tools: list[ToolDescriptor]) -> None:
    """Pretty-print registered tools as a table."""
    table = Table(title="Registered Tools")
    table.add_column("Name", style="cyan")
    table.add_column("Required")
    table.add_column("Optional")
    table.add_column("Description")

    for tool in tools:
        required = tool.required
        optional = [name for name in tool.properties if name not in required]
        table.add_row(
            tool.name,
            ", ".join(required) or "-",
            ", ".join(optional) or "-",
            _truncate(tool.description),
        )

    console.print(table)


def print_config(
    config: dict[str, Any], problems: list[str], *, as_json: bool = False
) -> None:
    """Print the masked configuration followed by validation problems."""
    if as_json:
        console.print_json(json.dumps({"config": config, "validationErrors": problems}))
        return

    table = Table(title="HANA Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    for key, value in config.items():
        table.add_row(key, str(value))
    console.print(table)

    if problems:
        console.print("\n[bold yellow]Configuration problems:[/bold yellow]")
        for problem in problems:
            console.print(f"  - {problem}")
    else:
        console.print("\n[green]Configuration is valid.[/green]")


def _truncate(text: str, max_len: int = 80) -> str:
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."
