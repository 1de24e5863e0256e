"""``hana-mcp tools`` — inspect the registered tool catalogue."""

from __future__ import annotations

import json

import click

from hana_mcp.cli_commands._output import console, print_tools_table


@click.group()
def tools() -> None:
    """Inspect registered tools."""


@tools.command("list")
@click.option("--json", "as_json", is_flag=True, help="Output the tools/list payload.")
def list_tools(as_json: bool) -> None:
    """List every tool with its required and optional arguments."""
    from hana_mcp.tools.catalog import build_default_registry

    registry = build_default_registry()
    descriptors = registry.list_tools()

    if as_json:
        console.print_json(json.dumps({"tools": [t.to_wire() for t in descriptors]}))
        return

    print_tools_table(descriptors)
