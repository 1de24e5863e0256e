"""``hana-mcp connection`` — check connectivity to the database."""

from __future__ import annotations

import asyncio
import sys
from typing import Any

import click

from hana_mcp.cli_commands._output import console


@click.group()
def connection() -> None:
    """Check the database connection."""


@connection.command("test")
def test() -> None:
    """Connect once (with retries) and run a trivial test query."""
    from hana_mcp.config import get_settings
    from hana_mcp.database.connection import ConnectionManager

    manager = ConnectionManager(get_settings().hana)

    async def _check() -> dict[str, Any]:
        try:
            return await manager.test_connection()
        finally:
            await manager.disconnect()

    outcome = asyncio.run(_check())
    if outcome["success"]:
        console.print(f"[green]Connection successful.[/green] Test value: {outcome['value']}")
        return

    console.print(f"[red]Connection failed:[/red] {outcome['error']}")
    sys.exit(1)
