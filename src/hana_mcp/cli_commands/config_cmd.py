"""``hana-mcp config`` — show the effective configuration."""

from __future__ import annotations

import click

from hana_mcp.cli_commands._output import print_config


@click.group()
def config() -> None:
    """Inspect configuration."""


@config.command("show")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def show(as_json: bool) -> None:
    """Show the HANA configuration with secrets hidden."""
    from hana_mcp.config import get_settings

    hana = get_settings().hana
    print_config(hana.display_config(), hana.validation_errors(), as_json=as_json)
