"""hana-mcp CLI entrypoint."""

from __future__ import annotations

import logging
import sys

import click

from hana_mcp import __version__

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str) -> None:
    """Send all logging to stderr; stdout carries the stdio wire protocol."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        stream=sys.stderr,
        force=True,
    )


@click.group()
@click.version_option(version=__version__, prog_name="hana-mcp")
@click.option(
    "--log-level",
    default=None,
    help="Logging level (defaults to LOG_LEVEL or INFO).",
)
def main(log_level: str | None) -> None:
    """hana-mcp — JSON-RPC tool server for SAP HANA."""
    from hana_mcp.config import get_settings

    configure_logging(log_level or get_settings().server.log_level)


# Register subcommands
from hana_mcp.cli_commands import register_commands  # noqa: E402

register_commands(main)

if __name__ == "__main__":
    main()
