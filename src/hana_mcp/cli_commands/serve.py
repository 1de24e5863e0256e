"""``hana-mcp serve`` — run the server until SIGINT/SIGTERM."""

from __future__ import annotations

import asyncio
import sys

import click

from hana_mcp.cli_commands._output import err_console


@click.command()
@click.option(
    "--transport",
    type=click.Choice(["stdio", "http"]),
    default=None,
    help="Wire binding (defaults to MCP_TRANSPORT or http).",
)
@click.option("--host", default=None, help="HTTP bind address (defaults to MCP_HOST).")
@click.option("--port", type=int, default=None, help="HTTP port (defaults to MCP_PORT).")
@click.option(
    "--otlp-endpoint",
    default=None,
    help="Export traces to this OTLP collector (requires the otel extra).",
)
@click.option(
    "--otel-console",
    is_flag=True,
    help="Print finished spans as JSON on stdout (http transport only).",
)
def serve(
    transport: str | None,
    host: str | None,
    port: int | None,
    otlp_endpoint: str | None,
    otel_console: bool,
) -> None:
    """Serve HANA tools over stdio or HTTP."""
    from hana_mcp.config import Settings, get_settings
    from hana_mcp.server.lifecycle import LifecycleManager

    base = get_settings()
    overrides = {
        key: value
        for key, value in {"transport": transport, "host": host, "port": port}.items()
        if value is not None
    }
    settings = Settings(hana=base.hana, server=base.server.model_copy(update=overrides))

    if otel_console and settings.server.transport == "stdio":
        # stdout carries the stdio wire protocol.
        raise click.UsageError("--otel-console cannot be used with the stdio transport")

    if otlp_endpoint or otel_console:
        from hana_mcp.utils.telemetry import configure_telemetry

        try:
            configure_telemetry(export_to_console=otel_console, otlp_endpoint=otlp_endpoint)
        except ImportError as exc:
            err_console.print(f"[red]Telemetry error:[/red] {exc}")
            sys.exit(1)

    manager = LifecycleManager(settings)
    try:
        asyncio.run(manager.run())
    except Exception as exc:
        err_console.print(f"[red]Server error:[/red] {exc}")
        sys.exit(1)
