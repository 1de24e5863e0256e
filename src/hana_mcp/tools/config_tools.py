"""Configuration and connectivity tools."""

from __future__ import annotations

from typing import Any

from hana_mcp.config import environment_vars
from hana_mcp.tools.models import ToolContext, ToolResult


async def show_config(args: dict[str, Any], ctx: ToolContext) -> ToolResult:
    """Masked configuration, validation problems and connection status."""
    return ToolResult.from_value(
        {
            "config": ctx.settings.display_config(),
            "configured": ctx.settings.is_configured(),
            "validationErrors": ctx.settings.validation_errors(),
            "connection": ctx.connections.get_status().model_dump(mode="json"),
        }
    )


async def test_connection(args: dict[str, Any], ctx: ToolContext) -> ToolResult:
    outcome = await ctx.connections.test_connection()
    if outcome["success"]:
        text = f"Connection successful. Test value: {outcome['value']}"
    else:
        text = f"Connection failed: {outcome['error']}"
    return ToolResult.from_value(outcome, text=text)


async def show_env_vars(args: dict[str, Any], ctx: ToolContext) -> ToolResult:
    return ToolResult.from_value(environment_vars())
