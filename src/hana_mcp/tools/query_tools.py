"""Ad-hoc SQL execution."""

from __future__ import annotations

from typing import Any

from hana_mcp.tools.models import ToolContext, ToolResult
from hana_mcp.tools.validators import validate_parameters, validate_query


async def execute_query(args: dict[str, Any], ctx: ToolContext) -> ToolResult:
    """Forward the query text verbatim with positional ``?`` parameters."""
    query = validate_query(args.get("query"))
    parameters = validate_parameters(args.get("parameters"))

    client = await ctx.connections.get_connection()
    rows = await client.query(query, parameters)
    return ToolResult.from_value(
        {
            "query": query,
            "rowCount": len(rows),
            "columns": list(rows[0]) if rows else [],
            "rows": rows,
        }
    )
