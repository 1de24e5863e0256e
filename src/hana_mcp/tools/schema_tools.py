"""Catalog exploration tools — schemas, tables, columns and indexes.

Every statement binds its identifiers as parameters; the identifier
validators only keep obviously malformed names from reaching the database.
"""

from __future__ import annotations

from typing import Any

from hana_mcp.tools.models import ToolContext, ToolResult
from hana_mcp.tools.validators import ToolInputError, validate_identifier

LIST_SCHEMAS_SQL = (
    "SELECT SCHEMA_NAME, SCHEMA_OWNER FROM SYS.SCHEMAS "
    "WHERE SCHEMA_NAME NOT IN ('SYS', 'SYSTEM', '_SYS_') "
    "ORDER BY SCHEMA_NAME"
)
LIST_TABLES_SQL = (
    "SELECT TABLE_NAME, TABLE_TYPE, COMMENTS FROM SYS.TABLES "
    "WHERE SCHEMA_NAME = ? ORDER BY TABLE_NAME"
)
DESCRIBE_TABLE_SQL = (
    "SELECT COLUMN_NAME, DATA_TYPE_NAME, LENGTH, SCALE, IS_NULLABLE, "
    "DEFAULT_VALUE, POSITION, COMMENTS FROM SYS.TABLE_COLUMNS "
    "WHERE SCHEMA_NAME = ? AND TABLE_NAME = ? ORDER BY POSITION"
)
LIST_INDEXES_SQL = (
    "SELECT INDEX_NAME, INDEX_TYPE, CONSTRAINT FROM SYS.INDEXES "
    "WHERE SCHEMA_NAME = ? AND TABLE_NAME = ? ORDER BY INDEX_NAME"
)
DESCRIBE_INDEX_SQL = (
    "SELECT INDEX_NAME, TABLE_NAME, COLUMN_NAME, POSITION, ASCENDING_ORDER "
    "FROM SYS.INDEX_COLUMNS WHERE SCHEMA_NAME = ? AND INDEX_NAME = ? "
    "ORDER BY POSITION"
)


def _resolve_schema(args: dict[str, Any], ctx: ToolContext) -> str:
    schema = args.get("schema_name") or ctx.settings.default_schema
    if not schema:
        raise ToolInputError(
            "schema_name is required when no default schema (HANA_SCHEMA) is configured"
        )
    return validate_identifier(schema, "Schema name")


async def list_schemas(args: dict[str, Any], ctx: ToolContext) -> ToolResult:
    client = await ctx.connections.get_connection()
    rows = await client.query(LIST_SCHEMAS_SQL)
    return ToolResult.from_value({"schemas": rows, "count": len(rows)})


async def list_tables(args: dict[str, Any], ctx: ToolContext) -> ToolResult:
    schema = _resolve_schema(args, ctx)
    client = await ctx.connections.get_connection()
    rows = await client.query(LIST_TABLES_SQL, [schema])
    return ToolResult.from_value({"schema": schema, "tables": rows, "count": len(rows)})


async def describe_table(args: dict[str, Any], ctx: ToolContext) -> ToolResult:
    schema = _resolve_schema(args, ctx)
    table = validate_identifier(args.get("table_name"), "Table name")
    client = await ctx.connections.get_connection()
    rows = await client.query(DESCRIBE_TABLE_SQL, [schema, table])
    value = {"schema": schema, "table": table, "columns": rows}
    if not rows:
        return ToolResult.from_value(value, text=f"Table {schema}.{table} not found")
    return ToolResult.from_value(value)


async def list_indexes(args: dict[str, Any], ctx: ToolContext) -> ToolResult:
    schema = _resolve_schema(args, ctx)
    table = validate_identifier(args.get("table_name"), "Table name")
    client = await ctx.connections.get_connection()
    rows = await client.query(LIST_INDEXES_SQL, [schema, table])
    return ToolResult.from_value({"schema": schema, "table": table, "indexes": rows})


async def describe_index(args: dict[str, Any], ctx: ToolContext) -> ToolResult:
    schema = _resolve_schema(args, ctx)
    index = validate_identifier(args.get("index_name"), "Index name")
    client = await ctx.connections.get_connection()
    rows = await client.query(DESCRIBE_INDEX_SQL, [schema, index])
    value = {"schema": schema, "index": index, "columns": rows}
    if not rows:
        return ToolResult.from_value(value, text=f"Index {schema}.{index} not found")
    return ToolResult.from_value(value)
