"""The HANA tool catalogue registered at startup."""

from __future__ import annotations

from typing import Any

from hana_mcp.tools import config_tools, query_tools, schema_tools
from hana_mcp.tools.models import ToolDescriptor
from hana_mcp.tools.registry import ToolRegistry

_SCHEMA_NAME = {
    "type": "string",
    "description": "Schema name (defaults to HANA_SCHEMA when omitted)",
}


def _schema(properties: dict[str, Any] | None = None, required: list[str] | None = None) -> dict[str, Any]:
    schema: dict[str, Any] = {"type": "object", "properties": properties or {}}
    if required:
        schema["required"] = required
    return schema


def default_tools() -> list[ToolDescriptor]:
    return [
        ToolDescriptor(
            name="hana_show_config",
            description="Show the HANA connection configuration (secrets hidden)",
            input_schema=_schema(),
            handler=config_tools.show_config,
        ),
        ToolDescriptor(
            name="hana_test_connection",
            description="Test the connection to the HANA database",
            input_schema=_schema(),
            handler=config_tools.test_connection,
        ),
        ToolDescriptor(
            name="hana_show_env_vars",
            description="Show the HANA environment variables seen by the server",
            input_schema=_schema(),
            handler=config_tools.show_env_vars,
        ),
        ToolDescriptor(
            name="hana_list_schemas",
            description="List all user schemas in the HANA database",
            input_schema=_schema(),
            handler=schema_tools.list_schemas,
        ),
        ToolDescriptor(
            name="hana_list_tables",
            description="List all tables in a schema",
            input_schema=_schema({"schema_name": _SCHEMA_NAME}),
            handler=schema_tools.list_tables,
        ),
        ToolDescriptor(
            name="hana_describe_table",
            description="Describe the columns of a table",
            input_schema=_schema(
                {
                    "schema_name": _SCHEMA_NAME,
                    "table_name": {"type": "string", "description": "Table name"},
                },
                required=["table_name"],
            ),
            handler=schema_tools.describe_table,
        ),
        ToolDescriptor(
            name="hana_list_indexes",
            description="List the indexes defined on a table",
            input_schema=_schema(
                {
                    "schema_name": _SCHEMA_NAME,
                    "table_name": {"type": "string", "description": "Table name"},
                },
                required=["table_name"],
            ),
            handler=schema_tools.list_indexes,
        ),
        ToolDescriptor(
            name="hana_describe_index",
            description="Describe the columns of an index",
            input_schema=_schema(
                {
                    "schema_name": _SCHEMA_NAME,
                    "index_name": {"type": "string", "description": "Index name"},
                },
                required=["index_name"],
            ),
            handler=schema_tools.describe_index,
        ),
        ToolDescriptor(
            name="hana_execute_query",
            description="Execute a SQL query against the HANA database",
            input_schema=_schema(
                {
                    "query": {"type": "string", "description": "SQL text to execute"},
                    "parameters": {
                        "type": "array",
                        "description": "Positional values for ? placeholders",
                        "items": {},
                    },
                },
                required=["query"],
            ),
            handler=query_tools.execute_query,
        ),
    ]


def build_default_registry() -> ToolRegistry:
    return ToolRegistry(default_tools())
