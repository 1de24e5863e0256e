"""ToolRegistry — static mapping from tool name to schema and handler."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from hana_mcp.protocol.errors import ToolNotFoundError
from hana_mcp.tools.models import ToolDescriptor, ToolResult, ValidationResult

if TYPE_CHECKING:
    from hana_mcp.tools.models import ToolContext

logger = logging.getLogger(__name__)


class ToolRegistry:
    """Maintains the name-to-descriptor map and executes tools by name.

    Usage::

        registry = ToolRegistry([describe_tool, query_tool])
        registry.has_tool("hana_execute_query")       # True
        args = registry.filter_arguments(name, raw)   # drop undeclared keys
        if registry.validate(name, args).valid:
            result = await registry.execute(name, args, context)
    """

    def __init__(self, tools: Iterable[ToolDescriptor] = ()) -> None:
        self._tools: dict[str, ToolDescriptor] = {}
        for tool in tools:
            self.register(tool)

    def register(self, tool: ToolDescriptor) -> None:
        if tool.name in self._tools:
            msg = f"Tool already registered: {tool.name}"
            raise ValueError(msg)
        self._tools[tool.name] = tool

    def list_tools(self) -> list[ToolDescriptor]:
        return list(self._tools.values())

    def has_tool(self, name: Any) -> bool:
        return isinstance(name, str) and name in self._tools

    def get_tool(self, name: str) -> ToolDescriptor | None:
        return self._tools.get(name)

    def filter_arguments(self, name: str, args: Any) -> dict[str, Any]:
        """Keep only the argument keys the tool's schema declares."""
        tool = self._tools.get(name)
        if tool is None or not isinstance(args, dict):
            return {}
        return {key: args[key] for key in tool.properties if key in args}

    def validate(self, name: str, args: dict[str, Any]) -> ValidationResult:
        """Check that every required field is present and non-empty.

        No type checking is performed beyond presence.
        """
        tool = self._tools.get(name)
        if tool is None:
            return ValidationResult(valid=False, error=f"Tool not found: {name}")

        missing = [field for field in tool.required if args.get(field) in (None, "")]
        if missing:
            return ValidationResult(
                valid=False,
                error=f"Missing required parameters: {', '.join(missing)}",
            )
        return ValidationResult(valid=True)

    async def execute(
        self, name: str, args: dict[str, Any], context: ToolContext
    ) -> ToolResult:
        """Run the named tool's handler; handler errors propagate."""
        tool = self._tools.get(name)
        if tool is None:
            raise ToolNotFoundError(name)

        logger.debug("Executing tool: %s %s", name, args)
        try:
            result = await tool.handler(args, context)
        except Exception as exc:
            logger.error("Tool %s execution failed: %s", name, exc)
            raise
        logger.debug("Tool %s executed successfully", name)

        if not isinstance(result, ToolResult):
            result = ToolResult.from_value(result)
        return result
