"""Tool layer — registry, descriptors and the HANA tool handlers."""

from hana_mcp.tools.catalog import build_default_registry
from hana_mcp.tools.models import (
    TextContent,
    ToolContext,
    ToolDescriptor,
    ToolHandler,
    ToolResult,
    ValidationResult,
)
from hana_mcp.tools.registry import ToolRegistry
from hana_mcp.tools.validators import ToolInputError

__all__ = [
    "TextContent",
    "ToolContext",
    "ToolDescriptor",
    "ToolHandler",
    "ToolInputError",
    "ToolRegistry",
    "ToolResult",
    "ValidationResult",
    "build_default_registry",
]
