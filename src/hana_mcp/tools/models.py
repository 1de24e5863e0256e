"""Tool models — descriptors, invocation context and results."""

from __future__ import annotations

import json
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic_core import to_jsonable_python

if TYPE_CHECKING:
    from hana_mcp.config import HanaSettings
    from hana_mcp.database.connection import ConnectionManager


@dataclass(frozen=True)
class ToolContext:
    """Collaborators handed to every tool handler explicitly."""

    settings: HanaSettings
    connections: ConnectionManager


class TextContent(BaseModel):
    """Plain text content part."""

    type: Literal["text"] = "text"
    text: str


class ToolResult(BaseModel):
    """The outcome of a tool call.

    ``structured_content`` carries the machine-readable value while
    ``content`` mirrors it as display text for clients that only render text.
    """

    model_config = ConfigDict(populate_by_name=True)

    content: list[TextContent] = Field(default_factory=list)
    structured_content: Any = Field(default=None, alias="structuredContent")

    @classmethod
    def from_value(cls, value: Any, text: str | None = None) -> ToolResult:
        """Wrap *value*, serializing it to indented JSON unless *text* is given."""
        # Binary columns (VARBINARY, BLOB) need not be valid UTF-8.
        data = to_jsonable_python(value, bytes_mode="base64")
        if text is None:
            text = data if isinstance(data, str) else json.dumps(data, indent=2)
        return cls(content=[TextContent(text=text)], structured_content=data)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


ToolHandler = Callable[[dict[str, Any], ToolContext], Awaitable[ToolResult]]


class ToolDescriptor(BaseModel):
    """A registered tool: name, declared input schema and handler."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    description: str = ""
    input_schema: dict[str, Any] = Field(
        default_factory=lambda: {"type": "object", "properties": {}},
        alias="inputSchema",
    )
    handler: ToolHandler = Field(exclude=True)

    @property
    def properties(self) -> list[str]:
        """Declared property names, in schema order."""
        return list(self.input_schema.get("properties", {}))

    @property
    def required(self) -> list[str]:
        return list(self.input_schema.get("required", []))

    def to_wire(self) -> dict[str, Any]:
        """Return the ``tools/list`` representation."""
        return self.model_dump(by_alias=True)


class ValidationResult(BaseModel):
    """Outcome of a required-field check."""

    valid: bool
    error: str | None = None
