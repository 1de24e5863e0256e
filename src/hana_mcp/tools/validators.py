"""Input validation for tool arguments."""

from __future__ import annotations

import re
from typing import Any

MAX_IDENTIFIER_LENGTH = 128

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

# Stacked statements that have no business in a read-only tool call.
_SUSPICIOUS_PATTERNS = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r";\s*drop\s+table",
        r";\s*delete\s+from",
        r";\s*truncate\s+table",
        r";\s*alter\s+table",
        r";\s*create\s+table",
        r";\s*drop\s+database",
        r";\s*shutdown",
    )
)


class ToolInputError(ValueError):
    """A tool argument failed validation."""


def validate_identifier(value: Any, kind: str = "Identifier") -> str:
    """Return *value* if it is a plain SQL identifier, else raise."""
    if not isinstance(value, str) or not value:
        raise ToolInputError(f"{kind} must be a non-empty string")
    if len(value) > MAX_IDENTIFIER_LENGTH:
        raise ToolInputError(f"{kind} too long (max {MAX_IDENTIFIER_LENGTH} characters)")
    if not _IDENTIFIER_RE.match(value):
        raise ToolInputError(f"Invalid {kind.lower()} format")
    return value


def validate_query(query: Any) -> str:
    if not isinstance(query, str) or not query.strip():
        raise ToolInputError("Query must be a non-empty string")
    for pattern in _SUSPICIOUS_PATTERNS:
        if pattern.search(query):
            raise ToolInputError("Query contains potentially dangerous operations")
    return query


def validate_parameters(parameters: Any) -> list[Any]:
    """Parameters are optional; when given they must be a list without nulls."""
    if parameters is None:
        return []
    if not isinstance(parameters, list):
        raise ToolInputError("Parameters must be an array")
    for index, param in enumerate(parameters):
        if param is None:
            raise ToolInputError(f"Parameter at index {index} cannot be null")
    return parameters
