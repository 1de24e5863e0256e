"""Database layer — the downstream HANA session and its connection manager."""

from hana_mcp.database.client import HanaClient
from hana_mcp.database.connection import (
    ConnectionManager,
    ConnectionState,
    ConnectionStatus,
)
from hana_mcp.database.errors import (
    ConfigurationError,
    ConnectionUnavailableError,
    DatabaseError,
    QueryError,
)

__all__ = [
    "ConfigurationError",
    "ConnectionManager",
    "ConnectionState",
    "ConnectionStatus",
    "ConnectionUnavailableError",
    "DatabaseError",
    "HanaClient",
    "QueryError",
]
