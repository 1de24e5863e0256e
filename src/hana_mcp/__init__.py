"""hana-mcp — JSON-RPC tool server for SAP HANA with pluggable transports."""

from __future__ import annotations

__version__ = "0.1.0"

SERVER_NAME = "hana-mcp-server"
