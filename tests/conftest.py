"""Shared fixtures: isolated settings and an in-memory stand-in for the database."""

from __future__ import annotations

import os
from collections.abc import Iterator, Sequence
from typing import Any
from unittest.mock import AsyncMock

import pytest

from hana_mcp.config import HanaSettings, get_settings
from hana_mcp.database.connection import ConnectionManager
from hana_mcp.protocol.dispatcher import ProtocolDispatcher
from hana_mcp.tools.catalog import build_default_registry
from hana_mcp.tools.models import ToolContext
from hana_mcp.tools.registry import ToolRegistry


class FakeClient:
    """Records statements and answers them from a ``sql -> rows`` table."""

    dialect = "hana"

    def __init__(self, responses: dict[str, list[dict[str, Any]]] | None = None) -> None:
        self.responses = responses or {}
        self.calls: list[tuple[str, list[Any]]] = []
        self.closed = False

    async def query(self, sql: str, params: Sequence[Any] | None = None) -> list[dict[str, Any]]:
        self.calls.append((sql, list(params or [])))
        return self.responses.get(sql, [])

    async def ping(self) -> Any:
        return 1

    async def disconnect(self) -> None:
        self.closed = True


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Any) -> Iterator[None]:
    """Keep the developer's environment and .env file out of every test."""
    for name in list(os.environ):
        if name.startswith(("HANA_", "MCP_")) or name == "LOG_LEVEL":
            monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def hana_settings() -> HanaSettings:
    return HanaSettings(
        host="hana.example.com",
        user="DBADMIN",
        password="secret",
        default_schema="SALES",
    )


@pytest.fixture
def fake_client() -> FakeClient:
    return FakeClient()


@pytest.fixture
def connections(hana_settings: HanaSettings, fake_client: FakeClient) -> ConnectionManager:
    return ConnectionManager(
        hana_settings,
        client_factory=AsyncMock(return_value=fake_client),
        sleep=AsyncMock(),
    )


@pytest.fixture
def tool_context(hana_settings: HanaSettings, connections: ConnectionManager) -> ToolContext:
    return ToolContext(settings=hana_settings, connections=connections)


@pytest.fixture
def registry() -> ToolRegistry:
    return build_default_registry()


@pytest.fixture
def dispatcher(registry: ToolRegistry, tool_context: ToolContext) -> ProtocolDispatcher:
    return ProtocolDispatcher(registry, tool_context)
