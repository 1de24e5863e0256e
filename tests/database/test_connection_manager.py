"""Tests for ConnectionManager retries, single-flight and teardown."""

from __future__ import annotations

import asyncio
from typing import Any
from unittest.mock import AsyncMock

import pytest

from hana_mcp.config import HanaSettings
from hana_mcp.database.connection import ConnectionManager, ConnectionState
from hana_mcp.database.errors import ConfigurationError, ConnectionUnavailableError


def _failing_factory(*errors: Exception, then: Any = None) -> AsyncMock:
    """Factory that raises each of *errors* in turn, then returns *then*."""
    outcomes: list[Any] = list(errors)
    if then is not None:
        outcomes.append(then)
    return AsyncMock(side_effect=outcomes)


class TestGetConnection:
    async def test_connects_once_and_reuses(
        self, hana_settings: HanaSettings, fake_client: Any
    ) -> None:
        factory = AsyncMock(return_value=fake_client)
        manager = ConnectionManager(hana_settings, client_factory=factory)

        first = await manager.get_connection()
        second = await manager.get_connection()

        assert first is fake_client
        assert second is fake_client
        assert manager.state is ConnectionState.CONNECTED
        factory.assert_awaited_once_with(hana_settings)

    async def test_incomplete_configuration_does_not_attempt(self) -> None:
        factory = AsyncMock()
        manager = ConnectionManager(HanaSettings(), client_factory=factory)
        with pytest.raises(ConfigurationError, match="HANA_HOST is required"):
            await manager.get_connection()
        factory.assert_not_awaited()
        assert manager.state is ConnectionState.DISCONNECTED


class TestRetries:
    async def test_three_attempts_with_fixed_backoff(self, hana_settings: HanaSettings) -> None:
        factory = _failing_factory(OSError("a"), OSError("b"), OSError("c"))
        sleep = AsyncMock()
        manager = ConnectionManager(hana_settings, client_factory=factory, sleep=sleep)

        result = await manager.connect()

        assert result is None
        assert factory.await_count == 3
        assert [c.args[0] for c in sleep.await_args_list] == [2.0, 2.0]
        assert manager.state is ConnectionState.DISCONNECTED
        status = manager.get_status()
        assert status.retry_count == 3
        assert status.last_error == "c"

    async def test_exhaustion_surfaces_as_unavailable(self, hana_settings: HanaSettings) -> None:
        factory = _failing_factory(OSError("down"), OSError("down"), OSError("down"))
        manager = ConnectionManager(hana_settings, client_factory=factory, sleep=AsyncMock())

        with pytest.raises(ConnectionUnavailableError) as exc_info:
            await manager.get_connection()

        assert exc_info.value.attempts == 3
        assert "down" in str(exc_info.value)

    async def test_recovers_after_transient_failure(
        self, hana_settings: HanaSettings, fake_client: Any
    ) -> None:
        factory = _failing_factory(OSError("blip"), then=fake_client)
        sleep = AsyncMock()
        manager = ConnectionManager(hana_settings, client_factory=factory, sleep=sleep)

        client = await manager.get_connection()

        assert client is fake_client
        assert sleep.await_count == 1
        assert manager.get_status().retry_count == 0
        assert manager.state is ConnectionState.CONNECTED

    async def test_new_sequence_starts_from_zero(
        self, hana_settings: HanaSettings, fake_client: Any
    ) -> None:
        factory = _failing_factory(
            OSError("1"), OSError("2"), OSError("3"), OSError("4"), then=fake_client
        )
        manager = ConnectionManager(hana_settings, client_factory=factory, sleep=AsyncMock())

        assert await manager.connect() is None
        assert await manager.connect() is fake_client
        assert factory.await_count == 5


class TestSingleFlight:
    async def test_concurrent_callers_share_one_attempt(
        self, hana_settings: HanaSettings, fake_client: Any
    ) -> None:
        gate = asyncio.Event()
        calls = 0

        async def factory(settings: HanaSettings) -> Any:
            nonlocal calls
            calls += 1
            await gate.wait()
            return fake_client

        manager = ConnectionManager(hana_settings, client_factory=factory)
        waiters = [asyncio.create_task(manager.get_connection()) for _ in range(5)]
        await asyncio.sleep(0)
        assert manager.state is ConnectionState.CONNECTING
        assert manager.get_status().is_connecting

        gate.set()
        results = await asyncio.gather(*waiters)

        assert calls == 1
        assert all(r is fake_client for r in results)

    async def test_waiters_observe_failure(self, hana_settings: HanaSettings) -> None:
        gate = asyncio.Event()

        async def factory(settings: HanaSettings) -> Any:
            await gate.wait()
            raise OSError("refused")

        manager = ConnectionManager(
            hana_settings, client_factory=factory, max_retries=1, sleep=AsyncMock()
        )
        waiters = [asyncio.create_task(manager.get_connection()) for _ in range(3)]
        await asyncio.sleep(0)
        gate.set()
        results = await asyncio.gather(*waiters, return_exceptions=True)

        assert all(isinstance(r, ConnectionUnavailableError) for r in results)
        assert manager.state is ConnectionState.DISCONNECTED

    async def test_cancelled_waiter_does_not_cancel_attempt(
        self, hana_settings: HanaSettings, fake_client: Any
    ) -> None:
        gate = asyncio.Event()

        async def factory(settings: HanaSettings) -> Any:
            await gate.wait()
            return fake_client

        manager = ConnectionManager(hana_settings, client_factory=factory)
        impatient = asyncio.create_task(manager.get_connection())
        patient = asyncio.create_task(manager.get_connection())
        await asyncio.sleep(0)
        impatient.cancel()
        gate.set()

        assert await patient is fake_client
        assert impatient.cancelled()


class TestTeardown:
    async def test_disconnect_clears_state(
        self, connections: ConnectionManager, fake_client: Any
    ) -> None:
        await connections.get_connection()
        await connections.disconnect()
        assert fake_client.closed
        status = connections.get_status()
        assert status.state is ConnectionState.DISCONNECTED
        assert not status.connected

    async def test_disconnect_abandons_attempt_in_flight(
        self, hana_settings: HanaSettings, fake_client: Any
    ) -> None:
        gate = asyncio.Event()

        async def factory(settings: HanaSettings) -> Any:
            await gate.wait()
            return fake_client

        manager = ConnectionManager(hana_settings, client_factory=factory)
        waiter = asyncio.create_task(manager.get_connection())
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        assert manager.state is ConnectionState.CONNECTING

        await manager.disconnect()
        gate.set()

        with pytest.raises(ConnectionUnavailableError):
            await waiter
        status = manager.get_status()
        assert not status.connected
        assert not status.is_connecting
        assert status.state is ConnectionState.DISCONNECTED

    async def test_reset_during_attempt_allows_fresh_sequence(
        self, hana_settings: HanaSettings, fake_client: Any
    ) -> None:
        gate = asyncio.Event()
        calls = 0

        async def factory(settings: HanaSettings) -> Any:
            nonlocal calls
            calls += 1
            if calls == 1:
                await gate.wait()
            return fake_client

        manager = ConnectionManager(hana_settings, client_factory=factory)
        stale = asyncio.create_task(manager.connect())
        await asyncio.sleep(0)
        await asyncio.sleep(0)

        await manager.reset_connection()

        assert await stale is None
        assert await manager.get_connection() is fake_client
        assert calls == 2

    async def test_disconnect_swallows_close_errors(self, hana_settings: HanaSettings) -> None:
        client = AsyncMock()
        client.disconnect.side_effect = RuntimeError("socket already gone")
        manager = ConnectionManager(hana_settings, client_factory=AsyncMock(return_value=client))
        await manager.get_connection()

        await manager.disconnect()

        assert manager.state is ConnectionState.DISCONNECTED
        assert not manager.get_status().connected

    async def test_disconnect_without_connection_is_noop(
        self, connections: ConnectionManager
    ) -> None:
        await connections.disconnect()
        assert connections.state is ConnectionState.DISCONNECTED

    async def test_reset_allows_fresh_sequence(
        self, hana_settings: HanaSettings, fake_client: Any
    ) -> None:
        factory = _failing_factory(OSError("1"), OSError("2"), OSError("3"), then=fake_client)
        manager = ConnectionManager(hana_settings, client_factory=factory, sleep=AsyncMock())
        assert await manager.connect() is None

        await manager.reset_connection()

        status = manager.get_status()
        assert status.retry_count == 0
        assert status.last_error == ""
        assert await manager.get_connection() is fake_client


class TestTestConnection:
    async def test_test_connection_success(self, connections: ConnectionManager) -> None:
        assert await connections.test_connection() == {"success": True, "value": 1}
        assert await connections.is_healthy()

    async def test_test_connection_failure(self) -> None:
        manager = ConnectionManager(HanaSettings())
        outcome = await manager.test_connection()
        assert outcome["success"] is False
        assert "configuration is incomplete" in outcome["error"]
        assert not await manager.is_healthy()

    async def test_status_reports_database_type(self, connections: ConnectionManager) -> None:
        status = connections.get_status()
        assert status.database_type == "single_container"
        assert status.max_retries == 3
        assert status.backoff_seconds == 2.0
        assert status.last_attempt is None
