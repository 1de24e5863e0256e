"""ConnectionManager — owns the lifecycle of the single downstream session.

Callers ask for a ready client with :meth:`ConnectionManager.get_connection`.
Concurrent callers share one in-flight connect sequence (single-flight): the
first caller starts a task, later callers await the same task and observe
the same outcome.  Transient failures are retried a fixed number of times
with a fixed backoff before the manager falls back to ``disconnected``.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel

from hana_mcp.config import HanaSettings
from hana_mcp.database.client import HanaClient
from hana_mcp.database.errors import (
    ConfigurationError,
    ConnectionUnavailableError,
    DatabaseError,
)
from hana_mcp.utils.telemetry import ATTR_CONNECT_ATTEMPT, ATTR_DB_TYPE, get_tracer

logger = logging.getLogger(__name__)
_tracer = get_tracer(__name__)

MAX_RETRIES = 3
BACKOFF_SECONDS = 2.0

ClientFactory = Callable[[HanaSettings], Awaitable[HanaClient]]


async def open_client(settings: HanaSettings) -> HanaClient:
    """Default factory: open a SQLAlchemy session for *settings*."""
    return await HanaClient.open(settings.connection_url())


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class ConnectionStatus(BaseModel):
    """Read-only diagnostic snapshot of the connection manager."""

    state: ConnectionState
    connected: bool
    is_connecting: bool
    last_attempt: datetime | None = None
    retry_count: int = 0
    max_retries: int = MAX_RETRIES
    backoff_seconds: float = BACKOFF_SECONDS
    last_error: str = ""
    database_type: str


class ConnectionManager:
    """Guarantees at most one live downstream connection.

    The manager is constructed explicitly and handed to tool handlers
    through their :class:`~hana_mcp.tools.models.ToolContext`.

    Usage::

        manager = ConnectionManager(settings.hana)
        client = await manager.get_connection()
        rows = await client.query("SELECT 1 FROM DUMMY")
        await manager.disconnect()
    """

    def __init__(
        self,
        settings: HanaSettings,
        *,
        client_factory: ClientFactory | None = None,
        max_retries: int = MAX_RETRIES,
        backoff: float = BACKOFF_SECONDS,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._settings = settings
        self._client_factory = client_factory or open_client
        self._max_retries = max_retries
        self._backoff = backoff
        self._sleep = sleep

        self._client: HanaClient | None = None
        self._state = ConnectionState.DISCONNECTED
        self._inflight: asyncio.Task[HanaClient | None] | None = None
        self._retry_count = 0
        self._last_attempt: datetime | None = None
        self._last_error = ""

    @property
    def settings(self) -> HanaSettings:
        return self._settings

    @property
    def state(self) -> ConnectionState:
        return self._state

    async def get_connection(self) -> HanaClient:
        """Return a ready client, connecting if needed.

        Raises
        ------
        ConfigurationError
            If no attempt is in flight and the settings are incomplete.
        ConnectionUnavailableError
            If the connect sequence exhausted its retries.
        """
        if self._client is not None:
            return self._client

        if self._inflight is not None:
            logger.debug("Connection already in progress, waiting...")
        elif not self._settings.is_configured():
            logger.warning("HANA configuration is incomplete")
            raise ConfigurationError("; ".join(self._settings.validation_errors()))
        client = await self.connect()

        if client is None:
            raise ConnectionUnavailableError(self._retry_count, self._last_error)
        return client

    async def connect(self) -> HanaClient | None:
        """Run (or join) a connect sequence; ``None`` means retries were exhausted."""
        if self._client is not None:
            return self._client
        if self._inflight is None:
            self._state = ConnectionState.CONNECTING
            self._inflight = asyncio.create_task(self._connect_with_retries())
        attempt = self._inflight
        try:
            return await asyncio.shield(attempt)
        except asyncio.CancelledError:
            # The attempt was abandoned by disconnect(); this caller was not cancelled.
            current = asyncio.current_task()
            if attempt.cancelled() and (current is None or not current.cancelling()):
                return None
            raise

    async def test_connection(self) -> dict[str, Any]:
        """Obtain a connection and run a trivial round-trip query."""
        try:
            client = await self.get_connection()
            value = await client.ping()
        except DatabaseError as exc:
            return {"success": False, "error": str(exc)}
        except Exception as exc:
            logger.error("Connection test failed: %s", exc)
            return {"success": False, "error": str(exc)}

        if value is None:
            return {"success": False, "error": "Connection test returned no results"}
        return {"success": True, "value": value}

    async def is_healthy(self) -> bool:
        result = await self.test_connection()
        return bool(result["success"])

    async def reset_connection(self) -> None:
        """Drop the current session so the next caller starts a fresh sequence."""
        logger.info("Resetting HANA connection...")
        await self.disconnect()
        self._retry_count = 0
        self._last_error = ""

    async def disconnect(self) -> None:
        """Abandon any connect in flight and close the session.

        Close errors are logged, not raised; the in-memory state is always
        cleared, so no attempt still running can install a client afterwards.
        """
        attempt = self._inflight
        if attempt is not None and not attempt.done():
            logger.info("Cancelling connection attempt in progress")
            attempt.cancel()
            await asyncio.wait({attempt})
        if self._inflight is attempt:
            self._inflight = None

        client = self._client
        try:
            if client is not None:
                await client.disconnect()
                logger.info("HANA client disconnected")
        except Exception as exc:
            logger.error("Error disconnecting HANA client: %s", exc)
        finally:
            self._client = None
            self._retry_count = 0
            if self._inflight is None:
                self._state = ConnectionState.DISCONNECTED

    def get_status(self) -> ConnectionStatus:
        """Snapshot of the manager's state; never blocks."""
        return ConnectionStatus(
            state=self._state,
            connected=self._client is not None,
            is_connecting=self._inflight is not None,
            last_attempt=self._last_attempt,
            retry_count=self._retry_count,
            max_retries=self._max_retries,
            backoff_seconds=self._backoff,
            last_error=self._last_error,
            database_type=self._settings.database_type.value,
        )

    async def _connect_with_retries(self) -> HanaClient | None:
        self._state = ConnectionState.CONNECTING
        self._retry_count = 0
        db_type = self._settings.database_type.value
        try:
            while True:
                self._last_attempt = datetime.now(UTC)
                logger.info("Connecting to HANA %s database...", db_type)
                try:
                    with _tracer.start_as_current_span("hana_mcp.connect") as span:
                        span.set_attribute(ATTR_DB_TYPE, db_type)
                        span.set_attribute(ATTR_CONNECT_ATTEMPT, self._retry_count + 1)
                        client = await self._client_factory(self._settings)
                except Exception as exc:
                    self._retry_count += 1
                    self._last_error = str(exc)
                    logger.error(
                        "Failed to connect to HANA (attempt %d): %s", self._retry_count, exc
                    )
                    if self._retry_count < self._max_retries:
                        logger.info("Retrying connection in %s seconds...", self._backoff)
                        await self._sleep(self._backoff)
                        continue
                    logger.error("Max connection retries reached (%d)", self._max_retries)
                    return None

                self._client = client
                self._retry_count = 0
                self._last_error = ""
                logger.info("HANA client connected successfully to %s database", db_type)
                return client
        finally:
            self._inflight = None
            self._state = (
                ConnectionState.CONNECTED
                if self._client is not None
                else ConnectionState.DISCONNECTED
            )
