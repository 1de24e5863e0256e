"""HanaClient — one open downstream session behind an async facade.

The SQLAlchemy driver is blocking, so every call is pushed to a worker
thread with :func:`asyncio.to_thread`.  All statements share a single
session and are serialized by an :class:`asyncio.Lock`; overlapping
statements on one HANA connection are not safe.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.engine import URL, Connection, Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import NullPool

from hana_mcp.database.errors import QueryError

logger = logging.getLogger(__name__)

PING_SQL = {
    "hana": "SELECT 1 AS TEST_VALUE FROM DUMMY",
}
DEFAULT_PING_SQL = "SELECT 1 AS TEST_VALUE"


class HanaClient:
    """An open session that executes SQL text verbatim.

    Usage::

        client = await HanaClient.open(settings.hana.connection_url())
        rows = await client.query("SELECT * FROM SYS.SCHEMAS")
        await client.disconnect()
    """

    def __init__(self, engine: Engine, connection: Connection) -> None:
        self._engine = engine
        self._connection = connection
        self._lock = asyncio.Lock()

    @classmethod
    async def open(cls, url: URL | str, **engine_kwargs: Any) -> HanaClient:
        """Create an engine for *url* and check out its single connection."""
        engine_kwargs.setdefault("poolclass", NullPool)
        engine = create_engine(url, **engine_kwargs)
        try:
            connection = await asyncio.to_thread(engine.connect)
        except Exception:
            await asyncio.to_thread(engine.dispose)
            raise
        return cls(engine, connection)

    @property
    def dialect(self) -> str:
        return self._engine.dialect.name

    @property
    def closed(self) -> bool:
        return self._connection.closed

    async def query(self, sql: str, params: Sequence[Any] | None = None) -> list[dict[str, Any]]:
        """Execute *sql* with positional *params* and return rows as dicts."""
        async with self._lock:
            return await asyncio.to_thread(self._execute, sql, tuple(params or ()))

    async def query_scalar(self, sql: str, params: Sequence[Any] | None = None) -> Any:
        """Return the first column of the first row, or ``None``."""
        rows = await self.query(sql, params)
        if not rows or not rows[0]:
            return None
        return next(iter(rows[0].values()))

    async def ping(self) -> Any:
        """Run a trivial round-trip statement and return its value."""
        return await self.query_scalar(PING_SQL.get(self.dialect, DEFAULT_PING_SQL))

    async def disconnect(self) -> None:
        """Close the session and release the engine."""
        async with self._lock:
            await asyncio.to_thread(self._close)

    def _execute(self, sql: str, params: tuple[Any, ...]) -> list[dict[str, Any]]:
        try:
            result = self._connection.exec_driver_sql(sql, params)
            rows = [dict(row._mapping) for row in result] if result.returns_rows else []
            self._connection.commit()
        except SQLAlchemyError as exc:
            self._connection.rollback()
            detail = str(getattr(exc, "orig", None) or exc)
            logger.error("Query execution error: %s", detail)
            raise QueryError(detail) from exc
        return rows

    def _close(self) -> None:
        try:
            self._connection.close()
        finally:
            self._engine.dispose()
