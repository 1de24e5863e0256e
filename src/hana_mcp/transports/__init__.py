"""Transport adapters — the wire bindings in front of the dispatcher.

Each transport satisfies the :class:`Transport` protocol: ``serve`` runs
until the transport is closed, ``started`` is set once it accepts requests,
and ``close`` ends every client it owns.
"""

from __future__ import annotations

import asyncio
from typing import Protocol, runtime_checkable

from hana_mcp.transports.http import HttpTransport, TransportStartError, create_app
from hana_mcp.transports.stdio import StdioTransport
from hana_mcp.transports.streams import (
    ConnectedClient,
    NdjsonFormat,
    PushChannel,
    SinkClosedError,
    SseFormat,
    StreamSink,
)


@runtime_checkable
class Transport(Protocol):
    """A wire binding driven by the lifecycle manager."""

    name: str
    started: asyncio.Event

    async def serve(self) -> None: ...
    async def close(self) -> None: ...


__all__ = [
    "ConnectedClient",
    "HttpTransport",
    "NdjsonFormat",
    "PushChannel",
    "SinkClosedError",
    "SseFormat",
    "StdioTransport",
    "StreamSink",
    "Transport",
    "TransportStartError",
    "create_app",
]
