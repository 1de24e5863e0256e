"""Push streams — long-lived client connections fed from a per-client buffer.

Both push transports (SSE and NDJSON) share the same machinery: each attached
client owns a :class:`StreamSink` that the HTTP response drains, a keepalive
task that writes a heartbeat frame on a fixed interval, and an entry in a
:class:`PushChannel`.  Only the framing differs, and that lives in the
:class:`StreamFormat` implementations.

Removal always happens in the same order: the entry is dropped from the
channel, the keepalive task is cancelled, then the sink is closed.
"""

from __future__ import annotations

import asyncio
import contextlib
import itertools
import json
import logging
from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Protocol

logger = logging.getLogger(__name__)

KEEPALIVE_SECONDS = 30.0
DEFAULT_BUFFER = 256


def utc_timestamp() -> str:
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")


class SinkClosedError(Exception):
    """Raised when writing to a sink that can no longer accept frames."""


class StreamSink:
    """Bounded buffer between writers and one streaming HTTP response.

    Writers call :meth:`write`; the response iterates the sink.  A full
    buffer means the client stopped reading, which is treated like a
    failed write.
    """

    def __init__(self, maxsize: int = DEFAULT_BUFFER) -> None:
        self._queue: asyncio.Queue[str | None] = asyncio.Queue(maxsize)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def write(self, frame: str) -> None:
        if self._closed:
            msg = "stream is closed"
            raise SinkClosedError(msg)
        try:
            self._queue.put_nowait(frame)
        except asyncio.QueueFull as exc:
            msg = "stream buffer is full"
            raise SinkClosedError(msg) from exc

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        # A full buffer still ends: iteration stops once it drains.
        with contextlib.suppress(asyncio.QueueFull):
            self._queue.put_nowait(None)

    def __aiter__(self) -> StreamSink:
        return self

    async def __anext__(self) -> str:
        if self._closed and self._queue.empty():
            raise StopAsyncIteration
        frame = await self._queue.get()
        if frame is None:
            raise StopAsyncIteration
        return frame


class Sink(Protocol):
    """What a channel needs from a client's outbound stream."""

    @property
    def closed(self) -> bool: ...
    def write(self, frame: str) -> None: ...
    def close(self) -> None: ...


class StreamFormat(Protocol):
    """Framing rules for one push transport."""

    media_type: str

    def greeting(self, client_id: int) -> str: ...
    def keepalive(self) -> str: ...
    def message(self, event: str, data: Any) -> str: ...


class SseFormat:
    """``text/event-stream`` framing; the greeting announces the POST endpoint."""

    media_type = "text/event-stream"

    def __init__(self, endpoint: str) -> None:
        self.endpoint = endpoint

    def greeting(self, client_id: int) -> str:
        return self._data(
            {"jsonrpc": "2.0", "method": "endpoint", "params": {"endpoint": self.endpoint}}
        )

    def keepalive(self) -> str:
        return ": keepalive\n\n"

    def message(self, event: str, data: Any) -> str:
        return self._data({"type": event, "data": data, "timestamp": utc_timestamp()})

    @staticmethod
    def _data(payload: Any) -> str:
        return f"data: {json.dumps(payload, default=str)}\n\n"


class NdjsonFormat:
    """Newline-delimited JSON framing: one object per line."""

    media_type = "application/x-ndjson"

    def greeting(self, client_id: int) -> str:
        return self._line({"type": "connected", "clientId": client_id, "timestamp": utc_timestamp()})

    def keepalive(self) -> str:
        return self._line({"type": "keepalive", "timestamp": utc_timestamp()})

    def message(self, event: str, data: Any) -> str:
        return self._line({"type": event, "data": data, "timestamp": utc_timestamp()})

    @staticmethod
    def _line(payload: Any) -> str:
        return json.dumps(payload, default=str) + "\n"


@dataclass
class ConnectedClient:
    client_id: int
    sink: Sink
    connected_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    keepalive: asyncio.Task[None] | None = None


class PushChannel:
    """Registry of clients attached to one push transport.

    Usage::

        channel = PushChannel(NdjsonFormat())
        client = channel.attach(StreamSink())
        channel.broadcast("tools_changed", {"count": 9})
        channel.remove(client.client_id)
    """

    def __init__(
        self,
        fmt: StreamFormat,
        *,
        name: str = "stream",
        keepalive_interval: float = KEEPALIVE_SECONDS,
        ids: Iterator[int] | None = None,
    ) -> None:
        self.format = fmt
        self.name = name
        self._interval = keepalive_interval
        self._ids = ids if ids is not None else itertools.count(1)
        self._clients: dict[int, ConnectedClient] = {}

    def __len__(self) -> int:
        return len(self._clients)

    def __contains__(self, client_id: object) -> bool:
        return client_id in self._clients

    @property
    def client_ids(self) -> list[int]:
        return list(self._clients)

    def attach(self, sink: Sink) -> ConnectedClient:
        """Register *sink*, send the greeting frame and start its keepalive."""
        client = ConnectedClient(client_id=next(self._ids), sink=sink)
        sink.write(self.format.greeting(client.client_id))
        self._clients[client.client_id] = client
        client.keepalive = asyncio.create_task(
            self._keepalive(client), name=f"{self.name}-keepalive-{client.client_id}"
        )
        logger.info("Client %d connected via %s", client.client_id, self.name)
        return client

    def remove(self, client_id: int) -> bool:
        """Drop a client, cancel its keepalive and close its sink; idempotent."""
        client = self._clients.pop(client_id, None)
        if client is None:
            return False
        task = client.keepalive
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
        client.sink.close()
        logger.info("Client %d disconnected from %s", client_id, self.name)
        return True

    def broadcast(self, event: str, data: Any) -> int:
        """Write one message to every client, pruning those whose write fails."""
        frame = self.format.message(event, data)
        delivered = 0
        for client_id, client in list(self._clients.items()):
            try:
                client.sink.write(frame)
            except Exception as exc:
                logger.error("Failed to send to client %d: %s", client_id, exc)
                self.remove(client_id)
            else:
                delivered += 1
        return delivered

    def close_all(self) -> None:
        for client_id in list(self._clients):
            self.remove(client_id)

    async def _keepalive(self, client: ConnectedClient) -> None:
        while client.client_id in self._clients:
            await asyncio.sleep(self._interval)
            if client.client_id not in self._clients:
                return
            try:
                client.sink.write(self.format.keepalive())
            except Exception as exc:
                logger.error(
                    "Failed to send keepalive to client %d: %s", client.client_id, exc
                )
                self.remove(client.client_id)
                return
