"""Tests for push-stream sinks, framing and the client channel."""

from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncIterator

import pytest

from hana_mcp.transports.streams import (
    NdjsonFormat,
    PushChannel,
    SinkClosedError,
    SseFormat,
    StreamSink,
)


class BrokenSink:
    """Accepts *healthy_writes* frames, then fails like a dead socket."""

    def __init__(self, healthy_writes: int = 1) -> None:
        self.frames: list[str] = []
        self.closed = False
        self._healthy = healthy_writes

    def write(self, frame: str) -> None:
        if len(self.frames) >= self._healthy:
            raise OSError("broken pipe")
        self.frames.append(frame)

    def close(self) -> None:
        self.closed = True


@pytest.fixture
async def channel() -> AsyncIterator[PushChannel]:
    channel = PushChannel(NdjsonFormat(), name="ndjson", keepalive_interval=0.01)
    yield channel
    channel.close_all()


class TestStreamSink:
    async def test_drains_then_stops_after_close(self) -> None:
        sink = StreamSink()
        sink.write("a")
        sink.write("b")
        sink.close()
        assert [frame async for frame in sink] == ["a", "b"]

    async def test_write_after_close_fails(self) -> None:
        sink = StreamSink()
        sink.close()
        with pytest.raises(SinkClosedError):
            sink.write("late")

    async def test_full_buffer_fails(self) -> None:
        sink = StreamSink(maxsize=1)
        sink.write("a")
        with pytest.raises(SinkClosedError, match="full"):
            sink.write("b")

    async def test_close_wakes_reader(self) -> None:
        sink = StreamSink()

        async def _next() -> str | None:
            return await anext(sink, None)

        reader = asyncio.create_task(_next())
        await asyncio.sleep(0)
        sink.close()
        assert await asyncio.wait_for(reader, 1) is None


class TestFormats:
    def test_sse_greeting_announces_endpoint(self) -> None:
        frame = SseFormat("http://localhost:3000/mcp").greeting(1)
        assert frame.startswith("data: ")
        assert frame.endswith("\n\n")
        payload = json.loads(frame[len("data: ") :])
        assert payload == {
            "jsonrpc": "2.0",
            "method": "endpoint",
            "params": {"endpoint": "http://localhost:3000/mcp"},
        }

    def test_sse_keepalive_is_comment(self) -> None:
        assert SseFormat("x").keepalive() == ": keepalive\n\n"

    def test_ndjson_frames_are_lines(self) -> None:
        fmt = NdjsonFormat()
        greeting = json.loads(fmt.greeting(7))
        assert greeting["type"] == "connected"
        assert greeting["clientId"] == 7
        assert "timestamp" in greeting
        assert json.loads(fmt.keepalive())["type"] == "keepalive"
        message = fmt.message("notice", {"n": 1})
        assert message.endswith("\n") and message.count("\n") == 1
        assert json.loads(message)["data"] == {"n": 1}


class TestPushChannel:
    async def test_attach_sends_greeting_and_assigns_ids(self, channel: PushChannel) -> None:
        first = channel.attach(StreamSink())
        second = channel.attach(StreamSink())
        assert (first.client_id, second.client_id) == (1, 2)
        assert len(channel) == 2
        frame = await anext(first.sink)  # type: ignore[call-overload]
        assert json.loads(frame)["type"] == "connected"

    async def test_keepalive_frames_arrive(self, channel: PushChannel) -> None:
        sink = StreamSink()
        channel.attach(sink)
        await anext(sink)
        frame = await asyncio.wait_for(anext(sink), 1)
        assert json.loads(frame)["type"] == "keepalive"

    async def test_failed_keepalive_prunes_client_and_stops_timer(
        self, channel: PushChannel
    ) -> None:
        sink = BrokenSink(healthy_writes=1)
        client = channel.attach(sink)
        assert client.keepalive is not None

        await asyncio.wait_for(client.keepalive, 1)

        assert client.client_id not in channel
        assert sink.closed
        assert client.keepalive.done()

    async def test_remove_cancels_keepalive_then_closes(self, channel: PushChannel) -> None:
        sink = StreamSink()
        client = channel.attach(sink)
        task = client.keepalive
        assert task is not None

        assert channel.remove(client.client_id)
        assert not channel.remove(client.client_id)

        with pytest.raises(asyncio.CancelledError):
            await task
        assert sink.closed

    async def test_broadcast_prunes_failed_clients(self, channel: PushChannel) -> None:
        healthy = StreamSink()
        broken = BrokenSink(healthy_writes=1)
        good = channel.attach(healthy)
        bad = channel.attach(broken)

        delivered = channel.broadcast("tools_changed", {"count": 9})

        assert delivered == 1
        assert channel.client_ids == [good.client_id]
        assert bad.client_id not in channel
        assert broken.closed
        await anext(healthy)  # greeting
        message = json.loads(await anext(healthy))
        assert message["type"] == "tools_changed"
        assert message["data"] == {"count": 9}

    async def test_close_all(self, channel: PushChannel) -> None:
        sinks = [StreamSink() for _ in range(3)]
        for sink in sinks:
            channel.attach(sink)
        channel.close_all()
        assert len(channel) == 0
        assert all(s.closed for s in sinks)

    async def test_shared_id_sequence(self) -> None:
        import itertools

        ids = itertools.count(1)
        sse = PushChannel(SseFormat("e"), ids=ids)
        ndjson = PushChannel(NdjsonFormat(), ids=ids)
        try:
            assert sse.attach(StreamSink()).client_id == 1
            assert ndjson.attach(StreamSink()).client_id == 2
        finally:
            sse.close_all()
            ndjson.close_all()
