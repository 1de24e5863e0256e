"""Line-delimited JSON-RPC over the process's stdin/stdout."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, TextIO

from hana_mcp.protocol.dispatcher import parse_error_response

if TYPE_CHECKING:
    from hana_mcp.protocol.dispatcher import ProtocolDispatcher

logger = logging.getLogger(__name__)

# Longest accepted request line; large query texts and parameter lists fit.
LINE_LIMIT = 16 * 1024 * 1024


async def open_stdin_reader(limit: int = LINE_LIMIT) -> asyncio.StreamReader:
    """Wrap ``sys.stdin`` in an asyncio stream reader."""
    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader(limit=limit)
    protocol = asyncio.StreamReaderProtocol(reader)
    await loop.connect_read_pipe(lambda: protocol, sys.stdin)
    return reader


class StdioTransport:
    """Reads one JSON request per line and writes one JSON response per line.

    Lines are handled strictly in arrival order.  Nothing but responses is
    ever written to the output stream; logging goes to stderr.  On end of
    input the optional ``on_close`` callback is invoked; the transport never
    exits the process itself.
    """

    name = "stdio"

    def __init__(
        self,
        dispatcher: ProtocolDispatcher,
        *,
        reader: asyncio.StreamReader | None = None,
        output: TextIO | None = None,
        on_close: Callable[[str], Any] | None = None,
    ) -> None:
        self._dispatcher = dispatcher
        self._reader = reader
        self._output = output
        self._on_close = on_close
        self.started = asyncio.Event()
        self._closed = False

    async def serve(self) -> None:
        """Process lines until end of input or :meth:`close`."""
        reader = self._reader or await open_stdin_reader()
        self._reader = reader
        self.started.set()
        logger.info("Server started and ready for requests on stdio")

        while not self._closed:
            try:
                line = await reader.readuntil(b"\n")
            except asyncio.IncompleteReadError as exc:
                # Final line without a newline, or b"" at end of input.
                line = exc.partial
            except asyncio.LimitOverrunError:
                logger.error("Request line exceeds the reader limit; discarded")
                await _discard_line(reader)
                self.send(parse_error_response("Request line too long"))
                continue
            if not line:
                break
            await self.handle_line(line.decode("utf-8", errors="replace"))

        logger.info("stdin closed")
        if self._on_close is not None:
            self._on_close(self.name)

    async def handle_line(self, line: str) -> dict[str, Any] | None:
        """Decode, dispatch and answer a single line."""
        text = line.strip()
        if not text:
            return None

        try:
            payload = json.loads(text)
        except json.JSONDecodeError as exc:
            logger.error("Parse error: %s", exc)
            response = parse_error_response(str(exc))
        else:
            response = await self._dispatcher.dispatch(payload)

        if response is not None:
            self.send(response)
        return response

    def send(self, response: dict[str, Any]) -> None:
        out = self._output or sys.stdout
        try:
            out.write(json.dumps(response, default=str) + "\n")
            out.flush()
        except (OSError, ValueError) as exc:
            logger.error("Failed to write response: %s", exc)

    async def close(self) -> None:
        self._closed = True
        if self._reader is not None:
            self._reader.feed_eof()


async def _discard_line(reader: asyncio.StreamReader) -> None:
    """Skip the rest of an oversized line, up to and including its newline."""
    while True:
        try:
            await reader.readuntil(b"\n")
            return
        except asyncio.LimitOverrunError as exc:
            await reader.readexactly(exc.consumed)
        except asyncio.IncompleteReadError:
            return
