"""HTTP transport — unary JSON-RPC, SSE and NDJSON push streams.

Routes::

    POST /, /mcp, /mcp/rpc   one JSON-RPC request per body
    GET  /, /mcp             SSE stream (first frame announces the POST endpoint)
    GET  /mcp/stream         NDJSON stream (first line is a ``connected`` record)
    GET  /health             liveness check

Every response carries permissive CORS headers and ``OPTIONS`` is answered
on any path.  The app is served by uvicorn; signal handling stays with the
lifecycle manager.
"""

from __future__ import annotations

import asyncio
import contextlib
import itertools
import json
import logging
from collections.abc import Iterator
from typing import TYPE_CHECKING, Any

import uvicorn
from starlette.applications import Starlette
from starlette.exceptions import HTTPException
from starlette.requests import Request
from starlette.responses import JSONResponse, Response, StreamingResponse
from starlette.routing import Route
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from hana_mcp.protocol.dispatcher import parse_error_response
from hana_mcp.transports.streams import (
    KEEPALIVE_SECONDS,
    NdjsonFormat,
    PushChannel,
    SseFormat,
    StreamSink,
    utc_timestamp,
)

if TYPE_CHECKING:
    from hana_mcp.protocol.dispatcher import ProtocolDispatcher

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}

STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


class TransportStartError(RuntimeError):
    """The HTTP listener could not be started (e.g. the port is taken)."""


class CorsMiddleware:
    """Adds the CORS headers to every response and answers ``OPTIONS``."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        if scope["method"] == "OPTIONS":
            response = Response(status_code=200, headers=CORS_HEADERS)
            await response(scope, receive, send)
            return

        async def send_with_cors(message: Message) -> None:
            if message["type"] == "http.response.start":
                headers = list(message.get("headers", []))
                present = {name.lower() for name, _ in headers}
                for name, value in CORS_HEADERS.items():
                    key = name.lower().encode("latin-1")
                    if key not in present:
                        headers.append((key, value.encode("latin-1")))
                message = {**message, "headers": headers}
            await send(message)

        await self.app(scope, receive, send_with_cors)


class PushResponse(StreamingResponse):
    """Streams a client's sink and detaches the client however the stream ends."""

    def __init__(self, channel: PushChannel, sink: StreamSink, client_id: int) -> None:
        super().__init__(sink, media_type=channel.format.media_type, headers=STREAM_HEADERS)
        self._channel = channel
        self._client_id = client_id

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await super().__call__(scope, receive, send)
        finally:
            self._channel.remove(self._client_id)


class HttpTransport:
    """Serves the dispatcher over HTTP and owns both push channels.

    Usage::

        transport = HttpTransport(dispatcher, host="0.0.0.0", port=3000)
        await transport.serve()          # until close()
        transport.broadcast("notice", {"text": "hello"})
    """

    name = "http"

    def __init__(
        self,
        dispatcher: ProtocolDispatcher,
        *,
        host: str = "0.0.0.0",
        port: int = 3000,
        endpoint: str | None = None,
        keepalive_interval: float = KEEPALIVE_SECONDS,
        log_level: str = "warning",
    ) -> None:
        self._dispatcher = dispatcher
        self.host = host
        self.port = port
        self.endpoint = endpoint or f"http://localhost:{port}/mcp"
        self._log_level = log_level.lower()

        # One id sequence across both stream kinds.
        ids: Iterator[int] = itertools.count(1)
        self.events = PushChannel(
            SseFormat(self.endpoint), name="sse", keepalive_interval=keepalive_interval, ids=ids
        )
        self.streams = PushChannel(
            NdjsonFormat(), name="ndjson", keepalive_interval=keepalive_interval, ids=ids
        )

        self.app = create_app(self)
        self.started = asyncio.Event()
        self._server: _Server | None = None

    def broadcast(self, event: str, data: Any) -> int:
        """Fan a message out to every NDJSON stream client."""
        return self.streams.broadcast(event, data)

    async def serve(self) -> None:
        """Run uvicorn until :meth:`close` is called.

        Raises
        ------
        TransportStartError
            If the listening socket cannot be bound.
        """
        config = uvicorn.Config(
            self.app,
            host=self.host,
            port=self.port,
            log_level=self._log_level,
            access_log=False,
            lifespan="off",
        )
        server = _Server(config, self.started)
        self._server = server
        logger.info("HTTP Server listening on http://%s:%d", self.host, self.port)
        logger.info("  POST /mcp        JSON-RPC requests")
        logger.info("  GET  /mcp        SSE stream")
        logger.info("  GET  /mcp/stream NDJSON stream")
        logger.info("  GET  /health     health check")

        try:
            await server.serve()
        except SystemExit as exc:
            # uvicorn exits the process when it cannot bind.
            msg = f"Could not start HTTP server on {self.host}:{self.port}"
            raise TransportStartError(msg) from exc
        if not server.started:
            msg = f"Could not start HTTP server on {self.host}:{self.port}"
            raise TransportStartError(msg)

    async def close(self) -> None:
        """End every push stream and stop the listener."""
        self.events.close_all()
        self.streams.close_all()
        if self._server is not None:
            self._server.should_exit = True
        logger.info("HTTP Server shut down")

    # -- route handlers --------------------------------------------------

    async def rpc(self, request: Request) -> Response:
        body = await request.body()
        try:
            payload = json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            logger.error("RPC parse error: %s", exc)
            return JSONResponse(parse_error_response(str(exc)), status_code=400)

        response = await self._dispatcher.dispatch(payload)
        if response is None:
            return Response(status_code=202)
        return JSONResponse(response)

    async def sse(self, request: Request) -> Response:
        return self._attach(self.events)

    async def ndjson(self, request: Request) -> Response:
        return self._attach(self.streams)

    async def health(self, request: Request) -> Response:
        return JSONResponse({"status": "ok", "timestamp": utc_timestamp(), "port": self.port})

    def _attach(self, channel: PushChannel) -> Response:
        sink = StreamSink()
        client = channel.attach(sink)
        return PushResponse(channel, sink, client.client_id)


class _Server(uvicorn.Server):
    """uvicorn server that reports readiness and leaves signals alone."""

    def __init__(self, config: uvicorn.Config, started: asyncio.Event) -> None:
        super().__init__(config)
        self._started_event = started

    async def startup(self, sockets: Any = None) -> None:
        await super().startup(sockets=sockets)
        if self.started:
            self._started_event.set()

    @contextlib.contextmanager
    def capture_signals(self) -> Iterator[None]:
        yield

    def install_signal_handlers(self) -> None:
        return None


async def _error_response(request: Request, exc: Exception) -> Response:
    status = exc.status_code if isinstance(exc, HTTPException) else 500
    message = {404: "Not Found", 405: "Method Not Allowed"}.get(status, "Internal Server Error")
    return JSONResponse({"error": message, "statusCode": status}, status_code=status)


def create_app(transport: HttpTransport) -> ASGIApp:
    """Build the Starlette app for *transport*, wrapped in the CORS layer."""
    routes = [
        Route("/", transport.rpc, methods=["POST"]),
        Route("/", transport.sse, methods=["GET"]),
        Route("/mcp", transport.rpc, methods=["POST"]),
        Route("/mcp", transport.sse, methods=["GET"]),
        Route("/mcp/rpc", transport.rpc, methods=["POST"]),
        Route("/mcp/stream", transport.ndjson, methods=["GET"]),
        Route("/health", transport.health, methods=["GET"]),
    ]
    app = Starlette(
        routes=routes,
        exception_handlers={404: _error_response, 405: _error_response},
    )
    return CorsMiddleware(app)
