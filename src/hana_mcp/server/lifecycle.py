"""LifecycleManager — startup, supervision and signal-driven shutdown.

The manager owns the process-wide collaborators (connection manager, tool
registry, dispatcher) and the transport chosen from settings.  Shutdown is
only ever triggered by SIGINT/SIGTERM or an unrecoverable startup failure;
stray exceptions on the event loop are logged and otherwise ignored.
"""

from __future__ import annotations

import asyncio
import logging
import signal
from collections.abc import Coroutine, Iterable
from enum import Enum
from typing import Any

from pydantic import BaseModel

from hana_mcp.config import Settings
from hana_mcp.database.connection import ConnectionManager, ConnectionStatus
from hana_mcp.protocol.dispatcher import ProtocolDispatcher
from hana_mcp.tools.catalog import build_default_registry
from hana_mcp.tools.models import ToolContext
from hana_mcp.tools.registry import ToolRegistry
from hana_mcp.transports import HttpTransport, StdioTransport, Transport
from hana_mcp.utils.telemetry import ATTR_TRANSPORT, get_tracer

logger = logging.getLogger(__name__)
_tracer = get_tracer(__name__)

SHUTDOWN_TIMEOUT = 5.0
_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class LifecycleState(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    RUNNING = "running"
    SHUTTING_DOWN = "shutting_down"
    TERMINATED = "terminated"


class LifecycleError(RuntimeError):
    """The server could not be brought up."""


class LifecycleStatus(BaseModel):
    state: LifecycleState
    is_initialized: bool
    is_shutting_down: bool
    transports: list[str]
    connection: ConnectionStatus


class LifecycleManager:
    """Brings the server up, keeps it supervised and tears it down once.

    Usage::

        manager = LifecycleManager(get_settings())
        await manager.run()    # returns after SIGINT/SIGTERM
    """

    def __init__(
        self,
        settings: Settings,
        *,
        connections: ConnectionManager | None = None,
        registry: ToolRegistry | None = None,
        transports: Iterable[Transport] | None = None,
    ) -> None:
        self._settings = settings
        self.connections = connections or ConnectionManager(settings.hana)
        self.registry = registry or build_default_registry()
        self.dispatcher = ProtocolDispatcher(
            self.registry, ToolContext(settings=settings.hana, connections=self.connections)
        )
        self._transports: list[Transport] | None = (
            list(transports) if transports is not None else None
        )

        self._state = LifecycleState.UNINITIALIZED
        self._serving: list[asyncio.Task[None]] = []
        self._background: set[asyncio.Task[Any]] = set()
        self._shutdown_task: asyncio.Task[None] | None = None
        self._terminated = asyncio.Event()

    @property
    def state(self) -> LifecycleState:
        return self._state

    @property
    def transports(self) -> list[Transport]:
        """The configured transports, chosen once from settings."""
        if self._transports is None:
            self._transports = self._build_transports()
        return self._transports

    async def initialize(self) -> None:
        """Validate configuration; problems are logged, never fatal."""
        if self._state is not LifecycleState.UNINITIALIZED:
            logger.warning("Server already initialized")
            return

        self._state = LifecycleState.INITIALIZING
        logger.info("Initializing HANA MCP Server...")
        problems = self._settings.hana.validation_errors()
        for problem in problems:
            logger.warning("Configuration: %s", problem)
        if problems:
            logger.warning("Configuration validation failed, but continuing...")
        logger.info("HANA MCP Server initialized successfully")

    async def start(self) -> None:
        """Initialize and start every transport, waiting until each is ready.

        Raises
        ------
        LifecycleError
            If a transport stops before it reports ready (e.g. port in use).
        """
        logger.info("Starting HANA MCP Server...")
        with _tracer.start_as_current_span("hana_mcp.start") as span:
            span.set_attribute(ATTR_TRANSPORT, [t.name for t in self.transports])
            await self.initialize()
            for transport in self.transports:
                serving = self.supervise(transport.serve(), f"transport:{transport.name}")
                self._serving.append(serving)
                ready = asyncio.create_task(transport.started.wait())
                done, _ = await asyncio.wait(
                    {serving, ready}, return_when=asyncio.FIRST_COMPLETED
                )
                if ready not in done:
                    ready.cancel()
                    msg = f"Transport {transport.name} failed to start"
                    raise LifecycleError(msg)

        self._state = LifecycleState.RUNNING
        logger.info("HANA MCP Server started successfully")

    def supervise(self, coro: Coroutine[Any, Any, Any], name: str) -> asyncio.Task[None]:
        """Run *coro* as a task whose escaped exceptions are logged, not raised."""

        async def _runner() -> None:
            try:
                await coro
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Task %s failed", name)

        task = asyncio.create_task(_runner(), name=name)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    async def shutdown(self) -> None:
        """Tear everything down once; concurrent callers await the same teardown."""
        if self._shutdown_task is None:
            self._shutdown_task = asyncio.create_task(self._teardown())
        else:
            logger.warning("Shutdown already in progress")
        await asyncio.shield(self._shutdown_task)

    async def run(self) -> None:
        """Start the server and block until a termination signal has been handled."""
        loop = asyncio.get_running_loop()
        loop.set_exception_handler(self._handle_loop_exception)
        installed = []
        for sig in _SIGNALS:
            try:
                loop.add_signal_handler(sig, self._on_signal, sig)
            except (NotImplementedError, RuntimeError):
                logger.warning("Cannot install handler for %s on this platform", sig.name)
            else:
                installed.append(sig)

        try:
            try:
                await self.start()
            except Exception:
                logger.error("Failed to start server")
                await self.shutdown()
                raise
            await self._terminated.wait()
        finally:
            for sig in installed:
                loop.remove_signal_handler(sig)

    def notify_transport_closed(self, name: str) -> None:
        """Called when a transport's input ends; the process keeps running."""
        logger.info("Transport %s closed; waiting for a termination signal", name)

    def get_status(self) -> LifecycleStatus:
        return LifecycleStatus(
            state=self._state,
            is_initialized=self._state is not LifecycleState.UNINITIALIZED,
            is_shutting_down=self._state
            in (LifecycleState.SHUTTING_DOWN, LifecycleState.TERMINATED),
            transports=[t.name for t in self._transports or []],
            connection=self.connections.get_status(),
        )

    def _build_transports(self) -> list[Transport]:
        server = self._settings.server
        if server.transport == "stdio":
            return [StdioTransport(self.dispatcher, on_close=self.notify_transport_closed)]
        return [
            HttpTransport(
                self.dispatcher,
                host=server.host,
                port=server.port,
                endpoint=server.endpoint_url(),
                log_level=server.log_level,
            )
        ]

    def _on_signal(self, sig: signal.Signals) -> None:
        logger.info("Received %s", sig.name)
        self.supervise(self.shutdown(), "shutdown")

    def _handle_loop_exception(
        self, loop: asyncio.AbstractEventLoop, context: dict[str, Any]
    ) -> None:
        exc = context.get("exception")
        logger.error(
            "Unhandled error: %s",
            context.get("message", "unknown"),
            exc_info=(type(exc), exc, exc.__traceback__) if exc is not None else None,
        )

    async def _teardown(self) -> None:
        self._state = LifecycleState.SHUTTING_DOWN
        logger.info("Shutting down HANA MCP Server...")

        for transport in self._transports or []:
            try:
                await transport.close()
            except Exception as exc:
                logger.error("Error closing transport %s: %s", transport.name, exc)

        if self._serving:
            _, pending = await asyncio.wait(self._serving, timeout=SHUTDOWN_TIMEOUT)
            for task in pending:
                task.cancel()

        await self.connections.disconnect()
        self._state = LifecycleState.TERMINATED
        self._terminated.set()
        logger.info("HANA MCP Server shutdown completed")
