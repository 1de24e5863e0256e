"""ProtocolDispatcher — validates envelopes and routes them to handlers.

Every request moves through received → validated → routed → executed →
responded, with early exits to an error response at validation or routing.
The dispatcher never raises: any failure becomes an Error Object.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING, Any

from hana_mcp import SERVER_NAME, __version__
from hana_mcp.protocol.errors import (
    ErrorCode,
    InternalError,
    InvalidParamsError,
    InvalidRequestError,
    MethodNotFoundError,
    ParseError,
    ProtocolError,
    ToolExecutionError,
    ToolNotFoundError,
)
from hana_mcp.protocol.models import JSONRPC_VERSION, JsonRpcRequest, JsonRpcResponse, RequestId
from hana_mcp.utils.telemetry import (
    ATTR_RPC_ERROR_CODE,
    ATTR_RPC_ID,
    ATTR_RPC_METHOD,
    ATTR_TOOL_NAME,
    get_tracer,
)

if TYPE_CHECKING:
    from hana_mcp.tools.models import ToolContext
    from hana_mcp.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)
_tracer = get_tracer(__name__)

PROTOCOL_VERSION = "2024-11-05"

SERVER_INFO = {"name": SERVER_NAME, "version": __version__}

CAPABILITIES: dict[str, Any] = {"tools": {}, "prompts": {}}

PROMPTS: list[dict[str, str]] = [
    {
        "name": "hana_query_builder",
        "description": "Build a SQL query for HANA database",
        "template": "I need to build a SQL query for HANA database that {{goal}}.",
    },
    {
        "name": "hana_schema_explorer",
        "description": "Explore HANA database schemas and tables",
        "template": "I want to explore the schemas and tables in my HANA database.",
    },
    {
        "name": "hana_connection_test",
        "description": "Test HANA database connection",
        "template": "Please test my HANA database connection and show the configuration.",
    },
]


class Method(str, Enum):
    """The fixed routing table."""

    INITIALIZE = "initialize"
    TOOLS_LIST = "tools/list"
    TOOLS_CALL = "tools/call"
    NOTIFICATIONS_INITIALIZED = "notifications/initialized"
    PROMPTS_LIST = "prompts/list"


_NO_RESPONSE = object()


def parse_error_response(detail: str | None = None) -> dict[str, Any]:
    """Response for a wire message that could not be decoded as JSON."""
    error = ParseError(data=detail)
    return JsonRpcResponse.failure(None, error.code, error.message, error.data).to_wire()


class ProtocolDispatcher:
    """Routes decoded JSON-RPC payloads to the tool registry.

    Usage::

        dispatcher = ProtocolDispatcher(registry, context)
        response = await dispatcher.dispatch({"jsonrpc": "2.0", "id": 1, "method": "tools/list"})
        # response is a wire dict, or None for notifications
    """

    def __init__(self, registry: ToolRegistry, context: ToolContext) -> None:
        self._registry = registry
        self._context = context
        self._routes = {
            Method.INITIALIZE.value: self._initialize,
            Method.TOOLS_LIST.value: self._tools_list,
            Method.TOOLS_CALL.value: self._tools_call,
            Method.NOTIFICATIONS_INITIALIZED.value: self._initialized,
            Method.PROMPTS_LIST.value: self._prompts_list,
        }

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    async def dispatch(self, payload: Any) -> dict[str, Any] | None:
        """Handle one decoded envelope and return the wire response, if any."""
        with _tracer.start_as_current_span("hana_mcp.dispatch") as span:
            try:
                request = self.validate(payload)
            except ProtocolError as exc:
                logger.warning("Rejected request: %s", exc.message)
                span.set_attribute(ATTR_RPC_ERROR_CODE, int(exc.code))
                return self._error(_echo_id(payload), exc).to_wire()

            span.set_attribute(ATTR_RPC_METHOD, request.method)
            if request.id is not None:
                span.set_attribute(ATTR_RPC_ID, str(request.id))
            response = await self._execute(request)

            if response is not None and response.error is not None:
                span.set_attribute(ATTR_RPC_ERROR_CODE, response.error.code)
            if response is None or request.is_notification:
                return None
            return response.to_wire()

    def validate(self, payload: Any) -> JsonRpcRequest:
        """Check the envelope shape; raise :class:`InvalidRequestError` on failure."""
        if not isinstance(payload, dict):
            raise InvalidRequestError("Invalid request: must be an object")
        if payload.get("jsonrpc") != JSONRPC_VERSION:
            raise InvalidRequestError("Invalid JSON-RPC version")
        if "method" not in payload or payload["method"] in (None, ""):
            raise InvalidRequestError("Missing method")
        if not isinstance(payload["method"], str):
            raise InvalidRequestError("Method must be a string")
        if "id" in payload and not _valid_id(payload["id"]):
            raise InvalidRequestError("Request id must be a string, number or null")

        fields: dict[str, Any] = {"method": payload["method"], "params": payload.get("params")}
        if "id" in payload:
            fields["id"] = payload["id"]
        return JsonRpcRequest(**fields)

    async def _execute(self, request: JsonRpcRequest) -> JsonRpcResponse | None:
        logger.info("Method: %s", request.method)
        handler = self._routes.get(request.method)
        try:
            if handler is None:
                raise MethodNotFoundError(request.method)
            result = await handler(request)
        except ProtocolError as exc:
            return self._error(request.id, exc)
        except Exception as exc:
            logger.exception("Error handling request %s", request.method)
            return self._error(request.id, InternalError(str(exc)))

        if result is _NO_RESPONSE:
            return None
        return JsonRpcResponse.success(request.id, result)

    async def _initialize(self, request: JsonRpcRequest) -> dict[str, Any]:
        logger.info("Initializing server")
        return {
            "protocolVersion": PROTOCOL_VERSION,
            "capabilities": CAPABILITIES,
            "serverInfo": SERVER_INFO,
        }

    async def _tools_list(self, request: JsonRpcRequest) -> dict[str, Any]:
        return {"tools": [tool.to_wire() for tool in self._registry.list_tools()]}

    async def _tools_call(self, request: JsonRpcRequest) -> dict[str, Any]:
        params = request.params if request.params is not None else {}
        if not isinstance(params, dict):
            raise InvalidParamsError("params must be an object")

        name = params.get("name")
        if not self._registry.has_tool(name):
            raise ToolNotFoundError(name if isinstance(name, str) else repr(name))

        # Undeclared keys are dropped before the required-field check.
        args = self._registry.filter_arguments(name, params.get("arguments"))
        logger.info("Tool: %s %s", name, sorted(args))

        validation = self._registry.validate(name, args)
        if not validation.valid:
            raise InvalidParamsError(validation.error or "")

        with _tracer.start_as_current_span("hana_mcp.tool") as span:
            span.set_attribute(ATTR_TOOL_NAME, name)
            try:
                result = await self._registry.execute(name, args, self._context)
            except Exception as exc:
                logger.error("Tool execution failed: %s", exc)
                raise ToolExecutionError(name, exc) from exc
        return result.to_wire()

    async def _initialized(self, request: JsonRpcRequest) -> object:
        logger.info("Client initialized")
        return _NO_RESPONSE

    async def _prompts_list(self, request: JsonRpcRequest) -> dict[str, Any]:
        return {"prompts": PROMPTS}

    @staticmethod
    def _error(request_id: RequestId, exc: ProtocolError) -> JsonRpcResponse:
        return JsonRpcResponse.failure(request_id, int(exc.code), exc.message, exc.data)


def _valid_id(value: Any) -> bool:
    return value is None or (isinstance(value, (str, int, float)) and not isinstance(value, bool))


def _echo_id(payload: Any) -> RequestId:
    if isinstance(payload, dict) and _valid_id(payload.get("id")):
        return payload.get("id")
    return None


__all__ = [
    "CAPABILITIES",
    "ErrorCode",
    "Method",
    "PROMPTS",
    "PROTOCOL_VERSION",
    "ProtocolDispatcher",
    "parse_error_response",
]
