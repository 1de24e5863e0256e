"""JSON-RPC protocol layer — envelopes, error codes and the dispatcher."""

from hana_mcp.protocol.dispatcher import (
    PROTOCOL_VERSION,
    Method,
    ProtocolDispatcher,
    parse_error_response,
)
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
from hana_mcp.protocol.models import JsonRpcError, JsonRpcRequest, JsonRpcResponse

__all__ = [
    "PROTOCOL_VERSION",
    "ErrorCode",
    "InternalError",
    "InvalidParamsError",
    "InvalidRequestError",
    "JsonRpcError",
    "JsonRpcRequest",
    "JsonRpcResponse",
    "Method",
    "MethodNotFoundError",
    "ParseError",
    "ProtocolDispatcher",
    "ProtocolError",
    "ToolExecutionError",
    "ToolNotFoundError",
    "parse_error_response",
]
