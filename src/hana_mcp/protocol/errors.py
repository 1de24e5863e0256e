"""JSON-RPC error codes and the protocol-layer exception hierarchy."""

from __future__ import annotations

from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Stable error codes carried in every Error Object.

    The first five are the JSON-RPC 2.0 reserved codes; ``TOOL_NOT_FOUND``
    lives in the implementation-defined server error range.
    """

    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603
    TOOL_NOT_FOUND = -32001


DEFAULT_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.PARSE_ERROR: "Parse error",
    ErrorCode.INVALID_REQUEST: "Invalid Request",
    ErrorCode.METHOD_NOT_FOUND: "Method not found",
    ErrorCode.INVALID_PARAMS: "Invalid params",
    ErrorCode.INTERNAL_ERROR: "Internal error",
    ErrorCode.TOOL_NOT_FOUND: "Tool not found",
}


class ProtocolError(Exception):
    """Base error for failures that map onto a JSON-RPC Error Object."""

    code: ErrorCode = ErrorCode.INTERNAL_ERROR

    def __init__(self, message: str = "", data: Any = None) -> None:
        self.message = message or DEFAULT_MESSAGES[self.code]
        self.data = data
        super().__init__(self.message)


class ParseError(ProtocolError):
    """The wire message is not valid JSON."""

    code = ErrorCode.PARSE_ERROR


class InvalidRequestError(ProtocolError):
    """The envelope is not a valid JSON-RPC 2.0 request."""

    code = ErrorCode.INVALID_REQUEST


class MethodNotFoundError(ProtocolError):
    """The method is not in the routing table."""

    code = ErrorCode.METHOD_NOT_FOUND

    def __init__(self, method: str) -> None:
        self.method = method
        super().__init__(f"Method not found: {method}")


class InvalidParamsError(ProtocolError):
    """Parameters are missing or have the wrong shape."""

    code = ErrorCode.INVALID_PARAMS


class InternalError(ProtocolError):
    code = ErrorCode.INTERNAL_ERROR


class ToolNotFoundError(ProtocolError):
    """Requested tool does not exist in the registry."""

    code = ErrorCode.TOOL_NOT_FOUND

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Tool not found: {name}")


class ToolExecutionError(InternalError):
    """A tool handler raised; the original message is kept for diagnostics."""

    def __init__(self, name: str, cause: BaseException) -> None:
        self.name = name
        self.cause = cause
        super().__init__(
            str(cause) or type(cause).__name__,
            data={"tool": name, "type": type(cause).__name__},
        )
