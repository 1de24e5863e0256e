"""Tests for JSON-RPC envelope models and error types."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from hana_mcp.protocol.errors import (
    ErrorCode,
    InvalidParamsError,
    MethodNotFoundError,
    ParseError,
    ToolExecutionError,
    ToolNotFoundError,
)
from hana_mcp.protocol.models import JsonRpcError, JsonRpcRequest, JsonRpcResponse


class TestJsonRpcRequest:
    def test_notification_when_id_absent(self) -> None:
        assert JsonRpcRequest(method="notifications/initialized").is_notification

    def test_null_id_is_not_a_notification(self) -> None:
        assert not JsonRpcRequest(id=None, method="tools/list").is_notification


class TestJsonRpcResponse:
    def test_success_wire_has_no_error(self) -> None:
        wire = JsonRpcResponse.success(1, {"ok": True}).to_wire()
        assert wire == {"jsonrpc": "2.0", "id": 1, "result": {"ok": True}}

    def test_failure_wire_has_no_result(self) -> None:
        wire = JsonRpcResponse.failure("a", -32601, "Method not found: x").to_wire()
        assert wire == {
            "jsonrpc": "2.0",
            "id": "a",
            "error": {"code": -32601, "message": "Method not found: x"},
        }

    def test_result_and_error_are_exclusive(self) -> None:
        with pytest.raises(ValidationError):
            JsonRpcResponse(id=1, result={}, error=JsonRpcError(code=-1, message="x"))

    def test_error_is_immutable(self) -> None:
        error = JsonRpcError(code=-32603, message="boom")
        with pytest.raises(ValidationError):
            error.message = "changed"  # type: ignore[misc]


class TestErrors:
    def test_codes(self) -> None:
        assert ErrorCode.PARSE_ERROR == -32700
        assert ErrorCode.INVALID_REQUEST == -32600
        assert ErrorCode.METHOD_NOT_FOUND == -32601
        assert ErrorCode.INVALID_PARAMS == -32602
        assert ErrorCode.INTERNAL_ERROR == -32603
        assert ErrorCode.TOOL_NOT_FOUND == -32001

    def test_default_message(self) -> None:
        assert ParseError().message == "Parse error"
        assert InvalidParamsError().code is ErrorCode.INVALID_PARAMS

    def test_named_errors(self) -> None:
        assert MethodNotFoundError("x").message == "Method not found: x"
        assert ToolNotFoundError("t").message == "Tool not found: t"

    def test_tool_execution_error_keeps_cause(self) -> None:
        err = ToolExecutionError("hana_list_tables", KeyError("boom"))
        assert err.code is ErrorCode.INTERNAL_ERROR
        assert "boom" in err.message
        assert err.data == {"tool": "hana_list_tables", "type": "KeyError"}
