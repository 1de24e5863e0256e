"""JSON-RPC 2.0 envelopes used on every transport."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, model_validator

JSONRPC_VERSION = "2.0"

RequestId = str | int | float | None


class JsonRpcRequest(BaseModel):
    """A validated JSON-RPC 2.0 request.

    A request built from an envelope without an ``id`` member is a
    notification; check :attr:`is_notification` rather than ``id is None``
    because ``"id": null`` is a (discouraged) regular request.
    """

    jsonrpc: Literal["2.0"] = JSONRPC_VERSION
    id: RequestId = None
    method: str
    params: Any = None

    @property
    def is_notification(self) -> bool:
        return "id" not in self.model_fields_set


class JsonRpcError(BaseModel):
    """A JSON-RPC 2.0 error object; immutable once built."""

    model_config = ConfigDict(frozen=True)

    code: int
    message: str
    data: Any = None


class JsonRpcResponse(BaseModel):
    """A JSON-RPC 2.0 response carrying exactly one of result or error."""

    jsonrpc: Literal["2.0"] = JSONRPC_VERSION
    id: RequestId = None
    result: Any = None
    error: JsonRpcError | None = None

    @model_validator(mode="after")
    def _result_xor_error(self) -> JsonRpcResponse:
        if self.error is not None and self.result is not None:
            msg = "a response cannot carry both result and error"
            raise ValueError(msg)
        return self

    @classmethod
    def success(cls, request_id: RequestId, result: Any) -> JsonRpcResponse:
        return cls(id=request_id, result=result)

    @classmethod
    def failure(
        cls, request_id: RequestId, code: int, message: str, data: Any = None
    ) -> JsonRpcResponse:
        return cls(id=request_id, error=JsonRpcError(code=code, message=message, data=data))

    def to_wire(self) -> dict[str, Any]:
        """Serialize with exactly one of ``result``/``error`` present."""
        payload: dict[str, Any] = {"jsonrpc": self.jsonrpc, "id": self.id}
        if self.error is not None:
            payload["error"] = self.error.model_dump(exclude_none=True)
        else:
            payload["result"] = self.result
        return payload
