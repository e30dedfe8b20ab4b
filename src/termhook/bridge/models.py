"""
Pydantic models and constants for the bridge wire protocol.

Frames are JSON-RPC 2.0 objects, one per line. A request without an ``id``
key is a notification and never gets a response.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict

JSONRPC_VERSION = "2.0"
PROTOCOL_VERSION = "2024-11-05"
SERVER_NAME = "termhook"

PARSE_ERROR = -32700
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603

RequestId = int | str


class RpcRequest(BaseModel):
    """Client -> Bridge: a request or notification."""

    model_config = ConfigDict(extra="ignore")

    jsonrpc: str = JSONRPC_VERSION
    id: RequestId | None = None
    method: str
    params: dict[str, Any] | None = None

    @property
    def is_notification(self) -> bool:
        return "id" not in self.model_fields_set


class RpcError(BaseModel):
    """Error member of a failed response."""

    code: int
    message: str
    data: Any = None


class RpcResponse(BaseModel):
    """Bridge -> Client: exactly one of ``result`` or ``error`` is set."""

    jsonrpc: str = JSONRPC_VERSION
    id: RequestId | None = None
    result: Any = None
    error: RpcError | None = None

    def to_wire(self) -> dict[str, Any]:
        frame: dict[str, Any] = {"jsonrpc": self.jsonrpc, "id": self.id}
        if self.error is not None:
            frame["error"] = self.error.model_dump(exclude_none=True)
        else:
            frame["result"] = self.result
        return frame


class ToolCallParams(BaseModel):
    """Params of a ``tools/call`` request."""

    model_config = ConfigDict(extra="ignore")

    name: str
    arguments: dict[str, Any] | None = None


def success_response(request_id: RequestId | None, result: Any) -> dict[str, Any]:
    return RpcResponse(id=request_id, result=result).to_wire()


def error_response(
    request_id: RequestId | None, code: int, message: str, data: Any = None
) -> dict[str, Any]:
    return RpcResponse(
        id=request_id, error=RpcError(code=code, message=message, data=data)
    ).to_wire()
