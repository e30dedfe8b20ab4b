"""
Request handling for the bridge.

``BridgeProtocol`` maps one decoded frame to at most one response frame. It
holds no transport state; the server feeds it frames from any connection.
"""

import json
from typing import Any

from pydantic import ValidationError

from termhook import __version__
from termhook.bridge.models import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    METHOD_NOT_FOUND,
    PARSE_ERROR,
    PROTOCOL_VERSION,
    SERVER_NAME,
    RpcRequest,
    ToolCallParams,
    error_response,
    success_response,
)
from termhook.logger import get_logger
from termhook.router import CommandRouter

logger = get_logger(__name__)


class BridgeProtocol:
    """
    JSON-RPC method dispatch on top of a command router.

    Methods:
        initialize, ping, tools/list, tools/call, resources/list, prompts/list
    Notifications:
        notifications/initialized
    """

    def __init__(self, router: CommandRouter):
        self.router = router
        self.initialized = False
        self._methods = {
            "initialize": self._handle_initialize,
            "ping": lambda params: {},
            "tools/list": self._handle_tools_list,
            "tools/call": self._handle_tools_call,
            "resources/list": lambda params: {"resources": []},
            "prompts/list": lambda params: {"prompts": []},
        }

    def handle_line(self, line: str | bytes) -> dict[str, Any] | None:
        """
        Parse and handle one raw frame.

        Returns:
            The response frame, or None for notifications.
        """
        try:
            frame = json.loads(line)
        except (ValueError, RecursionError) as e:
            # ValueError covers JSONDecodeError, UnicodeDecodeError and
            # integer literals past the digit limit.
            logger.warning(f"Unparseable frame: {e}")
            return error_response(None, PARSE_ERROR, f"Parse error: {e}")
        return self.handle_request(frame)

    def handle_request(self, frame: Any) -> dict[str, Any] | None:
        """
        Handle one decoded frame.

        Returns:
            The response frame, or None for notifications.
        """
        if not isinstance(frame, dict):
            return error_response(
                None, PARSE_ERROR, "Parse error: frame must be a JSON object"
            )

        try:
            request = RpcRequest.model_validate(frame)
        except ValidationError as e:
            logger.warning(f"Malformed frame: {e.error_count()} validation error(s)")
            return error_response(
                frame.get("id") if isinstance(frame.get("id"), (int, str)) else None,
                PARSE_ERROR,
                f"Parse error: invalid request frame ({e.errors()[0]['msg']})",
            )

        if request.is_notification:
            self._handle_notification(request)
            return None

        handler = self._methods.get(request.method)
        if handler is None:
            return error_response(
                request.id, METHOD_NOT_FOUND, f"Method not found: {request.method}"
            )

        try:
            result = handler(request.params or {})
        except _RpcFault as fault:
            return error_response(request.id, fault.code, fault.message)
        except Exception as e:
            logger.exception(f"Unhandled error in {request.method}: {e}")
            return error_response(request.id, INTERNAL_ERROR, f"Internal error: {e}")
        return success_response(request.id, result)

    def _handle_notification(self, request: RpcRequest) -> None:
        if request.method == "notifications/initialized":
            self.initialized = True
            logger.debug("Client finished initialization")
        else:
            logger.debug(f"Ignoring notification: {request.method}")

    def _handle_initialize(self, params: dict[str, Any]) -> dict[str, Any]:
        client = params.get("clientInfo") or {}
        logger.info(f"Initialize from {client.get('name', 'unknown client')}")
        return {
            "protocolVersion": PROTOCOL_VERSION,
            "capabilities": {"tools": {}},
            "serverInfo": {"name": SERVER_NAME, "version": __version__},
        }

    def _handle_tools_list(self, params: dict[str, Any]) -> dict[str, Any]:
        return {"tools": self.router.describe()}

    def _handle_tools_call(self, params: dict[str, Any]) -> dict[str, Any]:
        try:
            call = ToolCallParams.model_validate(params)
        except ValidationError as e:
            raise _RpcFault(
                INVALID_PARAMS, f"Invalid params: {e.errors()[0]['msg']}"
            ) from None

        outcome = self.router.invoke(call.name, call.arguments)
        if outcome.status == "unknown_operation":
            raise _RpcFault(METHOD_NOT_FOUND, outcome.error)
        if outcome.status == "error":
            raise _RpcFault(INTERNAL_ERROR, f"Tool execution error: {outcome.error}")

        return {
            "content": [
                {"type": "text", "text": json.dumps(outcome.payload, indent=2)}
            ],
            "isError": outcome.payload.get("success") is False,
        }


class _RpcFault(Exception):
    """Raised by method handlers to answer with an error frame."""

    def __init__(self, code: int, message: str):
        super().__init__(message)
        self.code = code
        self.message = message