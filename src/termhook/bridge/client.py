"""
One-shot client for the bridge.

Every request opens a fresh connection, writes a single frame, waits for the
matching response line and closes. Nothing is pooled or multiplexed.
"""

import asyncio
import json
import uuid
from typing import Any

from termhook.bridge.models import JSONRPC_VERSION
from termhook.config import (
    DEFAULT_HOST,
    DEFAULT_MAX_FRAME_BYTES,
    DEFAULT_PORT,
    DEFAULT_PROXY_TIMEOUT,
)
from termhook.errors import (
    BridgeRequestError,
    BridgeTimeoutError,
    BridgeUnavailableError,
)
from termhook.logger import get_logger

logger = get_logger(__name__)

NOT_RUNNING_HINT = "Make sure the termhook bridge is running (termhook serve)"


class BridgeClient:
    """
    Talks to a running ``BridgeServer``.

    Args:
        host: Bridge address.
        port: Bridge port.
        timeout: Seconds to wait for the connection and for the response.
    """

    def __init__(
        self,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_PORT,
        timeout: float = DEFAULT_PROXY_TIMEOUT,
        max_frame_bytes: int = DEFAULT_MAX_FRAME_BYTES,
    ):
        self.host = host
        self.port = port
        self.timeout = timeout
        self.max_frame_bytes = max_frame_bytes

    async def request(self, method: str, params: dict[str, Any] | None = None) -> Any:
        """
        Send one request and return its ``result``.

        Raises:
            BridgeUnavailableError: The bridge is not accepting connections.
            BridgeTimeoutError: No response within ``timeout``.
            BridgeRequestError: The bridge answered with an error or hung up.
        """
        request_id = uuid.uuid4().hex
        frame: dict[str, Any] = {
            "jsonrpc": JSONRPC_VERSION,
            "id": request_id,
            "method": method,
        }
        if params is not None:
            frame["params"] = params

        response = await self._exchange(frame)
        if "error" in response:
            error = response["error"] if isinstance(response["error"], dict) else {}
            raise BridgeRequestError(
                error.get("message", "Unknown bridge error"), code=error.get("code")
            )
        return response.get("result")

    async def call_operation(
        self, name: str, arguments: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        """
        Invoke a router operation and return its decoded payload.

        Raises:
            BridgeError: On any transport or protocol failure.
        """
        result = await self.request(
            "tools/call", {"name": name, "arguments": arguments or {}}
        )
        try:
            text = result["content"][0]["text"]
            return json.loads(text)
        except (TypeError, KeyError, IndexError, json.JSONDecodeError):
            raise BridgeRequestError(
                f"Unexpected result for '{name}': {result!r}"
            ) from None

    async def ping(self) -> bool:
        await self.request("ping")
        return True

    async def _exchange(self, frame: dict[str, Any]) -> dict[str, Any]:
        try:
            reader, writer = await asyncio.wait_for(
                asyncio.open_connection(
                    self.host, self.port, limit=self.max_frame_bytes
                ),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            raise BridgeTimeoutError(
                f"Connecting to the bridge at {self.host}:{self.port} timed out",
                hint=NOT_RUNNING_HINT,
            ) from None
        except OSError as e:
            raise BridgeUnavailableError(
                f"Failed to connect to the bridge at {self.host}:{self.port}: {e}",
                hint=NOT_RUNNING_HINT,
            ) from e

        try:
            writer.write(json.dumps(frame).encode("utf-8") + b"\n")
            await writer.drain()
            return await asyncio.wait_for(
                self._read_response(reader, frame["id"]), timeout=self.timeout
            )
        except asyncio.TimeoutError:
            raise BridgeTimeoutError(
                f"Bridge did not respond within {self.timeout}s",
                hint="The bridge may be busy or stuck; try again",
            ) from None
        except (ConnectionError, OSError) as e:
            raise BridgeRequestError(f"Connection to the bridge failed: {e}") from e
        finally:
            writer.close()
            try:
                await writer.wait_closed()
            except (ConnectionError, OSError):
                pass

    async def _read_response(
        self, reader: asyncio.StreamReader, request_id: str
    ) -> dict[str, Any]:
        """Read lines until one is a complete response to ``request_id``."""
        while True:
            try:
                line = await reader.readline()
            except ValueError:
                logger.warning("Skipping oversized line from the bridge")
                continue

            if not line:
                raise BridgeRequestError("Bridge closed the connection without responding")
            if not line.endswith(b"\n"):
                # EOF in the middle of a frame.
                raise BridgeRequestError("Bridge closed the connection mid-response")

            try:
                response = json.loads(line)
            except (ValueError, RecursionError):
                logger.debug("Skipping unparseable line from the bridge")
                continue

            if _is_response_to(response, request_id):
                return response


def _is_response_to(response: Any, request_id: str) -> bool:
    if not isinstance(response, dict):
        return False
    if "result" not in response and "error" not in response:
        return False
    if response.get("id") == request_id:
        return True
    # Parse errors cannot echo the id back.
    return response.get("id") is None and "error" in response
