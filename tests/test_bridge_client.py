"""
Tests for the one-shot bridge client and the MCP proxy built on it.
"""

import asyncio
import json
import socket

import pytest

from termhook.bridge.client import NOT_RUNNING_HINT, BridgeClient
from termhook.bridge.protocol import BridgeProtocol
from termhook.bridge.server import BridgeServer
from termhook.errors import (
    BridgeRequestError,
    BridgeTimeoutError,
    BridgeUnavailableError,
)
from termhook.proxy import build_proxy, call_bridge
from termhook.router import CommandRouter


def _free_port() -> int:
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


class FakeBridge:
    """A bare TCP server whose replies are scripted by the test."""

    def __init__(self, respond):
        self.respond = respond
        self.requests = []
        self._server = None
        self.port = None

    async def __aenter__(self):
        self._server = await asyncio.start_server(self._handle, "127.0.0.1", 0)
        self.port = self._server.sockets[0].getsockname()[1]
        return self

    async def __aexit__(self, *exc_info):
        self._server.close()
        await self._server.wait_closed()

    async def _handle(self, reader, writer):
        line = await reader.readline()
        if line:
            request = json.loads(line)
            self.requests.append(request)
            await self.respond(request, writer)
        writer.close()


def _result_frame(request, payload):
    return {
        "jsonrpc": "2.0",
        "id": request["id"],
        "result": {"content": [{"type": "text", "text": json.dumps(payload)}]},
    }


class TestBridgeClient:
    @pytest.mark.asyncio
    async def test_call_operation_against_real_bridge(self, host, service):
        terminal = host.open_terminal("node")
        host.write(terminal, "ready on :3000\n")

        async with BridgeServer(BridgeProtocol(CommandRouter(service)), port=0) as server:
            client = BridgeClient(port=server.port, timeout=2)
            payload = await client.call_operation("get-output", {"query": "node"})
            assert payload["output"] == "ready on :3000"
            assert await client.ping() is True
            # Every request uses its own connection, and each is closed afterwards.
            await asyncio.sleep(0.05)
            assert server.connection_count == 0

    @pytest.mark.asyncio
    async def test_refused(self):
        client = BridgeClient(port=_free_port(), timeout=1)
        with pytest.raises(BridgeUnavailableError) as exc_info:
            await client.ping()
        assert exc_info.value.hint == NOT_RUNNING_HINT

    @pytest.mark.asyncio
    async def test_silent_bridge_times_out(self):
        async def never(request, writer):
            await asyncio.sleep(0.5)

        async with FakeBridge(never) as bridge:
            client = BridgeClient(port=bridge.port, timeout=0.2)
            with pytest.raises(BridgeTimeoutError):
                await client.call_operation("list-sessions")

    @pytest.mark.asyncio
    async def test_fragmented_response_reassembled(self):
        async def fragmented(request, writer):
            data = json.dumps(_result_frame(request, {"success": True, "count": 0})).encode()
            for i in range(0, len(data), 7):
                writer.write(data[i : i + 7])
                await writer.drain()
                await asyncio.sleep(0.001)
            writer.write(b"\n")
            await writer.drain()

        async with FakeBridge(fragmented) as bridge:
            client = BridgeClient(port=bridge.port, timeout=2)
            assert await client.call_operation("list-sessions") == {
                "success": True,
                "count": 0,
            }

    @pytest.mark.asyncio
    async def test_unrelated_lines_skipped(self):
        async def noisy(request, writer):
            writer.write(b"not json\n")
            writer.write(json.dumps({"jsonrpc": "2.0", "id": "other", "result": {}}).encode() + b"\n")
            writer.write(json.dumps(_result_frame(request, {"success": True})).encode() + b"\n")
            await writer.drain()

        async with FakeBridge(noisy) as bridge:
            client = BridgeClient(port=bridge.port, timeout=2)
            assert await client.call_operation("list-sessions") == {"success": True}

    @pytest.mark.asyncio
    async def test_error_frame_raises(self):
        async def unknown(request, writer):
            frame = {
                "jsonrpc": "2.0",
                "id": request["id"],
                "error": {"code": -32601, "message": "Unknown tool: nope"},
            }
            writer.write(json.dumps(frame).encode() + b"\n")
            await writer.drain()

        async with FakeBridge(unknown) as bridge:
            client = BridgeClient(port=bridge.port, timeout=2)
            with pytest.raises(BridgeRequestError) as exc_info:
                await client.call_operation("nope")
        assert exc_info.value.code == -32601
        assert str(exc_info.value) == "Unknown tool: nope"

    @pytest.mark.asyncio
    async def test_hangup_without_response(self):
        async def hang_up(request, writer):
            return None

        async with FakeBridge(hang_up) as bridge:
            client = BridgeClient(port=bridge.port, timeout=2)
            with pytest.raises(BridgeRequestError, match="without responding"):
                await client.ping()

    @pytest.mark.asyncio
    async def test_request_frame_shape(self):
        async def echo(request, writer):
            writer.write(json.dumps(_result_frame(request, {"success": True})).encode() + b"\n")
            await writer.drain()

        async with FakeBridge(echo) as bridge:
            client = BridgeClient(port=bridge.port, timeout=2)
            await client.call_operation("get-output", {"query": "bash", "maxLines": 5})

        request = bridge.requests[0]
        assert request["jsonrpc"] == "2.0"
        assert request["method"] == "tools/call"
        assert request["params"] == {
            "name": "get-output",
            "arguments": {"query": "bash", "maxLines": 5},
        }
        assert isinstance(request["id"], str) and request["id"]


class TestProxy:
    @pytest.mark.asyncio
    async def test_call_bridge_folds_failures(self):
        client = BridgeClient(port=_free_port(), timeout=1)
        result = await call_bridge(client, "list-sessions", {})
        assert result["success"] is False
        assert "Failed to connect" in result["error"]
        assert result["hint"] == NOT_RUNNING_HINT

    @pytest.mark.asyncio
    async def test_call_bridge_passes_payload(self, host, service):
        host.open_terminal("bash")
        async with BridgeServer(BridgeProtocol(CommandRouter(service)), port=0) as server:
            client = BridgeClient(port=server.port, timeout=2)
            result = await call_bridge(client, "list-sessions", {})
        assert result["success"] is True
        assert result["count"] == 1

    @pytest.mark.asyncio
    async def test_proxy_exposes_tools(self):
        proxy = build_proxy(BridgeClient(port=_free_port(), timeout=1))
        tools = {tool.name: tool for tool in await proxy.list_tools()}

        assert set(tools) == {"list-sessions", "get-output"}
        schema = tools["get-output"].inputSchema
        assert schema["required"] == ["query"]
        assert schema["properties"]["maxLines"]["default"] == 100
