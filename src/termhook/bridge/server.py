"""
Loopback TCP listener for the bridge protocol.

Each connection carries newline-delimited JSON frames. Frames are handled
one at a time on the event loop, and each response is written and drained
before the next frame on that connection is read.
"""

import asyncio
import json

from termhook.bridge.models import INTERNAL_ERROR, PARSE_ERROR, error_response
from termhook.bridge.protocol import BridgeProtocol
from termhook.config import DEFAULT_HOST, DEFAULT_MAX_FRAME_BYTES, DEFAULT_PORT
from termhook.logger import get_logger

logger = get_logger(__name__)


class BridgeServer:
    """
    Serves a ``BridgeProtocol`` to any number of local clients.

    Args:
        protocol: The request handler shared by all connections.
        host: Loopback address to bind.
        port: Port to bind; 0 picks a free port (see ``port`` after start).
        max_frame_bytes: Longest accepted line; longer lines get a parse
            error and are discarded.
    """

    def __init__(
        self,
        protocol: BridgeProtocol,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_PORT,
        max_frame_bytes: int = DEFAULT_MAX_FRAME_BYTES,
    ):
        self.protocol = protocol
        self.host = host
        self.port = port
        self.max_frame_bytes = max_frame_bytes
        self._server: asyncio.Server | None = None
        self._connections: set[asyncio.StreamWriter] = set()

    @property
    def is_serving(self) -> bool:
        return self._server is not None and self._server.is_serving()

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    async def start(self) -> None:
        """Bind the listener. Raises OSError if the port is taken."""
        self._server = await asyncio.start_server(
            self._handle_connection,
            host=self.host,
            port=self.port,
            limit=self.max_frame_bytes,
        )
        sockname = self._server.sockets[0].getsockname()
        self.port = sockname[1]
        logger.info(f"Bridge listening on {self.host}:{self.port}")

    async def serve_forever(self) -> None:
        if self._server is None:
            await self.start()
        await self._server.serve_forever()

    async def stop(self) -> None:
        """Close the listener and every open connection."""
        if self._server is None:
            return
        self._server.close()
        for writer in list(self._connections):
            writer.close()
        await self._server.wait_closed()
        self._server = None
        logger.info("Bridge stopped")

    async def __aenter__(self) -> "BridgeServer":
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.stop()

    async def _handle_connection(
        self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter
    ) -> None:
        peer = writer.get_extra_info("peername")
        self._connections.add(writer)
        logger.debug(f"Client connected: {peer}")

        try:
            while True:
                line = await self._read_frame(reader)
                if line is None:
                    logger.warning(f"Oversized frame from {peer}")
                    await self._send(
                        writer,
                        error_response(None, PARSE_ERROR, "Parse error: frame too large"),
                    )
                    continue

                if not line:
                    break
                if not line.strip():
                    continue

                try:
                    response = self.protocol.handle_line(line)
                except Exception as e:
                    logger.exception(f"Failed to handle frame from {peer}: {e}")
                    response = error_response(None, INTERNAL_ERROR, f"Internal error: {e}")
                if response is not None:
                    await self._send(writer, response)
        except (ConnectionError, OSError) as e:
            logger.debug(f"Connection error from {peer}: {e}")
        finally:
            self._connections.discard(writer)
            writer.close()
            logger.debug(f"Client disconnected: {peer}")

    async def _read_frame(self, reader: asyncio.StreamReader) -> bytes | None:
        """
        Read one newline-terminated frame.

        Returns:
            The frame, ``b""`` at end of stream, or None when the frame was
            longer than ``max_frame_bytes``. An oversized frame is consumed
            through its newline, so none of it is read as a later frame.
        """
        oversized = False
        while True:
            try:
                line = await reader.readuntil(b"\n")
            except asyncio.IncompleteReadError as e:
                line = e.partial
            except asyncio.LimitOverrunError as e:
                # The overrun data stays buffered; drop it and keep looking
                # for the newline that ends this frame.
                oversized = True
                await reader.readexactly(e.consumed)
                continue
            return None if oversized else line

    async def _send(self, writer: asyncio.StreamWriter, frame: dict) -> None:
        writer.write(json.dumps(frame).encode("utf-8") + b"\n")
        await writer.drain()
