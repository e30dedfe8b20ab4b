"""
Process-level wiring: host, capture service, router and bridge server.

``TermhookApp`` is constructed and torn down as one unit so that the
session registry never outlives the listener that serves it.
"""

from termhook.bridge.protocol import BridgeProtocol
from termhook.bridge.server import BridgeServer
from termhook.capture.host import TerminalHost
from termhook.capture.service import CaptureService
from termhook.config import TermhookConfig
from termhook.logger import get_logger
from termhook.router import CommandRouter

logger = get_logger(__name__)


class TermhookApp:
    """
    Runs the capture service and bridge for one host.

    Args:
        host: The terminal host whose signals are captured.
        config: Runtime settings.
    """

    def __init__(self, host: TerminalHost, config: TermhookConfig | None = None):
        self.config = config or TermhookConfig()
        self.host = host
        self.service = CaptureService(max_buffer_lines=self.config.max_buffer_lines)
        self.router = CommandRouter(self.service)
        self.protocol = BridgeProtocol(self.router)
        self.server = BridgeServer(
            self.protocol,
            host=self.config.host,
            port=self.config.port,
            max_frame_bytes=self.config.max_frame_bytes,
        )

    async def start(self) -> None:
        """Subscribe to the host and start listening."""
        logger.info("Application startup - initializing services")
        self.service.initialize(self.host)
        try:
            await self.server.start()
        except OSError as e:
            logger.error(f"Failed to start bridge on port {self.config.port}: {e}")
            self.service.dispose()
            raise

    async def stop(self) -> None:
        logger.info("Application shutdown - releasing services")
        try:
            await self.server.stop()
        finally:
            self.service.dispose()

    async def __aenter__(self) -> "TermhookApp":
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.stop()
