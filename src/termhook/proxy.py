"""
MCP stdio proxy.

Speaks the Model Context Protocol to an assistant over stdin/stdout and
turns every tool call into a one-shot request against the running bridge.

Usage:
    termhook proxy
    python -m termhook.proxy
"""

from typing import Any

from mcp.server.fastmcp import FastMCP

from termhook.bridge.client import BridgeClient
from termhook.bridge.models import SERVER_NAME
from termhook.config import TermhookConfig
from termhook.errors import BridgeError
from termhook.logger import get_logger, setup_logging
from termhook.router import DEFAULT_OUTPUT_LINES

logger = get_logger(__name__)


async def call_bridge(
    client: BridgeClient, operation: str, arguments: dict[str, Any]
) -> dict[str, Any]:
    """
    Invoke a bridge operation, folding every bridge failure into a payload.

    Returns:
        The operation payload, or ``{"success": False, "error", "hint"}``.
    """
    try:
        return await client.call_operation(operation, arguments)
    except BridgeError as e:
        logger.warning(f"Bridge call '{operation}' failed: {e}")
        failure: dict[str, Any] = {"success": False, "error": str(e)}
        if e.hint:
            failure["hint"] = e.hint
        return failure


def build_proxy(client: BridgeClient) -> FastMCP:
    """Create the MCP server exposing the bridge operations as tools."""
    mcp = FastMCP(SERVER_NAME)

    @mcp.tool(
        name="list-sessions",
        description="List all captured terminal sessions with their metadata",
    )
    async def list_sessions() -> dict[str, Any]:
        return await call_bridge(client, "list-sessions", {})

    @mcp.tool(
        name="get-output",
        description=(
            "Get recent output from a terminal session buffer. "
            "Use list-sessions first to see available sessions."
        ),
    )
    async def get_output(query: str, maxLines: int = DEFAULT_OUTPUT_LINES) -> dict[str, Any]:
        """
        Args:
            query: Session name or ID (e.g. "zsh", "bash", "node").
            maxLines: Number of lines to return (default: 100).
        """
        return await call_bridge(
            client, "get-output", {"query": query, "maxLines": maxLines}
        )

    return mcp


def run_proxy(config: TermhookConfig | None = None) -> None:
    """Serve the proxy over stdio until the client disconnects."""
    config = config or TermhookConfig.from_env()
    client = BridgeClient(
        host=config.host,
        port=config.port,
        timeout=config.proxy_timeout,
        max_frame_bytes=config.max_frame_bytes,
    )
    logger.info(f"Proxy forwarding to bridge at {config.host}:{config.port}")
    build_proxy(client).run(transport="stdio")


def main():
    config = TermhookConfig.from_env()
    setup_logging(level=config.log_level, log_file=config.log_file)
    run_proxy(config)


if __name__ == "__main__":
    main()
