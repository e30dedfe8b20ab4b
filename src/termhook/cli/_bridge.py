"""
Shared bridge helpers for CLI commands that talk to the running bridge.
"""

import asyncio
from typing import Any

import typer

from termhook.bridge.client import BridgeClient
from termhook.config import TermhookConfig
from termhook.errors import BridgeError, ConfigError


def get_client() -> BridgeClient:
    """Build a bridge client from the environment."""
    try:
        config = TermhookConfig.from_env()
    except ConfigError as e:
        typer.echo(f"❌ {e}")
        raise typer.Exit(code=1)
    return BridgeClient(
        host=config.host,
        port=config.port,
        timeout=config.proxy_timeout,
        max_frame_bytes=config.max_frame_bytes,
    )


def _report(e: BridgeError) -> None:
    typer.echo(f"❌ {e}")
    if e.hint:
        typer.echo(f"   {e.hint}")


def _call_operation(name: str, arguments: dict[str, Any] | None = None) -> dict:
    """Invoke a bridge operation and return its payload."""
    client = get_client()
    try:
        return asyncio.run(client.call_operation(name, arguments or {}))
    except BridgeError as e:
        _report(e)
        raise typer.Exit(code=1)


def _ping() -> str:
    """Ping the bridge; return its address."""
    client = get_client()
    try:
        asyncio.run(client.ping())
    except BridgeError as e:
        _report(e)
        raise typer.Exit(code=1)
    return f"{client.host}:{client.port}"
