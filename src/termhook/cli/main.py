"""
Top-level CLI commands: serve, proxy, ping.
"""

import asyncio
import os
import sys
from typing import Optional

import typer
from dotenv import find_dotenv, load_dotenv

from termhook.cli._bridge import _ping
from termhook.config import TermhookConfig
from termhook.errors import ConfigError


def configure_logging(verbose: bool = False):
    """Configure logging for the CLI."""
    from termhook.logger import setup_logging

    log_level = "DEBUG" if verbose else os.getenv("LOG_LEVEL", "WARNING")
    setup_logging(level=log_level, log_file=os.getenv("LOG_FILE"))


def load_environment():
    """Load variables from a .env file in the working directory, if any."""
    env_file = find_dotenv(usecwd=True)
    if env_file:
        load_dotenv(env_file)


def _load_config(**overrides) -> TermhookConfig:
    try:
        return TermhookConfig.from_env().with_overrides(**overrides)
    except ConfigError as e:
        typer.echo(f"❌ {e}")
        raise typer.Exit(code=1)


def _tee_output(terminal, data: bytes | str) -> None:
    if isinstance(data, str):
        data = data.encode()
    sys.stdout.buffer.write(data)
    sys.stdout.buffer.flush()


async def _serve(config: TermhookConfig, commands: list[str], tee: bool) -> None:
    from termhook.app import TermhookApp
    from termhook.capture.pty_host import PtyTerminalHost

    host = PtyTerminalHost()
    async with TermhookApp(host, config) as app:
        subscription = host.on_did_write(_tee_output) if tee else None
        try:
            for command in commands:
                try:
                    terminal = await host.spawn(command)
                except (OSError, ValueError) as e:
                    typer.echo(f"⚠️  Could not start '{command}': {e}", err=True)
                    continue
                typer.echo(f"   Capturing: {terminal.name}", err=True)

            typer.echo(
                f"🔌 Bridge listening on {config.host}:{app.server.port}. "
                "Press Ctrl+C to stop.",
                err=True,
            )
            await app.server.serve_forever()
        finally:
            if subscription is not None:
                subscription.release()
            await host.shutdown()


def register_commands(app: typer.Typer):
    """Register top-level commands on the main app."""

    @app.command()
    def serve(
        port: Optional[int] = typer.Option(
            None, "--port", "-p", help="Bridge port (default: $TERMHOOK_PORT or 9876)"
        ),
        spawn: Optional[list[str]] = typer.Option(
            None,
            "--spawn",
            "-s",
            help="Command to run in a captured terminal (repeatable)",
        ),
        tee: bool = typer.Option(
            False, "--tee", help="Mirror captured terminal output to stdout"
        ),
    ):
        """Capture terminals and serve their output on the local bridge."""
        config = _load_config(port=port)
        try:
            asyncio.run(_serve(config, spawn or [], tee))
        except KeyboardInterrupt:
            typer.echo("\n🛑 termhook stopped.", err=True)
        except OSError as e:
            typer.echo(f"❌ Failed to start bridge: {e}", err=True)
            raise typer.Exit(code=1)

    @app.command()
    def proxy(
        port: Optional[int] = typer.Option(
            None, "--port", "-p", help="Bridge port to forward to"
        ),
        timeout: Optional[float] = typer.Option(
            None, "--timeout", "-t", help="Seconds to wait for each bridge response"
        ),
    ):
        """Run the MCP stdio proxy in front of the bridge."""
        from termhook.proxy import run_proxy

        config = _load_config(port=port, proxy_timeout=timeout)
        run_proxy(config)

    @app.command()
    def ping():
        """Check that the bridge is reachable."""
        address = _ping()
        typer.echo(f"✅ Bridge is running at {address}")
