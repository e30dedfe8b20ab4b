"""
CLI subcommands for inspecting captured terminal sessions.

Usage:
    termhook sessions list
    termhook sessions output <query> [--lines N]
"""

import typer

from termhook.cli._bridge import _call_operation

sessions_app = typer.Typer(help="Inspect captured terminal sessions")


@sessions_app.command("list")
def sessions_list():
    """List all captured terminal sessions."""
    data = _call_operation("list-sessions")
    sessions = data.get("sessions", [])

    if not sessions:
        typer.echo("No terminal sessions captured.")
        return

    typer.echo(f"🖥️  Captured sessions ({len(sessions)}):\n")
    for session in sessions:
        pid = session.get("processId")
        typer.echo(
            f"  {session['name']} ({session['bufferLines']} lines)\n"
            f"     ID: {session['id']}\n"
            f"     PID: {pid if pid is not None else 'unknown'}\n"
            f"     Last activity: {session['lastActivity']}\n"
        )


@sessions_app.command("output")
def sessions_output(
    query: str = typer.Argument(help="Session name or ID (substring match)"),
    lines: int = typer.Option(
        100, "--lines", "-n", min=0, help="Number of lines to show (0 for all)"
    ),
):
    """Print recent output of a session."""
    data = _call_operation("get-output", {"query": query, "maxLines": lines})

    if not data.get("success"):
        typer.echo(f"❌ {data.get('error', 'Unknown error')}")
        available = data.get("availableSessions")
        if available:
            typer.echo(f"   Available: {', '.join(available)}")
        raise typer.Exit(code=1)

    typer.echo(data.get("output", ""))
