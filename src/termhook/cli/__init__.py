"""
termhook CLI.

This package splits CLI commands into focused modules:
- main:     serve, proxy, ping
- sessions: list, output (captured terminal sessions)
"""

import typer

from termhook.cli._bridge import _call_operation  # noqa: F401 - re-export for test patching
from termhook.cli.main import configure_logging, load_environment, register_commands
from termhook.cli.sessions import sessions_app

app = typer.Typer(help="termhook - serve captured terminal output to local tools")


@app.callback()
def main(
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable verbose logging (DEBUG level)"
    ),
):
    """
    termhook - serve captured terminal output to local tools.
    """
    load_environment()
    configure_logging(verbose)


# Register top-level commands (serve, proxy, ping)
register_commands(app)

# Attach subcommand groups
app.add_typer(sessions_app, name="sessions")

if __name__ == "__main__":
    app()
