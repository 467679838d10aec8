"""CLI package for tulip."""

from .commands import Command, CommandError, parse_command
from .formatting import format_message, format_output, render_output
from .interactive import InteractiveSession, run_interactive
from .state import app

# Import subcommand modules so their @app.command() decorators register
from . import main_cmd as _main_cmd  # noqa: F401

from .main_cmd import main


def cli() -> None:
    """CLI entrypoint."""
    app(prog_name="tulip")


__all__ = [
    "Command",
    "CommandError",
    "InteractiveSession",
    "app",
    "cli",
    "format_message",
    "format_output",
    "main",
    "parse_command",
    "render_output",
    "run_interactive",
]
