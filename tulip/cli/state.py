"""Shared CLI state: console, app, constants."""

from __future__ import annotations

import typer
from rich.console import Console

# Rich console for all output
console = Console(highlight=False)

# Typer app
app = typer.Typer(
    name="tulip",
    help="A terminal client for Zulip-compatible chat servers.",
    epilog=(
        "Examples:\n"
        "  tulip\n"
        "  tulip --site https://chat.example.com/api/v1\n"
        "  tulip --config ./tulip.yaml --debug\n"
        "  ZULIP_EMAIL=me@example.com ZULIP_API_KEY=... tulip --no-notifications"
    ),
    add_completion=False,
)
