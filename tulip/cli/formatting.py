"""Rendering of normalized outputs to the terminal."""

from __future__ import annotations

import importlib.metadata
import logging
from datetime import datetime

from rich.logging import RichHandler
from rich.markup import escape

from ..api.types import Message, MessageKind
from ..stream.outputs import Failure, IncomingMessage, NormalizedOutput, StatusNote
from .state import console
from .theme import THEME


def _markup(text: str, color: str) -> str:
    """Wrap text in Rich markup with the given color, escaping special chars."""
    return f"[{color}]{escape(text)}[/{color}]"


def _get_version() -> str:
    """Return the installed package version or 'dev' if not installed."""
    try:
        return importlib.metadata.version("tulip")
    except importlib.metadata.PackageNotFoundError:
        return "dev"


def _format_time(timestamp: int) -> str:
    if not timestamp:
        return "--:--"
    return datetime.fromtimestamp(timestamp).strftime("%H:%M")


def format_message(message: Message) -> str:
    """Render a chat message as a single Rich markup string."""
    when = _markup(_format_time(message.timestamp), THEME.muted)
    sender = f"[bold]{escape(message.sender_name)}[/bold]"
    if message.recipient_kind is MessageKind.STREAM:
        where = _markup(f"{message.stream_name} > {message.topic}", THEME.stream)
    else:
        names = ", ".join(user.full_name for user in message.recipients) or "you"
        where = _markup(f"private ({names})", THEME.private)
    return f"{when} {where} {sender}: {escape(message.content)}"


def format_output(output: NormalizedOutput, *, debug: bool = False) -> str | None:
    """Return markup for ``output``, or None when it should not be shown."""
    if isinstance(output, IncomingMessage):
        return format_message(output.message)
    if isinstance(output, Failure):
        return _markup(f"ERROR: {output.text}", THEME.error)
    if isinstance(output, StatusNote):
        if output.debug:
            return _markup(f"DEBUG: {output.text}", THEME.muted) if debug else None
        return _markup(output.text, THEME.secondary)
    return None


def render_output(output: NormalizedOutput, *, debug: bool = False) -> None:
    """Print ``output`` to the console."""
    text = format_output(output, debug=debug)
    if text is not None:
        console.print(text)


def configure_logging(debug: bool) -> None:
    """Route library logging through Rich; verbose only when debugging."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.ERROR,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False, rich_tracebacks=True)],
        force=True,
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.DEBUG if debug else logging.WARNING)
