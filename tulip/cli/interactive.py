"""Interactive REPL session."""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from pathlib import Path
from typing import Any

from prompt_toolkit import PromptSession
from prompt_toolkit.formatted_text import HTML
from prompt_toolkit.history import FileHistory, InMemoryHistory
from prompt_toolkit.patch_stdout import patch_stdout
from rich.panel import Panel

from ..api.client import ZulipClient
from ..config import ClientConfig, Context
from ..errors import ApiError, ConfigError
from ..notifications import (
    DesktopNotificationSink,
    NotificationSink,
    NullNotificationSink,
    fan_out,
)
from ..outgoing import OutgoingSender
from ..stream import Failure, NormalizedOutput, OutputChannel, SessionHandle, StatusNote, start
from .commands import HELP_TEXT, Command, CommandError, parse_command
from .formatting import _get_version, _markup, render_output
from .state import console
from .theme import THEME


class InteractiveSession:
    """Encapsulates the mutable state and logic for an interactive REPL session.

    All output, including command feedback, goes through one OutputChannel
    so it is rendered in the order it was produced.
    """

    def __init__(
        self,
        config: ClientConfig,
        *,
        sink: NotificationSink | None = None,
        channel: OutputChannel | None = None,
    ) -> None:
        self.config = config
        self.channel = channel or OutputChannel()
        self.sink = sink
        self.handle: SessionHandle | None = None
        self._client: ZulipClient | None = None
        self._context: Context | None = None
        self._background: set[asyncio.Task[Any]] = set()

    @property
    def connected(self) -> bool:
        return self.handle is not None and not self.handle.done()

    def render(self, output: NormalizedOutput) -> None:
        render_output(output, debug=self.config.debug)

    def _ensure_client(self) -> ZulipClient:
        """Return a client for the current config, rebuilding it after changes.

        The client in use by a live session is kept until disconnect.
        """
        if self._client is not None and self.connected:
            return self._client
        context = self.config.to_context()
        if self._client is None or context != self._context:
            if self._client is not None:
                self._spawn(self._client.aclose())
            self._client = ZulipClient(context)
            self._context = context
        return self._client

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> None:
        task = asyncio.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def connect(self) -> None:
        if self.connected:
            await self.channel.put(StatusNote("Already connected."))
            return
        client = self._ensure_client()
        assert self._context is not None
        self.handle = start(self._context, self.channel, source=client)
        await self.channel.put(StatusNote(f"Okay, waiting for messages from {client.base_url}"))

    async def disconnect(self, *, quiet: bool = False) -> None:
        handle = self.handle
        self.handle = None
        if handle is None or handle.done():
            if not quiet:
                await self.channel.put(StatusNote("Not connected."))
            return
        await handle.stop()
        if not quiet:
            base_url = self._context.base_url if self._context else self.config.site
            await self.channel.put(StatusNote(f"Disconnected from {base_url}"))

    async def ping(self) -> None:
        client = self._ensure_client()
        await self.channel.put(StatusNote(f"Attempting to ping {client.base_url}"))
        try:
            await client.can_reach_server()
        except ApiError as exc:
            await self.channel.put(
                Failure(f"Connection to {client.base_url}/generate_204 failed: {exc}.")
            )
            return
        await self.channel.put(StatusNote(f"Connection to {client.base_url} is working properly."))

    async def execute(self, command: Command) -> bool:
        """Run one command; return False when the REPL should exit."""
        name = command.name
        if name == "quit":
            return False
        if name == "help":
            await self.channel.put(StatusNote(HELP_TEXT))
        elif name == "clear":
            console.clear()
        elif name == "connect":
            await self.connect()
        elif name == "disconnect":
            await self.disconnect()
        elif name == "ping":
            self._spawn(self.ping())
        elif name == "stream":
            stream, topic, content = command.args
            sender = OutgoingSender(self._ensure_client(), self.channel)
            self._spawn(sender.send_stream(stream, topic, content))
        elif name == "private":
            recipients, content = command.args
            sender = OutgoingSender(self._ensure_client(), self.channel)
            self._spawn(sender.send_private(recipients.split(","), content))
        elif name == "config_show":
            width = max(len(key) for key, _ in self.config.show())
            rows = [f"{key:<{width}} = {value}" for key, value in self.config.show()]
            await self.channel.put(StatusNote("\n".join(rows)))
        elif name == "config_set":
            key, value = command.args
            try:
                self.config.set_value(key, value)
            except ConfigError as exc:
                await self.channel.put(Failure(f"Unable to set {key}: {exc}"))
            else:
                note = f"{key} set to {value}"
                if self.connected:
                    note += " (reconnect to apply)"
                await self.channel.put(StatusNote(note))
        return True

    async def run(self) -> None:
        """Run the interactive REPL loop until exit."""
        history_path = Path(self.config.history_file).expanduser()
        try:
            history_path.parent.mkdir(parents=True, exist_ok=True)
            history: FileHistory | InMemoryHistory = FileHistory(str(history_path))
        except OSError:
            history = InMemoryHistory()

        prompt_session: PromptSession[str] = PromptSession(history=history)
        if self.sink is None:
            self.sink = (
                DesktopNotificationSink() if self.config.notifications else NullNotificationSink()
            )

        console.print(
            Panel(
                f"[bold]{_markup('tulip', THEME.primary)}[/bold] v{_get_version()}\n"
                f"Server: {_markup(self.config.site, THEME.accent)}\n"
                f"User: {_markup(self.config.email, THEME.accent)}\n"
                "Type [bold]help[/bold] for commands, [bold]quit[/bold] to leave.",
                border_style=THEME.border,
            )
        )

        consumer = asyncio.create_task(fan_out(self.channel, self.render, self.sink))
        try:
            with patch_stdout(raw=True):
                await self.connect()
                while True:
                    try:
                        line = await prompt_session.prompt_async(
                            HTML(f"<style fg='{THEME.prompt}'>{self.config.prompt}</style> ")
                        )
                    except (EOFError, KeyboardInterrupt):
                        break

                    try:
                        command = parse_command(line)
                    except CommandError as exc:
                        await self.channel.put(Failure(str(exc)))
                        continue
                    if command is None:
                        continue
                    if not await self.execute(command):
                        break
        finally:
            await self.disconnect(quiet=True)
            if self._background:
                await asyncio.gather(*self._background, return_exceptions=True)
            await self.channel.close()
            await consumer
            if self._client is not None:
                await self._client.aclose()
            console.print(_markup("Goodbye!", THEME.muted))


async def run_interactive(config: ClientConfig) -> None:
    """Run an interactive REPL session."""
    interactive = InteractiveSession(config)
    await interactive.run()
