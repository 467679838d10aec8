from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from typer.testing import CliRunner

from tulip.api.types import Message, MessageKind, User
from tulip.cli import app
from tulip.cli.commands import Command, CommandError, parse_command
from tulip.cli.formatting import format_message, format_output
from tulip.cli.interactive import InteractiveSession
from tulip.config import ClientConfig
from tulip.stream import Failure, IncomingMessage, OutputChannel, StatusNote

runner = CliRunner()


def _drain(channel: OutputChannel) -> list:
    outputs = []
    while (output := channel.get_nowait()) is not None:
        outputs.append(output)
    return outputs


@pytest.mark.parametrize(
    ("line", "expected"),
    [
        ("help", Command("help")),
        ("?", Command("help")),
        ("/connect", Command("connect")),
        ("  EXIT ", Command("quit")),
        ("ping", Command("ping")),
        (
            "stream general lunch plans: who is in?",
            Command("stream", ("general", "lunch plans", "who is in?")),
        ),
        (
            "pm a@example.com,b@example.com: hi there",
            Command("private", ("a@example.com,b@example.com", "hi there")),
        ),
        ("config show", Command("config_show")),
        ("config set site https://x.test/api/v1", Command("config_set", ("site", "https://x.test/api/v1"))),
    ],
)
def test_parse_command(line: str, expected: Command) -> None:
    assert parse_command(line) == expected


def test_blank_line_is_ignored() -> None:
    assert parse_command("   ") is None
    assert parse_command("/") is None


@pytest.mark.parametrize(
    ("line", "message"),
    [
        ("dance", "Command does not exist: dance"),
        ("stream general: no topic", "Subject (topic) is required"),
        ("private a@example.com", "Usage: private"),
        ("config frobnicate", "Usage: config"),
    ],
)
def test_parse_command_errors(line: str, message: str) -> None:
    with pytest.raises(CommandError, match=message.replace("(", r"\(").replace(")", r"\)")):
        parse_command(line)


def test_format_stream_message() -> None:
    message = Message(
        id=1,
        sender_name="Ada",
        recipient_kind=MessageKind.STREAM,
        content="see [docs]",
        timestamp=0,
        stream_name="general",
        topic="help",
    )
    text = format_message(message)
    assert "general > help" in text
    assert "[bold]Ada[/bold]" in text
    assert r"see \[docs]" in text
    assert "--:--" in text


def test_format_private_message_lists_recipients() -> None:
    message = Message(
        id=2,
        sender_name="Ada",
        recipient_kind=MessageKind.PRIVATE,
        content="hi",
        timestamp=0,
        recipients=(User("Ada", "ada@example.com"), User("Bob", "bob@example.com")),
    )
    assert "private (Ada, Bob)" in format_output(IncomingMessage(message))


def test_format_output_hides_debug_notes_unless_debugging() -> None:
    note = StatusNote("heartbeat", debug=True)
    assert format_output(note) is None
    assert "DEBUG: heartbeat" in format_output(note, debug=True)
    assert "ERROR: boom" in format_output(Failure("boom"))
    assert "connected" in format_output(StatusNote("connected"))


@pytest.mark.asyncio
async def test_interactive_config_commands() -> None:
    config = ClientConfig(email="me@example.com", api_key="abcdef", site="https://chat.test/api/v1")
    channel = OutputChannel(capacity=20)
    session = InteractiveSession(config, channel=channel)

    assert await session.execute(Command("config_set", ("notifications", "off"))) is True
    assert await session.execute(Command("config_set", ("secure", "sometimes"))) is True
    assert await session.execute(Command("config_show")) is True
    assert await session.execute(Command("quit")) is False

    outputs = _drain(channel)
    assert outputs[0] == StatusNote("notifications set to off")
    assert isinstance(outputs[1], Failure)
    assert "sometimes is not a valid boolean value" in outputs[1].text
    assert "api_key" in outputs[2].text and "abcd…" in outputs[2].text
    assert config.notifications is False


@pytest.mark.asyncio
async def test_interactive_connect_and_disconnect(monkeypatch: pytest.MonkeyPatch) -> None:
    handle = MagicMock()
    handle.done.return_value = False
    handle.stop = AsyncMock()
    start = MagicMock(return_value=handle)
    monkeypatch.setattr("tulip.cli.interactive.start", start)

    config = ClientConfig(email="me@example.com", api_key="k", site="https://chat.test/api/v1")
    channel = OutputChannel(capacity=20)
    session = InteractiveSession(config, channel=channel)

    await session.execute(Command("connect"))
    await session.execute(Command("connect"))
    assert start.call_count == 1
    assert session.connected

    await session.execute(Command("disconnect"))
    handle.stop.assert_awaited_once()
    assert not session.connected

    await session.execute(Command("disconnect"))
    assert [output.text for output in _drain(channel)] == [
        "Okay, waiting for messages from https://chat.test/api/v1",
        "Already connected.",
        "Disconnected from https://chat.test/api/v1",
        "Not connected.",
    ]
    assert session._client is not None
    await session._client.aclose()


def test_main_rejects_invalid_config(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    monkeypatch.setattr("tulip.cli.main_cmd.configure_logging", lambda debug: None)
    run = AsyncMock()
    monkeypatch.setattr("tulip.cli.main_cmd.run_interactive", run)

    result = runner.invoke(app, ["--config", str(tmp_path / "missing.yaml")])

    assert result.exit_code == 2
    assert "could not be read" in result.output
    run.assert_not_called()


def test_main_builds_config_from_options(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    monkeypatch.setattr("tulip.cli.main_cmd.configure_logging", lambda debug: None)
    run = AsyncMock()
    monkeypatch.setattr("tulip.cli.main_cmd.run_interactive", run)
    config_file = tmp_path / "tulip.yaml"
    config_file.write_text("prompt: '>'\n", encoding="utf-8")

    result = runner.invoke(
        app,
        [
            "-c",
            str(config_file),
            "--email",
            "me@example.com",
            "--api-key",
            "k",
            "--site",
            "http://localhost:9991/api/v1",
            "--insecure",
            "--no-notifications",
        ],
        env={"ZULIP_EMAIL": "", "ZULIP_API_KEY": "", "TULIP_ZULIP_EMAIL": ""},
    )

    assert result.exit_code == 0, result.output
    config = run.await_args.args[0]
    assert config.email == "me@example.com"
    assert config.secure is False
    assert config.notifications is False
    assert config.prompt == ">"
