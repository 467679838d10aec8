from __future__ import annotations

import asyncio

import pytest

from tulip.api.types import Message, MessageKind
from tulip.errors import ApiError
from tulip.notifications import DesktopNotificationSink, fan_out, notification_for
from tulip.outgoing import OutgoingSender
from tulip.stream import Failure, IncomingMessage, NormalizedOutput, OutputChannel, StatusNote


class FakeSender:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.sent: list[tuple[str, ...]] = []

    async def send_stream_message(self, stream: str, topic: str, content: str) -> int:
        if self.error:
            raise self.error
        self.sent.append((stream, topic, content))
        return 77

    async def send_private_message(self, to: list[str], content: str, topic: str = "") -> int:
        if self.error:
            raise self.error
        self.sent.append((",".join(to), content))
        return 78


class RecordingSink:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.delivered: list[Message] = []

    async def deliver(self, message: Message) -> None:
        self.delivered.append(message)
        if self.fail:
            raise RuntimeError("notification daemon not running")


class FakeNotifier:
    def __init__(self) -> None:
        self.calls: list[dict[str, str]] = []

    async def send(self, **kwargs: str) -> None:
        self.calls.append(kwargs)


STREAM_MESSAGE = Message(
    id=1,
    sender_name="Ada Lovelace",
    recipient_kind=MessageKind.STREAM,
    content="engine works",
    timestamp=0,
    stream_name="general",
    topic="progress",
)
PRIVATE_MESSAGE = Message(
    id=2,
    sender_name="Charles Babbage",
    recipient_kind=MessageKind.PRIVATE,
    content="lunch?",
    timestamp=0,
)


@pytest.mark.asyncio
async def test_send_stream_reports_message_id() -> None:
    client = FakeSender()
    channel = OutputChannel()

    assert await OutgoingSender(client, channel).send_stream("general", "lunch", "tacos") == 77

    assert client.sent == [("general", "lunch", "tacos")]
    assert channel.get_nowait() == StatusNote("Stream message sent: got message ID 77", debug=True)


@pytest.mark.asyncio
async def test_send_failure_becomes_failure_output() -> None:
    channel = OutputChannel()
    sender = OutgoingSender(FakeSender(ApiError("API call returned error: Stream does not exist")), channel)

    assert await sender.send_stream("nowhere", "t", "hi") is None
    assert channel.get_nowait() == Failure("API call returned error: Stream does not exist")


@pytest.mark.asyncio
async def test_send_private_strips_recipients() -> None:
    client = FakeSender()
    channel = OutputChannel()

    await OutgoingSender(client, channel).send_private([" a@example.com", "", "b@example.com "], "hi")

    assert client.sent == [("a@example.com,b@example.com", "hi")]


@pytest.mark.asyncio
async def test_send_private_without_recipients() -> None:
    client = FakeSender()
    channel = OutputChannel()

    assert await OutgoingSender(client, channel).send_private([" "], "hi") is None
    assert client.sent == []
    assert isinstance(channel.get_nowait(), Failure)


def test_notification_titles() -> None:
    assert notification_for(STREAM_MESSAGE) == ("general > progress", "engine works")
    assert notification_for(PRIVATE_MESSAGE) == ("Private message from Charles Babbage", "lunch?")


@pytest.mark.asyncio
async def test_desktop_sink_sends_title_and_content() -> None:
    notifier = FakeNotifier()
    sink = DesktopNotificationSink(notifier=notifier)  # type: ignore[arg-type]

    await sink.deliver(PRIVATE_MESSAGE)

    assert notifier.calls == [{"title": "Private message from Charles Babbage", "message": "lunch?"}]


@pytest.mark.asyncio
async def test_fan_out_renders_everything_and_notifies_messages_only() -> None:
    channel = OutputChannel()
    sink = RecordingSink()
    rendered: list[NormalizedOutput] = []

    consumer = asyncio.create_task(fan_out(channel, rendered.append, sink))
    await channel.put(StatusNote("connected"))
    await channel.put(IncomingMessage(STREAM_MESSAGE))
    await channel.put(Failure("oops"))
    await channel.close()
    await asyncio.wait_for(consumer, timeout=1.0)

    assert rendered == [StatusNote("connected"), IncomingMessage(STREAM_MESSAGE), Failure("oops")]
    assert sink.delivered == [STREAM_MESSAGE]


@pytest.mark.asyncio
async def test_fan_out_survives_failing_sink() -> None:
    channel = OutputChannel()
    sink = RecordingSink(fail=True)
    rendered: list[NormalizedOutput] = []

    async def render(output: NormalizedOutput) -> None:
        rendered.append(output)

    consumer = asyncio.create_task(fan_out(channel, render, sink))
    await channel.put(IncomingMessage(STREAM_MESSAGE))
    await channel.put(IncomingMessage(PRIVATE_MESSAGE))
    await channel.close()
    await asyncio.wait_for(consumer, timeout=1.0)

    assert len(rendered) == 2
    assert sink.delivered == [STREAM_MESSAGE, PRIVATE_MESSAGE]
