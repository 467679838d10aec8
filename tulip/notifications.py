"""Desktop notifications for incoming messages."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Protocol

from desktop_notifier import DesktopNotifier

from .api.types import Message, MessageKind
from .stream.outputs import IncomingMessage, NormalizedOutput, OutputChannel

logger = logging.getLogger(__name__)

RenderCallback = Callable[[NormalizedOutput], None | Awaitable[None]]


def notification_for(message: Message) -> tuple[str, str]:
    """Return the ``(title, content)`` shown for ``message``."""
    if message.recipient_kind is MessageKind.STREAM:
        return f"{message.stream_name} > {message.topic}", message.content
    return f"Private message from {message.sender_name}", message.content


class NotificationSink(Protocol):
    async def deliver(self, message: Message) -> None: ...


class NullNotificationSink:
    """Sink used when notifications are disabled."""

    async def deliver(self, message: Message) -> None:
        del message


class DesktopNotificationSink:
    """Deliver notifications through the platform notification service."""

    def __init__(self, app_name: str = "tulip", notifier: DesktopNotifier | None = None) -> None:
        self._notifier = notifier or DesktopNotifier(app_name=app_name)

    async def deliver(self, message: Message) -> None:
        title, content = notification_for(message)
        await self._notifier.send(title=title, message=content)


async def fan_out(
    channel: OutputChannel,
    render: RenderCallback,
    sink: NotificationSink | None = None,
) -> None:
    """Consume ``channel`` until closed, rendering every output.

    Only ``IncomingMessage`` outputs reach the notification sink. A failing
    sink is logged and skipped.
    """
    async for output in channel:
        result = render(output)
        if result is not None:
            await result
        if sink is None or not isinstance(output, IncomingMessage):
            continue
        try:
            await sink.deliver(output.message)
        except Exception:
            logger.debug("Notification delivery failed", exc_info=True)
