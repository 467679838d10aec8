"""Outgoing message senders that report results on the output channel."""

from __future__ import annotations

import logging
from typing import Protocol

from .errors import ApiError
from .stream.outputs import Failure, OutputChannel, StatusNote

logger = logging.getLogger(__name__)


class MessageSender(Protocol):
    async def send_stream_message(self, stream: str, topic: str, content: str) -> int: ...

    async def send_private_message(self, to: list[str], content: str, topic: str = "") -> int: ...


class OutgoingSender:
    """Sends messages and writes the outcome to ``channel``.

    Errors never propagate: they become ``Failure`` outputs so the REPL keeps
    running.
    """

    def __init__(self, client: MessageSender, channel: OutputChannel) -> None:
        self._client = client
        self._channel = channel

    async def send_stream(self, stream: str, topic: str, content: str) -> int | None:
        """Send to ``stream`` under ``topic``; return the message id on success."""
        try:
            message_id = await self._client.send_stream_message(stream, topic, content)
        except (ApiError, ValueError) as exc:
            logger.debug("Stream message to %s failed: %s", stream, exc)
            await self._channel.put(Failure(str(exc)))
            return None
        await self._channel.put(
            StatusNote(f"Stream message sent: got message ID {message_id}", debug=True)
        )
        return message_id

    async def send_private(self, to: list[str], content: str) -> int | None:
        """Send a private message to the given email addresses."""
        recipients = [address.strip() for address in to if address.strip()]
        if not recipients:
            await self._channel.put(Failure("At least one recipient email address is required"))
            return None
        try:
            message_id = await self._client.send_private_message(recipients, content)
        except (ApiError, ValueError) as exc:
            logger.debug("Private message to %s failed: %s", ",".join(recipients), exc)
            await self._channel.put(Failure(str(exc)))
            return None
        await self._channel.put(
            StatusNote(f"Private message sent: got message ID {message_id}", debug=True)
        )
        return message_id
