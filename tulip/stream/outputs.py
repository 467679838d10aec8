"""Normalized outputs and the bounded channel that carries them."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from dataclasses import dataclass

from ..api.types import Message

# Small fixed capacity: producers wait on a slow consumer instead of dropping.
DEFAULT_CAPACITY = 5


@dataclass(frozen=True)
class IncomingMessage:
    """A chat message received from the event queue."""

    message: Message


@dataclass(frozen=True)
class StatusNote:
    """Informational note. ``debug`` notes are hidden unless debugging."""

    text: str
    debug: bool = False


@dataclass(frozen=True)
class Failure:
    """An error the consumer should display."""

    text: str


NormalizedOutput = IncomingMessage | StatusNote | Failure


class ChannelClosed(Exception):
    """Raised when writing to a closed OutputChannel."""


class OutputChannel:
    """Bounded, ordered, multi-producer single-consumer conduit.

    ``put`` waits while the channel is full, which is the only backpressure
    mechanism. ``close`` lets the consumer drain what is queued and then
    ends iteration.
    """

    _CLOSED = object()

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._queue: asyncio.Queue[object] = asyncio.Queue(maxsize=capacity)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def qsize(self) -> int:
        return self._queue.qsize()

    async def put(self, output: NormalizedOutput) -> None:
        if self._closed:
            raise ChannelClosed("output channel is closed")
        await self._queue.put(output)

    async def get(self) -> NormalizedOutput | None:
        """Return the next output, or None once closed and drained."""
        if self._closed and self._queue.empty():
            return None
        item = await self._queue.get()
        if item is self._CLOSED:
            return None
        return item  # type: ignore[return-value]

    def get_nowait(self) -> NormalizedOutput | None:
        """Return a queued output without waiting, or None when empty."""
        try:
            item = self._queue.get_nowait()
        except asyncio.QueueEmpty:
            return None
        if item is self._CLOSED:
            return None
        return item  # type: ignore[return-value]

    async def close(self) -> None:
        """Stop accepting writes and wake the consumer (idempotent)."""
        if self._closed:
            return
        self._closed = True
        await self._queue.put(self._CLOSED)

    async def __aiter__(self) -> AsyncIterator[NormalizedOutput]:
        while True:
            item = await self.get()
            if item is None:
                return
            yield item
