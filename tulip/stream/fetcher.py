"""Long-poll loop for one queue generation."""

from __future__ import annotations

import asyncio
import logging
from enum import StrEnum
from typing import Protocol

from ..api.types import Event, EventKind, EventMask
from .cancellation import StopSignal
from .classify import ErrorClass, classify_error, describe_error
from .outputs import Failure, IncomingMessage, OutputChannel, StatusNote
from .session import Session

logger = logging.getLogger(__name__)


class EventSource(Protocol):
    """The two remote calls the session manager needs."""

    async def register(self, event_mask: EventMask = ...) -> tuple[str, int]:
        """Create a queue; return ``(queue_id, last_event_id)``."""
        ...

    async def get_events(
        self, queue_id: str, last_event_id: int, dont_block: bool = ...
    ) -> list[Event]:
        """Return events newer than ``last_event_id``, blocking server-side."""
        ...


class FetchOutcome(StrEnum):
    STOPPED = "stopped"  # stop signal seen before a request
    CANCELLED = "cancelled"  # in-flight request aborted by stop
    FAILED = "failed"  # transient error, restart requested


class Fetcher:
    """Drives the blocking poll loop for exactly one Session generation.

    The only shared effects are writes to ``channel`` and, on a transient
    failure, the session's generation number pushed onto ``restart``.
    """

    def __init__(
        self,
        source: EventSource,
        session: Session,
        channel: OutputChannel,
        stop: StopSignal,
        restart: asyncio.Queue[int],
    ) -> None:
        self._source = source
        self._session = session
        self._channel = channel
        self._stop = stop
        self._restart = restart

    @property
    def cursor(self) -> int:
        return self._session.cursor

    async def run(self) -> FetchOutcome:
        """Poll until stopped or a transient error occurs."""
        session = self._session
        while True:
            if self._stop.is_set():
                await self._channel.put(StatusNote("closing", debug=True))
                logger.debug("Fetcher for %s stopped", session.queue_id)
                return FetchOutcome.STOPPED

            try:
                events = await self._fetch(session.queue_id, session.cursor)
            except asyncio.CancelledError:
                if not self._stop.is_set():
                    raise
                logger.debug("Request for %s canceled", session.queue_id)
                return FetchOutcome.CANCELLED
            except Exception as exc:
                # Without a stop request even a "request canceled" error is transient.
                if self._stop.is_set():
                    if classify_error(exc) is ErrorClass.CANCELLATION:
                        logger.debug("Request for %s canceled", session.queue_id)
                    else:
                        logger.debug("Request for %s failed after stop: %s", session.queue_id, exc)
                    return FetchOutcome.CANCELLED
                reason = describe_error(exc)
                logger.warning("Fetching events from %s failed: %s", session.queue_id, reason)
                await self._channel.put(Failure(reason))
                await self._restart.put(session.generation)
                return FetchOutcome.FAILED

            for event in events:
                if self._stop.is_set():
                    break
                session.advance(event.id)
                await self._emit(event)

    async def _fetch(self, queue_id: str, cursor: int) -> list[Event]:
        """Issue one long-poll request, aborting it if stop fires meanwhile."""
        request = asyncio.create_task(self._source.get_events(queue_id, cursor, False))
        stopped = asyncio.create_task(self._stop.wait())
        try:
            await asyncio.wait({request, stopped}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            stopped.cancel()
            if not request.done():
                request.cancel()
                await asyncio.gather(request, return_exceptions=True)
        # Raises CancelledError when the request was aborted.
        return request.result()

    async def _emit(self, event: Event) -> None:
        if event.error is not None:
            await self._channel.put(Failure(f"unsupported event: {event.error}"))
            return
        if event.kind is EventKind.HEARTBEAT:
            await self._channel.put(StatusNote("heartbeat", debug=True))
        elif event.kind is EventKind.MESSAGE and event.message is not None:
            await self._channel.put(IncomingMessage(event.message))
        else:
            await self._channel.put(Failure(f"unsupported event: {event.raw_kind!r}"))
