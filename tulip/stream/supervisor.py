"""Session supervisor: owns the event queue lifecycle.

The supervisor registers a queue, runs one ``Fetcher`` against it, and
re-registers when the fetcher reports a transient failure. A registration
failure ends the attempt and returns the supervisor to ``IDLE``; only an
explicit ``start()`` tries again.

Usage::

    channel = OutputChannel()
    handle = start(context, channel)
    async for output in channel:
        ...
    await handle.stop()
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import StrEnum

from ..api.client import ZulipClient
from ..api.types import EventMask
from ..config import Context
from .cancellation import StopSignal
from .classify import describe_error
from .fetcher import EventSource, Fetcher, FetchOutcome
from .outputs import Failure, OutputChannel, StatusNote
from .session import Session

logger = logging.getLogger(__name__)


class SupervisorState(StrEnum):
    IDLE = "idle"
    REGISTERING = "registering"
    POLLING = "polling"
    RESTARTING = "restarting"
    CLOSING = "closing"
    CLOSED = "closed"


@dataclass(frozen=True)
class ReconnectPolicy:
    """How the supervisor reacts to consecutive transient fetch failures.

    The default re-registers immediately and without limit. ``max_restarts``
    caps consecutive restarts (a successful batch resets the count);
    ``restart_delay`` sleeps before each re-registration, cut short by stop.
    """

    max_restarts: int | None = None
    restart_delay: float = 0.0


class SessionSupervisor:
    """State machine driving register → poll → restart → close."""

    def __init__(
        self,
        source: EventSource,
        channel: OutputChannel,
        *,
        event_mask: EventMask = EventMask.MESSAGE,
        policy: ReconnectPolicy | None = None,
    ) -> None:
        self._source = source
        self._channel = channel
        self._event_mask = event_mask
        self._policy = policy or ReconnectPolicy()
        self._state = SupervisorState.IDLE
        self._stop = StopSignal()
        self._restart: asyncio.Queue[int] = asyncio.Queue()
        self._generation = 0
        self._fetch_task: asyncio.Task[FetchOutcome] | None = None

    @property
    def state(self) -> SupervisorState:
        return self._state

    @property
    def generation(self) -> int:
        return self._generation

    def request_stop(self) -> bool:
        """Fire the stop signal; return False if already closing or closed."""
        if self._state in (SupervisorState.CLOSING, SupervisorState.CLOSED):
            return False
        self._stop.set()
        return True

    async def run(self) -> SupervisorState:
        """Run until stopped or registration fails; return the final state."""
        if self._state is not SupervisorState.IDLE:
            raise RuntimeError(f"supervisor cannot start from {self._state}")
        restarts = 0
        try:
            while True:
                session = await self._register()
                if session is None:
                    return self._state

                self._set_state(SupervisorState.POLLING)
                start_cursor = session.cursor
                fetcher = Fetcher(self._source, session, self._channel, self._stop, self._restart)
                self._fetch_task = asyncio.create_task(fetcher.run())
                outcome = await self._await_fetcher()
                self._fetch_task = None

                if outcome is not FetchOutcome.FAILED or self._stop.is_set():
                    await self._close()
                    return self._state

                self._set_state(SupervisorState.RESTARTING)
                restarts = 0 if fetcher.cursor > start_cursor else restarts + 1
                if self._policy.max_restarts is not None and restarts > self._policy.max_restarts:
                    await self._channel.put(
                        Failure(f"Giving up after {restarts - 1} reconnection attempts")
                    )
                    self._set_state(SupervisorState.IDLE)
                    return self._state
                if self._policy.restart_delay > 0 and await self._sleep_or_stop(
                    self._policy.restart_delay
                ):
                    await self._close()
                    return self._state
        except asyncio.CancelledError:
            self._stop.set()
            await self._cancel_fetcher()
            self._set_state(SupervisorState.CLOSED)
            raise

    async def _register(self) -> Session | None:
        """Register a new queue, honouring stop requests that arrive meanwhile."""
        if self._stop.is_set():
            await self._close()
            return None
        self._set_state(SupervisorState.REGISTERING)
        request = asyncio.create_task(self._source.register(self._event_mask))
        stopped = asyncio.create_task(self._stop.wait())
        try:
            await asyncio.wait({request, stopped}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            stopped.cancel()
        if self._stop.is_set():
            request.cancel()
            await asyncio.gather(request, return_exceptions=True)
            await self._close()
            return None

        try:
            queue_id, cursor = request.result()
        except Exception as exc:
            reason = describe_error(exc)
            logger.warning("Queue registration failed: %s", reason)
            await self._channel.put(Failure(f"Cannot register: {reason}"))
            self._set_state(SupervisorState.IDLE)
            return None

        self._generation += 1
        _drain(self._restart)
        session = Session(queue_id=queue_id, cursor=cursor, generation=self._generation)
        await self._channel.put(
            StatusNote(f"Queue {queue_id} obtained, waiting for messages...", debug=True)
        )
        return session

    async def _await_fetcher(self) -> FetchOutcome:
        """Wait for a restart request, a stop signal or the fetcher exiting."""
        assert self._fetch_task is not None
        restart = asyncio.create_task(self._restart.get())
        stopped = asyncio.create_task(self._stop.wait())
        try:
            await asyncio.wait(
                {self._fetch_task, restart, stopped},
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            restart.cancel()
            stopped.cancel()
        # A fetcher still writing a batch must not deliver anything after stop.
        if self._stop.is_set():
            self._set_state(SupervisorState.CLOSING)
            if not self._fetch_task.done():
                self._fetch_task.cancel()
        try:
            return await self._fetch_task
        except asyncio.CancelledError:
            if self._stop.is_set():
                return FetchOutcome.CANCELLED
            raise
        except Exception as exc:
            logger.exception("Fetcher crashed")
            await self._channel.put(Failure(describe_error(exc)))
            return FetchOutcome.FAILED

    async def _cancel_fetcher(self) -> None:
        task = self._fetch_task
        self._fetch_task = None
        if task is None or task.done():
            return
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)

    async def _sleep_or_stop(self, delay: float) -> bool:
        """Sleep for ``delay`` seconds; return True if stop fired first."""
        try:
            await asyncio.wait_for(self._stop.wait(), timeout=delay)
        except asyncio.TimeoutError:
            return False
        return True

    async def _close(self) -> None:
        self._set_state(SupervisorState.CLOSING)
        await self._cancel_fetcher()
        _drain(self._restart)
        self._set_state(SupervisorState.CLOSED)

    def _set_state(self, state: SupervisorState) -> None:
        if state is not self._state:
            logger.debug("Supervisor %s -> %s", self._state, state)
            self._state = state


def _drain(queue: asyncio.Queue[int]) -> None:
    while not queue.empty():
        queue.get_nowait()


class SessionHandle:
    """Handle for a running supervisor.

    ``stop()`` is the only control; ``state``, ``done()`` and ``wait()`` are
    read-only views of the background task.
    """

    def __init__(self, supervisor: SessionSupervisor, task: asyncio.Task[SupervisorState]) -> None:
        self._supervisor = supervisor
        self._task = task

    @property
    def state(self) -> SupervisorState:
        return self._supervisor.state

    def done(self) -> bool:
        return self._task.done()

    async def stop(self) -> None:
        """Stop the session and wait for it to finish (idempotent)."""
        self._supervisor.request_stop()
        await asyncio.gather(self._task, return_exceptions=True)

    async def wait(self) -> SupervisorState:
        """Wait for the supervisor to exit on its own; return its final state."""
        return await self._task


def start(
    context: Context,
    channel: OutputChannel,
    *,
    source: EventSource | None = None,
    event_mask: EventMask = EventMask.MESSAGE,
    policy: ReconnectPolicy | None = None,
) -> SessionHandle:
    """Start receiving events in the background.

    With no ``source`` a ``ZulipClient`` is built from ``context`` and closed
    when the session ends.
    """
    owned = source is None
    event_source: EventSource = source if source is not None else ZulipClient(context)
    supervisor = SessionSupervisor(event_source, channel, event_mask=event_mask, policy=policy)

    async def _run() -> SupervisorState:
        try:
            return await supervisor.run()
        finally:
            if owned:
                await event_source.aclose()  # type: ignore[attr-defined]

    return SessionHandle(supervisor, asyncio.create_task(_run()))
