"""Cooperative stop signal shared between a supervisor and its fetcher."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone


@dataclass
class StopSignal:
    """One-shot, idempotent stop flag.

    ``is_set()`` is the non-blocking check a fetcher makes before each
    request; ``wait()`` lets a task sleep until the signal fires.
    """

    reason: str | None = None
    stopped_at: datetime | None = None
    _event: asyncio.Event = field(default_factory=asyncio.Event, repr=False)

    def set(self, reason: str = "requested") -> None:
        """Fire the signal (idempotent)."""
        if self._event.is_set():
            return
        self.reason = reason
        self.stopped_at = datetime.now(timezone.utc)
        self._event.set()

    def is_set(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        await self._event.wait()
