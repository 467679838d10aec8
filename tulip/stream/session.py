"""Per-generation queue session."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class Session:
    """A registered queue and its read position.

    Created by the supervisor on every (re)registration and handed to exactly
    one fetcher. ``cursor`` only moves forward.
    """

    queue_id: str
    cursor: int
    generation: int

    def advance(self, event_id: int) -> int:
        """Move the cursor to ``event_id`` if it is newer; return the cursor."""
        if event_id > self.cursor:
            self.cursor = event_id
        return self.cursor
