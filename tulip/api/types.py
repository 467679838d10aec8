"""Wire types for the messaging service's event API."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Flag, StrEnum
from typing import Any

from ..errors import DecodingError


class EventMask(Flag):
    """Event types a queue is registered for."""

    NONE = 0
    MESSAGE = 1
    SUBSCRIPTIONS = 2
    REALM_USER = 4
    POINTER = 8

    def wire_names(self) -> list[str]:
        """Return the ``event_types`` list for a register call.

        An empty mask means every supported event type.
        """
        mask = self or (
            EventMask.MESSAGE | EventMask.SUBSCRIPTIONS | EventMask.REALM_USER | EventMask.POINTER
        )
        names: list[str] = []
        for member, name in (
            (EventMask.MESSAGE, "message"),
            (EventMask.SUBSCRIPTIONS, "subscriptions"),
            (EventMask.REALM_USER, "realm_user"),
            (EventMask.POINTER, "pointer"),
        ):
            if member in mask:
                names.append(name)
        return names


class EventKind(StrEnum):
    MESSAGE = "message"
    HEARTBEAT = "heartbeat"


class MessageKind(StrEnum):
    STREAM = "stream"
    PRIVATE = "private"


@dataclass(frozen=True)
class User:
    """Recipient of a private message."""

    full_name: str
    email: str
    id: int | None = None


@dataclass(frozen=True)
class Message:
    """A chat message as delivered by the event queue."""

    id: int
    sender_name: str
    recipient_kind: MessageKind
    content: str
    timestamp: int
    stream_name: str | None = None
    topic: str | None = None
    sender_email: str = ""
    recipients: tuple[User, ...] = ()
    content_type: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Message:
        """Decode a ``message`` payload.

        ``display_recipient`` is a stream name for stream messages and a list
        of users for private ones.
        """
        if not isinstance(data, dict):
            raise DecodingError("message payload is not an object")
        raw_kind = data.get("type")
        try:
            kind = MessageKind(raw_kind)
        except ValueError:
            raise DecodingError(f"unsupported message type: {raw_kind!r}") from None

        try:
            message_id = int(data["id"])
        except (KeyError, TypeError, ValueError):
            raise DecodingError("message has no valid id") from None

        try:
            timestamp = int(data.get("timestamp") or 0)
        except (TypeError, ValueError):
            raise DecodingError(
                f"message {message_id} has an invalid timestamp: {data.get('timestamp')!r}"
            ) from None

        display = data.get("display_recipient")
        stream_name: str | None = None
        topic: str | None = None
        recipients: tuple[User, ...] = ()
        if kind is MessageKind.STREAM:
            stream_name = display if isinstance(display, str) else ""
            topic = str(data.get("subject", data.get("topic", "")))
        elif isinstance(display, list):
            recipients = tuple(
                User(
                    full_name=str(user.get("full_name", "")),
                    email=str(user.get("email", "")),
                    id=user.get("id"),
                )
                for user in display
                if isinstance(user, dict)
            )

        return cls(
            id=message_id,
            sender_name=str(data.get("sender_full_name", "")),
            recipient_kind=kind,
            content=str(data.get("content", "")),
            timestamp=timestamp,
            stream_name=stream_name,
            topic=topic,
            sender_email=str(data.get("sender_email", "")),
            recipients=recipients,
            content_type=str(data.get("content_type", "")),
        )


@dataclass(frozen=True)
class Event:
    """Single event from a queue.

    ``kind`` is ``None`` when the wire tag was not recognised; ``raw_kind``
    keeps the tag so callers can report it. ``error`` holds the decoding
    failure for such events, or for a message payload that did not decode.
    """

    id: int
    kind: EventKind | None
    message: Message | None = None
    raw_kind: str = ""
    error: str | None = None
    extra: dict[str, Any] = field(default_factory=dict, compare=False)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Event:
        """Decode one event.

        Only a missing or non-integer ``id`` is fatal: an unknown ``type`` or
        a bad message payload is recorded on the event so the rest of the
        batch can still be processed.
        """
        if not isinstance(data, dict):
            raise DecodingError("event is not an object")
        try:
            event_id = int(data["id"])
        except (KeyError, TypeError, ValueError):
            raise DecodingError("event has no valid id") from None

        raw_kind = str(data.get("type", ""))
        try:
            kind = EventKind(raw_kind)
        except ValueError:
            return cls(
                id=event_id,
                kind=None,
                raw_kind=raw_kind,
                error=f"unsupported event type: {raw_kind!r}",
            )

        if kind is EventKind.MESSAGE:
            try:
                message = Message.from_dict(data.get("message", {}))
            except DecodingError as exc:
                return cls(id=event_id, kind=kind, raw_kind=raw_kind, error=str(exc))
            return cls(id=event_id, kind=kind, message=message, raw_kind=raw_kind)

        return cls(id=event_id, kind=kind, raw_kind=raw_kind)


def decode_events(payload: Any) -> list[Event]:
    """Decode the ``events`` array of a get-events reply."""
    if payload is None:
        return []
    if not isinstance(payload, list):
        raise DecodingError("events is not a list")
    return [Event.from_dict(item) for item in payload]
