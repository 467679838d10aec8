"""Client and wire types for the messaging service API."""

from .client import ZulipClient
from .types import Event, EventKind, EventMask, Message, MessageKind, User, decode_events

__all__ = [
    "Event",
    "EventKind",
    "EventMask",
    "Message",
    "MessageKind",
    "User",
    "ZulipClient",
    "decode_events",
]
