"""Event-stream session manager: supervisor, fetcher and output channel."""

from .cancellation import StopSignal
from .classify import ErrorClass, classify_error
from .fetcher import EventSource, Fetcher, FetchOutcome
from .outputs import (
    ChannelClosed,
    Failure,
    IncomingMessage,
    NormalizedOutput,
    OutputChannel,
    StatusNote,
)
from .session import Session
from .supervisor import (
    ReconnectPolicy,
    SessionHandle,
    SessionSupervisor,
    SupervisorState,
    start,
)

__all__ = [
    "ChannelClosed",
    "ErrorClass",
    "EventSource",
    "Failure",
    "FetchOutcome",
    "Fetcher",
    "IncomingMessage",
    "NormalizedOutput",
    "OutputChannel",
    "ReconnectPolicy",
    "Session",
    "SessionHandle",
    "SessionSupervisor",
    "StatusNote",
    "StopSignal",
    "SupervisorState",
    "classify_error",
    "start",
]
