"""tulip: a terminal client for Zulip-compatible chat servers."""

__version__ = "0.1.0"

from .config import ClientConfig, Context
from .errors import (
    ApiError,
    CancellationError,
    ConfigError,
    DecodingError,
    RegistrationError,
    TransientFetchError,
    TulipError,
)
from .stream import (
    Failure,
    IncomingMessage,
    NormalizedOutput,
    OutputChannel,
    ReconnectPolicy,
    SessionHandle,
    StatusNote,
    start,
)

__all__ = [
    "__version__",
    "ApiError",
    "CancellationError",
    "ClientConfig",
    "ConfigError",
    "Context",
    "DecodingError",
    "Failure",
    "IncomingMessage",
    "NormalizedOutput",
    "OutputChannel",
    "ReconnectPolicy",
    "RegistrationError",
    "SessionHandle",
    "StatusNote",
    "TransientFetchError",
    "TulipError",
    "start",
]
