"""Error taxonomy for the tulip client."""

from __future__ import annotations


class TulipError(Exception):
    """Base class for all tulip errors."""


class ApiError(TulipError):
    """Raised when a call to the messaging service fails.

    Covers transport failures, non-2xx responses and replies whose
    ``result`` field is not ``"success"``.
    """

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RegistrationError(ApiError):
    """Queue registration failed; fatal to the current session attempt."""


class TransientFetchError(ApiError):
    """Fetching events failed; the session re-registers its queue."""


class CancellationError(TulipError):
    """An in-flight request was aborted by a stop signal."""

    def __init__(self, message: str = "request canceled") -> None:
        super().__init__(message)


class DecodingError(TulipError):
    """An event or message could not be decoded (unknown kind, bad payload)."""


class ConfigError(ValueError, TulipError):
    """User-facing configuration error with an actionable message."""
