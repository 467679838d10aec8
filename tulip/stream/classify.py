"""Fetch error classification."""

from __future__ import annotations

import asyncio
from enum import StrEnum

from ..errors import CancellationError

CANCELLED_SUFFIX = "request canceled"


class ErrorClass(StrEnum):
    CANCELLATION = "cancellation"
    TRANSIENT = "transient"


def classify_error(exc: BaseException) -> ErrorClass:
    """Classify a ``get_events`` failure.

    Aborts caused by a stop signal (task cancellation, CancellationError, or
    a transport message ending in "request canceled") are cancellations;
    everything else is transient and triggers re-registration.
    """
    if isinstance(exc, (asyncio.CancelledError, CancellationError)):
        return ErrorClass.CANCELLATION
    if str(exc).rstrip().lower().endswith(CANCELLED_SUFFIX):
        return ErrorClass.CANCELLATION
    return ErrorClass.TRANSIENT


def describe_error(exc: BaseException) -> str:
    """Human-readable reason for a Failure output."""
    text = str(exc).strip()
    return text or type(exc).__name__
