"""Async HTTP client for the messaging service's REST API.

Wraps ``httpx.AsyncClient`` with basic auth (email + API key) and the
form-encoded request style the service expects. Transport and protocol
failures surface as ``ApiError``.

Usage:
    async with ZulipClient(context) as client:
        queue_id, last_event_id = await client.register(EventMask.MESSAGE)
        events = await client.get_events(queue_id, last_event_id)
"""

from __future__ import annotations

import json
import logging
from types import TracebackType
from typing import Any

import httpx

from ..config import Context
from ..errors import ApiError, DecodingError, RegistrationError, TransientFetchError
from .types import Event, EventMask, MessageKind, decode_events

logger = logging.getLogger(__name__)

SUCCESS_RESULT = "success"

# Long-poll requests are held open by the server until an event or a
# heartbeat, so the read timeout must outlast the heartbeat interval.
DEFAULT_TIMEOUT = httpx.Timeout(connect=10.0, read=90.0, write=10.0, pool=10.0)


class ZulipClient:
    """Client for the register/events/messages endpoints."""

    def __init__(
        self,
        context: Context,
        *,
        http: httpx.AsyncClient | None = None,
        timeout: httpx.Timeout | None = None,
    ) -> None:
        self._context = context
        self._base_url = context.base_url.rstrip("/")
        self._owns_http = http is None
        self._http = http or httpx.AsyncClient(
            auth=(context.email, context.api_key),
            verify=context.secure,
            timeout=timeout or DEFAULT_TIMEOUT,
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    async def __aenter__(self) -> ZulipClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Release the connection pool if this client created it."""
        if self._owns_http:
            await self._http.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        data: dict[str, str] | None = None,
    ) -> httpx.Response:
        url = f"{self._base_url}/{path}"
        try:
            if method == "GET":
                return await self._http.request(method, url, params=data)
            return await self._http.request(method, url, data=data)
        except httpx.HTTPError as exc:
            raise ApiError(f"{method} {url} failed: {exc}") from exc

    async def _call(
        self,
        method: str,
        path: str,
        data: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """Issue a request and return the decoded JSON body of a successful reply."""
        response = await self._request(method, path, data)
        try:
            body = response.json()
        except ValueError as exc:
            # JSONDecodeError and UnicodeDecodeError
            raise ApiError(
                f"Invalid JSON from {path} (HTTP {response.status_code})",
                status_code=response.status_code,
            ) from exc
        if not isinstance(body, dict):
            raise ApiError(f"Unexpected reply from {path}", status_code=response.status_code)
        result = body.get("result")
        if result != SUCCESS_RESULT:
            raise ApiError(
                f"API call returned {result}: {body.get('msg', '')}",
                status_code=response.status_code,
            )
        return body

    async def register(
        self,
        event_mask: EventMask = EventMask.MESSAGE,
        apply_markdown: bool = False,
    ) -> tuple[str, int]:
        """Create an event queue; return ``(queue_id, last_event_id)``.

        Raises RegistrationError for any failure.
        """
        try:
            body = await self._call(
                "POST",
                "register",
                {
                    "event_types": json.dumps(event_mask.wire_names()),
                    "apply_markdown": _bool_param(apply_markdown),
                },
            )
        except ApiError as exc:
            raise RegistrationError(str(exc), status_code=exc.status_code) from exc
        queue_id = body.get("queue_id")
        if queue_id is None:
            raise RegistrationError("register reply has no queue_id")
        try:
            last_event_id = int(body.get("last_event_id", -1))
        except (TypeError, ValueError) as exc:
            raise RegistrationError(f"register reply has a bad last_event_id: {exc}") from exc
        logger.debug("Registered queue %s at event %d", queue_id, last_event_id)
        return str(queue_id), last_event_id

    async def get_events(
        self,
        queue_id: str,
        last_event_id: int,
        dont_block: bool = False,
    ) -> list[Event]:
        """Fetch events newer than ``last_event_id``.

        Unless ``dont_block`` is set the server holds the request open until
        an event arrives or its heartbeat interval elapses. Raises
        TransientFetchError for any failure.
        """
        try:
            body = await self._call(
                "GET",
                "events",
                {
                    "queue_id": queue_id,
                    "last_event_id": str(last_event_id),
                    "dont_block": _bool_param(dont_block),
                },
            )
        except ApiError as exc:
            raise TransientFetchError(str(exc), status_code=exc.status_code) from exc
        try:
            return decode_events(body.get("events"))
        except DecodingError as exc:
            raise TransientFetchError(f"Malformed events reply: {exc}") from exc

    async def _send_message(
        self,
        kind: MessageKind,
        content: str,
        to: list[str],
        topic: str,
    ) -> int:
        if kind is MessageKind.STREAM and not topic:
            raise ValueError("Subject (topic) is required when sending a stream message")
        body = await self._call(
            "POST",
            "messages",
            {
                "type": kind.value,
                "to": ",".join(to),
                "subject": topic,
                "content": content,
            },
        )
        return int(body.get("id", 0))

    async def send_stream_message(self, stream: str, topic: str, content: str) -> int:
        """Send a message to a stream topic; return the new message id."""
        return await self._send_message(MessageKind.STREAM, content, [stream], topic)

    async def send_private_message(self, to: list[str], content: str, topic: str = "") -> int:
        """Send a private message to one or more email addresses."""
        return await self._send_message(MessageKind.PRIVATE, content, to, topic)

    async def can_reach_server(self) -> None:
        """Raise ApiError unless ``generate_204`` answers with 204."""
        response = await self._request("GET", "generate_204")
        if response.status_code != 204:
            raise ApiError(
                f"{response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
            )


def _bool_param(value: bool) -> str:
    return "true" if value else "false"
