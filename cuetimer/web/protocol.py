"""Framework-neutral request/response records shared by the HTTP server
and hosts that route HTTP to the plugin themselves.

Wire framing belongs to ``http.server``; this module only holds the
records :func:`~cuetimer.web.routes.dispatch` works on, the common
headers and Server-Sent Events framing.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import parse_qs, unquote, urlsplit


MAX_BODY_BYTES = 64 * 1024

JSON_HEADERS = {
    "Content-Type": "application/json",
    "Cache-Control": "no-cache",
    "Access-Control-Allow-Origin": "*",
}

SSE_HEADERS = {
    "Content-Type": "text/event-stream",
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "Access-Control-Allow-Origin": "*",
}

KEEPALIVE_FRAME = b": keep-alive\n\n"


class RequestError(ValueError):
    """The request body cannot be read."""


@dataclass
class Request:
    method: str
    path: str
    query: dict[str, str] = field(default_factory=dict)
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    @classmethod
    def from_target(
        cls,
        method: str,
        target: str,
        headers: dict[str, str] | None = None,
        body: bytes = b"",
    ) -> "Request":
        """Build a request from a raw request target such as ``/set?time=...``."""
        url = urlsplit(target)
        query = {
            key: values[0]
            for key, values in parse_qs(url.query, keep_blank_values=True).items()
        }
        return cls(
            method=method.upper(),
            path=unquote(url.path) or "/",
            query=query,
            headers={k.lower(): v for k, v in (headers or {}).items()},
            body=body,
        )

    @property
    def endpoint(self) -> str:
        """Last path segment, lower-cased: ``/instance/cue/State`` → ``state``."""
        parts = [p for p in self.path.split("/") if p]
        return parts[-1].lower() if parts else ""


@dataclass
class Response:
    status: int
    body: Any = None
    headers: dict[str, str] = field(default_factory=lambda: dict(JSON_HEADERS))

    def body_bytes(self) -> bytes:
        if self.body is None:
            return b""
        if isinstance(self.body, bytes):
            return self.body
        return json.dumps(self.body).encode("utf-8")


def sse_frame(event: str, payload: Any) -> bytes:
    return f"event: {event}\ndata: {json.dumps(payload)}\n\n".encode("utf-8")
