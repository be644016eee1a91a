"""Web package: HTTP control API and push stream."""

from .protocol import Request, Response, RequestError
from .routes import dispatch
from .server import EngineBridge, EventStream, WebServer

__all__ = [
    "Request",
    "Response",
    "RequestError",
    "dispatch",
    "EngineBridge",
    "EventStream",
    "WebServer",
]
