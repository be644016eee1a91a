"""Request routing for the control and query API.

Routing is keyed on the last path segment so the same table works both
at the server root (``/state``) and mounted under a host prefix
(``/instance/countdown/state``).
"""

from __future__ import annotations

import json
import logging

from ..control import ControlSurface, ValidationError
from .protocol import JSON_HEADERS, Request, Response


logger = logging.getLogger(__name__)

EVENTS_ENDPOINT = "events"

AVAILABLE_ENDPOINTS = [
    "GET /state - Get current timer state",
    "GET /config - Get current configuration",
    "GET /control?action=start|pause|stop - Control timer",
    "POST /control {action, time?} - Control timer",
    "GET /set?time=HH:MM:SS - Set timer",
    "GET /add?time=HH:MM:SS - Add time",
    "GET /subtract?time=HH:MM:SS - Subtract time",
    "GET /setaux?field=top|bottom|middle&text=... - Set aux text",
    "GET /speak?field=timer|top_aux|bottom_aux|middle_aux|custom&custom_text=... - Trigger speech",
    "GET /clear_speech_request - Clear pending speech request",
    "GET /events - Server-Sent Events stream of state changes",
]


def dispatch(surface: ControlSurface, request: Request) -> Response:
    """Run *request* against *surface* and build the response."""
    endpoint = request.endpoint
    if request.method == "OPTIONS":
        return Response(204, None, {
            **JSON_HEADERS,
            "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
            "Access-Control-Allow-Headers": "Content-Type",
        })
    try:
        if request.method == "GET":
            handler = _GET_ROUTES.get(endpoint)
            if handler is not None:
                return Response(200, handler(surface, request))
        elif request.method == "POST" and endpoint == "control":
            return Response(200, _post_control(surface, request))
    except ValidationError as exc:
        logger.info("rejected %s %s: %s", request.method, request.path, exc.message)
        return Response(400, exc.to_dict())

    return Response(404, {
        "status": 404,
        "error": f"API endpoint {endpoint} not found",
        "available_endpoints": AVAILABLE_ENDPOINTS,
    })


# ── handlers ─────────────────────────────────────────────────────────────


def _post_control(surface: ControlSurface, request: Request) -> dict:
    try:
        body = json.loads(request.body or b"{}")
    except (UnicodeDecodeError, json.JSONDecodeError):
        raise ValidationError("invalid json", "Invalid JSON body") from None
    if not isinstance(body, dict):
        raise ValidationError("invalid json", "Invalid JSON body")
    return surface.control(body.get("action"), body.get("time"))


_GET_ROUTES = {
    "state": lambda s, r: s.get_state(),
    "config": lambda s, r: s.get_config(),
    "control": lambda s, r: s.control(r.query.get("action")),
    "set": lambda s, r: s.set(r.query.get("time")),
    "add": lambda s, r: s.add(r.query.get("time")),
    "subtract": lambda s, r: s.subtract(r.query.get("time")),
    "setaux": lambda s, r: s.set_aux(r.query.get("field"), r.query.get("text", "")),
    "speak": lambda s, r: s.speak(r.query.get("field"), r.query.get("custom_text")),
    "clear_speech_request": lambda s, r: s.clear_speech_request(),
}
