"""HTTP server for remote timer displays.

Serves the control API and the push stream from a threaded
``http.server``.  Request threads never touch the engine directly: every
route runs on the Qt thread through :class:`EngineBridge`, so a request
is handled between ticks and never races a mutation.

Endpoints:
    GET  /state, /config                     - pull snapshots
    GET  /control, /set, /add, /subtract,
         /setaux, /speak, /clear_speech_request
    POST /control                            - JSON {action, time?}
    GET  /events                             - Server-Sent Events push stream

Usage:
    server = WebServer(surface, channel)
    server.start("0.0.0.0", 8880)
"""

from __future__ import annotations

import logging
import queue
import threading
from concurrent.futures import Future, TimeoutError as FutureTimeout
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Callable

from PyQt6.QtCore import QObject, Qt, pyqtSignal

from ..channel.state_channel import ObserverGone, StateChannel
from ..control import ControlSurface
from .protocol import (
    KEEPALIVE_FRAME,
    MAX_BODY_BYTES,
    SSE_HEADERS,
    Request,
    RequestError,
    Response,
    sse_frame,
)
from .routes import EVENTS_ENDPOINT, dispatch


logger = logging.getLogger(__name__)

CALL_TIMEOUT_S = 5.0
KEEPALIVE_S = 15.0


# ── thread hand-off ──────────────────────────────────────────────────────


class EngineBridge(QObject):
    """Run callables on the thread that owns this object (the Qt thread).

    Request threads use :meth:`call` to wait for a result and :meth:`post`
    to fire and forget.  Work is delivered through a queued signal, so it
    only runs while the Qt event loop is processing events.
    """

    _submitted = pyqtSignal(object, object)

    def __init__(self, parent: QObject | None = None) -> None:
        super().__init__(parent)
        self._owner = threading.get_ident()
        self._submitted.connect(self._run, Qt.ConnectionType.QueuedConnection)

    def call(self, fn: Callable[[], Any], timeout: float = CALL_TIMEOUT_S) -> Any:
        if threading.get_ident() == self._owner:
            return fn()
        future: Future = Future()
        self._submitted.emit(fn, future)
        return future.result(timeout)

    def post(self, fn: Callable[[], Any]) -> None:
        self._submitted.emit(fn, None)

    def _run(self, fn: Callable[[], Any], future: Future | None) -> None:
        if future is None:
            fn()
            return
        if not future.set_running_or_notify_cancel():
            return
        try:
            future.set_result(fn())
        except Exception as exc:
            future.set_exception(exc)


# ── push stream ──────────────────────────────────────────────────────────


class EventStream:
    """Channel observer that queues SSE frames for one client thread.

    The channel calls it on the Qt thread; the request thread drains the
    queue with :meth:`frames`.
    """

    def __init__(self) -> None:
        self._frames: queue.Queue[bytes | None] = queue.Queue()
        self._closed = threading.Event()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def __call__(self, event: str, payload: dict) -> None:
        if self._closed.is_set():
            raise ObserverGone("client disconnected")
        self._frames.put(sse_frame(event, payload))

    def close(self) -> None:
        self._closed.set()
        self._frames.put(None)

    def frames(self, keepalive: float = KEEPALIVE_S):
        """Yield queued frames, or a keep-alive comment after *keepalive* idle seconds."""
        while not self._closed.is_set():
            try:
                frame = self._frames.get(timeout=keepalive)
            except queue.Empty:
                frame = KEEPALIVE_FRAME
            if frame is None:
                return
            yield frame


# ── HTTP ─────────────────────────────────────────────────────────────────


class DisplayRequestHandler(BaseHTTPRequestHandler):
    """One HTTP/1.1 connection; keep-alive and ``Expect: 100-continue``
    come from ``BaseHTTPRequestHandler``."""

    protocol_version = "HTTP/1.1"
    server: "DisplayHTTPServer"

    def log_message(self, format, *args):
        logger.debug("%s - %s", self.address_string(), format % args)

    def do_GET(self):
        request = self._read_request()
        if request is None:
            return
        if request.endpoint == EVENTS_ENDPOINT:
            self._stream_events()
        else:
            self._dispatch(request)

    def do_POST(self):
        request = self._read_request()
        if request is not None:
            self._dispatch(request)

    def do_OPTIONS(self):
        request = self._read_request()
        if request is not None:
            self._dispatch(request)

    # ── request body ──────────────────────────────────────────────────

    def _read_request(self) -> Request | None:
        try:
            body = self._read_body()
        except RequestError as exc:
            logger.info("bad request from %s: %s", self.address_string(), exc)
            self.close_connection = True
            self._send(Response(400, {"error": str(exc)}))
            return None
        return Request.from_target(
            self.command, self.path, dict(self.headers.items()), body
        )

    def _read_body(self) -> bytes:
        if "chunked" in self.headers.get("Transfer-Encoding", "").lower():
            return self._read_chunked()
        try:
            length = int(self.headers.get("Content-Length") or 0)
        except ValueError:
            raise RequestError("bad Content-Length") from None
        if not 0 <= length <= MAX_BODY_BYTES:
            raise RequestError("bad Content-Length")
        return self.rfile.read(length) if length else b""

    def _read_chunked(self) -> bytes:
        chunks: list[bytes] = []
        total = 0
        while True:
            size_line = self.rfile.readline(MAX_BODY_BYTES)
            try:
                size = int(size_line.split(b";", 1)[0].strip(), 16)
            except ValueError:
                raise RequestError("bad chunk size") from None
            if size == 0:
                break
            total += size
            if total > MAX_BODY_BYTES:
                raise RequestError("request body too large")
            chunks.append(self.rfile.read(size))
            self.rfile.readline()
        # trailer section ends at the first empty line
        while self.rfile.readline(MAX_BODY_BYTES) not in (b"\r\n", b"\n", b""):
            pass
        return b"".join(chunks)

    # ── responses ─────────────────────────────────────────────────────

    def _dispatch(self, request: Request) -> None:
        logger.debug("%s %s", request.method, request.path)
        surface = self.server.surface
        try:
            response = self.server.bridge.call(lambda: dispatch(surface, request))
        except FutureTimeout:
            logger.warning("%s %s timed out waiting for the timer",
                           request.method, request.path)
            response = Response(503, {"error": "timer not responding"})
        self._send(response)

    def _send(self, response: Response) -> None:
        payload = response.body_bytes()
        self.send_response(response.status)
        for name, value in response.headers.items():
            self.send_header(name, value)
        self.send_header("Content-Length", str(len(payload)))
        self.end_headers()
        self.wfile.write(payload)

    def _stream_events(self) -> None:
        stream = EventStream()
        channel = self.server.channel
        try:
            self.server.bridge.call(lambda: channel.subscribe(stream))
        except FutureTimeout:
            logger.warning("event stream for %s timed out subscribing",
                           self.address_string())
            self._send(Response(503, {"error": "timer not responding"}))
            return
        self.server.track(stream)
        self.close_connection = True

        self.send_response(200)
        for name, value in SSE_HEADERS.items():
            self.send_header(name, value)
        self.end_headers()
        try:
            for frame in stream.frames():
                self.wfile.write(frame)
                self.wfile.flush()
        except (BrokenPipeError, ConnectionResetError):
            logger.debug("event stream client %s went away", self.address_string())
        finally:
            stream.close()
            self.server.untrack(stream)
            self.server.bridge.post(lambda: channel.unsubscribe(stream))


class DisplayHTTPServer(ThreadingHTTPServer):
    """``ThreadingHTTPServer`` carrying the objects the handlers need."""

    daemon_threads = True
    block_on_close = False
    allow_reuse_port = False

    def __init__(
        self,
        address: tuple[str, int],
        surface: ControlSurface,
        channel: StateChannel,
        bridge: EngineBridge,
    ) -> None:
        self.surface = surface
        self.channel = channel
        self.bridge = bridge
        self._streams: set[EventStream] = set()
        self._streams_lock = threading.Lock()
        super().__init__(address, DisplayRequestHandler)

    @property
    def stream_count(self) -> int:
        with self._streams_lock:
            return len(self._streams)

    def track(self, stream: EventStream) -> None:
        with self._streams_lock:
            self._streams.add(stream)

    def untrack(self, stream: EventStream) -> None:
        with self._streams_lock:
            self._streams.discard(stream)

    def close_streams(self) -> None:
        with self._streams_lock:
            streams = list(self._streams)
        for stream in streams:
            stream.close()


class WebServer(QObject):
    """Own the HTTP server thread for one control surface and channel."""

    def __init__(
        self,
        surface: ControlSurface,
        channel: StateChannel,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._surface = surface
        self._channel = channel
        self._bridge = EngineBridge(self)
        self._httpd: DisplayHTTPServer | None = None
        self._thread: threading.Thread | None = None

    # ── lifecycle ─────────────────────────────────────────────────────

    @property
    def is_listening(self) -> bool:
        return self._httpd is not None

    @property
    def port(self) -> int:
        return self._httpd.server_address[1] if self._httpd is not None else 0

    @property
    def stream_count(self) -> int:
        return self._httpd.stream_count if self._httpd is not None else 0

    def start(self, host: str = "0.0.0.0", port: int = 8880) -> bool:
        if self._httpd is not None:
            logger.warning("web server already running on port %d", self.port)
            return True
        try:
            self._httpd = DisplayHTTPServer(
                (host, port), self._surface, self._channel, self._bridge
            )
        except OSError as exc:
            logger.error("could not listen on %s:%d: %s", host, port, exc)
            return False
        self._thread = threading.Thread(
            target=self._httpd.serve_forever, name="WebServer", daemon=True
        )
        self._thread.start()
        logger.info("web server listening on %s:%d", host, self.port)
        return True

    def stop(self) -> None:
        """Stop accepting, end every event stream, then close the socket."""
        if self._httpd is None:
            return
        self._httpd.shutdown()
        self._httpd.close_streams()
        self._httpd.server_close()
        self._thread.join(timeout=2.0)
        self._httpd = None
        self._thread = None
        logger.info("web server stopped")
