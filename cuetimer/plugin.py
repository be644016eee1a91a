"""Host-facing adapter for automation hosts that load CueTimer as a plugin.

The host owns discovery, its action/feedback/preset registries and
variable interpolation.  This module gives it what it asks for:

* lifecycle hooks ``init`` / ``config_updated`` / ``destroy``
* action callbacks keyed by action id, each taking the host's option map
* feedbacks (``state_color``, ``selected_time``)
* variable values (``timer_hms`` and friends), pushed after every change
* preset button definitions as plain data
* ``handle_http_request`` for hosts that route HTTP to their plugins

The instance is the composition root: it owns exactly one engine and wires
the channel, speech triggers, control surface and optional run journal
around it.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Mapping

from . import database
from .channel.speech import SpeechTriggers
from .channel.state_channel import StateChannel
from .control import ControlSurface, ValidationError
from .history import RunRecorder
from .settings import TimerConfig
from .timer.display import Band, classify, format_hm, format_hms, format_ms, preset_label
from .timer.engine import TimerEngine
from .web.protocol import Request, Response
from .web.routes import dispatch


logger = logging.getLogger(__name__)


# ── colours ──────────────────────────────────────────────────────────────


def combine_rgb(r: int, g: int, b: int) -> int:
    """Pack an RGB triple the way button hosts expect it."""
    return ((r & 0xFF) << 16) | ((g & 0xFF) << 8) | (b & 0xFF)


WHITE = combine_rgb(255, 255, 255)
BLACK = combine_rgb(0, 0, 0)
GREEN = combine_rgb(0, 204, 0)
AMBER = combine_rgb(255, 128, 0)
RED = combine_rgb(204, 0, 0)
BLUE = combine_rgb(0, 0, 255)

BAND_COLOURS: dict[Band, int] = {
    Band.NEUTRAL: BLACK,
    Band.NORMAL: GREEN,
    Band.AMBER: AMBER,
    Band.RED: RED,
    Band.ALERT: RED,
}

# 1 minute, then every 5 minutes up to 2 hours.
PRESET_TIMES = (60,) + tuple(range(300, 7201, 300))

VARIABLE_DEFINITIONS = {
    "timer_hms": "Timer (HH:MM:SS)",
    "timer_hm": "Timer (HH:MM)",
    "timer_ms": "Timer (MM:SS)",
    "timer_s": "Timer (seconds)",
    "top_aux_text": "Top Aux Text",
    "bottom_aux_text": "Bottom Aux Text",
    "middle_aux_text": "Middle Aux Text",
}


class CountdownInstance:
    """One timer as seen by the automation host.

    Parameters
    ----------
    set_variable_values
        Called with the full variable map after every state change.
    check_feedbacks
        Called with the feedback ids that may have changed.
    parse_variables
        The host's interpolation for user-entered text; identity by default.
    """

    def __init__(
        self,
        *,
        set_variable_values: Callable[[dict[str, str]], None] | None = None,
        check_feedbacks: Callable[..., None] | None = None,
        parse_variables: Callable[[str], str] | None = None,
    ) -> None:
        self._set_variable_values = set_variable_values
        self._check_feedbacks = check_feedbacks
        self._parse_variables = parse_variables or (lambda text: text)

        self.config: TimerConfig = TimerConfig()
        self.engine: TimerEngine | None = None
        self.channel: StateChannel | None = None
        self.surface: ControlSurface | None = None
        self.speech: SpeechTriggers | None = None
        self.recorder: RunRecorder | None = None

    # ══════════════════════════════════════════════════════════════════
    #  LIFECYCLE
    # ══════════════════════════════════════════════════════════════════

    def init(self, config: Mapping[str, Any] | TimerConfig | None = None) -> None:
        """Build the engine and everything around it.

        Calling it again tears the previous engine down first.
        """
        logger.debug("init")
        if self.engine is not None:
            self.destroy()
        self.config = _as_config(config)

        self.engine = TimerEngine()
        self.channel = StateChannel(self.engine, self.config)
        self.speech = SpeechTriggers(self.engine, self.channel)
        self.surface = ControlSurface(self.engine, self.channel)
        self._open_history()

        self.engine.state_changed.connect(self._on_state_changed)
        self.engine.phase_changed.connect(lambda _phase: self._feedbacks("state_color"))
        self._publish_variables()

    def config_updated(self, config: Mapping[str, Any] | TimerConfig) -> None:
        previous = self.config
        self.config = _as_config(config)
        if self.channel is not None:
            self.channel.config = self.config
        if self.engine is not None and (
            previous.history_enabled != self.config.history_enabled
            or previous.history_url != self.config.history_url
        ):
            self._close_history()
            self._open_history()
        self._feedbacks("state_color")

    def destroy(self) -> None:
        """Stop the tick driver and release the journal."""
        logger.debug("destroy")
        if self.engine is not None:
            self.engine.shutdown()
        self._close_history()

    def _open_history(self) -> None:
        if not self.config.history_enabled:
            return
        if self.config.history_url:
            database.configure_engine(self.config.history_url)
        database.init_db()
        self.recorder = RunRecorder(self.engine)

    def _close_history(self) -> None:
        if self.recorder is None:
            return
        self.recorder.detach()
        self.recorder = None
        database.dispose()

    # ══════════════════════════════════════════════════════════════════
    #  ACTIONS
    # ══════════════════════════════════════════════════════════════════

    def actions(self) -> dict[str, Callable[[Mapping[str, Any]], None]]:
        """Action id → callback taking the host's option map."""
        return {
            "set_timer": lambda o: self._run(self.surface.set, o.get("time")),
            "control": lambda o: self._run(self.surface.control, o.get("action")),
            "add_time": lambda o: self._run(self.surface.add, o.get("time")),
            "subtract_time": lambda o: self._run(self.surface.subtract, o.get("time")),
            "set_top_aux": lambda o: self._set_aux("top", o),
            "set_bottom_aux": lambda o: self._set_aux("bottom", o),
            "set_middle_aux": lambda o: self._set_aux("middle", o),
            "speak_text": self._speak,
        }

    def run_action(self, action_id: str, options: Mapping[str, Any]) -> None:
        callback = self.actions().get(action_id)
        if callback is None:
            logger.warning("unknown action %r", action_id)
            return
        callback(options)

    def _set_aux(self, field: str, options: Mapping[str, Any]) -> None:
        text = self._parse_variables(options.get("text") or "")
        self._run(self.surface.set_aux, field, text)

    def _speak(self, options: Mapping[str, Any]) -> None:
        field = options.get("field")
        custom = None
        if field == "custom":
            custom = self._parse_variables(options.get("custom_text") or "")
        self._run(self.surface.speak, field, custom)

    def _run(self, command: Callable[..., dict], *args: Any) -> None:
        try:
            command(*args)
        except ValidationError as exc:
            logger.warning("action rejected: %s", exc.message)

    # ══════════════════════════════════════════════════════════════════
    #  FEEDBACKS / VARIABLES / PRESETS
    # ══════════════════════════════════════════════════════════════════

    def state_color(self) -> dict[str, int]:
        band = classify(
            self.engine.phase,
            self.engine.remaining,
            self.config.amber_time,
            self.config.red_time,
        )
        return {"color": WHITE, "bgcolor": BAND_COLOURS[band]}

    def selected_time(self, seconds: int) -> bool:
        """True when *seconds* is the duration last loaded with set_timer."""
        return self.engine.last_set == seconds

    def variable_definitions(self) -> list[dict[str, str]]:
        return [
            {"variableId": variable_id, "name": name}
            for variable_id, name in VARIABLE_DEFINITIONS.items()
        ]

    def variable_values(self) -> dict[str, str]:
        state = self.engine.state()
        return {
            "timer_hms": format_hms(state.remaining),
            "timer_hm": format_hm(state.remaining),
            "timer_ms": format_ms(state.remaining),
            "timer_s": str(state.remaining),
            "top_aux_text": state.top_aux,
            "bottom_aux_text": state.bottom_aux,
            "middle_aux_text": state.middle_aux,
        }

    def presets(self) -> dict[str, dict[str, Any]]:
        presets: dict[str, dict[str, Any]] = {
            "timer_display": _button(
                "Timer Display", "Timer Display with State Colors",
                "$(internal:timer_hms)", [], feedbacks=[{"feedbackId": "state_color"}],
            ),
            "start": _button("Control", "Start Timer", "START",
                             [("control", {"action": "start"})], bgcolor=GREEN),
            "pause": _button("Control", "Pause Timer", "PAUSE",
                             [("control", {"action": "pause"})], bgcolor=AMBER),
            "stop": _button("Control", "Stop Timer", "STOP",
                            [("control", {"action": "stop"})], bgcolor=RED),
        }
        for seconds in PRESET_TIMES:
            label = preset_label(seconds)
            presets[f"set_{seconds}s"] = _button(
                "Set Timer", f"Set timer to {label}", label,
                [("set_timer", {"time": format_hms(seconds)})],
                feedbacks=[{
                    "feedbackId": "selected_time",
                    "options": {"time": seconds},
                    "style": {"bgcolor": BLUE},
                }],
            )
        presets["add_minute"] = _button(
            "Adjust Time", "Add 1 Minute", "+1 MIN",
            [("add_time", {"time": "00:01:00"})],
        )
        presets["subtract_minute"] = _button(
            "Adjust Time", "Subtract 1 Minute", "-1 MIN",
            [("subtract_time", {"time": "00:01:00"})],
        )
        return presets

    # ══════════════════════════════════════════════════════════════════
    #  HTTP
    # ══════════════════════════════════════════════════════════════════

    def handle_http_request(
        self,
        method: str,
        path: str,
        query: Mapping[str, str] | None = None,
        body: bytes | str = b"",
    ) -> dict[str, Any]:
        """Answer a request forwarded by the host's own HTTP server."""
        if isinstance(body, str):
            body = body.encode("utf-8")
        request = Request.from_target(method, path, body=body)
        request.query.update(query or {})
        logger.debug("HTTP request: %s %s", request.method, request.path)
        response: Response = dispatch(self.surface, request)
        return {
            "status": response.status,
            "headers": dict(response.headers),
            "body": response.body_bytes().decode("utf-8"),
        }

    # ══════════════════════════════════════════════════════════════════
    #  INTERNAL
    # ══════════════════════════════════════════════════════════════════

    def _on_state_changed(self) -> None:
        self._publish_variables()
        self._feedbacks("state_color", "selected_time")

    def _publish_variables(self) -> None:
        if self._set_variable_values is not None:
            self._set_variable_values(self.variable_values())

    def _feedbacks(self, *feedback_ids: str) -> None:
        if self._check_feedbacks is not None:
            self._check_feedbacks(*feedback_ids)


def _as_config(config: Mapping[str, Any] | TimerConfig | None) -> TimerConfig:
    if isinstance(config, TimerConfig):
        return config
    return TimerConfig.from_mapping(config)


def _button(
    category: str,
    name: str,
    text: str,
    steps: list[tuple[str, dict]],
    *,
    bgcolor: int = BLACK,
    feedbacks: list[dict] | None = None,
) -> dict[str, Any]:
    return {
        "type": "button",
        "category": category,
        "name": name,
        "style": {"text": text, "size": "18", "color": WHITE, "bgcolor": bgcolor},
        "steps": [{
            "down": [{"actionId": action, "options": options}
                     for action, options in steps],
            "up": [],
        }],
        "feedbacks": feedbacks or [],
    }
