"""Control boundary between the outside world and the engine.

Host action callbacks and the HTTP API both come through
:class:`ControlSurface`.  All parsing and validation happens here: a
malformed time string or an unknown field raises :class:`ValidationError`
before the engine is touched, so the engine's own API stays total.
"""

from __future__ import annotations

import logging
import re
from typing import Any

from .channel.state_channel import StateChannel
from .timer.engine import AuxSlot, SpeechField, TimerEngine


logger = logging.getLogger(__name__)

TIME_PATTERN = re.compile(r"^(\d{2}):(\d{2}):(\d{2})$")
CONTROL_ACTIONS = ("start", "pause", "stop", "set")

INVALID_TIME = "invalid time format"
INVALID_ACTION = "invalid action"
INVALID_FIELD = "invalid field"
INVALID_SPEECH_FIELD = "invalid speech field"


class ValidationError(ValueError):
    """Rejected input.  ``kind`` is a short machine-readable label."""

    def __init__(self, kind: str, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message

    def to_dict(self) -> dict[str, str]:
        return {"error": self.message, "kind": self.kind}


def parse_time(value: Any) -> int:
    """``"HH:MM:SS"`` → seconds.  Each component must be exactly two digits."""
    match = TIME_PATTERN.fullmatch(value) if isinstance(value, str) else None
    if match is None:
        raise ValidationError(INVALID_TIME, "Invalid time format. Use HH:MM:SS")
    hours, minutes, seconds = (int(part) for part in match.groups())
    return hours * 3600 + minutes * 60 + seconds


def parse_aux_slot(value: Any) -> AuxSlot:
    try:
        return AuxSlot(value)
    except ValueError:
        raise ValidationError(
            INVALID_FIELD, "Invalid field. Use top, bottom, or middle"
        ) from None


def parse_speech_field(value: Any) -> SpeechField:
    try:
        return SpeechField(value)
    except ValueError:
        choices = ", ".join(f.value for f in SpeechField)
        raise ValidationError(
            INVALID_SPEECH_FIELD, f"Invalid speech field. Use {choices}"
        ) from None


class ControlSurface:
    """Validated commands and queries against one engine and its channel."""

    def __init__(self, engine: TimerEngine, channel: StateChannel) -> None:
        self._engine = engine
        self._channel = channel

    # ── commands ──────────────────────────────────────────────────────

    def set(self, time: Any) -> dict[str, Any]:
        seconds = parse_time(time)
        self._engine.set_timer(seconds)
        return {"success": True, "action": "set", "time": seconds}

    def control(self, action: Any, time: Any = None) -> dict[str, Any]:
        """Run ``start``, ``pause``, ``stop`` or ``set`` (which needs *time*)."""
        if action not in CONTROL_ACTIONS:
            raise ValidationError(
                INVALID_ACTION, "Invalid action. Use start, pause, stop, or set"
            )
        if action == "set":
            return self.set(time)
        getattr(self._engine, action)()
        return {"success": True, "action": action}

    def add(self, time: Any) -> dict[str, Any]:
        seconds = parse_time(time)
        self._engine.add_time(seconds)
        return {"success": True, "action": "add", "time": seconds}

    def subtract(self, time: Any) -> dict[str, Any]:
        seconds = parse_time(time)
        self._engine.subtract_time(seconds)
        return {"success": True, "action": "subtract", "time": seconds}

    def set_aux(self, field: Any, text: Any = "") -> dict[str, Any]:
        slot = parse_aux_slot(field)
        text = "" if text is None else str(text)
        self._engine.set_aux(slot, text)
        return {"success": True, "field": slot.value, "text": text}

    def speak(self, field: Any = None, custom_text: Any = None) -> dict[str, Any]:
        """Queue a speech request.  *field* defaults to the timer."""
        speech_field = parse_speech_field(field or SpeechField.TIMER.value)
        if speech_field is not SpeechField.CUSTOM:
            custom_text = None
        self._engine.request_speech(speech_field, custom_text or None)
        return {"success": True, "action": "speak", "field": speech_field.value}

    def clear_speech_request(self) -> dict[str, Any]:
        self._engine.clear_speech_request()
        return {"success": True, "action": "clear_speech_request"}

    # ── queries ───────────────────────────────────────────────────────

    def get_state(self) -> dict[str, Any]:
        return self._channel.snapshot().to_dict()

    def get_config(self) -> dict[str, Any]:
        return self._channel.config.to_dict()
