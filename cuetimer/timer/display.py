"""Pure display helpers derived from timer state.

Nothing here touches the engine; every function takes plain values so
displays, host feedbacks and speech observers all render identically.
"""

from __future__ import annotations

from enum import Enum

from .engine import AuxSlot, Phase, SpeechField, TimerState


LINE_BREAK_MARKER = "\\n"


class Band(Enum):
    """Colour band for a timer reading."""

    NEUTRAL = "neutral"
    NORMAL = "normal"
    AMBER = "amber"
    RED = "red"
    ALERT = "alert"


# ── time formatting ──────────────────────────────────────────────────────


def split_seconds(total: int) -> tuple[str, int, int, int]:
    """Return ``(sign, hours, minutes, seconds)`` of the magnitude."""
    sign = "-" if total < 0 else ""
    magnitude = abs(total)
    return sign, magnitude // 3600, (magnitude % 3600) // 60, magnitude % 60


def format_hms(total: int) -> str:
    """``125`` → ``"00:02:05"``, ``-5`` → ``"-00:00:05"``."""
    sign, h, m, s = split_seconds(total)
    return f"{sign}{h:02d}:{m:02d}:{s:02d}"


def format_hm(total: int) -> str:
    sign, h, m, _ = split_seconds(total)
    return f"{sign}{h:02d}:{m:02d}"


def format_ms(total: int) -> str:
    """Minutes and seconds only; hours are dropped, not folded in."""
    sign, _, m, s = split_seconds(total)
    return f"{sign}{m:02d}:{s:02d}"


def preset_label(total: int) -> str:
    """Compact button label: ``5400`` → ``"1h30m"``."""
    _, h, m, s = split_seconds(total)
    return f"{f'{h}h' if h else ''}{f'{m}m' if m else ''}{f'{s}s' if s else ''}"


# ── thresholds ───────────────────────────────────────────────────────────


def classify(
    phase: Phase,
    remaining: int,
    amber: int | None,
    red: int | None,
) -> Band:
    """Colour band for *remaining* seconds in *phase*.

    A paused timer is always amber and a stopped one always neutral.
    While running, zero or overtime is an alert, then the red and amber
    thresholds apply in that order.  A threshold of ``None`` never fires.
    """
    if phase is Phase.PAUSED:
        return Band.AMBER
    if phase is Phase.STOPPED:
        return Band.NEUTRAL
    if remaining <= 0:
        return Band.ALERT
    if red is not None and remaining <= red:
        return Band.RED
    if amber is not None and remaining <= amber:
        return Band.AMBER
    return Band.NORMAL


def is_blinking(phase: Phase, remaining: int) -> bool:
    return phase is Phase.RUNNING and remaining <= 0


# ── aux text ─────────────────────────────────────────────────────────────


def expand_line_breaks(text: str, separator: str = "\n") -> str:
    """Replace the literal ``\\n`` marker with *separator*."""
    return (text or "").replace(LINE_BREAK_MARKER, separator)


_FIELD_SLOTS = {
    SpeechField.TOP_AUX: AuxSlot.TOP,
    SpeechField.BOTTOM_AUX: AuxSlot.BOTTOM,
    SpeechField.MIDDLE_AUX: AuxSlot.MIDDLE,
}


def speech_text(
    field: SpeechField, state: TimerState, custom_text: str | None = None
) -> str:
    """Text a speech observer should read aloud for *field*."""
    if field is SpeechField.TIMER:
        return format_hms(state.remaining)
    if field is SpeechField.CUSTOM:
        return custom_text or ""
    return expand_line_breaks(state.aux(_FIELD_SLOTS[field]), ", ")
