"""Timer package."""

from .engine import (
    TimerEngine,
    TimerState,
    Phase,
    AuxSlot,
    SpeechField,
    SpeechRequest,
    TICK_INTERVAL_MS,
)
from .display import Band, classify, format_hms, format_hm, format_ms

__all__ = [
    "TimerEngine",
    "TimerState",
    "Phase",
    "AuxSlot",
    "SpeechField",
    "SpeechRequest",
    "TICK_INTERVAL_MS",
    "Band",
    "classify",
    "format_hms",
    "format_hm",
    "format_ms",
]
