"""State channel package."""

from .state_channel import (
    StateChannel,
    Snapshot,
    ObserverGone,
    POLL_INTERVAL_MS,
    EVENT_STATE,
    EVENT_SPEAK_REQUEST,
    EVENT_TRIGGER_SPEECH,
)
from .speech import SpeechTriggers

__all__ = [
    "StateChannel",
    "Snapshot",
    "ObserverGone",
    "SpeechTriggers",
    "POLL_INTERVAL_MS",
    "EVENT_STATE",
    "EVENT_SPEAK_REQUEST",
    "EVENT_TRIGGER_SPEECH",
]
