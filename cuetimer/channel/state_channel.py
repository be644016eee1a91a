"""State delivery from the engine to remote displays.

Two delivery modes share one snapshot format:

* **push**: :meth:`StateChannel.broadcast` runs synchronously on every
  ``TimerEngine.state_changed`` and hands a ``state`` event to every
  subscribed observer.  One mutation, one broadcast; nothing is batched.
* **pull**: :meth:`StateChannel.snapshot` returns the state as it is right
  now.  Displays poll it every :data:`POLL_INTERVAL_MS`.

The pending speech request rides along in every snapshot until somebody
calls ``clear_speech_request``; the channel never clears it itself.  Push
observers additionally get one ``speak_request`` event per request.

Observers are plain callables ``observer(event, payload)``.  An observer
whose transport has gone away raises :class:`ObserverGone` and is dropped.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable

from PyQt6.QtCore import QObject, pyqtSignal

from ..settings import TimerConfig
from ..timer.engine import Phase, SpeechRequest, TimerEngine


logger = logging.getLogger(__name__)

POLL_INTERVAL_MS = 500

EVENT_STATE = "state"
EVENT_SPEAK_REQUEST = "speak_request"
EVENT_TRIGGER_SPEECH = "trigger_speech"

Observer = Callable[[str, dict], None]


class ObserverGone(Exception):
    """Raised by an observer whose transport can no longer deliver."""


@dataclass(frozen=True)
class Snapshot:
    """Everything a display needs to render one frame."""

    phase: Phase
    remaining: int
    top_aux: str
    bottom_aux: str
    middle_aux: str
    current_time: str
    config: dict[str, Any]
    pending_speech_request: SpeechRequest | None

    def to_dict(self) -> dict[str, Any]:
        pending = self.pending_speech_request
        return {
            "remaining": self.remaining,
            "state": self.phase.value,
            "top_aux": self.top_aux,
            "bottom_aux": self.bottom_aux,
            "middle_aux": self.middle_aux,
            "pending_speech_request": pending.to_dict() if pending else None,
            "current_time": self.current_time,
            "config": dict(self.config),
        }


class StateChannel(QObject):
    """Fan engine state out to observers, by push or by pull.

    Signals
    -------
    published(event: str, payload: dict)
        Mirrors every push delivery for in-process listeners.
    """

    published = pyqtSignal(str, object)

    def __init__(
        self,
        engine: TimerEngine,
        config: TimerConfig,
        parent: QObject | None = None,
        *,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        super().__init__(parent)
        self._engine = engine
        self._config = config
        self._clock = clock
        self._observers: list[Observer] = []

        engine.state_changed.connect(self.broadcast)
        engine.speech_requested.connect(self._on_speech_requested)

    # ── configuration ─────────────────────────────────────────────────

    @property
    def config(self) -> TimerConfig:
        return self._config

    @config.setter
    def config(self, value: TimerConfig) -> None:
        self._config = value
        self.broadcast()

    # ── observers ─────────────────────────────────────────────────────

    @property
    def observer_count(self) -> int:
        return len(self._observers)

    def subscribe(self, observer: Observer) -> None:
        """Attach *observer* and hand it the current state straight away."""
        if observer in self._observers:
            return
        self._observers.append(observer)
        logger.debug("observer attached (%d connected)", len(self._observers))
        self._deliver(observer, EVENT_STATE, self.snapshot().to_dict())

    def unsubscribe(self, observer: Observer) -> None:
        if observer in self._observers:
            self._observers.remove(observer)
            logger.debug("observer detached (%d connected)", len(self._observers))

    # ── delivery ──────────────────────────────────────────────────────

    def snapshot(self) -> Snapshot:
        state = self._engine.state()
        return Snapshot(
            phase=state.phase,
            remaining=state.remaining,
            top_aux=state.top_aux,
            bottom_aux=state.bottom_aux,
            middle_aux=state.middle_aux,
            current_time=self._clock().strftime("%H:%M:%S"),
            config=self._config.to_display_dict(),
            pending_speech_request=state.pending_speech,
        )

    def broadcast(self) -> None:
        self.publish(EVENT_STATE, self.snapshot().to_dict())

    def publish(self, event: str, payload: dict) -> None:
        """Deliver one event to every observer, in subscription order."""
        for observer in list(self._observers):
            self._deliver(observer, event, payload)
        self.published.emit(event, payload)

    def _deliver(self, observer: Observer, event: str, payload: dict) -> None:
        try:
            observer(event, payload)
        except ObserverGone as exc:
            logger.warning("dropping observer after failed %s delivery: %s", event, exc)
            self.unsubscribe(observer)

    def _on_speech_requested(self, request: SpeechRequest) -> None:
        self.publish(EVENT_SPEAK_REQUEST, {
            "field": request.field.value,
            "custom_text": request.custom_text,
        })
