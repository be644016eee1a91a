"""Automatic speech triggers.

When speech is enabled, ``speech_trigger`` picks the moment a display
should read ``speech_field`` aloud:

manual       never automatically (only explicit speak requests)
start        the timer enters RUNNING
end          remaining crosses from above zero to zero or below while running
warning      remaining crosses the amber threshold downward while running
continuous   every ``speech_interval`` seconds of running time

Triggers are derived from engine transitions and are not stored anywhere;
each one is pushed once as a ``trigger_speech`` event, after the ``state``
broadcast of the change that caused it (the channel subscribes to the
engine first).
"""

from __future__ import annotations

import logging

from PyQt6.QtCore import QObject, pyqtSignal

from ..timer.engine import Phase, TimerEngine
from .state_channel import EVENT_TRIGGER_SPEECH, StateChannel


logger = logging.getLogger(__name__)


class SpeechTriggers(QObject):
    """Watch the engine and push ``trigger_speech`` events.

    Signals
    -------
    triggered(payload: dict)
        ``{"field": ..., "reason": ...}`` for every trigger fired.
    """

    triggered = pyqtSignal(object)

    def __init__(
        self,
        engine: TimerEngine,
        channel: StateChannel,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._engine = engine
        self._channel = channel
        self._last_phase: Phase = engine.phase
        self._last_remaining: int = engine.remaining
        self._running_ticks: int = 0
        self._tick_pending = False

        engine.ticked.connect(self._on_ticked)
        engine.state_changed.connect(self._on_state_changed)

    def _mode(self) -> str | None:
        config = self._channel.config
        if not config.enable_speech:
            return None
        return config.speech_trigger

    def _on_ticked(self, _remaining: int) -> None:
        # Fired from _on_state_changed so the tick's state goes out first.
        self._running_ticks += 1
        self._tick_pending = True

    def _on_state_changed(self) -> None:
        phase = self._engine.phase
        remaining = self._engine.remaining
        previous_phase, previous_remaining = self._last_phase, self._last_remaining
        self._last_phase, self._last_remaining = phase, remaining

        if phase is Phase.STOPPED:
            self._running_ticks = 0

        ticked, self._tick_pending = self._tick_pending, False

        mode = self._mode()
        if mode is None or mode == "manual":
            return

        if mode == "continuous":
            interval = self._channel.config.speech_interval
            if ticked and self._running_ticks % interval == 0:
                self._fire("continuous")
            return

        if mode == "start":
            if phase is Phase.RUNNING and previous_phase is not Phase.RUNNING:
                self._fire("start")
        elif phase is Phase.RUNNING and previous_phase is Phase.RUNNING:
            if mode == "end" and previous_remaining > 0 >= remaining:
                self._fire("end")
            elif mode == "warning":
                amber = self._channel.config.amber_time
                if amber is not None and previous_remaining > amber >= remaining:
                    self._fire("warning")

    def _fire(self, reason: str) -> None:
        payload = {"field": self._channel.config.speech_field, "reason": reason}
        logger.debug("speech trigger: %s", reason)
        self._channel.publish(EVENT_TRIGGER_SPEECH, payload)
        self.triggered.emit(payload)
