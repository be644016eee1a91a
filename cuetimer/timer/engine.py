"""Timer state machine for CueTimer.

Phases
------
STOPPED   Not counting.  ``remaining`` holds the last configured duration
          (or whatever add/subtract left there).
RUNNING   Counting down once per second.  Keeps counting past zero into
          negative overtime.
PAUSED    Frozen mid-run; ``remaining`` is preserved.

Transitions
-----------
any → STOPPED                 (set_timer, stop)
STOPPED | PAUSED → RUNNING    (start)
RUNNING → PAUSED              (pause)

Guarantees
----------
- ``phase is RUNNING`` exactly when the tick driver (a single ``QTimer``)
  is active.  ``pause``, ``stop``, ``set_timer`` and ``shutdown`` stop it
  before returning.
- ``stop`` restores ``last_set``, not zero.
- ``last_set`` only changes on ``set_timer``.
- Operations never raise; repeated control signals are silently ignored.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from PyQt6.QtCore import QObject, QTimer, pyqtSignal


logger = logging.getLogger(__name__)


# ── enums ─────────────────────────────────────────────────────────────────


class Phase(Enum):
    STOPPED = "stopped"
    RUNNING = "running"
    PAUSED = "paused"


class AuxSlot(Enum):
    TOP = "top"
    BOTTOM = "bottom"
    MIDDLE = "middle"


class SpeechField(Enum):
    TIMER = "timer"
    TOP_AUX = "top_aux"
    BOTTOM_AUX = "bottom_aux"
    MIDDLE_AUX = "middle_aux"
    CUSTOM = "custom"


# ── constants ─────────────────────────────────────────────────────────────

TICK_INTERVAL_MS = 1000


# ── state records ─────────────────────────────────────────────────────────


@dataclass(frozen=True)
class SpeechRequest:
    """One-shot "read this aloud" signal, pending until acknowledged."""

    field: SpeechField
    custom_text: str | None
    timestamp: int  # epoch milliseconds

    def to_dict(self) -> dict:
        return {
            "field": self.field.value,
            "custom_text": self.custom_text,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class TimerState:
    """Immutable read of the engine's state at one instant."""

    phase: Phase
    remaining: int
    last_set: int
    top_aux: str
    bottom_aux: str
    middle_aux: str
    pending_speech: SpeechRequest | None

    def aux(self, slot: AuxSlot) -> str:
        return {
            AuxSlot.TOP: self.top_aux,
            AuxSlot.BOTTOM: self.bottom_aux,
            AuxSlot.MIDDLE: self.middle_aux,
        }[slot]


# ── engine ────────────────────────────────────────────────────────────────


class TimerEngine(QObject):
    """Single countdown timer driven by a one-second ``QTimer``.

    Signals
    -------
    state_changed()
        Emitted after every mutation and every applied tick, once the new
        state is in place.  Never emitted by a guarded no-op.
    phase_changed(new_phase: Phase)
        Emitted when the phase actually changes, before ``state_changed``.
    ticked(remaining_seconds: int)
        Emitted for every applied tick, before ``state_changed``.
    speech_requested(request: SpeechRequest)
        Emitted once per ``request_speech`` call.
    """

    state_changed = pyqtSignal()
    phase_changed = pyqtSignal(object)
    ticked = pyqtSignal(int)
    speech_requested = pyqtSignal(object)

    def __init__(
        self,
        parent: QObject | None = None,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        super().__init__(parent)
        self._clock = clock

        # ── timer state ───────────────────────────────────────────────
        self._phase: Phase = Phase.STOPPED
        self._remaining: int = 0
        self._last_set: int = 0
        self._aux: dict[AuxSlot, str] = {slot: "" for slot in AuxSlot}
        self._pending_speech: SpeechRequest | None = None

        # ── tick driver ───────────────────────────────────────────────
        self._qt_timer = QTimer(self)
        self._qt_timer.setInterval(TICK_INTERVAL_MS)
        self._qt_timer.timeout.connect(self.tick)

    # ══════════════════════════════════════════════════════════════════
    #  PUBLIC PROPERTIES
    # ══════════════════════════════════════════════════════════════════

    @property
    def phase(self) -> Phase:
        return self._phase

    @property
    def remaining(self) -> int:
        """Seconds left on the clock; negative while in overtime."""
        return self._remaining

    @property
    def last_set(self) -> int:
        """The value most recently passed to :meth:`set_timer`."""
        return self._last_set

    @property
    def is_running(self) -> bool:
        return self._phase is Phase.RUNNING

    @property
    def tick_active(self) -> bool:
        """True while the tick driver is armed."""
        return self._qt_timer.isActive()

    @property
    def pending_speech(self) -> SpeechRequest | None:
        return self._pending_speech

    def aux(self, slot: AuxSlot) -> str:
        return self._aux[slot]

    def state(self) -> TimerState:
        return TimerState(
            phase=self._phase,
            remaining=self._remaining,
            last_set=self._last_set,
            top_aux=self._aux[AuxSlot.TOP],
            bottom_aux=self._aux[AuxSlot.BOTTOM],
            middle_aux=self._aux[AuxSlot.MIDDLE],
            pending_speech=self._pending_speech,
        )

    # ══════════════════════════════════════════════════════════════════
    #  CONTROLS
    # ══════════════════════════════════════════════════════════════════

    def set_timer(self, seconds: int) -> None:
        """Load a new duration and stop.  Works from any phase."""
        logger.debug("set_timer: %ss (phase=%s)", seconds, self._phase.value)
        self._qt_timer.stop()
        self._remaining = seconds
        self._last_set = seconds
        self._set_phase(Phase.STOPPED)
        self.state_changed.emit()

    def start(self) -> None:
        """Start or resume counting.  No-op while already running."""
        if self._phase is Phase.RUNNING:
            logger.debug("start ignored: already running")
            return
        self._set_phase(Phase.RUNNING)
        self._qt_timer.start()
        self.state_changed.emit()

    def pause(self) -> None:
        """Freeze the countdown.  Only valid while running."""
        if self._phase is not Phase.RUNNING:
            logger.debug("pause ignored: phase=%s", self._phase.value)
            return
        self._qt_timer.stop()
        self._set_phase(Phase.PAUSED)
        self.state_changed.emit()

    def stop(self) -> None:
        """Return to the last configured duration.  Works from any phase."""
        logger.debug(
            "stop: restoring %ss (phase=%s)", self._last_set, self._phase.value
        )
        self._qt_timer.stop()
        self._remaining = self._last_set
        self._set_phase(Phase.STOPPED)
        self.state_changed.emit()

    def tick(self) -> None:
        """Advance the countdown by one second.

        Ticks that arrive after the run has been paused or stopped are
        discarded.
        """
        if self._phase is not Phase.RUNNING:
            return
        self._remaining -= 1
        self.ticked.emit(self._remaining)
        self.state_changed.emit()

    def add_time(self, seconds: int) -> None:
        self._remaining += seconds
        self.state_changed.emit()

    def subtract_time(self, seconds: int) -> None:
        self._remaining -= seconds
        self.state_changed.emit()

    def set_aux(self, slot: AuxSlot, text: str) -> None:
        self._aux[slot] = text
        self.state_changed.emit()

    def request_speech(
        self, field: SpeechField, custom_text: str | None = None
    ) -> None:
        """Leave a speech request for the next observer to pick up."""
        request = SpeechRequest(
            field=field,
            custom_text=custom_text,
            timestamp=int(self._clock() * 1000),
        )
        self._pending_speech = request
        logger.debug("speech request stored: %s", field.value)
        self.speech_requested.emit(request)
        self.state_changed.emit()

    def clear_speech_request(self) -> None:
        self._pending_speech = None
        self.state_changed.emit()

    def shutdown(self) -> None:
        """Cancel the tick driver for good.  Called on teardown."""
        self._qt_timer.stop()
        if self._phase is Phase.RUNNING:
            self._set_phase(Phase.STOPPED)
            self.state_changed.emit()

    # ══════════════════════════════════════════════════════════════════
    #  INTERNAL
    # ══════════════════════════════════════════════════════════════════

    def _set_phase(self, new_phase: Phase) -> None:
        if new_phase is self._phase:
            return
        self._phase = new_phase
        self.phase_changed.emit(new_phase)
