"""Run journal.

Records every stretch of RUNNING as a :class:`~cuetimer.database.models.Run`
row: when it started, the configured duration, and how it ended.  The
journal is write-only; nothing here feeds back into the engine.
"""

from __future__ import annotations

import logging
from datetime import datetime

from PyQt6.QtCore import QObject

from .database.db import get_session
from .database.models import Run
from .timer.engine import Phase, TimerEngine


logger = logging.getLogger(__name__)


class RunRecorder(QObject):
    """Listen to an engine and journal its runs."""

    def __init__(self, engine: TimerEngine, parent: QObject | None = None) -> None:
        super().__init__(parent)
        self._engine = engine
        self._run_id: int | None = None
        self._last_remaining: int = engine.remaining

        engine.phase_changed.connect(self._on_phase_changed)
        engine.state_changed.connect(self._on_state_changed)

    def detach(self) -> None:
        """Stop journaling.  A run still open is closed as it stands."""
        self._engine.phase_changed.disconnect(self._on_phase_changed)
        self._engine.state_changed.disconnect(self._on_state_changed)
        if self._run_id is not None:
            self._close_run(self._engine.phase)

    @property
    def active_run_id(self) -> int | None:
        return self._run_id

    def _on_state_changed(self) -> None:
        # Only tracked while running so the value seen by _on_phase_changed
        # is the reading from just before the run ended.
        if self._engine.phase is Phase.RUNNING:
            self._last_remaining = self._engine.remaining

    def _on_phase_changed(self, phase: Phase) -> None:
        if phase is Phase.RUNNING:
            self._last_remaining = self._engine.remaining
            self._open_run()
        elif self._run_id is not None:
            self._close_run(phase)

    def _open_run(self) -> None:
        with get_session() as db:
            record = Run(
                start_time=datetime.now(),
                set_seconds=self._engine.last_set,
                start_remaining=self._engine.remaining,
            )
            db.add(record)
            db.flush()
            self._run_id = record.id
        logger.debug("run %s opened", self._run_id)

    def _close_run(self, phase: Phase) -> None:
        with get_session() as db:
            record = db.get(Run, self._run_id)
            if record:
                record.end_time = datetime.now()
                record.end_remaining = self._last_remaining
                record.ended_by = phase.value
                record.overtime = self._last_remaining < 0
        logger.debug("run %s closed (%s)", self._run_id, phase.value)
        self._run_id = None
