"""Shared test helpers for CueTimer."""

from datetime import datetime

from cuetimer.timer.engine import Phase, TimerEngine


FIXED_NOW = datetime(2026, 10, 19, 14, 30, 5)


class SignalCollector:
    """Capture pyqtSignal emissions or channel deliveries into a list."""

    def __init__(self):
        self.items: list = []

    def slot(self, *args):
        self.items.append(args if len(args) > 1 else args[0] if args else None)

    def __call__(self, *args):
        self.slot(*args)

    def __len__(self):
        return len(self.items)

    def __getitem__(self, idx):
        return self.items[idx]

    @property
    def last(self):
        return self.items[-1] if self.items else None

    def events(self, name: str) -> list:
        """Payloads of channel deliveries named *name*."""
        return [payload for event, payload in self.items if event == name]

    def clear(self):
        self.items.clear()


def run_ticks(engine: TimerEngine, count: int) -> None:
    """Deliver *count* ticks as the QTimer would."""
    for _ in range(count):
        engine.tick()


def assert_tick_invariant(engine: TimerEngine) -> None:
    assert (engine.phase is Phase.RUNNING) == engine.tick_active
