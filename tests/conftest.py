"""Shared pytest fixtures for CueTimer tests."""

import sys

import pytest

from PyQt6.QtCore import QCoreApplication

from cuetimer.channel.state_channel import StateChannel
from cuetimer.control import ControlSurface
from cuetimer.database.db import configure_engine, init_db
from cuetimer.settings import TimerConfig
from cuetimer.timer.engine import TimerEngine

from helpers import FIXED_NOW


@pytest.fixture(scope="session")
def qapp():
    """A single QCoreApplication instance shared across the entire test run."""
    app = QCoreApplication.instance() or QCoreApplication(sys.argv)
    yield app


@pytest.fixture(autouse=True)
def test_db():
    """Point every test at a fresh in-memory SQLite database."""
    configure_engine("sqlite:///:memory:")
    init_db()
    yield


@pytest.fixture
def engine(qapp):
    """Fresh TimerEngine with a fixed clock (epoch 1000 s)."""
    e = TimerEngine(parent=None, clock=lambda: 1000.0)
    yield e
    e.shutdown()


@pytest.fixture
def config():
    return TimerConfig(amber_time=180, red_time=60)


@pytest.fixture
def channel(engine, config):
    return StateChannel(engine, config, clock=lambda: FIXED_NOW)


@pytest.fixture
def surface(engine, channel):
    return ControlSurface(engine, channel)
