"""Tests for the state channel: snapshots, push delivery, speech pickup,
observer management, and push/pull agreement."""

import pytest

from cuetimer.channel.state_channel import (
    EVENT_SPEAK_REQUEST,
    EVENT_STATE,
    ObserverGone,
    POLL_INTERVAL_MS,
    StateChannel,
)
from cuetimer.settings import TimerConfig
from cuetimer.timer.engine import AuxSlot, Phase, SpeechField

from helpers import FIXED_NOW, SignalCollector, run_ticks


# ═══════════════════════════════════════════════════════════════════════════
#  PULL
# ═══════════════════════════════════════════════════════════════════════════


class TestSnapshot:

    def test_snapshot_shape(self, engine, channel):
        engine.set_timer(125)
        engine.set_aux(AuxSlot.TOP, "top")
        data = channel.snapshot().to_dict()
        assert data["remaining"] == 125
        assert data["state"] == "stopped"
        assert data["top_aux"] == "top"
        assert data["bottom_aux"] == ""
        assert data["middle_aux"] == ""
        assert data["pending_speech_request"] is None
        assert data["current_time"] == FIXED_NOW.strftime("%H:%M:%S")
        assert data["config"]["amber"] == 180
        assert data["config"]["red"] == 60
        assert data["config"]["timer_fontsize"] == 15
        assert data["config"]["enable_speech"] is False

    def test_snapshot_reflects_current_instant(self, engine, channel):
        engine.set_timer(10)
        engine.start()
        run_ticks(engine, 3)
        snap = channel.snapshot()
        assert snap.phase == Phase.RUNNING
        assert snap.remaining == 7

    def test_snapshot_has_no_side_effects(self, engine, channel):
        engine.set_timer(10)
        first = channel.snapshot()
        second = channel.snapshot()
        assert first == second
        assert engine.remaining == 10

    def test_poll_interval(self):
        assert POLL_INTERVAL_MS == 500


# ═══════════════════════════════════════════════════════════════════════════
#  SPEECH REQUEST PICKUP
# ═══════════════════════════════════════════════════════════════════════════


class TestPendingSpeech:

    def test_pending_request_survives_repeated_polls(self, engine, channel):
        engine.request_speech(SpeechField.TIMER)
        first = channel.snapshot().to_dict()["pending_speech_request"]
        second = channel.snapshot().to_dict()["pending_speech_request"]
        assert first == {"field": "timer", "custom_text": None, "timestamp": 1_000_000}
        assert second == first

    def test_cleared_after_acknowledgement(self, engine, channel):
        engine.request_speech(SpeechField.TIMER)
        assert channel.snapshot().pending_speech_request is not None
        engine.clear_speech_request()
        assert channel.snapshot().pending_speech_request is None

    def test_push_delivers_speak_request_once(self, engine, channel):
        c = SignalCollector()
        channel.subscribe(c)
        c.clear()
        engine.request_speech(SpeechField.CUSTOM, "Two minutes")
        assert c.events(EVENT_SPEAK_REQUEST) == [
            {"field": "custom", "custom_text": "Two minutes"},
        ]
        engine.tick()  # stopped; no state change, no re-delivery
        engine.set_aux(AuxSlot.TOP, "x")
        assert len(c.events(EVENT_SPEAK_REQUEST)) == 1

    def test_pending_request_still_in_pushed_state(self, engine, channel):
        c = SignalCollector()
        channel.subscribe(c)
        engine.request_speech(SpeechField.TIMER)
        engine.set_aux(AuxSlot.TOP, "x")
        assert c.events(EVENT_STATE)[-1]["pending_speech_request"]["field"] == "timer"


# ═══════════════════════════════════════════════════════════════════════════
#  PUSH
# ═══════════════════════════════════════════════════════════════════════════


class TestBroadcast:

    def test_subscribe_sends_current_state(self, engine, channel):
        engine.set_timer(42)
        c = SignalCollector()
        channel.subscribe(c)
        assert c.last == (EVENT_STATE, channel.snapshot().to_dict())

    def test_one_broadcast_per_mutation(self, engine, channel):
        c = SignalCollector()
        channel.subscribe(c)
        c.clear()
        engine.set_timer(5)
        engine.start()
        run_ticks(engine, 2)
        engine.pause()
        assert [p["remaining"] for p in c.events(EVENT_STATE)] == [5, 5, 4, 3, 3]
        assert [p["state"] for p in c.events(EVENT_STATE)] == [
            "stopped", "running", "running", "running", "paused",
        ]

    def test_guarded_noop_does_not_broadcast(self, engine, channel):
        c = SignalCollector()
        channel.subscribe(c)
        c.clear()
        engine.pause()
        engine.tick()
        assert len(c) == 0

    def test_all_observers_receive(self, engine, channel):
        a, b = SignalCollector(), SignalCollector()
        channel.subscribe(a)
        channel.subscribe(b)
        engine.set_timer(9)
        assert a.last == b.last
        assert a.last[1]["remaining"] == 9

    def test_subscribe_twice_is_ignored(self, channel):
        c = SignalCollector()
        channel.subscribe(c)
        channel.subscribe(c)
        assert channel.observer_count == 1

    def test_unsubscribe_stops_delivery(self, engine, channel):
        c = SignalCollector()
        channel.subscribe(c)
        channel.unsubscribe(c)
        c.clear()
        engine.set_timer(3)
        assert len(c) == 0

    def test_gone_observer_is_dropped(self, engine, channel):
        healthy = SignalCollector()
        calls = []

        def broken(event, payload):
            calls.append(event)
            if len(calls) > 1:
                raise ObserverGone("socket closed")

        channel.subscribe(broken)
        channel.subscribe(healthy)
        engine.set_timer(8)
        assert channel.observer_count == 1
        assert healthy.last[1]["remaining"] == 8
        engine.set_timer(9)
        assert len(calls) == 2

    def test_published_signal_mirrors_push(self, engine, channel):
        c = SignalCollector()
        channel.published.connect(c)
        engine.set_timer(11)
        event, payload = c.last
        assert event == EVENT_STATE
        assert payload["remaining"] == 11

    def test_config_update_broadcasts(self, engine, channel):
        c = SignalCollector()
        channel.subscribe(c)
        channel.config = TimerConfig(amber_time=300, red_time=None)
        assert c.last[1]["config"]["amber"] == 300
        assert c.last[1]["config"]["red"] is None


# ═══════════════════════════════════════════════════════════════════════════
#  PUSH / PULL AGREEMENT
# ═══════════════════════════════════════════════════════════════════════════


class TestPushPullAgreement:

    def test_final_state_matches(self, engine, channel):
        c = SignalCollector()
        channel.subscribe(c)
        engine.set_timer(300)
        engine.start()
        run_ticks(engine, 7)
        engine.add_time(60)
        engine.set_aux(AuxSlot.BOTTOM, "Room B")
        engine.pause()
        assert c.events(EVENT_STATE)[-1] == channel.snapshot().to_dict()

    def test_broadcast_never_stale(self, engine, channel):
        seen = []
        channel.subscribe(lambda event, payload: seen.append(
            (payload["remaining"], engine.remaining)) if event == EVENT_STATE else None)
        engine.set_timer(4)
        engine.start()
        run_ticks(engine, 6)
        engine.subtract_time(3)
        for pushed, actual in seen[1:]:
            assert pushed == actual

    def test_separate_channels_share_engine(self, engine, config):
        first = StateChannel(engine, config)
        second = StateChannel(engine, config)
        engine.set_timer(77)
        assert first.snapshot().remaining == second.snapshot().remaining == 77
