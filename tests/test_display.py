"""Tests for the pure display helpers: formatting, bands, aux text."""

import pytest

from cuetimer.timer.display import (
    Band,
    classify,
    expand_line_breaks,
    format_hm,
    format_hms,
    format_ms,
    is_blinking,
    preset_label,
    speech_text,
)
from cuetimer.timer.engine import Phase, SpeechField, TimerState


def _state(remaining=0, top="", bottom="", middle=""):
    return TimerState(
        phase=Phase.STOPPED, remaining=remaining, last_set=0,
        top_aux=top, bottom_aux=bottom, middle_aux=middle,
        pending_speech=None,
    )


# ═══════════════════════════════════════════════════════════════════════════
#  FORMATTING
# ═══════════════════════════════════════════════════════════════════════════


class TestFormatting:

    @pytest.mark.parametrize("seconds, expected", [
        (0, "00:00:00"),
        (125, "00:02:05"),
        (3600, "01:00:00"),
        (7322, "02:02:02"),
        (-5, "-00:00:05"),
        (-3661, "-01:01:01"),
        (360000, "100:00:00"),
    ])
    def test_format_hms(self, seconds, expected):
        assert format_hms(seconds) == expected

    def test_format_hm_and_ms(self):
        assert format_hm(3725) == "01:02"
        assert format_ms(3725) == "02:05"
        assert format_hm(-65) == "-00:01"
        assert format_ms(-65) == "-01:05"

    @pytest.mark.parametrize("seconds, expected", [
        (60, "1m"),
        (300, "5m"),
        (3600, "1h"),
        (5400, "1h30m"),
        (45, "45s"),
    ])
    def test_preset_label(self, seconds, expected):
        assert preset_label(seconds) == expected


# ═══════════════════════════════════════════════════════════════════════════
#  THRESHOLD BANDS
# ═══════════════════════════════════════════════════════════════════════════


class TestClassify:

    @pytest.mark.parametrize("remaining, expected", [
        (200, Band.NORMAL),
        (181, Band.NORMAL),
        (180, Band.AMBER),
        (120, Band.AMBER),
        (60, Band.RED),
        (30, Band.RED),
        (1, Band.RED),
        (0, Band.ALERT),
        (-10, Band.ALERT),
    ])
    def test_running_bands(self, remaining, expected):
        assert classify(Phase.RUNNING, remaining, 180, 60) == expected

    @pytest.mark.parametrize("remaining", [500, 100, 30, 0, -30])
    def test_paused_is_always_amber(self, remaining):
        assert classify(Phase.PAUSED, remaining, 180, 60) == Band.AMBER

    @pytest.mark.parametrize("remaining", [500, 100, 30, 0, -30])
    def test_stopped_is_always_neutral(self, remaining):
        assert classify(Phase.STOPPED, remaining, 180, 60) == Band.NEUTRAL

    def test_unset_thresholds_never_trigger(self):
        assert classify(Phase.RUNNING, 5, None, None) == Band.NORMAL
        assert classify(Phase.RUNNING, 5, 180, None) == Band.AMBER
        assert classify(Phase.RUNNING, 100, None, 60) == Band.NORMAL
        assert classify(Phase.RUNNING, 0, None, None) == Band.ALERT

    def test_blinking_only_when_running_at_or_past_zero(self):
        assert is_blinking(Phase.RUNNING, 0)
        assert is_blinking(Phase.RUNNING, -3)
        assert not is_blinking(Phase.RUNNING, 1)
        assert not is_blinking(Phase.PAUSED, -3)
        assert not is_blinking(Phase.STOPPED, 0)


# ═══════════════════════════════════════════════════════════════════════════
#  AUX TEXT + SPEECH TEXT
# ═══════════════════════════════════════════════════════════════════════════


class TestAuxText:

    def test_expand_line_breaks(self):
        assert expand_line_breaks("one\\ntwo") == "one\ntwo"
        assert expand_line_breaks("one\\ntwo", "<br>") == "one<br>two"
        assert expand_line_breaks("") == ""
        assert expand_line_breaks(None) == ""

    def test_speech_text_for_timer(self):
        assert speech_text(SpeechField.TIMER, _state(remaining=-5)) == "-00:00:05"

    def test_speech_text_for_aux_joins_lines(self):
        state = _state(top="Next\\nKeynote", middle="m", bottom="b")
        assert speech_text(SpeechField.TOP_AUX, state) == "Next, Keynote"
        assert speech_text(SpeechField.MIDDLE_AUX, state) == "m"
        assert speech_text(SpeechField.BOTTOM_AUX, state) == "b"

    def test_speech_text_for_custom(self):
        assert speech_text(SpeechField.CUSTOM, _state(), "Wrap up") == "Wrap up"
        assert speech_text(SpeechField.CUSTOM, _state()) == ""
