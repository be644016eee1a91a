"""Timer configuration with JSON persistence.

Configuration is stored at:
    ~/Library/Application Support/CueTimer/config.json

Every recognised option is a field on :class:`TimerConfig`; values are
checked once, when the config is built, so the engine and the channel
never see an out-of-range threshold or an unknown speech mode.

Usage::

    config = load_config()
    config.amber_time = 120
    save_config(config)
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, asdict, fields
from pathlib import Path
from typing import Any, Mapping


logger = logging.getLogger(__name__)

APP_SUPPORT_DIR = Path.home() / "Library" / "Application Support" / "CueTimer"
CONFIG_PATH = APP_SUPPORT_DIR / "config.json"

TIME_CORNERS = (
    "top-left",
    "top-middle",
    "top-right",
    "bottom-left",
    "bottom-middle",
    "bottom-right",
)
SPEECH_FIELDS = ("timer", "top_aux", "bottom_aux", "middle_aux")
SPEECH_TRIGGERS = ("manual", "start", "end", "warning", "continuous")


class ConfigError(ValueError):
    """A configuration value is missing, mistyped or out of range."""


@dataclass
class TimerConfig:
    """All recognised options, with their defaults."""

    # ── thresholds (seconds; None disables the band) ──────────────────
    amber_time: int | None = 180
    red_time: int | None = 60

    # ── display hints ─────────────────────────────────────────────────
    show_internal_time: bool = False
    time_corner: str = "top-left"
    hide_timer: bool = False
    timer_fontsize: int = 15               # vw
    aux_fontsize: int = 5                  # vw

    # ── speech ────────────────────────────────────────────────────────
    enable_speech: bool = False
    speech_field: str = "timer"
    speech_trigger: str = "manual"
    speech_interval: int = 5               # seconds, continuous mode
    speech_rate: float = 1.0
    speech_pitch: float = 1.0
    speech_volume: float = 1.0
    speech_voice: str = "auto"
    speech_voice_custom: str = ""

    # ── service ───────────────────────────────────────────────────────
    host: str = "0.0.0.0"
    port: int = 8880
    history_enabled: bool = False
    history_url: str | None = None

    def __post_init__(self) -> None:
        _check_range("amber_time", self.amber_time, 1, 7200, optional=True)
        _check_range("red_time", self.red_time, 1, 7200, optional=True)
        _check_range("timer_fontsize", self.timer_fontsize, 1, 100)
        _check_range("aux_fontsize", self.aux_fontsize, 1, 50)
        _check_range("speech_interval", self.speech_interval, 1, 3600)
        _check_range("speech_rate", self.speech_rate, 0.1, 3)
        _check_range("speech_pitch", self.speech_pitch, 0, 2)
        _check_range("speech_volume", self.speech_volume, 0, 1)
        _check_range("port", self.port, 1, 65535)
        _check_choice("time_corner", self.time_corner, TIME_CORNERS)
        _check_choice("speech_field", self.speech_field, SPEECH_FIELDS)
        _check_choice("speech_trigger", self.speech_trigger, SPEECH_TRIGGERS)
        for name in ("show_internal_time", "hide_timer", "enable_speech",
                     "history_enabled"):
            if not isinstance(getattr(self, name), bool):
                raise ConfigError(f"{name} must be true or false")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> "TimerConfig":
        """Build a config from a host-supplied blob, ignoring unknown keys."""
        if not data:
            return cls()
        valid_keys = {f.name for f in fields(cls)}
        unknown = sorted(k for k in data if k not in valid_keys)
        if unknown:
            logger.debug("ignoring unknown config keys: %s", ", ".join(unknown))
        return cls(**{k: v for k, v in data.items() if k in valid_keys})

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def to_display_dict(self) -> dict[str, Any]:
        """The ``config`` block sent to displays with every snapshot."""
        return {
            "amber": self.amber_time,
            "red": self.red_time,
            "show_internal_time": self.show_internal_time,
            "time_corner": self.time_corner,
            "timer_fontsize": self.timer_fontsize,
            "aux_fontsize": self.aux_fontsize,
            "hide_timer": self.hide_timer,
            "enable_speech": self.enable_speech,
            "speech_field": self.speech_field,
            "speech_trigger": self.speech_trigger,
            "speech_interval": self.speech_interval,
            "speech_rate": self.speech_rate,
            "speech_pitch": self.speech_pitch,
            "speech_volume": self.speech_volume,
            "speech_voice": self.speech_voice,
            "speech_voice_custom": self.speech_voice_custom,
        }


def _check_range(
    name: str, value: Any, low: float, high: float, *, optional: bool = False
) -> None:
    if value is None and optional:
        return
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"{name} must be a number, got {value!r}")
    if not low <= value <= high:
        raise ConfigError(f"{name} must be between {low} and {high}, got {value}")


def _check_choice(name: str, value: Any, choices: tuple[str, ...]) -> None:
    if value not in choices:
        raise ConfigError(f"{name} must be one of {', '.join(choices)}, got {value!r}")


def load_config(path: Path = CONFIG_PATH) -> TimerConfig:
    """Load the config from disk, falling back to defaults when absent.

    An unreadable file is logged and replaced by defaults; a readable file
    with bad values raises :class:`ConfigError`.
    """
    if not path.exists():
        return TimerConfig()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        logger.warning("could not read %s (%s); using defaults", path, exc)
        return TimerConfig()
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a JSON object")
    return TimerConfig.from_mapping(data)


def save_config(config: TimerConfig, path: Path = CONFIG_PATH) -> None:
    """Write the config to disk as JSON."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps(config.to_dict(), indent=2) + "\n",
        encoding="utf-8",
    )
