"""CueTimer: a countdown timer for stage and broadcast displays."""

__version__ = "0.1.0"
