#!/usr/bin/env python3
"""CueTimer: entry point.

Run with:
    python main.py
    python -m cuetimer
"""

from cuetimer.__main__ import main


if __name__ == "__main__":
    main()
