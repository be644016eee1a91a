"""setuptools config for CueTimer.

Install for development:
    pip install -e ".[test]"
    python -m cuetimer
"""

from setuptools import setup

setup(
    name="CueTimer",
    version="0.1.0",
    description="Countdown timer with push and poll state delivery for remote displays",
    packages=[
        "cuetimer",
        "cuetimer.timer",
        "cuetimer.channel",
        "cuetimer.web",
        "cuetimer.database",
    ],
    python_requires=">=3.10",
    install_requires=[
        "PyQt6>=6.4",
        "SQLAlchemy>=2.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "cuetimer=cuetimer.__main__:main",
        ],
    },
)
