"""Database package."""

from .db import configure_engine, dispose, get_session, init_db
from .models import Run

__all__ = ["configure_engine", "dispose", "get_session", "init_db", "Run"]
