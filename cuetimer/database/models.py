"""SQLAlchemy ORM models for CueTimer."""

from datetime import datetime
from sqlalchemy import Column, Integer, String, Boolean, DateTime
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


class Run(Base):
    """One uninterrupted stretch of RUNNING, from start to pause/stop/set."""

    __tablename__ = "runs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    start_time = Column(DateTime, nullable=False, default=datetime.now)
    end_time = Column(DateTime, nullable=True)
    set_seconds = Column(Integer, nullable=False, default=0)
    start_remaining = Column(Integer, nullable=False, default=0)
    end_remaining = Column(Integer, nullable=True)
    ended_by = Column(String(20), nullable=True)   # paused | stopped | running (detached)
    overtime = Column(Boolean, nullable=False, default=False)

    def __repr__(self) -> str:
        return (
            f"<Run id={self.id} set={self.set_seconds} "
            f"ended_by={self.ended_by} overtime={self.overtime}>"
        )
