"""SQLAlchemy ORM model for timer_history table"""

from sqlalchemy import Column, Integer, String, DateTime, Boolean, Float, Text

from timer_cli.db.base import Base


class HistoryEntry(Base):
    """
    Append-only log of timers that reached a terminal outcome.
    """
    __tablename__ = "timer_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    timestamp = Column(DateTime, nullable=False, index=True)
    duration_seconds = Column(Float, nullable=False)
    duration_text = Column(String, nullable=False)
    message = Column(Text, nullable=True)
    foreground = Column(Boolean, default=False, nullable=False)
    outcome = Column(String, nullable=False)

    def __repr__(self) -> str:
        return f"<HistoryEntry(id={self.id}, outcome='{self.outcome}')>"
