"""SQLAlchemy ORM model for active_timers table"""

from sqlalchemy import Column, Integer, String, DateTime, Boolean, Float, Text

from timer_cli.db.base import Base


class ActiveTimer(Base):
    """
    One row per timer that is currently running or alerting.
    The row is deleted when its owning process terminates, so the
    primary key doubles as the user-facing slot number.
    """
    __tablename__ = "active_timers"

    # Slot number, allocated by the repository (smallest free integer)
    id = Column(Integer, primary_key=True, autoincrement=False)

    # Timer definition
    duration_seconds = Column(Float, nullable=False)
    duration_text = Column(String, nullable=False)
    message = Column(Text, nullable=True)
    foreground = Column(Boolean, default=False, nullable=False)

    # Owning process handle
    owner_pid = Column(Integer, nullable=False)
    owner_token = Column(String(32), nullable=False)

    # Lifecycle (naive UTC)
    state = Column(String, default="running", nullable=False)
    created_at = Column(DateTime, nullable=False)
    expires_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=False)

    # Control channel flag, the only column non-owners write
    cancel_requested_at = Column(DateTime, nullable=True)

    def __repr__(self) -> str:
        return f"<ActiveTimer(id={self.id}, state='{self.state}', owner_pid={self.owner_pid})>"
