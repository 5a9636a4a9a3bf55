"""SQLAlchemy ORM models"""

from timer_cli.db.models.active_timer import ActiveTimer
from timer_cli.db.models.history_entry import HistoryEntry

__all__ = ["ActiveTimer", "HistoryEntry"]
