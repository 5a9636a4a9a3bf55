"""History log repository"""
import logging
from typing import List

from sqlalchemy import select
from sqlalchemy.orm import sessionmaker

from timer_cli.db.models.history_entry import HistoryEntry as HistoryEntryORM
from timer_cli.models.history import HistoryEntry, HistoryEntryCreate
from timer_cli.repositories.base import BaseRepository

logger = logging.getLogger(__name__)


def to_orm(entry: HistoryEntryCreate) -> HistoryEntryORM:
    data = entry.model_dump()
    data["outcome"] = entry.outcome.value
    return HistoryEntryORM(**data)


class HistoryRepository(BaseRepository[HistoryEntry]):
    """Append-only access to the timer_history table"""

    def __init__(self, session_factory: sessionmaker):
        super().__init__(session_factory, HistoryEntry)

    def append_history(self, entry: HistoryEntryCreate) -> HistoryEntry:
        """Append a terminal outcome"""
        with self._transaction("append_history") as session:
            row = to_orm(entry)
            session.add(row)
            session.flush()
            return self._to_model(row)

    def read_history(self, limit: int) -> List[HistoryEntry]:
        """
        Most recent entries first.

        Args:
            limit: Maximum number of entries to return

        Returns:
            List of HistoryEntry ordered newest to oldest
        """
        with self._transaction("read_history") as session:
            stmt = select(HistoryEntryORM).order_by(HistoryEntryORM.id.desc()).limit(limit)
            rows = session.execute(stmt).scalars().all()
            return self._to_models(rows)
