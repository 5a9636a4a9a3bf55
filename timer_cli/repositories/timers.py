"""SQLAlchemy repository for active timer records"""
import logging
from typing import Iterable, List, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from timer_cli.db.models.active_timer import ActiveTimer as ActiveTimerORM
from timer_cli.exceptions import StoreUnavailable
from timer_cli.models.history import HistoryEntry, HistoryEntryCreate
from timer_cli.models.timer import TimerRecord, TimerRecordCreate, TimerRecordUpdate
from timer_cli.repositories.base import BaseRepository
from timer_cli.repositories.history import to_orm as history_to_orm
from timer_cli.utils.datetime_helper import utc_now

logger = logging.getLogger(__name__)

MAX_ALLOCATION_ATTEMPTS = 5


def next_free_id(used_ids: Iterable[int]) -> int:
    """Smallest positive integer not in ``used_ids``"""
    used = set(used_ids)
    candidate = 1
    while candidate in used:
        candidate += 1
    return candidate


class TimerRepository(BaseRepository[TimerRecord]):
    """
    Repository for the active_timers table.

    Every method is a single transaction. Writes made by the owning
    timer process are guarded by its owner token, so a process can never
    touch a slot that has since been handed to another timer.
    """

    def __init__(self, session_factory: sessionmaker):
        super().__init__(session_factory, TimerRecord)

    def create(self, data: TimerRecordCreate) -> TimerRecord:
        """
        Allocate the smallest free id and insert the record.

        Reading the used ids and inserting happen in one transaction; if
        another process takes the same id first, the primary key rejects
        our insert and allocation is retried.

        Raises:
            StoreUnavailable: On database errors or repeated conflicts
        """
        values = data.model_dump()
        values["state"] = data.state.value
        values["updated_at"] = data.created_at

        for attempt in range(1, MAX_ALLOCATION_ATTEMPTS + 1):
            try:
                with self._transaction("create") as session:
                    used = session.execute(select(ActiveTimerORM.id)).scalars().all()
                    row = ActiveTimerORM(id=next_free_id(used), **values)
                    session.add(row)
                    session.flush()
                    record = self._to_model(row)
                logger.info(
                    f"Timer {record.id} created: {record.duration_text} "
                    f"expires at {record.expires_at} (pid {record.owner_pid})"
                )
                return record
            except IntegrityError:
                logger.warning(f"Timer id allocation conflict (attempt {attempt}), retrying")

        raise StoreUnavailable(
            f"Could not allocate a timer id after {MAX_ALLOCATION_ATTEMPTS} attempts"
        )

    def get(self, timer_id: int) -> Optional[TimerRecord]:
        with self._transaction("get") as session:
            row = session.get(ActiveTimerORM, timer_id)
            return self._to_model(row) if row is not None else None

    def read_all_active(self) -> List[TimerRecord]:
        """All records, ordered by id"""
        with self._transaction("read_all_active") as session:
            stmt = select(ActiveTimerORM).order_by(ActiveTimerORM.id.asc())
            return self._to_models(session.execute(stmt).scalars().all())

    def update(self, timer_id: int, owner_token: str, data: TimerRecordUpdate) -> Optional[TimerRecord]:
        """
        Apply an owner-side update.

        Only the columns set on ``data`` are written, so a concurrent
        cancel flag is never overwritten.

        Returns:
            The updated record, or None if the caller no longer owns the slot
        """
        values = data.model_dump(exclude_unset=True)
        if data.state is not None:
            values["state"] = data.state.value
        values["updated_at"] = utc_now()

        with self._transaction("update") as session:
            stmt = (
                update(ActiveTimerORM)
                .where(
                    ActiveTimerORM.id == timer_id,
                    ActiveTimerORM.owner_token == owner_token,
                )
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            result = session.execute(stmt)
            if result.rowcount == 0:
                return None
            row = session.get(ActiveTimerORM, timer_id, populate_existing=True)
            return self._to_model(row)

    def request_cancel(self, timer_id: int) -> bool:
        """
        Set the cancel flag on a record.

        Returns:
            True if a record with this id exists, False if there is nothing to cancel
        """
        with self._transaction("request_cancel") as session:
            stmt = (
                update(ActiveTimerORM)
                .where(ActiveTimerORM.id == timer_id)
                .values(cancel_requested_at=func.coalesce(ActiveTimerORM.cancel_requested_at, utc_now()))
                .execution_options(synchronize_session=False)
            )
            return session.execute(stmt).rowcount > 0

    def request_cancel_all(self) -> List[TimerRecord]:
        """
        Set the cancel flag on every record.

        Returns:
            The flagged records, read in the same transaction so each
            carries the owner token the request was made against
        """
        with self._transaction("request_cancel_all") as session:
            session.execute(
                update(ActiveTimerORM)
                .values(cancel_requested_at=func.coalesce(ActiveTimerORM.cancel_requested_at, utc_now()))
                .execution_options(synchronize_session=False)
            )
            stmt = select(ActiveTimerORM).order_by(ActiveTimerORM.id.asc())
            return self._to_models(session.execute(stmt).scalars().all())

    def remove(self, timer_id: int, owner_token: str) -> bool:
        """Delete a record held under ``owner_token``"""
        with self._transaction("remove") as session:
            stmt = delete(ActiveTimerORM).where(
                ActiveTimerORM.id == timer_id,
                ActiveTimerORM.owner_token == owner_token,
            ).execution_options(synchronize_session=False)
            removed = session.execute(stmt).rowcount > 0
        if removed:
            logger.info(f"Timer {timer_id} removed")
        return removed

    def terminate(self, timer_id: int, owner_token: str, entry: HistoryEntryCreate) -> Optional[HistoryEntry]:
        """
        Remove the record and append its history entry atomically.

        Returns:
            The history entry, or None if the record was already gone
            (nothing is logged twice)
        """
        with self._transaction("terminate") as session:
            stmt = delete(ActiveTimerORM).where(
                ActiveTimerORM.id == timer_id,
                ActiveTimerORM.owner_token == owner_token,
            ).execution_options(synchronize_session=False)
            if session.execute(stmt).rowcount == 0:
                return None
            row = history_to_orm(entry)
            session.add(row)
            session.flush()
            history = HistoryEntry.model_validate(row)
        logger.info(f"Timer {timer_id} terminated: {entry.outcome.value}")
        return history
