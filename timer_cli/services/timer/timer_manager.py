"""Timer Manager - starts, lists and kills timers"""
import logging
import os
import time
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, List, Optional
from uuid import uuid4

from pydantic import BaseModel

from timer_cli.config import KILL_GRACE_SECONDS, LOG_PATH, POLL_INTERVAL, SNOOZE_SECONDS
from timer_cli.db.session import get_session_factory
from timer_cli.exceptions import InvalidDuration, ProcessLaunchFailure, StaleRecord
from timer_cli.models.history import HistoryEntry
from timer_cli.models.timer import TimerRecord, TimerRecordCreate, TimerRecordUpdate
from timer_cli.repositories.history import HistoryRepository
from timer_cli.repositories.timers import TimerRepository
from timer_cli.services.alert.base import BaseAlertService
from timer_cli.services.timer.control import ControlChannel
from timer_cli.services.timer.timer_process import TimerProcess
from timer_cli.utils.datetime_helper import format_span, utc_now
from timer_cli.utils.process import is_process_alive, send_terminate, spawn_detached

logger = logging.getLogger(__name__)

# Time a freshly spawned worker gets before the launcher checks it is alive
LAUNCH_CHECK_SECONDS = 0.2


class KillStatus(str, Enum):
    """Outcome of a kill request"""
    STOPPED = "stopped"  # Owner acknowledged and removed the record
    REQUESTED = "requested"  # Flag set, owner has not acted yet
    STALE_REMOVED = "stale_removed"  # Owner was already dead, record purged
    NOTHING_TO_DO = "nothing_to_do"  # No active timer with that id


class KillResult(BaseModel):
    """Response model for a kill request"""
    timer_id: int
    status: KillStatus
    message: str


class ActiveListing(BaseModel):
    """Healthy active timers plus the stale records purged while reading"""
    timers: List[TimerRecord]
    stale: List[TimerRecord] = []


class TimerManager:
    """Service layer for the timer commands"""

    def __init__(
        self,
        db_path: Optional[str] = None,
        process_alive: Callable[[int], bool] = is_process_alive,
        spawner: Callable = spawn_detached,
        terminator: Callable[[int], bool] = send_terminate,
        kill_grace: float = KILL_GRACE_SECONDS,
        poll_interval: float = POLL_INTERVAL,
        clock: Callable[[], datetime] = utc_now,
        sleep: Callable[[float], None] = time.sleep,
    ):
        session_factory = get_session_factory(db_path)
        self.timers = TimerRepository(session_factory)
        self.history = HistoryRepository(session_factory)
        self.control = ControlChannel(self.timers)
        self.process_alive = process_alive
        self.spawner = spawner
        self.terminator = terminator
        self.kill_grace = kill_grace
        self.poll_interval = poll_interval
        self.clock = clock
        self.sleep = sleep

    def start(
        self,
        duration: timedelta,
        message: Optional[str] = None,
        foreground: bool = False,
        duration_text: Optional[str] = None,
    ) -> TimerRecord:
        """
        Create a timer record and, for background timers, its process.

        Foreground timers are owned by the calling process, which is
        expected to drive them with ``build_process(...).run()``.

        Args:
            duration: Requested span, must be positive
            message: Optional text shown in the alert
            foreground: Run attached to the calling terminal
            duration_text: Duration as typed by the user (for history)

        Returns:
            The created record (with its allocated id)

        Raises:
            InvalidDuration: If duration is not positive or too large
            StoreUnavailable: If the database cannot be written
            ProcessLaunchFailure: If the background process does not start
        """
        if duration <= timedelta(0):
            raise InvalidDuration(f"duration must be positive, got {duration}")

        self.purge_stale()

        created_at = self.clock()
        try:
            expires_at = created_at + duration
        except OverflowError as e:
            raise InvalidDuration(f"duration too large: {duration}") from e

        record = self.timers.create(TimerRecordCreate(
            duration_seconds=duration.total_seconds(),
            duration_text=duration_text or format_span(duration),
            message=message,
            foreground=foreground,
            owner_pid=os.getpid(),
            owner_token=uuid4().hex,
            created_at=created_at,
            expires_at=expires_at,
        ))

        if foreground:
            return record
        return self._launch(record)

    def _launch(self, record: TimerRecord) -> TimerRecord:
        try:
            process = self.spawner(["worker", str(record.id), record.owner_token], LOG_PATH)
        except OSError as e:
            self.timers.remove(record.id, record.owner_token)
            logger.error(f"Failed to launch timer {record.id}: {e}")
            raise ProcessLaunchFailure(f"Failed to launch background timer: {e}") from e

        # Hand the record over before this process exits
        updated = self.timers.update(record.id, record.owner_token, TimerRecordUpdate(owner_pid=process.pid))

        # Health check
        self.sleep(LAUNCH_CHECK_SECONDS)
        returncode = process.poll()
        if returncode is not None:
            self.timers.remove(record.id, record.owner_token)
            logger.error(f"Timer {record.id} process exited immediately with code {returncode}")
            raise ProcessLaunchFailure(
                f"Background timer exited immediately (code {returncode}), see {LOG_PATH}"
            )

        logger.info(f"Timer {record.id} handed to background process {process.pid}")
        return updated or record

    def build_process(
        self,
        record: TimerRecord,
        alerts: BaseAlertService,
        snooze: timedelta = timedelta(seconds=SNOOZE_SECONDS),
        on_tick: Optional[Callable[[timedelta], None]] = None,
    ) -> TimerProcess:
        return TimerProcess(
            record,
            self.timers,
            self.control,
            alerts,
            snooze=snooze,
            poll_interval=self.poll_interval,
            clock=self.clock,
            sleep=self.sleep,
            on_tick=on_tick,
        )

    def purge_stale(self) -> List[TimerRecord]:
        """
        Remove records whose owner process is gone.

        Returns:
            The removed records
        """
        purged = []
        for record in self.timers.read_all_active():
            if self.process_alive(record.owner_pid):
                continue
            if self.timers.remove(record.id, record.owner_token):
                logger.warning(str(StaleRecord(record.id, record.owner_pid)))
                purged.append(record)
        return purged

    def list_active(self) -> ActiveListing:
        """
        Active timers ordered by id.

        Stale records are excluded, purged and reported in ``stale``.
        """
        stale = self.purge_stale()
        return ActiveListing(timers=self.timers.read_all_active(), stale=stale)

    def kill(self, timer_id: int, wait: bool = True) -> KillResult:
        """
        Cancel one timer, resolving ``timer_id`` against the live table.

        Args:
            timer_id: Slot number as currently shown
            wait: Wait (up to the grace period) for the owner to finish,
                then fall back to SIGTERM

        Returns:
            KillResult; an unknown id yields NOTHING_TO_DO, never an error
        """
        record = self.timers.get(timer_id)
        if record is None:
            return self._nothing_to_do(timer_id)

        if not self.process_alive(record.owner_pid):
            if self.timers.remove(record.id, record.owner_token):
                logger.warning(str(StaleRecord(record.id, record.owner_pid)))
            return KillResult(
                timer_id=timer_id,
                status=KillStatus.STALE_REMOVED,
                message=f"Timer {timer_id} was already dead (pid {record.owner_pid}); removed it",
            )

        if not self.control.request_cancel(timer_id):
            return self._nothing_to_do(timer_id)
        if not wait:
            return self._requested(timer_id)
        return self._await_termination(record)

    def kill_all(self, wait: bool = True) -> List[KillResult]:
        """Cancel every active timer"""
        results = [
            KillResult(
                timer_id=record.id,
                status=KillStatus.STALE_REMOVED,
                message=f"Timer {record.id} was already dead (pid {record.owner_pid}); removed it",
            )
            for record in self.purge_stale()
        ]

        # Await each record under the token the flag was set against
        for record in self.control.request_cancel_all():
            if wait:
                results.append(self._await_termination(record))
            else:
                results.append(self._requested(record.id))
        results.sort(key=lambda r: r.timer_id)
        return results

    def list_history(self, limit: int) -> List[HistoryEntry]:
        """Most recent terminal outcomes first"""
        return self.history.read_history(limit)

    def _await_termination(self, record: TimerRecord) -> KillResult:
        if self._wait_gone(record, self.kill_grace):
            return self._stopped(record.id)

        # Last resort: the owner is not polling, interrupt it directly
        logger.warning(f"Timer {record.id} did not stop within {self.kill_grace}s, sending SIGTERM to {record.owner_pid}")
        current = self.timers.get(record.id)
        if current is not None and current.owner_token == record.owner_token:
            self.terminator(current.owner_pid)
            if self._wait_gone(record, self.kill_grace):
                return self._stopped(record.id)

        return KillResult(
            timer_id=record.id,
            status=KillStatus.REQUESTED,
            message=f"Timer {record.id} has not stopped yet; it will stop at its next check",
        )

    def _wait_gone(self, record: TimerRecord, timeout: float) -> bool:
        deadline = time.monotonic() + timeout
        while True:
            current = self.timers.get(record.id)
            if current is None or current.owner_token != record.owner_token:
                return True
            if time.monotonic() >= deadline:
                return False
            self.sleep(self.poll_interval)

    def _stopped(self, timer_id: int) -> KillResult:
        return KillResult(timer_id=timer_id, status=KillStatus.STOPPED, message=f"Timer {timer_id} stopped")

    def _requested(self, timer_id: int) -> KillResult:
        return KillResult(timer_id=timer_id, status=KillStatus.REQUESTED, message=f"Stop requested for timer {timer_id}")

    def _nothing_to_do(self, timer_id: int) -> KillResult:
        return KillResult(
            timer_id=timer_id,
            status=KillStatus.NOTHING_TO_DO,
            message=f"No active timer {timer_id}, nothing to kill",
        )
