"""Timer process - drives one timer record through its lifecycle"""
import logging
import time
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, Optional

from timer_cli.config import DEFAULT_MESSAGE, POLL_INTERVAL, SNOOZE_SECONDS
from timer_cli.exceptions import AlertDeliveryFailure
from timer_cli.models.history import HistoryEntry, HistoryEntryCreate, TimerOutcome
from timer_cli.models.timer import AlertAction, TimerRecord, TimerRecordUpdate, TimerState
from timer_cli.repositories.timers import TimerRepository
from timer_cli.services.alert.base import BaseAlertService
from timer_cli.services.timer.control import ControlChannel
from timer_cli.utils.datetime_helper import utc_now

logger = logging.getLogger(__name__)


class WaitResult(str, Enum):
    """Why the running phase ended"""
    EXPIRED = "expired"
    CANCELLED = "cancelled"
    VANISHED = "vanished"  # Record removed by someone else (stale purge)


class TimerProcess:
    """
    Owner of exactly one timer record.

    running -> alerting -> terminated, or running -> terminated when a
    cancellation arrives first. Snooze and restart send the record back
    to running under the same id. All writes go through the owner token.
    """

    def __init__(
        self,
        record: TimerRecord,
        timers: TimerRepository,
        control: ControlChannel,
        alerts: BaseAlertService,
        snooze: timedelta = timedelta(seconds=SNOOZE_SECONDS),
        poll_interval: float = POLL_INTERVAL,
        clock: Callable[[], datetime] = utc_now,
        sleep: Callable[[float], None] = time.sleep,
        on_tick: Optional[Callable[[timedelta], None]] = None,
    ):
        self.record = record
        self.timers = timers
        self.control = control
        self.alerts = alerts
        self.snooze = snooze
        self.poll_interval = poll_interval
        self.clock = clock
        self.sleep = sleep
        self.on_tick = on_tick
        self.state = record.state

    @property
    def timer_id(self) -> int:
        return self.record.id

    @property
    def owner_token(self) -> str:
        return self.record.owner_token

    def run(self) -> Optional[HistoryEntry]:
        """
        Run until the timer terminates.

        Returns:
            The history entry written at termination, or None if the
            record disappeared underneath us
        """
        logger.info(f"Timer {self.timer_id} running, expires at {self.record.expires_at}")
        try:
            while True:
                result = self._wait_until_expiry()
                if result == WaitResult.VANISHED:
                    return self._vanished()
                if result == WaitResult.CANCELLED:
                    return self._terminate(TimerOutcome.STOPPED_EARLY)

                action = self._alert()
                if action is None or action == AlertAction.STOP:
                    return self._terminate(TimerOutcome.COMPLETED)
                if action == AlertAction.SNOOZE:
                    span = self.snooze
                else:
                    span = self.record.duration
                if not self._rearm(span):
                    return self._vanished()
        except KeyboardInterrupt:
            self.alerts.stop_sound()
            if self.state == TimerState.ALERTING:
                return self._terminate(TimerOutcome.COMPLETED)
            return self._terminate(TimerOutcome.STOPPED_EARLY)

    def _cancel_requested(self) -> bool:
        return self.control.is_cancel_requested(self.timer_id, self.owner_token)

    def _wait_until_expiry(self) -> WaitResult:
        while True:
            if self.control.signalled:
                return WaitResult.CANCELLED
            record = self.timers.get(self.timer_id)
            if record is None or record.owner_token != self.owner_token:
                return WaitResult.VANISHED
            if record.is_cancel_requested():
                return WaitResult.CANCELLED
            self.record = record

            remaining = record.remaining(self.clock())
            if self.on_tick is not None:
                self.on_tick(remaining)
            if remaining <= timedelta(0):
                return WaitResult.EXPIRED
            self.sleep(min(self.poll_interval, remaining.total_seconds()))

    def _alert(self) -> Optional[AlertAction]:
        """
        Alert the user and wait for their action.

        Returns:
            The chosen action, or None if the timer was cancelled (which
            takes priority over anything clicked at the same time)
        """
        updated = self.timers.update(self.timer_id, self.owner_token, TimerRecordUpdate(state=TimerState.ALERTING))
        if updated is None:
            return None
        self.record = updated
        self.state = TimerState.ALERTING
        logger.info(f"Timer {self.timer_id} expired, alerting")

        message = self.record.message or DEFAULT_MESSAGE
        self.alerts.start_loop_sound()
        try:
            action = self.alerts.present_alert(message, self._cancel_requested)
        except AlertDeliveryFailure as e:
            logger.error(f"Timer {self.timer_id}: alert could not be shown ({e}); waiting for kill")
            self.alerts.stop_sound()
            action = self._wait_for_cancel()
        finally:
            self.alerts.stop_sound()

        if self._cancel_requested():
            if action is not None:
                logger.info(f"Timer {self.timer_id}: cancellation wins over '{action.value}'")
            return None
        if action is None:
            return None
        logger.info(f"Timer {self.timer_id}: user chose '{action.value}'")
        return action

    def _wait_for_cancel(self) -> None:
        while not self._cancel_requested():
            self.sleep(self.poll_interval)
        return None

    def _rearm(self, span: timedelta) -> bool:
        expires_at = self.clock() + span
        updated = self.timers.update(
            self.timer_id,
            self.owner_token,
            TimerRecordUpdate(expires_at=expires_at, state=TimerState.RUNNING),
        )
        if updated is None:
            return False
        self.record = updated
        self.state = TimerState.RUNNING
        logger.info(f"Timer {self.timer_id} re-armed for {span}, expires at {expires_at}")
        return True

    def _terminate(self, outcome: TimerOutcome) -> Optional[HistoryEntry]:
        entry = HistoryEntryCreate(
            timestamp=self.clock(),
            duration_seconds=self.record.duration_seconds,
            duration_text=self.record.duration_text,
            message=self.record.message,
            foreground=self.record.foreground,
            outcome=outcome,
        )
        history = self.timers.terminate(self.timer_id, self.owner_token, entry)
        self.state = TimerState.TERMINATED
        if history is None:
            logger.warning(f"Timer {self.timer_id} was already removed, no history written")
        return history

    def _vanished(self) -> None:
        self.state = TimerState.TERMINATED
        logger.warning(f"Timer {self.timer_id} record disappeared, exiting without history")
        return None
