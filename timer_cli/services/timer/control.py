"""Control channel - delivers cancellation requests across processes"""
import logging
import signal
from typing import List

from timer_cli.models.timer import TimerRecord
from timer_cli.repositories.timers import TimerRepository

logger = logging.getLogger(__name__)


class ControlChannel:
    """
    Cancellation requests for running timers.

    Senders set the ``cancel_requested_at`` flag on the target row; the
    owning process polls for it. Inside the owning process a SIGTERM (or
    SIGHUP for foreground timers whose terminal went away) is turned into
    the same request, which is what the kill command falls back to when
    an owner stops polling.
    """

    def __init__(self, timers: TimerRepository):
        self.timers = timers
        self._signalled = False

    def request_cancel(self, timer_id: int) -> bool:
        """
        Ask the owner of ``timer_id`` to stop.

        Returns:
            True if a request was recorded, False if no such timer exists
        """
        requested = self.timers.request_cancel(timer_id)
        if requested:
            logger.info(f"Cancel requested for timer {timer_id}")
        else:
            logger.info(f"Cancel for timer {timer_id}: no active timer, nothing to do")
        return requested

    def request_cancel_all(self) -> List[TimerRecord]:
        records = self.timers.request_cancel_all()
        logger.info(f"Cancel requested for timers {[r.id for r in records]}")
        return records

    def is_cancel_requested(self, timer_id: int, owner_token: str) -> bool:
        """
        Owner-side check.

        A record that no longer exists under our token counts as
        cancelled: there is nothing left for this process to drive.
        """
        if self._signalled:
            return True
        record = self.timers.get(timer_id)
        if record is None or record.owner_token != owner_token:
            return True
        return record.is_cancel_requested()

    @property
    def signalled(self) -> bool:
        return self._signalled

    def install_signal_handlers(self) -> None:
        """Route SIGTERM/SIGHUP in this process into a cancellation request."""
        def _handle(signum, frame):
            logger.info(f"Received signal {signum}, cancelling")
            self._signalled = True

        signal.signal(signal.SIGTERM, _handle)
        if hasattr(signal, "SIGHUP"):
            signal.signal(signal.SIGHUP, _handle)
