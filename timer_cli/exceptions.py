"""Errors raised by the timer engine"""


class TimerError(Exception):
    """Base class for timer_cli errors."""


class InvalidDuration(TimerError, ValueError):
    """Duration text could not be parsed or is not a positive span."""


class StoreUnavailable(TimerError):
    """The shared timer database could not be read or written."""


class StaleRecord(TimerError):
    """An active record whose owning process no longer exists."""

    def __init__(self, timer_id: int, owner_pid: int):
        self.timer_id = timer_id
        self.owner_pid = owner_pid
        super().__init__(f"Timer {timer_id} owner process {owner_pid} is no longer running")


class AlertDeliveryFailure(TimerError):
    """The expiry popup could not be shown."""


class ProcessLaunchFailure(TimerError):
    """A background timer process could not be started."""
