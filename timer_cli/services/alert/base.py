"""Base class for the expiry alert collaborator."""
from abc import ABC, abstractmethod
from typing import Callable, Optional

from timer_cli.models.timer import AlertAction


class BaseAlertService(ABC):
    """
    Sound + popup shown when a timer expires.
    One implementation per environment; tests substitute their own.
    """

    @abstractmethod
    def start_loop_sound(self) -> None:
        """Start playing the alarm sound on repeat (returns immediately)"""

    @abstractmethod
    def stop_sound(self) -> None:
        """Stop the alarm sound; safe to call when nothing is playing"""

    @abstractmethod
    def present_alert(self, message: str, should_cancel: Callable[[], bool]) -> Optional[AlertAction]:
        """
        Show the alert and block until the user acts.

        ``should_cancel`` is polled while waiting; once it returns True the
        alert is closed and None is returned.

        Raises:
            AlertDeliveryFailure: If the alert cannot be shown at all
        """
