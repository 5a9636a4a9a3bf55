"""Desktop alert: looping sound plus popup window"""
import logging
from datetime import timedelta
from typing import Callable, Optional

from timer_cli.config import POLL_INTERVAL, SNOOZE_SECONDS, SOUND_PATH
from timer_cli.models.timer import AlertAction
from timer_cli.services.alert.base import BaseAlertService
from timer_cli.services.alert.popup import show_alert_popup
from timer_cli.services.alert.sound import SoundLoop
from timer_cli.utils.datetime_helper import format_span

logger = logging.getLogger(__name__)


class DesktopAlertService(BaseAlertService):
    """Alert shown on the local desktop"""

    def __init__(
        self,
        sound_path: Optional[str] = SOUND_PATH,
        snooze: timedelta = timedelta(seconds=SNOOZE_SECONDS),
        poll_interval: float = POLL_INTERVAL,
    ):
        self.sound_path = sound_path
        self.snooze = snooze
        self.poll_interval = poll_interval
        self._sound: Optional[SoundLoop] = None

    def start_loop_sound(self) -> None:
        # A silent alert still works, so sound problems are only logged
        self.stop_sound()
        sound = SoundLoop(self.sound_path)
        try:
            if sound.start():
                self._sound = sound
        except OSError as e:
            logger.warning(f"Alarm sound failed: {e}")

    def stop_sound(self) -> None:
        if self._sound is not None:
            self._sound.stop()
            self._sound = None

    def present_alert(self, message: str, should_cancel: Callable[[], bool]) -> Optional[AlertAction]:
        return show_alert_popup(
            message,
            should_cancel,
            snooze_label=f"Snooze {format_span(self.snooze)}",
            poll_ms=max(50, int(self.poll_interval * 1000)),
        )
