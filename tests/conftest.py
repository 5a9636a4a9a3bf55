import threading
import time
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Union

import pytest

from timer_cli.models.timer import AlertAction
from timer_cli.services.alert.base import BaseAlertService
from timer_cli.services.timer import TimerManager


class FakeClock:
    """Manually advanced naive-UTC clock"""

    def __init__(self, start: datetime = datetime(2026, 1, 1, 12, 0, 0)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


AlertStep = Union[AlertAction, Callable[[Callable[[], bool]], Optional[AlertAction]], Exception]


class FakeAlerts(BaseAlertService):
    """
    Scripted alert collaborator.

    Each present_alert call consumes one step: an action to return, an
    exception to raise, or a callable receiving ``should_cancel``.
    """

    def __init__(self, steps: Optional[List[AlertStep]] = None):
        self.steps = list(steps or [])
        self.presented: List[str] = []
        self.sound_started = 0
        self.sound_stopped = 0

    def start_loop_sound(self) -> None:
        self.sound_started += 1

    def stop_sound(self) -> None:
        self.sound_stopped += 1

    def present_alert(self, message, should_cancel):
        self.presented.append(message)
        step = self.steps.pop(0) if self.steps else wait_for_cancel
        if isinstance(step, Exception):
            raise step
        if callable(step):
            return step(should_cancel)
        return step


def wait_for_cancel(should_cancel) -> None:
    """Block like an unanswered popup until cancelled"""
    while not should_cancel():
        time.sleep(0.01)
    return None


class RecordingTerminator:
    """Stands in for SIGTERM delivery so tests never signal real processes"""

    def __init__(self):
        self.pids: List[int] = []

    def __call__(self, pid: int) -> bool:
        self.pids.append(pid)
        return True


@pytest.fixture
def db_path(tmp_path) -> str:
    return str(tmp_path / "timers.db")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def terminator() -> RecordingTerminator:
    return RecordingTerminator()


@pytest.fixture
def manager(db_path, terminator) -> TimerManager:
    """Manager on a temporary database, real clock, fast polling"""
    return TimerManager(
        db_path=db_path,
        terminator=terminator,
        kill_grace=2.0,
        poll_interval=0.01,
    )


class TimerThread:
    """Runs a TimerProcess in a thread, standing in for a timer's OS process"""

    def __init__(self, manager: TimerManager, record, alerts: Optional[FakeAlerts] = None):
        self.process = manager.build_process(record, alerts or FakeAlerts())
        self.result = None
        self.thread = threading.Thread(target=self._run, daemon=True)

    def _run(self):
        self.result = self.process.run()

    def start(self) -> "TimerThread":
        self.thread.start()
        return self

    def join(self, timeout: float = 5.0) -> None:
        self.thread.join(timeout)


@pytest.fixture
def run_timer(manager):
    """Start foreground-owned timers driven by threads; stopped at teardown."""
    threads: List[TimerThread] = []

    def _start(duration: timedelta = timedelta(hours=1), message: Optional[str] = None,
               alerts: Optional[FakeAlerts] = None) -> TimerThread:
        record = manager.start(duration, message, foreground=True)
        timer_thread = TimerThread(manager, record, alerts).start()
        threads.append(timer_thread)
        return timer_thread

    yield _start

    manager.control.request_cancel_all()
    for timer_thread in threads:
        timer_thread.join()
