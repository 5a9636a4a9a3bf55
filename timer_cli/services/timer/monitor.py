"""Active view - live table of running timers with kill input"""
import logging
import select
import sys
from datetime import datetime
from typing import Callable, List, Optional, TextIO

from rich.console import Console, Group
from rich.live import Live
from rich.text import Text

from timer_cli.config import REFRESH_INTERVAL
from timer_cli.exceptions import StoreUnavailable
from timer_cli.services.timer.timer_manager import ActiveListing, KillResult, KillStatus, TimerManager
from timer_cli.utils.datetime_helper import utc_now
from timer_cli.utils.tables import build_timer_table

logger = logging.getLogger(__name__)

EXIT_COMMANDS = {"q", "quit", "exit"}

RESULT_STYLES = {
    KillStatus.STOPPED: "green",
    KillStatus.REQUESTED: "green",
    KillStatus.STALE_REMOVED: "yellow",
    KillStatus.NOTHING_TO_DO: "dim",
}


class ActiveViewMonitor:
    """
    Polls the timer table and redraws it every ``refresh_interval``.

    Kill commands are sent without waiting: the next refresh shows the
    timer gone once its owner has acted.
    """

    def __init__(
        self,
        manager: TimerManager,
        console: Optional[Console] = None,
        refresh_interval: float = REFRESH_INTERVAL,
        clock: Callable[[], datetime] = utc_now,
        input_stream: TextIO = sys.stdin,
    ):
        self.manager = manager
        self.console = console or Console()
        self.refresh_interval = refresh_interval
        self.clock = clock
        self.input_stream = input_stream
        self.feedback: List[Text] = []

    def handle_command(self, line: str) -> bool:
        """
        Apply one line of input.

        Returns:
            False when the user asked to leave the view
        """
        command = line.strip().lower()
        if not command:
            return True
        if command in EXIT_COMMANDS:
            return False

        if command == "all":
            results = self.manager.kill_all(wait=False)
            if not results:
                self.feedback = [Text("No active timers, nothing to kill", style="dim")]
            else:
                self.feedback = [self._result_text(r) for r in results]
        elif command.isdigit():
            self.feedback = [self._result_text(self.manager.kill(int(command), wait=False))]
        else:
            self.feedback = [Text(f"Unknown command: {line.strip()!r}", style="red")]
        return True

    def poll(self) -> ActiveListing:
        """Read the table once, noting purged stale records"""
        listing = self.manager.list_active()
        for record in listing.stale:
            self.feedback.append(Text(
                f"Timer {record.id} is stale: process {record.owner_pid} is gone; removed",
                style="yellow",
            ))
        return listing

    def render(self, listing: ActiveListing) -> Group:
        parts = []
        if listing.timers:
            parts.append(build_timer_table(listing.timers, self.clock()))
        else:
            parts.append(Text("No active timers", style="dim"))
        parts.extend(self.feedback)
        parts.append(Text("Type an id + Enter to kill it, 'all' to kill all, 'q' or Ctrl-C to leave", style="dim"))
        return Group(*parts)

    def _read_line(self, timeout: float) -> Optional[str]:
        ready, _, _ = select.select([self.input_stream], [], [], timeout)
        if not ready:
            return None
        line = self.input_stream.readline()
        if line == "":
            # EOF on stdin
            return "q"
        return line

    def run(self) -> None:
        """Run until the user leaves; running timers are unaffected."""
        logger.info("Active view started")
        try:
            with Live(console=self.console, auto_refresh=False) as live:
                while True:
                    try:
                        renderable = self.render(self.poll())
                    except StoreUnavailable as e:
                        renderable = Text(f"Timer store unavailable: {e}", style="red")
                    live.update(renderable, refresh=True)

                    line = self._read_line(self.refresh_interval)
                    if line is None:
                        continue
                    self.feedback = []
                    try:
                        if not self.handle_command(line):
                            break
                    except StoreUnavailable as e:
                        self.feedback = [Text(f"Kill failed: {e}", style="red")]
        except KeyboardInterrupt:
            pass
        logger.info("Active view closed")

    @staticmethod
    def _result_text(result: KillResult) -> Text:
        return Text(result.message, style=RESULT_STYLES.get(result.status, ""))
