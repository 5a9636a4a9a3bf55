"""Rich tables for active timers and history"""
from datetime import datetime
from typing import List

from rich import box
from rich.table import Table
from rich.text import Text

from timer_cli.models.history import HistoryEntry, TimerOutcome
from timer_cli.models.timer import TimerRecord, TimerState
from timer_cli.utils.datetime_helper import format_clock, format_local

STATE_STYLES = {
    TimerState.RUNNING: "green",
    TimerState.ALERTING: "bold red",
}

OUTCOME_STYLES = {
    TimerOutcome.COMPLETED: "green",
    TimerOutcome.STOPPED_EARLY: "yellow",
}


def build_timer_table(records: List[TimerRecord], now: datetime) -> Table:
    table = Table(box=box.SIMPLE_HEAVY, header_style="bold cyan")
    table.add_column("ID", justify="right")
    table.add_column("State")
    table.add_column("Remaining", justify="right")
    table.add_column("Expires")
    table.add_column("Mode")
    table.add_column("PID", justify="right")
    table.add_column("Message")

    for record in records:
        remaining = record.remaining(now)
        if record.state == TimerState.ALERTING:
            remaining_text = Text("00:00:00", style="bold red")
        else:
            remaining_text = Text(format_clock(remaining))
        state_text = Text(record.state.value, style=STATE_STYLES.get(record.state, ""))
        if record.is_cancel_requested():
            state_text.append(" (stopping)", style="dim")
        table.add_row(
            str(record.id),
            state_text,
            remaining_text,
            format_local(record.expires_at),
            "fg" if record.foreground else "bg",
            str(record.owner_pid),
            record.message or "",
        )
    return table


def build_history_table(entries: List[HistoryEntry]) -> Table:
    table = Table(box=box.SIMPLE_HEAVY, header_style="bold cyan")
    table.add_column("Timestamp")
    table.add_column("Duration")
    table.add_column("Message")
    table.add_column("Outcome")
    table.add_column("Background")

    for entry in entries:
        table.add_row(
            format_local(entry.timestamp),
            entry.duration_text,
            entry.message or "",
            Text(entry.outcome.value.replace("_", " "), style=OUTCOME_STYLES.get(entry.outcome, "")),
            str(not entry.foreground).lower(),
        )
    return table
