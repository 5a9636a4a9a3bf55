import logging
import os
import sys
from contextlib import contextmanager
from datetime import timedelta
from typing import Iterator, Optional

import typer
from rich.console import Console

from timer_cli import __version__
from timer_cli.config import DB_PATH, HISTORY_COUNT, LOG_LEVEL, LOG_PATH
from timer_cli.db.session import dispose_engine
from timer_cli.exceptions import InvalidDuration, TimerError
from timer_cli.models.history import TimerOutcome
from timer_cli.services.alert import DesktopAlertService
from timer_cli.services.timer import ActiveViewMonitor, KillResult, KillStatus, TimerManager
from timer_cli.utils.datetime_helper import format_clock, format_local, format_span, utc_now
from timer_cli.utils.duration_parser import parse_duration
from timer_cli.utils.tables import build_history_table, build_timer_table

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

logger = logging.getLogger(__name__)

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    help="Countdown timers that run in the background and alert you when they expire.",
)
console = Console()
err_console = Console(stderr=True)

KILL_STYLES = {
    KillStatus.STOPPED: "green",
    KillStatus.REQUESTED: "yellow",
    KillStatus.STALE_REMOVED: "yellow",
    KillStatus.NOTHING_TO_DO: "dim",
}


def configure_logging() -> None:
    """Log to the shared file so detached timers' errors can be read later."""
    try:
        logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT, filename=LOG_PATH, force=True)
    except OSError:
        logging.basicConfig(level=logging.WARNING, format=LOG_FORMAT, force=True)
        logger.warning(f"Cannot write log file {LOG_PATH}, logging to stderr")


def _manager() -> TimerManager:
    return TimerManager(db_path=DB_PATH)


@contextmanager
def cli_errors() -> Iterator[None]:
    """Report engine errors with a clear message and a non-zero exit."""
    try:
        yield
    except TimerError as e:
        logger.error(f"{type(e).__name__}: {e}")
        err_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"timer_cli {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False, "--version", "-V", callback=_version_callback, is_eager=True, help="Show version and exit."
    ),
) -> None:
    configure_logging()


@app.command()
def start(
    duration: str = typer.Argument(..., help='Duration, e.g. "2s", "1h30m", "1min 30 seconds".'),
    message: Optional[str] = typer.Argument(None, help="Message shown when the timer goes off."),
    fg: bool = typer.Option(False, "--fg", "-f", help="Run in the foreground with a live countdown."),
) -> None:
    """Start a timer (in the background unless --fg)."""
    try:
        span = parse_duration(duration)
    except InvalidDuration as e:
        err_console.print(f"[red]Error parsing duration:[/red] {e}")
        raise typer.Exit(1)

    with cli_errors():
        manager = _manager()
        record = manager.start(span, message, foreground=fg, duration_text=duration)
        console.print(
            f"Timer [bold]{record.id}[/bold] started for {format_span(span)} "
            f"(expires {format_local(record.expires_at)})"
        )
        if fg:
            _run_foreground(manager, record)


def _print_countdown(remaining: timedelta) -> None:
    sys.stdout.write(f"\rTime remaining: {format_clock(remaining)}")
    sys.stdout.flush()


def _run_foreground(manager: TimerManager, record) -> None:
    manager.control.install_signal_handlers()
    process = manager.build_process(record, DesktopAlertService(), on_tick=_print_countdown)
    entry = process.run()
    sys.stdout.write("\n")
    if entry is None:
        console.print(f"Timer {record.id} ended")
    elif entry.outcome == TimerOutcome.STOPPED_EARLY:
        console.print(f"[yellow]Timer {record.id} stopped early[/yellow]")
    else:
        console.print(f"[green]Timer {record.id} done[/green]")


@app.command("worker", hidden=True)
def worker(
    timer_id: int = typer.Argument(...),
    owner_token: str = typer.Argument(...),
) -> None:
    """Run a background timer. Not intended for manual use."""
    logger.info(f"Worker started for timer {timer_id} pid={os.getpid()}")
    try:
        manager = _manager()
        manager.control.install_signal_handlers()
        record = manager.timers.get(timer_id)
        if record is not None and record.owner_token == owner_token:
            manager.build_process(record, DesktopAlertService()).run()
        else:
            logger.warning(f"Worker exiting: timer {timer_id} is not ours")
    except Exception:
        logger.exception(f"Worker crashed for timer {timer_id}")
        raise
    logger.info(f"Worker for timer {timer_id} finished")


@app.command("list")
def list_timers() -> None:
    """Show active timers."""
    with cli_errors():
        listing = _manager().list_active()
    for record in listing.stale:
        console.print(
            f"[yellow]Timer {record.id} was stale (process {record.owner_pid} is gone); removed[/yellow]"
        )
    if not listing.timers:
        console.print("No active timers")
        return
    console.print(build_timer_table(listing.timers, utc_now()))


def _print_kill_result(result: KillResult) -> None:
    style = KILL_STYLES.get(result.status, "")
    console.print(f"[{style}]{result.message}[/{style}]" if style else result.message)


@app.command()
def kill(
    target: str = typer.Argument(..., help="Timer id as shown by `list`, or 'all'."),
) -> None:
    """Stop a running timer, or all of them."""
    if target.lower() == "all":
        with cli_errors():
            results = _manager().kill_all()
        if not results:
            console.print("No active timers, nothing to kill")
        for result in results:
            _print_kill_result(result)
        return

    try:
        timer_id = int(target)
    except ValueError:
        err_console.print(f"[red]Error:[/red] expected a timer id or 'all', got {target!r}")
        raise typer.Exit(1)

    with cli_errors():
        result = _manager().kill(timer_id)
    _print_kill_result(result)


@app.command()
def history(
    count: int = typer.Argument(HISTORY_COUNT, min=1, help="Number of entries to show."),
) -> None:
    """Show the most recent finished timers."""
    with cli_errors():
        entries = _manager().list_history(count)
    if not entries:
        console.print("No history yet")
        return
    console.print(build_history_table(entries))


@app.command()
def watch() -> None:
    """Live view of active timers; type an id to kill it."""
    with cli_errors():
        ActiveViewMonitor(_manager(), console=console).run()


@app.command()
def clean(
    force: bool = typer.Option(False, "--force", help="Delete even while timers are active."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation."),
) -> None:
    """Delete the timer database, history included."""
    with cli_errors():
        listing = _manager().list_active()
    if listing.timers and not force:
        err_console.print(
            f"[red]Error:[/red] {len(listing.timers)} timer(s) still active; "
            "kill them first or pass --force"
        )
        raise typer.Exit(1)
    if not yes:
        typer.confirm(f"Delete {DB_PATH} and all history?", abort=True)

    dispose_engine(DB_PATH)
    for suffix in ("", "-wal", "-shm"):
        path = DB_PATH + suffix
        if os.path.exists(path):
            os.remove(path)
    logger.info(f"Timer database {DB_PATH} removed")
    console.print(f"Removed {DB_PATH}")
