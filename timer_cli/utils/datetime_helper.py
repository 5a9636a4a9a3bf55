"""Datetime helpers"""
from datetime import datetime, timezone, timedelta


def utc_now() -> datetime:
    """
    Current time as naive UTC.

    Timestamps are stored without tzinfo (SQLite drops it anyway), so
    everything inside the engine compares naive UTC values.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_local(dt: datetime) -> datetime:
    """Convert a stored naive-UTC timestamp to local time for display"""
    return dt.replace(tzinfo=timezone.utc).astimezone()


def format_clock(span: timedelta) -> str:
    """
    Format a span as HH:MM:SS.

    Returns:
        str: e.g. "01:05:09"; spans over a day keep counting hours
    """
    total = max(0, int(span.total_seconds() + 0.5))
    hours, rest = divmod(total, 3600)
    minutes, seconds = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


def format_local(dt: datetime) -> str:
    return to_local(dt).strftime("%Y-%m-%d %H:%M:%S")


def format_span(span: timedelta) -> str:
    """
    Compact human form of a span.

    Returns:
        str: e.g. "5m", "1h 30m", "1d 2h", "0.5s"
    """
    seconds = span.total_seconds()
    if seconds < 1:
        return f"{seconds:g}s"
    total = int(round(seconds))
    days, rest = divmod(total, 86400)
    hours, rest = divmod(rest, 3600)
    minutes, secs = divmod(rest, 60)
    parts = []
    for value, unit in ((days, "d"), (hours, "h"), (minutes, "m"), (secs, "s")):
        if value:
            parts.append(f"{value}{unit}")
    return " ".join(parts)
