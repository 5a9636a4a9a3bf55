"""Duration string parsing"""
import math
import re
from datetime import timedelta

from timer_cli.exceptions import InvalidDuration

_UNIT_SECONDS = {
    "ms": 0.001, "msec": 0.001, "millisecond": 0.001, "milliseconds": 0.001,
    "s": 1, "sec": 1, "secs": 1, "second": 1, "seconds": 1,
    "m": 60, "min": 60, "mins": 60, "minute": 60, "minutes": 60,
    "h": 3600, "hr": 3600, "hrs": 3600, "hour": 3600, "hours": 3600,
    "d": 86400, "day": 86400, "days": 86400,
    "w": 604800, "week": 604800, "weeks": 604800,
}

_TOKEN_RE = re.compile(r"(\d+(?:\.\d+)?)\s*([a-z]*)")
_SEPARATOR_RE = re.compile(r"(?:\s|,|\band\b)*")


def parse_duration(text: str) -> timedelta:
    """
    Parse a human duration string.

    Accepts formats:
    - "90" - bare number treated as seconds
    - "2s", "30m", "4h", "1d" - single unit
    - "1h30m", "1min 30 seconds", "1h, 20m and 5s" - combinations
    - "1.5h" - fractional amounts

    Args:
        text: Duration string to parse

    Returns:
        The parsed span

    Raises:
        InvalidDuration: If the format is invalid or the span is not positive
    """
    if not text or not text.strip():
        raise InvalidDuration("empty duration string")

    normalized = text.strip().lower()
    total = 0.0
    pos = 0
    found = False

    while pos < len(normalized):
        sep = _SEPARATOR_RE.match(normalized, pos)
        pos = sep.end()
        if pos >= len(normalized):
            break

        match = _TOKEN_RE.match(normalized, pos)
        if not match:
            raise InvalidDuration(f"invalid duration {text!r}: unexpected {normalized[pos:]!r}")

        amount, unit = match.groups()
        if not unit:
            unit = "s"
        if unit not in _UNIT_SECONDS:
            raise InvalidDuration(f"invalid duration {text!r}: unknown unit {unit!r}")

        total += float(amount) * _UNIT_SECONDS[unit]
        found = True
        pos = match.end()

    if not found:
        raise InvalidDuration(f"invalid duration {text!r}")
    if not math.isfinite(total):
        raise InvalidDuration(f"duration too large: {text!r}")
    if total <= 0:
        raise InvalidDuration(f"duration must be positive, got {text!r}")

    try:
        return timedelta(seconds=total)
    except OverflowError as e:
        raise InvalidDuration(f"duration too large: {text!r}") from e
