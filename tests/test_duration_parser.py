from datetime import timedelta

import pytest

from timer_cli.exceptions import InvalidDuration
from timer_cli.utils.duration_parser import parse_duration


@pytest.mark.parametrize("text, expected", [
    ("2s", timedelta(seconds=2)),
    ("90", timedelta(seconds=90)),
    ("30m", timedelta(minutes=30)),
    ("1h30m", timedelta(hours=1, minutes=30)),
    ("1min 30 seconds", timedelta(minutes=1, seconds=30)),
    ("1h, 20m and 5s", timedelta(hours=1, minutes=20, seconds=5)),
    ("1.5h", timedelta(minutes=90)),
    ("  2 Hours ", timedelta(hours=2)),
    ("1d", timedelta(days=1)),
    ("500ms", timedelta(milliseconds=500)),
])
def test_parses_human_durations(text, expected):
    assert parse_duration(text) == expected


@pytest.mark.parametrize("text", ["", "   ", "0", "0s", "0m 0s", "-5s", "abc", "5 fortnights", "1.2.3s", "m"])
def test_rejects_invalid_or_non_positive(text):
    with pytest.raises(InvalidDuration):
        parse_duration(text)


def test_invalid_duration_is_a_value_error():
    with pytest.raises(ValueError):
        parse_duration("soon")


@pytest.mark.parametrize("text", ["99999999999d", "9" * 400])
def test_rejects_spans_too_large_to_represent(text):
    with pytest.raises(InvalidDuration, match="too large"):
        parse_duration(text)
