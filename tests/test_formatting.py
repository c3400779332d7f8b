from __future__ import annotations

import pytest

from nasne_remote.formatting import format_date_time, format_duration, format_time


def test_format_date_time_naive():
    assert format_date_time("2024-03-05T07:09:00") == "3/5 07:09"


def test_format_date_time_invalid_returns_input():
    assert format_date_time("not a date") == "not a date"
    assert format_date_time(None) == ""


def test_format_time():
    assert format_time("2024-03-05T21:30:00") == "21:30"
    assert format_time("garbage") == ""


def test_aware_dates_are_parsed():
    assert format_time("2024-03-05T21:30:00Z") != ""
    assert format_time("2024-03-05T21:30:00+09:00") != ""


@pytest.mark.parametrize(
    ("seconds", "expected"),
    [(5400, "1h 30m"), (7200, "2h"), (2700, "45m"), (59, "0m"), (None, ""), ("x", "")],
)
def test_format_duration(seconds, expected):
    assert format_duration(seconds) == expected
