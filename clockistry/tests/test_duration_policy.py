from datetime import date, datetime, timedelta, timezone
from types import SimpleNamespace
from zoneinfo import ZoneInfo

import pytest

from clockistry.core.duration import (
    Period,
    effective_duration,
    elapsed,
    format_duration,
    inclusive_date_range,
    period_window,
    summarize,
)

UTC = ZoneInfo("UTC")
NOW = datetime(2024, 3, 7, 15, 30, 0)  # a Thursday


def _entry(duration, is_billable=False, is_running=False, start_time=None):
    return SimpleNamespace(
        duration=duration,
        is_billable=is_billable,
        is_running=is_running,
        start_time=start_time,
    )


def test_elapsed_floors_partial_seconds():
    start = datetime(2024, 3, 7, 9, 0, 0)
    assert elapsed(start, start + timedelta(seconds=125, milliseconds=999)) == 125


def test_elapsed_is_never_negative():
    start = datetime(2024, 3, 7, 9, 0, 0)
    assert elapsed(start, start - timedelta(minutes=5)) == 0


def test_elapsed_accepts_aware_and_naive_utc():
    start = datetime(2024, 3, 7, 9, 0, 0)
    end = datetime(2024, 3, 7, 10, 0, 0, tzinfo=timezone.utc)
    assert elapsed(start, end) == 3600


@pytest.mark.parametrize(
    "seconds, expected",
    [
        (0, "00:00:00"),
        (59, "00:00:59"),
        (125, "00:02:05"),
        (3600, "01:00:00"),
        (90061, "25:01:01"),
        (360000, "100:00:00"),
    ],
)
def test_format_duration(seconds, expected):
    assert format_duration(seconds) == expected


def test_format_duration_rejects_negative():
    with pytest.raises(ValueError):
        format_duration(-1)


def test_effective_duration_uses_live_elapsed_for_running_entries():
    running = _entry(0, is_running=True, start_time=NOW - timedelta(minutes=3))
    stopped = _entry(900, start_time=NOW - timedelta(hours=5))
    assert effective_duration(running, NOW) == 180
    assert effective_duration(stopped, NOW) == 900


def test_summarize_splits_billable():
    totals = summarize(
        [
            _entry(3600, is_billable=True),
            _entry(1800, is_billable=False),
            _entry(0, is_billable=True, is_running=True, start_time=NOW - timedelta(seconds=60)),
        ],
        NOW,
    )
    assert totals.total == 5460
    assert totals.billable == 3660
    assert totals.non_billable == 1800
    assert totals.entries == 3
    assert totals.total_formatted == "01:31:00"


def test_summarize_empty():
    totals = summarize([], NOW)
    assert totals.total == 0
    assert totals.entries == 0
    assert totals.total_formatted == "00:00:00"


def test_inclusive_date_range_covers_last_day():
    lower, upper = inclusive_date_range(date(2024, 3, 5), date(2024, 3, 5), UTC)
    assert lower == datetime(2024, 3, 5, 0, 0, 0)
    assert upper == datetime(2024, 3, 5, 23, 59, 59, 999999)
    assert lower <= datetime(2024, 3, 5, 23, 50, 0) <= upper


def test_inclusive_date_range_open_ends():
    assert inclusive_date_range(None, None, UTC) == (None, None)
    lower, upper = inclusive_date_range(date(2024, 3, 5), None, UTC)
    assert lower == datetime(2024, 3, 5)
    assert upper is None


def test_inclusive_date_range_rejects_inverted_range():
    with pytest.raises(ValueError):
        inclusive_date_range(date(2024, 3, 6), date(2024, 3, 5), UTC)


def test_inclusive_date_range_in_server_timezone():
    # New York is UTC-5 in early March.
    lower, upper = inclusive_date_range(date(2024, 3, 5), date(2024, 3, 5), ZoneInfo("America/New_York"))
    assert lower == datetime(2024, 3, 5, 5, 0, 0)
    assert upper == datetime(2024, 3, 6, 4, 59, 59, 999999)


def test_period_windows():
    today = period_window(Period.TODAY, NOW, UTC)
    assert today == (datetime(2024, 3, 7), datetime(2024, 3, 7, 23, 59, 59, 999999))

    week_start, week_end = period_window(Period.WEEK, NOW, UTC)
    assert week_start == datetime(2024, 3, 3)  # Sunday
    assert week_end == datetime(2024, 3, 7, 23, 59, 59, 999999)

    month_start, _ = period_window(Period.MONTH, NOW, UTC)
    assert month_start == datetime(2024, 3, 1)


def test_week_window_on_a_sunday_starts_that_day():
    sunday = datetime(2024, 3, 10, 8, 0, 0)
    start, _ = period_window(Period.WEEK, sunday, UTC)
    assert start == datetime(2024, 3, 10)
