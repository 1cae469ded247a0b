"""Elapsed-time arithmetic, formatting and the calendar windows used by summaries.

Every date-bounded query goes through :func:`inclusive_date_range`, whose end
bound covers the whole last day up to 23:59:59.999999 in the server calendar.
"""

import math
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from enum import Enum
from typing import Iterable, Optional, Tuple
from zoneinfo import ZoneInfo

from clockistry.core.timeutil import to_naive_utc


class Period(str, Enum):
    TODAY = "today"
    WEEK = "week"
    MONTH = "month"


@dataclass(frozen=True)
class DurationTotals:
    total: int = 0
    billable: int = 0
    non_billable: int = 0
    entries: int = 0

    @property
    def total_formatted(self) -> str:
        return format_duration(self.total)


def elapsed(start: datetime, end: datetime) -> int:
    """Whole seconds from start to end, never negative."""
    seconds = (to_naive_utc(end) - to_naive_utc(start)).total_seconds()
    return max(0, math.floor(seconds))


def format_duration(seconds: int) -> str:
    if seconds < 0:
        raise ValueError("duration must be non-negative")
    hours, rest = divmod(int(seconds), 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def effective_duration(entry, now: datetime) -> int:
    # Stored duration is stale while running.
    if entry.is_running:
        return elapsed(entry.start_time, now)
    return int(entry.duration)


def summarize(entries: Iterable, now: datetime) -> DurationTotals:
    total = billable = count = 0
    for entry in entries:
        seconds = effective_duration(entry, now)
        total += seconds
        if entry.is_billable:
            billable += seconds
        count += 1
    return DurationTotals(total=total, billable=billable, non_billable=total - billable, entries=count)


def _local_midnight_utc(day: date, tz: ZoneInfo) -> datetime:
    return to_naive_utc(datetime.combine(day, time.min, tzinfo=tz))


def _local_end_of_day_utc(day: date, tz: ZoneInfo) -> datetime:
    return to_naive_utc(datetime.combine(day, time.max, tzinfo=tz))


def inclusive_date_range(
    start_date: Optional[date],
    end_date: Optional[date],
    tz: ZoneInfo,
) -> Tuple[Optional[datetime], Optional[datetime]]:
    """Naive-UTC bounds for ``start_date 00:00 <= t <= end_date 23:59:59.999999`` local time."""
    if start_date is not None and end_date is not None and end_date < start_date:
        raise ValueError("endDate must not be before startDate")

    lower = _local_midnight_utc(start_date, tz) if start_date is not None else None
    upper = _local_end_of_day_utc(end_date, tz) if end_date is not None else None
    return lower, upper


def period_window(period: Period, now: datetime, tz: ZoneInfo) -> Tuple[datetime, datetime]:
    """Window for ``period`` containing ``now`` (naive UTC). Weeks start on Sunday."""
    local_today = to_naive_utc(now).replace(tzinfo=timezone.utc).astimezone(tz).date()

    if period is Period.TODAY:
        first = local_today
    elif period is Period.WEEK:
        # date.weekday(): Monday == 0, Sunday == 6
        first = local_today - timedelta(days=(local_today.weekday() + 1) % 7)
    elif period is Period.MONTH:
        first = local_today.replace(day=1)
    else:
        raise ValueError(f"Unknown period: {period}")

    return inclusive_date_range(first, local_today, tz)
