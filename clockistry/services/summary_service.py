from __future__ import annotations

import calendar
from datetime import date, datetime, timezone
from typing import Any, Dict, Optional, Tuple
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session

from clockistry.core.authorization import Action, Principal, Resource, authorize
from clockistry.core.duration import DurationTotals, Period, period_window, summarize
from clockistry.core.errors import NotFound
from clockistry.core.scope import scope_for
from clockistry.models.time_entry import TimeEntry
from clockistry.services.entry_repository import EntryFilters, filtered_entries_query, get_user


def _totals_payload(totals: DurationTotals) -> Dict[str, Any]:
    return {
        "total": totals.total,
        "billable": totals.billable,
        "non_billable": totals.non_billable,
        "entries": totals.entries,
        "total_formatted": totals.total_formatted,
    }


def time_summary(
    *,
    db: Session,
    principal: Principal,
    user_id: int,
    now: datetime,
    tz: ZoneInfo,
) -> Dict[str, Any]:
    """
    Dashboard totals for one user.

    Windows (server calendar, end inclusive of the whole current day):
      today, this week (from Sunday), this month
    Running entries count with their live elapsed time.
    """
    scope = scope_for(principal)
    user = get_user(db, scope, user_id)
    if user is None:
        raise NotFound("User not found")
    authorize(principal, Action.READ, Resource.owned_by(user))

    def _window(period: Period) -> Dict[str, Any]:
        lower, upper = period_window(period, now, tz)
        rows = (
            filtered_entries_query(db, scope, EntryFilters(user_id=int(user.id)), tz)
            .filter(TimeEntry.start_time >= lower, TimeEntry.start_time <= upper)
            .all()
        )
        return _totals_payload(summarize(rows, now))

    return {
        "user_id": int(user.id),
        "today": _window(Period.TODAY),
        "this_week": _window(Period.WEEK),
        "this_month": _window(Period.MONTH),
    }


def company_report(
    *,
    db: Session,
    principal: Principal,
    start_date: Optional[date],
    end_date: Optional[date],
    now: datetime,
    tz: ZoneInfo,
    user_id: Optional[int] = None,
    project_id: Optional[int] = None,
    billable_only: bool = False,
) -> Dict[str, Any]:
    """
    Read-only report over the caller's scope.

    Grouping:
      user_id, project_id
    """
    filters = EntryFilters(
        start_date=start_date,
        end_date=end_date,
        user_id=user_id,
        project_id=project_id,
        billable_only=billable_only,
    )
    rows = (
        filtered_entries_query(db, scope_for(principal), filters, tz)
        .order_by(TimeEntry.user_id.asc(), TimeEntry.start_time.asc())
        .all()
    )

    groups: Dict[Tuple[int, Optional[int]], list] = {}
    for row in rows:
        groups.setdefault((int(row.user_id), row.project_id), []).append(row)

    report_rows = []
    for (group_user_id, group_project_id), entries in sorted(
        groups.items(), key=lambda item: (item[0][0], item[0][1] is not None, item[0][1] or 0)
    ):
        totals = summarize(entries, now)
        report_rows.append(
            {
                "user_id": group_user_id,
                "project_id": group_project_id,
                # Latest cached name for the group; entries keep the name they were logged with.
                "project_name": entries[-1].project_name,
                **_totals_payload(totals),
            }
        )

    return {
        "start_date": start_date,
        "end_date": end_date,
        "rows": report_rows,
        "totals": _totals_payload(summarize(rows, now)),
    }


def calendar_month(
    *,
    db: Session,
    principal: Principal,
    year: int,
    month: int,
    now: datetime,
    tz: ZoneInfo,
    user_id: Optional[int] = None,
    project_id: Optional[int] = None,
    billable_only: bool = False,
) -> Dict[str, Any]:
    """
    One month of a user's entries grouped by local start date.

    Only days that hold at least one entry are returned, oldest first.
    """
    scope = scope_for(principal)
    target_id = principal.id if user_id is None else user_id
    user = get_user(db, scope, target_id)
    if user is None:
        raise NotFound("User not found")
    authorize(principal, Action.READ, Resource.owned_by(user))

    first = date(year, month, 1)
    last = date(year, month, calendar.monthrange(year, month)[1])
    filters = EntryFilters(
        start_date=first,
        end_date=last,
        user_id=int(user.id),
        project_id=project_id,
        billable_only=billable_only,
    )
    rows = (
        filtered_entries_query(db, scope, filters, tz)
        .order_by(TimeEntry.start_time.asc(), TimeEntry.id.asc())
        .all()
    )

    days: Dict[date, list] = {}
    for row in rows:
        local_day = row.start_time.replace(tzinfo=timezone.utc).astimezone(tz).date()
        days.setdefault(local_day, []).append(row)

    return {
        "user_id": int(user.id),
        "year": year,
        "month": month,
        "days": [
            {"day": day, "entries": entries, "totals": _totals_payload(summarize(entries, now))}
            for day, entries in sorted(days.items())
        ],
        "totals": _totals_payload(summarize(rows, now)),
    }
