from datetime import date
from typing import List, Optional

from clockistry.schemas.common import ApiModel
from clockistry.schemas.time_entry import TimeEntryResponse


class PeriodTotals(ApiModel):
    total: int
    billable: int
    non_billable: int
    entries: int
    total_formatted: str


class TimeSummaryResponse(ApiModel):
    user_id: int
    today: PeriodTotals
    this_week: PeriodTotals
    this_month: PeriodTotals


class ReportRow(ApiModel):
    user_id: int
    project_id: Optional[int]
    project_name: Optional[str]
    total: int
    billable: int
    non_billable: int
    entries: int
    total_formatted: str


class ReportResponse(ApiModel):
    start_date: Optional[date]
    end_date: Optional[date]
    rows: List[ReportRow]
    totals: PeriodTotals


class CalendarDay(ApiModel):
    day: date
    entries: List[TimeEntryResponse]
    totals: PeriodTotals


class CalendarResponse(ApiModel):
    user_id: int
    year: int
    month: int
    days: List[CalendarDay]
    totals: PeriodTotals
