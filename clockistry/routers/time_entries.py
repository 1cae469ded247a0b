from __future__ import annotations

from datetime import date, datetime
from typing import Callable, List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from clockistry.core.authorization import Principal, Role
from clockistry.core.config import Settings, get_settings
from clockistry.core.duration import effective_duration, format_duration
from clockistry.core.scope import scope_for
from clockistry.core.timeutil import to_naive_utc
from clockistry.database import get_db
from clockistry.deps.auth import get_clock, get_principal, require_role
from clockistry.models.time_entry import TimeEntry
from clockistry.schemas.common import Envelope, as_utc, ok
from clockistry.schemas.summary import CalendarResponse, ReportResponse, TimeSummaryResponse
from clockistry.schemas.time_entry import TimeEntryPatch, TimeEntryResponse, TimeEntryStart
from clockistry.services import summary_service
from clockistry.services.entry_repository import EntryFilters, list_running_entries
from clockistry.services.timer_service import TimerStateMachine

router = APIRouter(
    prefix="/time-entries",
    tags=["Time Entries"],
)


def get_timer(
    db: Session = Depends(get_db),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> TimerStateMachine:
    return TimerStateMachine(db, clock=clock)


def _to_response(entry: TimeEntry, now: datetime) -> TimeEntryResponse:
    seconds = effective_duration(entry, now)
    return TimeEntryResponse(
        id=entry.id,
        user_id=entry.user_id,
        company_id=entry.company_id,
        created_by=entry.created_by,
        project_id=entry.project_id,
        project_name=entry.project_name,
        client_id=entry.client_id,
        client_name=entry.client_name,
        description=entry.description,
        start_time=as_utc(entry.start_time),
        end_time=as_utc(entry.end_time),
        duration=int(entry.duration),
        elapsed=seconds,
        duration_formatted=format_duration(seconds),
        is_running=bool(entry.is_running),
        is_billable=bool(entry.is_billable),
        tags=list(entry.tags or []),
        created_at=as_utc(entry.created_at),
        updated_at=as_utc(entry.updated_at),
    )


@router.post("", response_model=Envelope[TimeEntryResponse], status_code=201)
def start_timer(
    payload: TimeEntryStart,
    principal: Principal = Depends(get_principal),
    timer: TimerStateMachine = Depends(get_timer),
):
    entry = timer.start(principal, payload)
    timer.db.commit()
    return ok(_to_response(entry, timer.now()), "Timer started")


@router.get("", response_model=Envelope[List[TimeEntryResponse]])
def list_time_entries(
    principal: Principal = Depends(get_principal),
    timer: TimerStateMachine = Depends(get_timer),
    start_date: Optional[date] = Query(default=None, alias="startDate"),
    end_date: Optional[date] = Query(default=None, alias="endDate"),
    project_id: Optional[int] = Query(default=None, alias="projectId"),
    client_id: Optional[int] = Query(default=None, alias="clientId"),
    user_id: Optional[int] = Query(default=None, alias="userId"),
    billable_only: bool = Query(default=False, alias="billableOnly"),
    is_running: Optional[bool] = Query(default=None, alias="isRunning"),
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
):
    filters = EntryFilters(
        start_date=start_date,
        end_date=end_date,
        project_id=project_id,
        client_id=client_id,
        user_id=user_id,
        billable_only=billable_only,
        is_running=is_running,
    )
    rows = timer.list_visible(principal, filters, limit=limit, offset=offset)
    now = timer.now()
    return ok([_to_response(r, now) for r in rows])


@router.get("/running", response_model=Envelope[List[TimeEntryResponse]])
def list_running_time_entries(
    principal: Principal = Depends(require_role(Role.HR)),
    timer: TimerStateMachine = Depends(get_timer),
):
    rows = list_running_entries(timer.db, scope_for(principal))
    now = timer.now()
    return ok([_to_response(r, now) for r in rows])


@router.get("/summary", response_model=Envelope[TimeSummaryResponse])
def get_time_summary(
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
    clock: Callable[[], datetime] = Depends(get_clock),
    settings: Settings = Depends(get_settings),
    user_id: Optional[int] = Query(default=None, alias="userId"),
):
    summary = summary_service.time_summary(
        db=db,
        principal=principal,
        user_id=principal.id if user_id is None else user_id,
        now=to_naive_utc(clock()),
        tz=settings.tz,
    )
    return ok(summary)


@router.get("/report", response_model=Envelope[ReportResponse])
def get_company_report(
    principal: Principal = Depends(require_role(Role.ADMIN)),
    db: Session = Depends(get_db),
    clock: Callable[[], datetime] = Depends(get_clock),
    settings: Settings = Depends(get_settings),
    start_date: Optional[date] = Query(default=None, alias="startDate"),
    end_date: Optional[date] = Query(default=None, alias="endDate"),
    user_id: Optional[int] = Query(default=None, alias="userId"),
    project_id: Optional[int] = Query(default=None, alias="projectId"),
    billable_only: bool = Query(default=False, alias="billableOnly"),
):
    report = summary_service.company_report(
        db=db,
        principal=principal,
        start_date=start_date,
        end_date=end_date,
        now=to_naive_utc(clock()),
        tz=settings.tz,
        user_id=user_id,
        project_id=project_id,
        billable_only=billable_only,
    )
    return ok(report)


@router.get("/calendar", response_model=Envelope[CalendarResponse])
def get_calendar(
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
    clock: Callable[[], datetime] = Depends(get_clock),
    settings: Settings = Depends(get_settings),
    year: int = Query(ge=1970, le=9999),
    month: int = Query(ge=1, le=12),
    user_id: Optional[int] = Query(default=None, alias="userId"),
    project_id: Optional[int] = Query(default=None, alias="projectId"),
    billable_only: bool = Query(default=False, alias="billableOnly"),
):
    now = to_naive_utc(clock())
    month_view = summary_service.calendar_month(
        db=db,
        principal=principal,
        year=year,
        month=month,
        now=now,
        tz=settings.tz,
        user_id=user_id,
        project_id=project_id,
        billable_only=billable_only,
    )
    for day in month_view["days"]:
        day["entries"] = [_to_response(e, now) for e in day["entries"]]
    return ok(month_view)


@router.get("/user/{user_id}/running", response_model=Envelope[TimeEntryResponse])
def get_running_time_entry(
    user_id: int,
    principal: Principal = Depends(get_principal),
    timer: TimerStateMachine = Depends(get_timer),
):
    entry = timer.running_for(principal, user_id)
    if entry is None:
        return ok(None, "No running timer")
    return ok(_to_response(entry, timer.now()))


@router.get("/{entry_id}", response_model=Envelope[TimeEntryResponse])
def get_time_entry(
    entry_id: str,
    principal: Principal = Depends(get_principal),
    timer: TimerStateMachine = Depends(get_timer),
):
    entry = timer.get(principal, entry_id)
    return ok(_to_response(entry, timer.now()))


@router.put("/{entry_id}", response_model=Envelope[TimeEntryResponse])
def update_time_entry(
    entry_id: str,
    payload: TimeEntryPatch,
    principal: Principal = Depends(get_principal),
    timer: TimerStateMachine = Depends(get_timer),
):
    entry = timer.update(principal, entry_id, payload)
    timer.db.commit()
    return ok(_to_response(entry, timer.now()), "Time entry updated")


@router.post("/{entry_id}/stop", response_model=Envelope[TimeEntryResponse])
def stop_timer(
    entry_id: str,
    principal: Principal = Depends(get_principal),
    timer: TimerStateMachine = Depends(get_timer),
):
    entry = timer.stop(principal, entry_id)
    timer.db.commit()
    return ok(_to_response(entry, timer.now()), "Timer stopped")


@router.delete("/{entry_id}")
def delete_time_entry(
    entry_id: str,
    principal: Principal = Depends(get_principal),
    timer: TimerStateMachine = Depends(get_timer),
):
    timer.discard(principal, entry_id)
    timer.db.commit()
    return ok(None, "Time entry deleted")
