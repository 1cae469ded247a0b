"""Scoped reads over time entries, projects, clients and users.

Every query starts from :func:`apply_scope`; user-supplied filters are added
afterwards and pagination last.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import List, Optional
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Query, Session

from clockistry.core.duration import inclusive_date_range
from clockistry.core.errors import Invalid
from clockistry.core.scope import Scope, apply_scope
from clockistry.models.client import Client
from clockistry.models.project import Project
from clockistry.models.time_entry import TimeEntry
from clockistry.models.user import User


@dataclass(frozen=True)
class EntryFilters:
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    project_id: Optional[int] = None
    client_id: Optional[int] = None
    user_id: Optional[int] = None
    billable_only: bool = False
    is_running: Optional[bool] = None


def entries_query(db: Session, scope: Scope) -> Query:
    return apply_scope(db.query(TimeEntry), TimeEntry.company_id, scope)


def filtered_entries_query(db: Session, scope: Scope, filters: EntryFilters, tz: ZoneInfo) -> Query:
    q = entries_query(db, scope)

    try:
        lower, upper = inclusive_date_range(filters.start_date, filters.end_date, tz)
    except ValueError as exc:
        raise Invalid(str(exc)) from exc
    if lower is not None:
        q = q.filter(TimeEntry.start_time >= lower)
    if upper is not None:
        q = q.filter(TimeEntry.start_time <= upper)

    if filters.user_id is not None:
        q = q.filter(TimeEntry.user_id == int(filters.user_id))
    if filters.project_id is not None:
        q = q.filter(TimeEntry.project_id == int(filters.project_id))
    if filters.client_id is not None:
        q = q.filter(TimeEntry.client_id == int(filters.client_id))
    if filters.billable_only:
        q = q.filter(TimeEntry.is_billable.is_(True))
    if filters.is_running is not None:
        q = q.filter(TimeEntry.is_running.is_(bool(filters.is_running)))

    return q


def list_entries(
    db: Session,
    scope: Scope,
    filters: EntryFilters,
    *,
    tz: ZoneInfo,
    limit: int = 50,
    offset: int = 0,
) -> List[TimeEntry]:
    return (
        filtered_entries_query(db, scope, filters, tz)
        .order_by(TimeEntry.start_time.desc(), TimeEntry.id.desc())
        .offset(int(offset))
        .limit(int(limit))
        .all()
    )


def get_entry(db: Session, scope: Scope, entry_id: str) -> Optional[TimeEntry]:
    return entries_query(db, scope).filter(TimeEntry.id == str(entry_id)).first()


def get_running_entry(db: Session, scope: Scope, user_id: int) -> Optional[TimeEntry]:
    return (
        entries_query(db, scope)
        .filter(
            TimeEntry.user_id == int(user_id),
            TimeEntry.is_running.is_(True),
        )
        .order_by(TimeEntry.start_time.desc())
        .first()
    )


def list_running_entries(db: Session, scope: Scope) -> List[TimeEntry]:
    return (
        entries_query(db, scope)
        .filter(TimeEntry.is_running.is_(True))
        .order_by(TimeEntry.start_time.desc())
        .all()
    )


def get_project(db: Session, scope: Scope, project_id: int) -> Optional[Project]:
    return (
        apply_scope(db.query(Project), Project.company_id, scope)
        .filter(Project.id == int(project_id))
        .first()
    )


def list_projects(db: Session, scope: Scope, *, include_archived: bool = False) -> List[Project]:
    q = apply_scope(db.query(Project), Project.company_id, scope)
    if not include_archived:
        q = q.filter(Project.is_archived.is_(False))
    return q.order_by(Project.id.asc()).all()


def count_projects(db: Session, company_id: Optional[int]) -> int:
    return apply_scope(db.query(Project), Project.company_id, Scope.company(company_id)).count()


def get_client(db: Session, scope: Scope, client_id: int) -> Optional[Client]:
    return (
        apply_scope(db.query(Client), Client.company_id, scope)
        .filter(Client.id == int(client_id))
        .first()
    )


def list_clients(db: Session, scope: Scope, *, include_archived: bool = False) -> List[Client]:
    q = apply_scope(db.query(Client), Client.company_id, scope)
    if not include_archived:
        q = q.filter(Client.is_archived.is_(False))
    return q.order_by(Client.id.asc()).all()


def count_clients(db: Session, company_id: Optional[int]) -> int:
    return apply_scope(db.query(Client), Client.company_id, Scope.company(company_id)).count()


def get_user(db: Session, scope: Scope, user_id: int) -> Optional[User]:
    return (
        apply_scope(db.query(User), User.company_id, scope)
        .filter(User.id == int(user_id))
        .first()
    )


def list_users(db: Session, scope: Scope) -> List[User]:
    return apply_scope(db.query(User), User.company_id, scope).order_by(User.id.asc()).all()


def count_members(db: Session, company_id: int) -> int:
    return (
        db.query(User)
        .filter(User.company_id == int(company_id), User.is_active.is_(True))
        .count()
    )
