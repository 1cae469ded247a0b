"""Timer lifecycle: start, update, stop and discard of a user's time entries.

A user has at most one running entry. ``start`` relies on the partial unique
index ``uq_time_entries_running_user`` for that guarantee; the pre-check
only gives an early answer, and a losing concurrent insert surfaces as an
``IntegrityError`` that is translated into the same ``Conflict``.

``stop`` is a conditional single-row update (``WHERE is_running``), so a
second stop of the same entry always observes ``Conflict`` instead of
overwriting the recorded end time.

Methods flush but never commit; the caller owns the transaction.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Callable, List, Optional
from uuid import uuid4

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from clockistry.core.authorization import Action, Principal, Resource, Role, authorize
from clockistry.core.config import Settings, get_settings
from clockistry.core.duration import elapsed
from clockistry.core.errors import Conflict, Forbidden, Invalid, NotFound
from clockistry.core.scope import Scope, scope_for
from clockistry.core.timeutil import to_naive_utc, utcnow
from clockistry.models.client import Client
from clockistry.models.company import Company
from clockistry.models.project import Project
from clockistry.models.time_entry import TimeEntry
from clockistry.schemas.time_entry import TimeEntryPatch, TimeEntryStart
from clockistry.services.entry_repository import (
    EntryFilters,
    get_client,
    get_entry,
    get_project,
    get_running_entry,
    get_user,
    list_entries,
)

logger = logging.getLogger(__name__)

ALREADY_RUNNING_MESSAGE = "A timer is already running for this user"
ALREADY_STOPPED_MESSAGE = "Time entry is already stopped"


class TimerStateMachine:
    def __init__(
        self,
        db: Session,
        *,
        clock: Callable[[], datetime] = utcnow,
        settings: Optional[Settings] = None,
    ):
        self.db = db
        self.clock = clock
        self.settings = settings or get_settings()

    def now(self) -> datetime:
        return to_naive_utc(self.clock())

    # ---------- lookups ----------

    def _load_entry(self, principal: Principal, entry_id: str) -> TimeEntry:
        # Rows outside the caller's scope are reported exactly like missing rows.
        entry = get_entry(self.db, scope_for(principal), entry_id)
        if entry is None:
            raise NotFound("Time entry not found")
        return entry

    def _company(self, company_id: Optional[int]) -> Optional[Company]:
        if company_id is None:
            return None
        return self.db.get(Company, int(company_id))

    def _force_billable(self, company_id: Optional[int]) -> bool:
        company = self._company(company_id)
        return company is not None and company.limits.force_billable

    def _resolve_project(self, company_id: Optional[int], project_id: int) -> Project:
        project = get_project(self.db, Scope.company(company_id), project_id)
        if project is None:
            raise NotFound("Project not found")
        return project

    def _resolve_client(self, company_id: Optional[int], client_id: int) -> Client:
        client = get_client(self.db, Scope.company(company_id), client_id)
        if client is None:
            raise NotFound("Client not found")
        return client

    def _running_exists(self, user_id: int) -> bool:
        return (
            self.db.query(TimeEntry.id)
            .filter(TimeEntry.user_id == int(user_id), TimeEntry.is_running.is_(True))
            .first()
            is not None
        )

    # ---------- reads ----------

    def get(self, principal: Principal, entry_id: str) -> TimeEntry:
        entry = self._load_entry(principal, entry_id)
        authorize(principal, Action.READ, Resource.time_entry(entry))
        return entry

    def running_for(self, principal: Principal, user_id: int) -> Optional[TimeEntry]:
        scope = scope_for(principal)
        user = get_user(self.db, scope, user_id)
        if user is None:
            raise NotFound("User not found")
        authorize(principal, Action.READ, Resource.owned_by(user))
        return get_running_entry(self.db, scope, user.id)

    def list_visible(self, principal: Principal, filters: EntryFilters, *, limit: int, offset: int) -> List[TimeEntry]:
        if not principal.outranks_or_equals(Role.HR):
            if filters.user_id is not None and filters.user_id != principal.id:
                raise Forbidden("Not allowed to view other users' time entries")
            filters = replace(filters, user_id=principal.id)

        return list_entries(
            self.db,
            scope_for(principal),
            filters,
            tz=self.settings.tz,
            limit=limit,
            offset=offset,
        )

    # ---------- transitions ----------

    def start(self, principal: Principal, draft: TimeEntryStart) -> TimeEntry:
        now = self.now()

        target_id = principal.id if draft.user_id is None else int(draft.user_id)
        owner = get_user(self.db, scope_for(principal), target_id)
        if owner is None or not owner.is_active:
            raise NotFound("User not found")
        authorize(principal, Action.CREATE, Resource.owned_by(owner))

        owner_id = int(owner.id)
        company_id = owner.company_id

        start_time = now if draft.start_time is None else to_naive_utc(draft.start_time)
        if start_time > now + timedelta(seconds=self.settings.clock_skew_seconds):
            raise Invalid("startTime cannot be in the future")

        is_billable = draft.is_billable
        if self._force_billable(company_id):
            if is_billable is False:
                raise Invalid("Time entries are always billable on the solo plan")
            is_billable = True

        project = None
        if draft.project_id is not None:
            project = self._resolve_project(company_id, draft.project_id)

        client = None
        if draft.client_id is not None:
            client = self._resolve_client(company_id, draft.client_id)

        # An explicit client wins; otherwise the project brings its own.
        client_id = client.id if client is not None else None
        client_name = client.name if client is not None else None
        if client is None and project is not None and project.client_id is not None:
            client_id = project.client_id
            client_name = project.client_name

        if get_running_entry(self.db, Scope.all(), owner_id) is not None:
            raise Conflict(ALREADY_RUNNING_MESSAGE, Conflict.ALREADY_RUNNING)

        entry = TimeEntry(
            id=str(uuid4()),
            user_id=owner_id,
            company_id=company_id,
            created_by=principal.id,
            project_id=project.id if project is not None else None,
            project_name=project.name if project is not None else None,
            client_id=client_id,
            client_name=client_name,
            description=draft.description,
            start_time=start_time,
            end_time=None,
            duration=0,
            is_running=True,
            is_billable=bool(is_billable),
            tags=list(draft.tags),
            created_at=now,
            updated_at=now,
        )

        self.db.add(entry)
        try:
            self.db.flush()
        except IntegrityError as exc:
            self.db.rollback()
            if self._running_exists(owner_id):
                logger.warning(
                    "Concurrent timer start rejected",
                    extra={"user_id": owner_id, "company_id": company_id},
                )
                raise Conflict(ALREADY_RUNNING_MESSAGE, Conflict.ALREADY_RUNNING) from exc
            raise

        logger.info(
            "Timer started",
            extra={
                "time_entry_id": entry.id,
                "user_id": owner_id,
                "company_id": company_id,
                "actor_id": principal.id,
            },
        )
        return entry

    def update(self, principal: Principal, entry_id: str, patch: TimeEntryPatch) -> TimeEntry:
        entry = self._load_entry(principal, entry_id)
        authorize(principal, Action.UPDATE, Resource.time_entry(entry))

        changes = patch.changes()
        if not changes:
            return entry

        if changes.get("is_billable") is False and self._force_billable(entry.company_id):
            raise Invalid("Time entries are always billable on the solo plan")

        # An id that does not resolve in the entry's company leaves the cached
        # reference and its display name as they were.
        scope = Scope.company(entry.company_id)
        unresolved = []
        if "project_id" in changes:
            if changes["project_id"] is None:
                entry.project_id = entry.project_name = None
            else:
                project = get_project(self.db, scope, changes["project_id"])
                if project is None:
                    unresolved.append("project_id")
                else:
                    entry.project_id = project.id
                    entry.project_name = project.name
                    if "client_id" not in changes and project.client_id is not None:
                        entry.client_id = project.client_id
                        entry.client_name = project.client_name
        if "client_id" in changes:
            if changes["client_id"] is None:
                entry.client_id = entry.client_name = None
            else:
                client = get_client(self.db, scope, changes["client_id"])
                if client is None:
                    unresolved.append("client_id")
                else:
                    entry.client_id = client.id
                    entry.client_name = client.name
        if unresolved:
            logger.warning(
                "Unresolved references left unchanged",
                extra={"time_entry_id": entry.id, "fields": unresolved},
            )
        if "description" in changes:
            entry.description = changes["description"]
        if "tags" in changes:
            entry.tags = list(changes["tags"] or [])
        if "is_billable" in changes:
            entry.is_billable = bool(changes["is_billable"])

        entry.updated_at = self.now()
        self.db.flush()

        logger.info(
            "Time entry updated",
            extra={"time_entry_id": entry.id, "fields": sorted(changes), "actor_id": principal.id},
        )
        return entry

    def stop(self, principal: Principal, entry_id: str) -> TimeEntry:
        entry = self._load_entry(principal, entry_id)
        authorize(principal, Action.STOP, Resource.time_entry(entry))

        if not entry.is_running:
            raise Conflict(ALREADY_STOPPED_MESSAGE, Conflict.ALREADY_STOPPED)

        now = self.now()
        # A clock behind start_time yields a zero-length entry, not a negative one.
        end_time = max(now, entry.start_time)
        duration = elapsed(entry.start_time, end_time)

        updated = (
            self.db.query(TimeEntry)
            .filter(TimeEntry.id == entry.id, TimeEntry.is_running.is_(True))
            .update(
                {
                    TimeEntry.end_time: end_time,
                    TimeEntry.duration: duration,
                    TimeEntry.is_running: False,
                    TimeEntry.updated_at: now,
                },
                synchronize_session=False,
            )
        )
        if updated == 0:
            raise Conflict(ALREADY_STOPPED_MESSAGE, Conflict.ALREADY_STOPPED)

        self.db.refresh(entry)

        logger.info(
            "Timer stopped",
            extra={
                "time_entry_id": entry.id,
                "user_id": entry.user_id,
                "duration": duration,
                "actor_id": principal.id,
            },
        )
        return entry

    def discard(self, principal: Principal, entry_id: str) -> None:
        entry = self._load_entry(principal, entry_id)
        authorize(principal, Action.DELETE, Resource.time_entry(entry))

        entry_id = entry.id
        was_running = bool(entry.is_running)
        self.db.delete(entry)
        self.db.flush()

        logger.info(
            "Time entry deleted",
            extra={"time_entry_id": entry_id, "was_running": was_running, "actor_id": principal.id},
        )
