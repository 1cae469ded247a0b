"""Company task board: create, list, update and delete tasks.

Statuses and priorities come from the fixed catalogues in
``clockistry.models.task``. Moving a task into a completing status stamps
``completed_at``; moving it out clears the stamp.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional
from uuid import uuid4

from sqlalchemy.orm import Query, Session

from clockistry.core.authorization import Action, Principal, Resource, authorize
from clockistry.core.errors import Invalid, NotFound
from clockistry.core.scope import Scope, apply_scope, scope_for
from clockistry.models.task import TASK_STATUSES, Task
from clockistry.models.team import Team
from clockistry.schemas.task import TaskCreate, TaskPatch
from clockistry.services.catalog_service import target_company
from clockistry.services.entry_repository import get_project, get_user

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TaskFilters:
    project_id: Optional[int] = None
    assignee_id: Optional[int] = None
    team_id: Optional[int] = None
    status: Optional[str] = None


def tasks_query(db: Session, scope: Scope) -> Query:
    return apply_scope(db.query(Task), Task.company_id, scope)


def list_tasks(db: Session, principal: Principal, filters: TaskFilters) -> List[Task]:
    q = tasks_query(db, scope_for(principal))
    if filters.project_id is not None:
        q = q.filter(Task.project_id == int(filters.project_id))
    if filters.assignee_id is not None:
        q = q.filter(Task.assignee_id == int(filters.assignee_id))
    if filters.team_id is not None:
        q = q.filter(Task.team_id == int(filters.team_id))
    if filters.status is not None:
        if filters.status not in TASK_STATUSES:
            raise Invalid(f"Unknown status: {filters.status}")
        q = q.filter(Task.status == filters.status)
    return q.order_by(Task.created_at.desc(), Task.id.desc()).all()


def load_task(db: Session, principal: Principal, task_id: str) -> Task:
    task = tasks_query(db, scope_for(principal)).filter(Task.id == str(task_id)).first()
    if task is None:
        raise NotFound("Task not found")
    return task


def _resolve_team(db: Session, company_id: Optional[int], team_id: int) -> Team:
    team = (
        apply_scope(db.query(Team), Team.company_id, Scope.company(company_id))
        .filter(Team.id == int(team_id))
        .first()
    )
    if team is None:
        raise NotFound("Team not found")
    return team


def _check_references(db: Session, company_id: Optional[int], values: dict, task_id: Optional[str] = None) -> dict:
    """Resolve every non-null reference inside ``company_id``; returns the project when one is named."""
    scope = Scope.company(company_id)
    resolved = {}

    if values.get("project_id") is not None:
        project = get_project(db, scope, values["project_id"])
        if project is None:
            raise NotFound("Project not found")
        resolved["project"] = project
    if values.get("team_id") is not None:
        _resolve_team(db, company_id, values["team_id"])
    if values.get("assignee_id") is not None:
        assignee = get_user(db, scope, values["assignee_id"])
        if assignee is None or not assignee.is_active:
            raise NotFound("Assignee not found")
    if values.get("parent_task_id") is not None:
        if task_id is not None and values["parent_task_id"] == task_id:
            raise Invalid("A task cannot be its own parent")
        parent = tasks_query(db, scope).filter(Task.id == str(values["parent_task_id"])).first()
        if parent is None:
            raise NotFound("Parent task not found")

    return resolved


def _apply_status(task: Task, status_id: str, now: datetime) -> None:
    completes = TASK_STATUSES[status_id].is_completed
    if completes and not task.is_completed:
        task.completed_at = now
    elif not completes:
        task.completed_at = None
    task.status = status_id
    task.is_completed = completes


def create_task(db: Session, principal: Principal, payload: TaskCreate, *, now: datetime) -> Task:
    company_id = target_company(principal, payload.company_id)
    task = Task(id=str(uuid4()), company_id=company_id, created_by=principal.id)
    authorize(principal, Action.CREATE, Resource.task(task))

    values = payload.model_dump(exclude={"company_id"})
    project = _check_references(db, company_id, values).get("project")

    task.title = payload.title.strip()
    task.description = payload.description
    task.project_id = project.id if project is not None else None
    task.project_name = project.name if project is not None else None
    task.team_id = payload.team_id
    task.parent_task_id = payload.parent_task_id
    task.assignee_id = payload.assignee_id
    task.priority = payload.priority
    task.due_date = payload.due_date
    task.estimated_hours = payload.estimated_hours
    task.tags = list(payload.tags)
    task.is_completed = False
    task.completed_at = None
    _apply_status(task, payload.status, now)
    task.created_at = now
    task.updated_at = now

    db.add(task)
    db.flush()

    logger.info(
        "Task created",
        extra={"task_id": task.id, "company_id": company_id, "actor_id": principal.id},
    )
    return task


def update_task(db: Session, principal: Principal, task_id: str, patch: TaskPatch, *, now: datetime) -> Task:
    task = load_task(db, principal, task_id)
    authorize(principal, Action.UPDATE, Resource.task(task))

    changes = patch.changes()
    if not changes:
        return task

    project = _check_references(db, task.company_id, changes, task_id=task.id).get("project")

    if "project_id" in changes:
        task.project_id = project.id if project is not None else None
        task.project_name = project.name if project is not None else None
    if "title" in changes:
        task.title = changes["title"].strip()
    if "tags" in changes:
        task.tags = list(changes["tags"] or [])
    if "status" in changes:
        _apply_status(task, changes["status"], now)
    for field in ("description", "team_id", "parent_task_id", "assignee_id", "priority", "due_date", "estimated_hours"):
        if field in changes:
            setattr(task, field, changes[field])

    task.updated_at = now
    db.flush()

    logger.info(
        "Task updated",
        extra={"task_id": task.id, "fields": sorted(changes), "actor_id": principal.id},
    )
    return task


def delete_task(db: Session, principal: Principal, task_id: str) -> None:
    task = load_task(db, principal, task_id)
    authorize(principal, Action.DELETE, Resource.task(task))

    task_id = task.id
    db.delete(task)
    db.flush()

    logger.info("Task deleted", extra={"task_id": task_id, "actor_id": principal.id})
