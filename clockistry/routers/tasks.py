from datetime import datetime
from typing import Callable, List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from clockistry.core.authorization import Principal
from clockistry.core.timeutil import to_naive_utc
from clockistry.database import get_db
from clockistry.deps.auth import get_clock, get_principal
from clockistry.models.task import TASK_PRIORITIES, TASK_STATUSES
from clockistry.schemas.common import Envelope, ok
from clockistry.schemas.task import (
    TaskCreate,
    TaskPatch,
    TaskPriorityResponse,
    TaskResponse,
    TaskStatusResponse,
    task_response,
)
from clockistry.services import task_service
from clockistry.services.task_service import TaskFilters

router = APIRouter(prefix="/tasks", tags=["Tasks"])

# Fixed catalogues the task board renders; not company data.
options_router = APIRouter(tags=["Tasks"])


@router.post("", response_model=Envelope[TaskResponse], status_code=201)
def create_task(
    payload: TaskCreate,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    task = task_service.create_task(db, principal, payload, now=to_naive_utc(clock()))
    db.commit()
    return ok(task_response(task), "Task created")


@router.get("", response_model=Envelope[List[TaskResponse]])
def list_tasks(
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
    project_id: Optional[int] = Query(default=None, alias="projectId"),
    assignee_id: Optional[int] = Query(default=None, alias="assigneeId"),
    team_id: Optional[int] = Query(default=None, alias="teamId"),
    status: Optional[str] = Query(default=None),
):
    filters = TaskFilters(project_id=project_id, assignee_id=assignee_id, team_id=team_id, status=status)
    rows = task_service.list_tasks(db, principal, filters)
    return ok([task_response(r) for r in rows])


@router.get("/{task_id}", response_model=Envelope[TaskResponse])
def get_task(
    task_id: str,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    return ok(task_response(task_service.load_task(db, principal, task_id)))


@router.put("/{task_id}", response_model=Envelope[TaskResponse])
def update_task(
    task_id: str,
    payload: TaskPatch,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    task = task_service.update_task(db, principal, task_id, payload, now=to_naive_utc(clock()))
    db.commit()
    return ok(task_response(task), "Task updated")


@router.delete("/{task_id}")
def delete_task(
    task_id: str,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    task_service.delete_task(db, principal, task_id)
    db.commit()
    return ok(None, "Task deleted")


@options_router.get("/task-statuses", response_model=Envelope[List[TaskStatusResponse]])
def list_task_statuses(principal: Principal = Depends(get_principal)):
    return ok([TaskStatusResponse.model_validate(s) for s in TASK_STATUSES.values()])


@options_router.get("/task-priorities", response_model=Envelope[List[TaskPriorityResponse]])
def list_task_priorities(principal: Principal = Depends(get_principal)):
    return ok([TaskPriorityResponse.model_validate(p) for p in TASK_PRIORITIES.values()])
