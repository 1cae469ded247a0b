from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import ConfigDict, Field, field_validator, model_validator

from clockistry.models.task import (
    DEFAULT_TASK_PRIORITY,
    DEFAULT_TASK_STATUS,
    TASK_PRIORITIES,
    TASK_STATUSES,
)
from clockistry.schemas.common import ApiModel, as_utc
from clockistry.schemas.time_entry import clean_tags


def _known_status(v: Optional[str]) -> Optional[str]:
    if v is not None and v not in TASK_STATUSES:
        raise ValueError(f"unknown status; expected one of {', '.join(TASK_STATUSES)}")
    return v


def _known_priority(v: Optional[str]) -> Optional[str]:
    if v is not None and v not in TASK_PRIORITIES:
        raise ValueError(f"unknown priority; expected one of {', '.join(TASK_PRIORITIES)}")
    return v


class TaskCreate(ApiModel):
    model_config = ConfigDict(extra="forbid")

    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    project_id: Optional[int] = None
    team_id: Optional[int] = None
    parent_task_id: Optional[str] = None
    assignee_id: Optional[int] = None
    status: str = DEFAULT_TASK_STATUS
    priority: str = DEFAULT_TASK_PRIORITY
    due_date: Optional[date] = None
    estimated_hours: Optional[Decimal] = Field(default=None, ge=0)
    tags: List[str] = Field(default_factory=list)
    company_id: Optional[int] = Field(default=None, description="Root only.")

    _status = field_validator("status")(_known_status)
    _priority = field_validator("priority")(_known_priority)
    _tags = field_validator("tags")(clean_tags)


class TaskPatch(ApiModel):
    """Partial update. Absent fields are left alone; an explicit null clears the field."""

    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    project_id: Optional[int] = None
    team_id: Optional[int] = None
    parent_task_id: Optional[str] = None
    assignee_id: Optional[int] = None
    status: Optional[str] = None
    priority: Optional[str] = None
    due_date: Optional[date] = None
    estimated_hours: Optional[Decimal] = Field(default=None, ge=0)
    tags: Optional[List[str]] = None

    _status = field_validator("status")(_known_status)
    _priority = field_validator("priority")(_known_priority)
    _tags = field_validator("tags")(clean_tags)

    @model_validator(mode="after")
    def _reject_required_nulls(self):
        for name in ("title", "status", "priority"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self

    def changes(self) -> dict:
        return {name: getattr(self, name) for name in self.model_fields_set}


class TaskStatusResponse(ApiModel):
    id: str
    name: str
    color: str
    order: int
    is_completed: bool


class TaskPriorityResponse(ApiModel):
    id: str
    name: str
    color: str
    level: int


class TaskResponse(ApiModel):
    id: str
    company_id: Optional[int]
    title: str
    description: Optional[str]
    project_id: Optional[int]
    project_name: Optional[str]
    team_id: Optional[int]
    parent_task_id: Optional[str]
    assignee_id: Optional[int]
    status: TaskStatusResponse
    priority: TaskPriorityResponse
    due_date: Optional[date]
    estimated_hours: Optional[Decimal]
    tags: List[str]
    is_completed: bool
    completed_at: Optional[datetime]
    created_by: Optional[int]
    created_at: datetime
    updated_at: datetime


def task_response(task) -> TaskResponse:
    return TaskResponse(
        id=task.id,
        company_id=task.company_id,
        title=task.title,
        description=task.description,
        project_id=task.project_id,
        project_name=task.project_name,
        team_id=task.team_id,
        parent_task_id=task.parent_task_id,
        assignee_id=task.assignee_id,
        status=TaskStatusResponse.model_validate(TASK_STATUSES[task.status]),
        priority=TaskPriorityResponse.model_validate(TASK_PRIORITIES[task.priority]),
        due_date=task.due_date,
        estimated_hours=task.estimated_hours,
        tags=list(task.tags or []),
        is_completed=bool(task.is_completed),
        completed_at=as_utc(task.completed_at),
        created_by=task.created_by,
        created_at=as_utc(task.created_at),
        updated_at=as_utc(task.updated_at),
    )
