from dataclasses import dataclass
from types import MappingProxyType

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.ext.mutable import MutableList

from clockistry.core.timeutil import utcnow
from clockistry.database import Base


@dataclass(frozen=True)
class TaskStatus:
    id: str
    name: str
    color: str
    order: int
    is_completed: bool


@dataclass(frozen=True)
class TaskPriority:
    id: str
    name: str
    color: str
    level: int


# Loaded once; ordering is the board column order.
TASK_STATUSES = MappingProxyType(
    {
        s.id: s
        for s in (
            TaskStatus("todo", "To Do", "#6B7280", 0, False),
            TaskStatus("in_progress", "In Progress", "#3B82F6", 1, False),
            TaskStatus("review", "Review", "#F59E0B", 2, False),
            TaskStatus("done", "Done", "#10B981", 3, True),
        )
    }
)

TASK_PRIORITIES = MappingProxyType(
    {
        p.id: p
        for p in (
            TaskPriority("low", "Low", "#6B7280", 1),
            TaskPriority("medium", "Medium", "#F59E0B", 2),
            TaskPriority("high", "High", "#EF4444", 3),
            TaskPriority("urgent", "Urgent", "#DC2626", 4),
        )
    }
)

DEFAULT_TASK_STATUS = "todo"
DEFAULT_TASK_PRIORITY = "medium"


class Task(Base):
    __tablename__ = "tasks"

    __table_args__ = (
        CheckConstraint(
            "status IN ('todo', 'in_progress', 'review', 'done')",
            name="ck_tasks_status",
        ),
        CheckConstraint(
            "priority IN ('low', 'medium', 'high', 'urgent')",
            name="ck_tasks_priority",
        ),
        CheckConstraint(
            "estimated_hours IS NULL OR estimated_hours >= 0",
            name="ck_tasks_estimated_hours_nonnegative",
        ),
    )

    id = Column(String, primary_key=True, index=True)
    company_id = Column(Integer, ForeignKey("companies.id", ondelete="SET NULL"), nullable=True, index=True)

    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)

    project_id = Column(Integer, ForeignKey("projects.id", ondelete="SET NULL"), nullable=True, index=True)
    project_name = Column(String, nullable=True)
    team_id = Column(Integer, ForeignKey("teams.id", ondelete="SET NULL"), nullable=True, index=True)
    parent_task_id = Column(String, ForeignKey("tasks.id", ondelete="SET NULL"), nullable=True)
    assignee_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    status = Column(String, nullable=False, default=DEFAULT_TASK_STATUS)
    priority = Column(String, nullable=False, default=DEFAULT_TASK_PRIORITY)
    due_date = Column(Date, nullable=True)
    estimated_hours = Column(Numeric(8, 2), nullable=True)
    tags = Column(MutableList.as_mutable(JSON), nullable=False, default=list)

    is_completed = Column(Boolean, nullable=False, default=False)
    completed_at = Column(DateTime, nullable=True)

    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
