from clockistry.models.client import Client
from clockistry.models.company import Company
from clockistry.models.project import Project
from clockistry.models.task import Task
from clockistry.models.team import Team, TeamMember
from clockistry.models.time_entry import TimeEntry
from clockistry.models.user import User

__all__ = [
    "Client",
    "Company",
    "Project",
    "Task",
    "Team",
    "TeamMember",
    "TimeEntry",
    "User",
]
