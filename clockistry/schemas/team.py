from datetime import datetime
from typing import Literal, Optional

from pydantic import ConfigDict, Field

from clockistry.schemas.common import ApiModel, as_utc


class TeamCreate(ApiModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    color: str = Field(default="#3B82F6", pattern=r"^#[0-9A-Fa-f]{6}$")
    leader_id: Optional[int] = None
    company_id: Optional[int] = Field(default=None, description="Root only.")


class TeamUpdate(ApiModel):
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    color: Optional[str] = Field(default=None, pattern=r"^#[0-9A-Fa-f]{6}$")
    leader_id: Optional[int] = None
    is_active: Optional[bool] = None


class TeamResponse(ApiModel):
    id: int
    company_id: Optional[int]
    name: str
    description: Optional[str]
    color: str
    leader_id: Optional[int]
    is_active: bool
    member_count: int
    created_by: Optional[int]
    created_at: datetime


class TeamMemberAdd(ApiModel):
    model_config = ConfigDict(extra="forbid")

    user_id: int
    team_role: Literal["member", "leader"] = "member"


class TeamMemberResponse(ApiModel):
    user_id: int
    name: str
    email: str
    team_role: str
    is_active: bool
    joined_at: datetime


class TeamStatsResponse(ApiModel):
    total_members: int
    active_members: int
    total_tasks: int
    completed_tasks: int
    in_progress_tasks: int
    overdue_tasks: int
    total_time_logged: int
    billable_time_logged: int
    non_billable_time_logged: int
    total_time_entries: int
    total_formatted: str
    average_seconds_per_member: int


def team_response(team, member_count: int) -> TeamResponse:
    return TeamResponse(
        id=team.id,
        company_id=team.company_id,
        name=team.name,
        description=team.description,
        color=team.color,
        leader_id=team.leader_id,
        is_active=bool(team.is_active),
        member_count=member_count,
        created_by=team.created_by,
        created_at=as_utc(team.created_at),
    )


def member_response(membership, user) -> TeamMemberResponse:
    return TeamMemberResponse(
        user_id=user.id,
        name=user.name,
        email=user.email,
        team_role=membership.team_role,
        is_active=bool(membership.is_active),
        joined_at=as_utc(membership.joined_at),
    )
