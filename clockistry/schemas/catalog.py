from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import ConfigDict, Field

from clockistry.models.project import ProjectPriority, ProjectStatus
from clockistry.schemas.common import ApiModel, as_utc


class ProjectCreate(ApiModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    color: str = Field(default="#3B82F6", pattern=r"^#[0-9A-Fa-f]{6}$")
    status: ProjectStatus = ProjectStatus.ACTIVE
    priority: ProjectPriority = ProjectPriority.MEDIUM
    client_id: Optional[int] = None
    company_id: Optional[int] = Field(default=None, description="Root only.")


class ProjectUpdate(ApiModel):
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    color: Optional[str] = Field(default=None, pattern=r"^#[0-9A-Fa-f]{6}$")
    status: Optional[ProjectStatus] = None
    priority: Optional[ProjectPriority] = None
    client_id: Optional[int] = None
    is_archived: Optional[bool] = None


class ProjectResponse(ApiModel):
    id: int
    company_id: Optional[int]
    name: str
    description: Optional[str]
    color: str
    status: str
    priority: str
    client_id: Optional[int]
    client_name: Optional[str]
    is_archived: bool
    created_by: Optional[int]
    created_at: datetime


class ClientCreate(ApiModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1, max_length=255)
    email: Optional[str] = None
    hourly_rate: Optional[Decimal] = Field(default=None, ge=0)
    currency: Optional[str] = Field(default=None, max_length=10)
    company_id: Optional[int] = Field(default=None, description="Root only.")


class ClientUpdate(ApiModel):
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    email: Optional[str] = None
    hourly_rate: Optional[Decimal] = Field(default=None, ge=0)
    currency: Optional[str] = Field(default=None, max_length=10)
    is_archived: Optional[bool] = None


class ClientResponse(ApiModel):
    id: int
    company_id: Optional[int]
    name: str
    email: Optional[str]
    hourly_rate: Optional[Decimal]
    currency: Optional[str]
    is_archived: bool
    created_by: Optional[int]
    created_at: datetime


def project_response(project) -> ProjectResponse:
    response = ProjectResponse.model_validate(project)
    return response.model_copy(update={"created_at": as_utc(project.created_at)})


def client_response(client) -> ClientResponse:
    response = ClientResponse.model_validate(client)
    return response.model_copy(update={"created_at": as_utc(client.created_at)})
