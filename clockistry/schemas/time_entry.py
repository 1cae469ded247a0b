from datetime import datetime
from typing import List, Optional

from pydantic import ConfigDict, Field, field_validator, model_validator

from clockistry.schemas.common import ApiModel

MAX_TAGS = 20
MAX_TAG_LENGTH = 100


def clean_tags(tags: Optional[List[str]]) -> Optional[List[str]]:
    if tags is None:
        return None
    cleaned = []
    for tag in tags:
        tag = tag.strip()
        if not tag:
            raise ValueError("tags must not be blank")
        if len(tag) > MAX_TAG_LENGTH:
            raise ValueError(f"tags must be at most {MAX_TAG_LENGTH} characters")
        if tag not in cleaned:
            cleaned.append(tag)
    if len(cleaned) > MAX_TAGS:
        raise ValueError(f"at most {MAX_TAGS} tags are allowed")
    return cleaned


class TimeEntryStart(ApiModel):
    model_config = ConfigDict(extra="forbid")

    user_id: Optional[int] = Field(
        default=None,
        description="Owner of the timer. Defaults to the caller.",
    )
    project_id: Optional[int] = None
    client_id: Optional[int] = None
    description: Optional[str] = None
    is_billable: Optional[bool] = Field(
        default=None,
        description="Defaults to the company plan rule (always billable on solo).",
    )
    tags: List[str] = Field(default_factory=list)
    start_time: Optional[datetime] = Field(
        default=None,
        description="If omitted, server uses current UTC time.",
    )

    @field_validator("tags")
    @classmethod
    def _validate_tags(cls, v):
        return clean_tags(v)


class TimeEntryPatch(ApiModel):
    """Partial update. Absent fields are left alone; an explicit null clears the field."""

    model_config = ConfigDict(extra="forbid")

    project_id: Optional[int] = None
    client_id: Optional[int] = None
    description: Optional[str] = None
    is_billable: Optional[bool] = None
    tags: Optional[List[str]] = None

    @field_validator("tags")
    @classmethod
    def _validate_tags(cls, v):
        return clean_tags(v)

    @model_validator(mode="after")
    def _reject_null_billable(self):
        if "is_billable" in self.model_fields_set and self.is_billable is None:
            raise ValueError("isBillable cannot be null")
        return self

    def changes(self) -> dict:
        return {name: getattr(self, name) for name in self.model_fields_set}


class TimeEntryResponse(ApiModel):
    id: str
    user_id: int
    company_id: Optional[int]
    created_by: Optional[int]
    project_id: Optional[int]
    project_name: Optional[str]
    client_id: Optional[int]
    client_name: Optional[str]
    description: Optional[str]
    start_time: datetime
    end_time: Optional[datetime]
    duration: int
    elapsed: int
    duration_formatted: str
    is_running: bool
    is_billable: bool
    tags: List[str]
    created_at: datetime
    updated_at: datetime
