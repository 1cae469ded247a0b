from datetime import datetime
from typing import Annotated, Literal, Optional

from pydantic import AfterValidator, ConfigDict, Field

from clockistry.models.company import PricingLevel
from clockistry.schemas.common import ApiModel, as_utc


def _normalize_email(v: str) -> str:
    v = v.strip().lower()
    if "@" not in v or v.startswith("@") or v.endswith("@"):
        raise ValueError("invalid email address")
    return v


Email = Annotated[str, AfterValidator(_normalize_email)]


class SignupRequest(ApiModel):
    name: str = Field(min_length=1, max_length=255)
    email: Email
    password: str = Field(min_length=8)
    confirm_password: str
    role: Literal["employee", "super_admin"] = "employee"
    company_name: Optional[str] = Field(default=None, max_length=255)


class LoginRequest(ApiModel):
    email: Email
    password: str


class TokenRequest(ApiModel):
    user_id: int


class UserCreate(ApiModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1, max_length=255)
    email: Email
    password: str = Field(min_length=8)
    role: Literal["employee", "hr", "admin"] = "employee"
    company_id: Optional[int] = Field(default=None, description="Root only.")


class UserUpdate(ApiModel):
    """Partial update. Absent fields are left alone."""

    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    timezone: Optional[str] = Field(default=None, max_length=64)
    role: Optional[Literal["employee", "hr", "admin", "super_admin"]] = None
    is_active: Optional[bool] = None
    company_id: Optional[int] = Field(default=None, description="Root only.")

    def changes(self) -> dict:
        return {name: getattr(self, name) for name in self.model_fields_set}


class UserResponse(ApiModel):
    id: int
    company_id: Optional[int]
    name: str
    email: str
    role: str
    timezone: Optional[str] = None
    is_active: bool
    created_at: datetime


class CompanyCreate(ApiModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1, max_length=255)
    pricing_level: PricingLevel = PricingLevel.OFFICE
    max_members: int = Field(default=10, ge=1)


class CompanyUpdate(ApiModel):
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    pricing_level: Optional[PricingLevel] = None
    max_members: Optional[int] = Field(default=None, ge=1)
    is_active: Optional[bool] = None


class CompanyResponse(ApiModel):
    id: int
    name: str
    is_active: bool
    pricing_level: str
    max_members: int
    created_at: datetime


class AuthResponse(ApiModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse
    company: Optional[CompanyResponse] = None


class AccountResponse(ApiModel):
    user: UserResponse
    company: Optional[CompanyResponse] = None


def user_response(user) -> UserResponse:
    response = UserResponse.model_validate(user)
    return response.model_copy(update={"created_at": as_utc(user.created_at)})


def company_response(company) -> Optional[CompanyResponse]:
    if company is None:
        return None
    response = CompanyResponse.model_validate(company)
    return response.model_copy(update={"created_at": as_utc(company.created_at)})
