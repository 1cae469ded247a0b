from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Optional

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Integer, String

from clockistry.core.timeutil import utcnow
from clockistry.database import Base


class PricingLevel(str, Enum):
    SOLO = "solo"
    OFFICE = "office"
    ENTERPRISE = "enterprise"


@dataclass(frozen=True)
class PlanLimits:
    max_projects: Optional[int]
    max_clients: Optional[int]
    force_billable: bool


# None means unlimited.
PLAN_LIMITS = MappingProxyType(
    {
        PricingLevel.SOLO: PlanLimits(max_projects=1, max_clients=1, force_billable=True),
        PricingLevel.OFFICE: PlanLimits(max_projects=None, max_clients=None, force_billable=False),
        PricingLevel.ENTERPRISE: PlanLimits(max_projects=None, max_clients=None, force_billable=False),
    }
)


class Company(Base):
    __tablename__ = "companies"

    __table_args__ = (
        CheckConstraint(
            "pricing_level IN ('solo', 'office', 'enterprise')",
            name="ck_companies_pricing_level",
        ),
        CheckConstraint("max_members >= 1", name="ck_companies_max_members_positive"),
    )

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    pricing_level = Column(String, nullable=False, default=PricingLevel.SOLO.value)
    max_members = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    @property
    def limits(self) -> PlanLimits:
        return PLAN_LIMITS[PricingLevel(self.pricing_level)]
