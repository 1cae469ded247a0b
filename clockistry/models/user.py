from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, ForeignKey, Integer, String

from clockistry.core.timeutil import utcnow
from clockistry.database import Base


class User(Base):
    __tablename__ = "users"

    __table_args__ = (
        CheckConstraint(
            "role IN ('employee', 'hr', 'admin', 'super_admin', 'root')",
            name="ck_users_role",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    # Null for root and for accounts created before companies existed.
    company_id = Column(Integer, ForeignKey("companies.id", ondelete="SET NULL"), nullable=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=False, unique=True, index=True)
    password_hash = Column(String, nullable=True)
    role = Column(String, nullable=False, default="employee")
    timezone = Column(String, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
