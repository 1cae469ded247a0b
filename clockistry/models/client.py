from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, Numeric, String

from clockistry.core.timeutil import utcnow
from clockistry.database import Base


class Client(Base):
    __tablename__ = "clients"

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, ForeignKey("companies.id", ondelete="SET NULL"), nullable=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=True)
    hourly_rate = Column(Numeric(10, 2), nullable=True)
    currency = Column(String, nullable=True)
    is_archived = Column(Boolean, nullable=False, default=False)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
