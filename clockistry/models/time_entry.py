from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.ext.mutable import MutableList

from clockistry.core.timeutil import utcnow
from clockistry.database import Base


class TimeEntry(Base):
    __tablename__ = "time_entries"

    __table_args__ = (
        CheckConstraint("duration >= 0", name="ck_time_entries_duration_nonnegative"),
        CheckConstraint(
            "(is_running AND end_time IS NULL) OR (NOT is_running AND end_time IS NOT NULL)",
            name="ck_time_entries_running_has_no_end",
        ),
        # At most one running entry per user.
        Index(
            "uq_time_entries_running_user",
            "user_id",
            unique=True,
            postgresql_where=text("is_running"),
            sqlite_where=text("is_running = 1"),
        ),
        Index("ix_time_entries_company_id_start_time", "company_id", "start_time"),
    )

    id = Column(String, primary_key=True, index=True)

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    # Copied from the user at creation and never rewritten.
    company_id = Column(Integer, ForeignKey("companies.id", ondelete="SET NULL"), nullable=True, index=True)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    project_id = Column(Integer, ForeignKey("projects.id", ondelete="SET NULL"), nullable=True, index=True)
    project_name = Column(String, nullable=True)
    client_id = Column(Integer, ForeignKey("clients.id", ondelete="SET NULL"), nullable=True, index=True)
    client_name = Column(String, nullable=True)

    description = Column(Text, nullable=True)

    # Naive UTC.
    start_time = Column(DateTime, nullable=False, index=True)
    end_time = Column(DateTime, nullable=True)
    duration = Column(Integer, nullable=False, default=0)

    is_running = Column(Boolean, nullable=False, index=True)
    is_billable = Column(Boolean, nullable=False, default=False)
    tags = Column(MutableList.as_mutable(JSON), nullable=False, default=list)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
