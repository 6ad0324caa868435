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
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base

TIME_BLOCK_TYPES = ("personal", "holiday", "unavailable")
RECURRENCE_PATTERNS = ("daily", "weekly", "monthly", "yearly")

JOB_STATUSES = ("scheduled", "in_progress", "completed", "cancelled")
# Only these occupy calendar space for conflict purposes
ACTIVE_JOB_STATUSES = ("scheduled", "in_progress")


class Business(Base):
    __tablename__ = "businesses"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    timezone = Column(String(64), nullable=True)  # IANA name, e.g. "America/Chicago"
    # Weekly template: {"monday": {"open": "09:00", "close": "17:00", "closed": false}, "sunday": {"closed": true}}
    business_hours = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    time_blocks = relationship("TimeBlock", back_populates="business", cascade="all, delete-orphan")
    jobs = relationship("Job", back_populates="business", cascade="all, delete-orphan")


class TimeBlock(Base):
    """A period the business is unavailable. Recurring rows are templates, expanded on read."""

    __tablename__ = "time_blocks"
    __table_args__ = (
        CheckConstraint("start_time < end_time", name="ck_time_blocks_start_before_end"),
        Index("ix_time_blocks_business_start", "business_id", "start_time"),
    )

    id = Column(Integer, primary_key=True, index=True)
    business_id = Column(Integer, ForeignKey("businesses.id"), nullable=False)
    title = Column(String(255), nullable=False)
    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=False)
    type = Column(String(50), nullable=False, default="unavailable")  # personal, holiday, unavailable
    description = Column(Text, nullable=True)
    is_recurring = Column(Boolean, default=False, nullable=False)
    recurrence_pattern = Column(String(20), nullable=True)  # daily, weekly, monthly, yearly
    recurrence_end_date = Column(DateTime(timezone=True), nullable=True)
    recurrence_count = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    business = relationship("Business", back_populates="time_blocks")


class Job(Base):
    __tablename__ = "jobs"
    __table_args__ = (Index("ix_jobs_business_scheduled", "business_id", "scheduled_date"),)

    id = Column(Integer, primary_key=True, index=True)
    business_id = Column(Integer, ForeignKey("businesses.id"), nullable=False)
    title = Column(String(255), nullable=False)
    client_name = Column(String(255), nullable=True)
    description = Column(String(1000), nullable=True)
    scheduled_date = Column(DateTime(timezone=True), nullable=True)
    # Derived end of the occupied interval; NULL when the job has no concrete time
    scheduled_end = Column(DateTime(timezone=True), nullable=True)
    estimated_duration = Column(Integer, nullable=True)  # minutes, 60 when unset
    status = Column(String(50), default="scheduled", nullable=False)  # scheduled, in_progress, completed, cancelled
    completed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    business = relationship("Business", back_populates="jobs")
