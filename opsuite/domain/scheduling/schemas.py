"""Scheduling domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...models import JOB_STATUSES, RECURRENCE_PATTERNS, TIME_BLOCK_TYPES


class TimeBlockCreate(BaseModel):
    """Schema for creating a time block (one-off, or a recurring template)"""

    title: str
    start_time: datetime  # naive values are read in the business's timezone
    end_time: datetime
    type: str = "unavailable"  # personal, holiday, unavailable
    description: Optional[str] = None
    is_recurring: bool = False
    recurrence_pattern: Optional[str] = None  # daily, weekly, monthly, yearly
    recurrence_end_date: Optional[str] = None  # YYYY-MM-DD (inclusive) or ISO datetime
    recurrence_count: Optional[int] = None

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("title is required")
        return v.strip()

    @field_validator("type")
    @classmethod
    def validate_type(cls, v: str) -> str:
        if v not in TIME_BLOCK_TYPES:
            raise ValueError(f"type must be one of: {', '.join(TIME_BLOCK_TYPES)}")
        return v

    @field_validator("recurrence_pattern")
    @classmethod
    def validate_pattern(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        if v not in RECURRENCE_PATTERNS:
            raise ValueError(f"recurrence_pattern must be one of: {', '.join(RECURRENCE_PATTERNS)}")
        return v

    @field_validator("recurrence_count")
    @classmethod
    def validate_count(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v < 1:
            raise ValueError("recurrence_count must be at least 1")
        return v


class TimeBlockResponse(BaseModel):
    """A stored template or an expanded instance"""

    id: str
    business_id: int
    title: str
    type: str
    start_time: datetime
    end_time: datetime
    description: Optional[str] = None
    is_recurring: bool = False
    recurrence_pattern: Optional[str] = None
    recurrence_end_date: Optional[datetime] = None
    recurrence_count: Optional[int] = None
    is_recurring_instance: bool = False
    original_id: Optional[int] = None

    @field_validator("id", mode="before")
    @classmethod
    def stringify_id(cls, v):
        return str(v)

    class Config:
        from_attributes = True


class JobResponse(BaseModel):
    id: int
    business_id: int
    title: str
    client_name: Optional[str] = None
    description: Optional[str] = None
    scheduled_date: Optional[datetime] = None
    estimated_duration: Optional[int] = None
    status: str
    completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class JobDateUpdate(BaseModel):
    """Drag-and-drop reschedule payload"""

    scheduled_date: str  # ISO 8601; naive values are business-local


class JobStatusUpdate(BaseModel):
    status: str

    @field_validator("status")
    @classmethod
    def validate_status(cls, v: str) -> str:
        if v not in JOB_STATUSES:
            raise ValueError(f"status must be one of: {', '.join(JOB_STATUSES)}")
        return v


class BookingRequest(BaseModel):
    """Customer booking for a slot returned by the slots endpoint"""

    date: str  # YYYY-MM-DD
    time: str  # HH:MM
    duration_minutes: int = Field(default=60, gt=0, le=24 * 60)
    title: str
    client_name: Optional[str] = None
    description: Optional[str] = None

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("title is required")
        return v.strip()


class BookingResponse(BaseModel):
    success: bool
    job: JobResponse
    message: str


class SlotsResponse(BaseModel):
    business_id: int
    date: str
    duration_minutes: int
    slots: list[str]


class AvailabilityCheckResponse(BaseModel):
    available: bool
    message: str


class BusinessHoursUpdate(BaseModel):
    """Weekly hours keyed by weekday: {"monday": {"open": "09:00", "close": "17:00"}, "sunday": {"closed": true}}"""

    hours: dict[str, Optional[dict]]
