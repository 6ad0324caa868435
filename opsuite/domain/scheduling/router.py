"""Scheduling router - FastAPI endpoints for availability, time blocks and job dates"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ...auth import get_current_business_id
from ...database import get_db
from .availability_service import AvailabilityService
from .booking_service import BookingService
from .conflict_validator import BookingConflictValidator
from .repository import ScheduleRepository
from .schedule_service import ScheduleService
from .schemas import (
    AvailabilityCheckResponse,
    BookingRequest,
    BookingResponse,
    BusinessHoursUpdate,
    JobDateUpdate,
    JobResponse,
    JobStatusUpdate,
    SlotsResponse,
    TimeBlockCreate,
    TimeBlockResponse,
)
from .time_calculator import parse_date, parse_time, to_local

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/scheduling", tags=["Scheduling"])


def get_repository(db: Session = Depends(get_db)) -> ScheduleRepository:
    return ScheduleRepository(db)


def get_availability_service(repo: ScheduleRepository = Depends(get_repository)) -> AvailabilityService:
    """Dependency injection for AvailabilityService"""
    return AvailabilityService(repo)


def get_schedule_service(
    repo: ScheduleRepository = Depends(get_repository),
    availability: AvailabilityService = Depends(get_availability_service),
) -> ScheduleService:
    return ScheduleService(repo, availability)


def get_booking_service(
    repo: ScheduleRepository = Depends(get_repository),
    availability: AvailabilityService = Depends(get_availability_service),
) -> BookingService:
    return BookingService(repo, availability, BookingConflictValidator(availability))


def _require_date(value: str) -> str:
    try:
        return parse_date(value).isoformat()
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid date format. Expected YYYY-MM-DD") from None


def _require_time(value: str) -> str:
    try:
        return parse_time(value).strftime("%H:%M")
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid time format. Expected HH:MM") from None


# ============================================================================
# PUBLIC BOOKING ROUTES (no owner context, business id in the path)
# ============================================================================


@router.get("/public/{business_id}/slots", response_model=SlotsResponse)
async def get_available_time_slots(
    business_id: int,
    date: str = Query(..., description="YYYY-MM-DD, in the business's timezone"),
    duration: int = Query(60, gt=0, le=24 * 60, description="Booking length in minutes"),
    service: AvailabilityService = Depends(get_availability_service),
):
    """Free start times for a booking of the given duration"""
    day = _require_date(date)
    slots = service.get_available_slots(business_id, day, duration)
    return SlotsResponse(business_id=business_id, date=day, duration_minutes=duration, slots=slots)


@router.get("/public/{business_id}/check", response_model=AvailabilityCheckResponse)
async def check_time_slot_availability(
    business_id: int,
    date: str = Query(...),
    time: str = Query(...),
    duration: int = Query(60, gt=0, le=24 * 60),
    availability: AvailabilityService = Depends(get_availability_service),
):
    """Re-check a selected slot right before submitting a booking"""
    day = _require_date(date)
    requested = _require_time(time)
    validator = BookingConflictValidator(availability)
    if validator.is_available(business_id, day, requested, duration):
        return AvailabilityCheckResponse(available=True, message="Time slot is available")
    return AvailabilityCheckResponse(
        available=False,
        message="This time slot is no longer available. Please choose another time.",
    )


@router.post("/public/{business_id}/book", response_model=BookingResponse, status_code=201)
async def create_booking(
    business_id: int,
    data: BookingRequest,
    service: BookingService = Depends(get_booking_service),
):
    """Book a slot. Returns 409 if the slot was taken in the meantime."""
    _require_date(data.date)
    _require_time(data.time)
    job = service.create_booking(business_id, data)
    _, tz = service.availability.resolve_zone(business_id)
    booked_at = to_local(job.scheduled_date, tz).strftime("%H:%M")
    return BookingResponse(
        success=True,
        job=JobResponse.model_validate(job),
        message=f"Booking confirmed for {data.date} at {booked_at}.",
    )


# ============================================================================
# OWNER CALENDAR ROUTES
# ============================================================================


@router.get("/time-blocks", response_model=list[TimeBlockResponse])
async def get_time_blocks(
    start: Optional[str] = Query(None, description="ISO datetime; expands recurring blocks when given with end"),
    end: Optional[str] = Query(None),
    business_id: int = Depends(get_current_business_id),
    service: ScheduleService = Depends(get_schedule_service),
):
    """Time-block templates, or the concrete instances in [start, end)"""
    try:
        blocks = service.list_time_blocks(business_id, start, end)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from None
    return [TimeBlockResponse.model_validate(block) for block in blocks]


@router.post("/time-blocks", response_model=TimeBlockResponse, status_code=201)
async def create_time_block(
    data: TimeBlockCreate,
    business_id: int = Depends(get_current_business_id),
    service: ScheduleService = Depends(get_schedule_service),
):
    """Create a one-off or recurring time block"""
    block = service.create_time_block(business_id, data)
    return TimeBlockResponse.model_validate(block)


@router.delete("/time-blocks/{block_id}")
async def delete_time_block(
    block_id: str,
    business_id: int = Depends(get_current_business_id),
    service: ScheduleService = Depends(get_schedule_service),
):
    """Delete a time block. Recurring occurrences must be removed through their template."""
    service.delete_time_block(business_id, block_id)
    return {"message": "Time block deleted"}


@router.get("/jobs", response_model=list[JobResponse])
async def get_scheduled_jobs(
    start: str = Query(...),
    end: str = Query(...),
    business_id: int = Depends(get_current_business_id),
    service: ScheduleService = Depends(get_schedule_service),
):
    """Scheduled and in-progress jobs for the calendar view"""
    try:
        jobs = service.list_scheduled_jobs(business_id, start, end)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from None
    return [JobResponse.model_validate(job) for job in jobs]


@router.patch("/jobs/{job_id}/date", response_model=JobResponse)
async def update_job_date(
    job_id: int,
    data: JobDateUpdate,
    business_id: int = Depends(get_current_business_id),
    service: ScheduleService = Depends(get_schedule_service),
):
    """Drag-and-drop reschedule"""
    job = service.update_job_date(business_id, job_id, data.scheduled_date)
    return JobResponse.model_validate(job)


@router.patch("/jobs/{job_id}/status", response_model=JobResponse)
async def update_job_status(
    job_id: int,
    data: JobStatusUpdate,
    business_id: int = Depends(get_current_business_id),
    service: ScheduleService = Depends(get_schedule_service),
):
    job = service.update_job_status(business_id, job_id, data.status)
    return JobResponse.model_validate(job)


@router.get("/business-hours")
async def get_business_hours(
    business_id: int = Depends(get_current_business_id),
    service: ScheduleService = Depends(get_schedule_service),
):
    return {"hours": service.get_business_hours(business_id)}


@router.put("/business-hours")
async def update_business_hours(
    data: BusinessHoursUpdate,
    business_id: int = Depends(get_current_business_id),
    service: ScheduleService = Depends(get_schedule_service),
):
    return {"hours": service.update_business_hours(business_id, data.hours)}
