"""Schedule service - Business logic for calendar mutations"""

import logging
from datetime import datetime, time, timedelta, timezone
from typing import Optional, Union

from ...models import ACTIVE_JOB_STATUSES, Job, TimeBlock
from .availability_service import AvailabilityService, require_business_id
from .business_hours import resolve_week, validate_week
from .errors import (
    InvalidStatusTransitionError,
    RecurringInstanceDeletionError,
    SlotUnavailableError,
    TenantAccessError,
    TimeBlockValidationError,
)
from .recurrence import TimeBlockInstance, expand_time_blocks, parse_instance_id
from .schemas import TimeBlockCreate
from .time_calculator import local_to_utc, parse_date, parse_instant

logger = logging.getLogger(__name__)

# Allowed job status changes; completed and cancelled are terminal
JOB_STATUS_TRANSITIONS: dict[str, tuple[str, ...]] = {
    "scheduled": ("in_progress", "cancelled"),
    "in_progress": ("completed",),
    "completed": (),
    "cancelled": (),
}


class ScheduleService:
    """Create/delete time blocks, move jobs, and maintain business hours for one business at a time"""

    def __init__(self, store, availability: Optional[AvailabilityService] = None):
        self.store = store
        self.availability = availability or AvailabilityService(store)

    # Time blocks

    def _parse_recurrence_end(self, raw: Optional[str], tz) -> Optional[datetime]:
        """A bare date means the whole local day is included"""
        if not raw:
            return None
        raw = raw.strip()
        if len(raw) == 10:
            try:
                day = parse_date(raw)
            except ValueError as e:
                raise TimeBlockValidationError(str(e)) from None
            return local_to_utc(day + timedelta(days=1), time.min, tz) - timedelta(microseconds=1)
        try:
            return parse_instant(raw, tz)
        except ValueError as e:
            raise TimeBlockValidationError(str(e)) from None

    def create_time_block(self, business_id: int, data: TimeBlockCreate) -> TimeBlock:
        """Validate and persist a time block. Recurring blocks are stored as a single template."""
        require_business_id(business_id)
        _, tz = self.availability.resolve_zone(business_id)

        start = parse_instant(data.start_time, tz)
        end = parse_instant(data.end_time, tz)
        if start >= end:
            raise TimeBlockValidationError("Start time must be before end time")

        recurrence = {
            "recurrence_pattern": None,
            "recurrence_end_date": None,
            "recurrence_count": None,
        }
        if data.is_recurring:
            if not data.recurrence_pattern:
                raise TimeBlockValidationError("A recurrence pattern is required for recurring time blocks")
            recurrence_end = self._parse_recurrence_end(data.recurrence_end_date, tz)
            if recurrence_end is not None and recurrence_end < start:
                raise TimeBlockValidationError("Recurrence end date must be on or after the start time")
            recurrence = {
                "recurrence_pattern": data.recurrence_pattern,
                "recurrence_end_date": recurrence_end,
                "recurrence_count": data.recurrence_count,
            }

        block = self.store.insert_time_block(
            business_id,
            title=data.title,
            start_time=start,
            end_time=end,
            type=data.type,
            description=data.description,
            is_recurring=data.is_recurring,
            **recurrence,
        )
        logger.info(
            f"✅ Created {'recurring ' if data.is_recurring else ''}time block {block.id} "
            f"for business {business_id}"
        )
        return block

    def delete_time_block(self, business_id: int, block_id: Union[int, str]) -> None:
        """Delete a template or one-off block. Synthesized occurrence ids are rejected."""
        require_business_id(business_id)

        instance = parse_instance_id(str(block_id))
        if instance is not None:
            template_id, _ = instance
            raise RecurringInstanceDeletionError(str(block_id), template_id)

        try:
            numeric_id = int(block_id)
        except (TypeError, ValueError):
            raise TenantAccessError("Time block not found") from None

        if not self.store.delete_time_block(numeric_id, business_id):
            raise TenantAccessError("Time block not found")
        logger.info(f"🗑️ Deleted time block {numeric_id} for business {business_id}")

    def list_time_blocks(
        self,
        business_id: int,
        start: Optional[Union[str, datetime]] = None,
        end: Optional[Union[str, datetime]] = None,
    ) -> list[Union[TimeBlock, TimeBlockInstance]]:
        """Templates when no range is given, otherwise the instances overlapping the range"""
        require_business_id(business_id)
        templates = self.store.list_time_blocks(business_id)
        if start is None or end is None:
            return templates

        _, tz = self.availability.resolve_zone(business_id)
        return expand_time_blocks(templates, parse_instant(start, tz), parse_instant(end, tz), tz=tz)

    # Jobs

    def list_scheduled_jobs(
        self, business_id: int, start: Union[str, datetime], end: Union[str, datetime]
    ) -> list[Job]:
        require_business_id(business_id)
        _, tz = self.availability.resolve_zone(business_id)
        return self.store.list_active_jobs(business_id, parse_instant(start, tz), parse_instant(end, tz))

    def _get_owned_job(self, business_id: int, job_id: int) -> Job:
        require_business_id(business_id)
        job = self.store.get_job(job_id, business_id)
        if not job:
            logger.warning(f"⚠️ Job {job_id} not found for business {business_id}")
            raise TenantAccessError("Job not found or access denied")
        return job

    def update_job_date(self, business_id: int, job_id: int, new_date: Union[str, datetime]) -> Job:
        """
        Move a job to a new start time.

        The job must belong to ``business_id``. The new interval is checked
        against time blocks here and against other active jobs inside the
        repository's guarded write; either conflict raises SlotUnavailableError.

        A bare ``YYYY-MM-DD`` moves the job to that day as a date-only
        placeholder (local midnight, no end) and skips the checks.
        """
        job = self._get_owned_job(business_id, job_id)
        _, tz = self.availability.resolve_zone(business_id)
        date_only = isinstance(new_date, str) and len(new_date.strip()) == 10
        try:
            new_start = parse_instant(new_date, tz)
        except ValueError as e:
            raise TimeBlockValidationError(str(e)) from None

        new_end = None
        if not date_only:
            duration = job.estimated_duration or self.availability.default_job_duration
            new_end = new_start + timedelta(minutes=duration)

        if new_end is not None and job.status in ACTIVE_JOB_STATUSES:
            blocks = self.availability.load_blocks(business_id, new_start, new_end, tz)
            if blocks:
                logger.info(f"⛔ Job {job_id} move rejected: overlaps time block {blocks[0].id}")
                raise SlotUnavailableError(
                    f"The new time overlaps '{blocks[0].title}'. Please choose another time."
                )

        job = self.store.update_job_scheduled_date(job, new_start, new_end)
        logger.info(f"📅 Job {job_id} moved to {new_start.isoformat()}")
        return job

    def update_job_status(self, business_id: int, job_id: int, status: str) -> Job:
        job = self._get_owned_job(business_id, job_id)
        if status == job.status:
            return job
        allowed = JOB_STATUS_TRANSITIONS.get(job.status, ())
        if status not in allowed:
            raise InvalidStatusTransitionError(f"Cannot change job status from {job.status} to {status}")

        completed_at = datetime.now(timezone.utc) if status == "completed" else None
        job = self.store.update_job_status(job, status, completed_at)
        logger.info(f"✅ Job {job_id} status -> {status}")
        return job

    # Business hours

    def get_business_hours(self, business_id: int) -> dict:
        """Configured week merged over defaults"""
        require_business_id(business_id)
        return resolve_week(self.store.get_business_hours(business_id))

    def update_business_hours(self, business_id: int, hours: dict) -> dict:
        require_business_id(business_id)
        cleaned = validate_week(hours)
        business = self.store.get_business(business_id)
        if not business:
            raise TenantAccessError("Business not found")
        self.store.update_business_hours(business, cleaned)
        logger.info(f"✅ Updated business hours for business {business_id}")
        return resolve_week(cleaned)
