"""
Availability Service

Produces the free booking slots for one business day by combining:
- Resolved business hours for the date
- Expanded time blocks (one-off and recurring)
- Active jobs (scheduled / in progress)

Every call re-reads the store. Nothing is cached between calls.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Optional, Union

from ...config import DEFAULT_JOB_DURATION_MINUTES, SLOT_GRANULARITY_MINUTES
from .business_hours import DayHours, resolve_day_hours
from .errors import MissingBusinessError
from .recurrence import TimeBlockInstance, expand_time_blocks
from .time_calculator import (
    as_utc,
    format_hhmm,
    get_zone,
    intervals_overlap,
    local_day_bounds,
    local_to_utc,
    parse_date,
    to_local,
)

logger = logging.getLogger(__name__)

# Jobs are read from this far before local midnight so overnight jobs still conflict
JOB_LOOKBACK = timedelta(days=1)


def job_interval(job, tz, default_duration: int = DEFAULT_JOB_DURATION_MINUTES):
    """
    The UTC interval a job occupies, or None.

    A stored ``scheduled_end`` marks a timed job and is used as-is. Without
    one, a job at exactly local midnight is a date-only placeholder and
    occupies no calendar space; any other job spans its estimated duration.
    """
    if job.scheduled_date is None:
        return None
    start = as_utc(job.scheduled_date)
    end = as_utc(job.scheduled_end)
    if end is not None:
        return start, end
    if to_local(start, tz).time() == time(0, 0, 0):
        return None
    duration = job.estimated_duration or default_duration
    return start, start + timedelta(minutes=duration)


@dataclass
class DaySchedule:
    """Everything slot generation needs for one local day, fully loaded before computing"""

    business_id: int
    day: date
    tz: object
    hours: DayHours
    day_start: datetime
    day_end: datetime
    blocks: list[TimeBlockInstance] = field(default_factory=list)
    busy_jobs: list[tuple[datetime, datetime]] = field(default_factory=list)


def require_business_id(business_id) -> None:
    if business_id is None or (isinstance(business_id, str) and not business_id.strip()):
        raise MissingBusinessError()


class AvailabilityService:
    """Service layer for slot generation"""

    def __init__(
        self,
        store,
        slot_granularity_minutes: int = SLOT_GRANULARITY_MINUTES,
        default_job_duration: int = DEFAULT_JOB_DURATION_MINUTES,
    ):
        self.store = store
        self.slot_granularity_minutes = slot_granularity_minutes
        self.default_job_duration = default_job_duration

    def resolve_zone(self, business_id: int):
        """Business zone, resolved once per call"""
        business = self.store.get_business(business_id)
        if not business:
            logger.warning(f"⚠️ Business {business_id} not found - using default hours and timezone")
            return None, get_zone(None)
        return business, get_zone(business.timezone)

    def load_blocks(
        self, business_id: int, window_start: datetime, window_end: datetime, tz
    ) -> list[TimeBlockInstance]:
        templates = self.store.list_time_blocks(business_id)
        return expand_time_blocks(templates, window_start, window_end, tz=tz)

    def load_day(self, business_id: int, day: Union[str, date]) -> DaySchedule:
        """Read hours, time blocks and jobs for a local day. All reads complete before any slot math."""
        require_business_id(business_id)
        day = parse_date(day)

        business, tz = self.resolve_zone(business_id)
        configured = business.business_hours if business else None
        hours = resolve_day_hours(configured, day)
        day_start, day_end = local_day_bounds(day, tz)

        schedule = DaySchedule(
            business_id=business_id,
            day=day,
            tz=tz,
            hours=hours,
            day_start=day_start,
            day_end=day_end,
        )
        if hours.closed:
            return schedule

        schedule.blocks = self.load_blocks(business_id, day_start, day_end, tz)
        jobs = self.store.list_active_jobs(business_id, day_start - JOB_LOOKBACK, day_end)
        schedule.busy_jobs = [
            interval
            for interval in (job_interval(job, tz, self.default_job_duration) for job in jobs)
            if interval is not None
        ]
        return schedule

    @staticmethod
    def compute_slots(schedule: DaySchedule, duration_minutes: int, slot_granularity_minutes: int) -> list[str]:
        """
        Walk candidate starts from open to close in granularity steps.

        A candidate survives when ``[t, t + duration)`` ends by close and
        overlaps neither a time-block instance nor an active job. Bounded by
        day length / granularity steps.

        A label is only offered for the instant it resolves back to when
        booked. On a fall-back day the repeated local hour is therefore
        listed once, for its standard-time occurrence.
        """
        if schedule.hours.closed:
            return []

        open_at = local_to_utc(schedule.day, schedule.hours.open, schedule.tz)
        close_at = local_to_utc(schedule.day, schedule.hours.close, schedule.tz)
        duration = timedelta(minutes=duration_minutes)
        step = timedelta(minutes=slot_granularity_minutes)

        busy = [(block.start_time, block.end_time) for block in schedule.blocks]
        busy.extend(schedule.busy_jobs)

        slots = []
        current = open_at
        while current < close_at:
            slot_end = current + duration
            if slot_end > close_at:
                break
            label = to_local(current, schedule.tz)
            canonical = local_to_utc(schedule.day, label.time(), schedule.tz) == current
            if canonical and not any(intervals_overlap(current, slot_end, start, end) for start, end in busy):
                slots.append(format_hhmm(label))
            current += step
        return slots

    def get_available_slots(
        self,
        business_id: int,
        day: Union[str, date],
        duration_minutes: int,
        slot_granularity_minutes: Optional[int] = None,
    ) -> list[str]:
        """Free ``HH:MM`` start times (business-local, ascending) for a booking of ``duration_minutes``"""
        if duration_minutes is None or duration_minutes <= 0:
            raise ValueError("duration_minutes must be a positive number of minutes")
        granularity = self.slot_granularity_minutes if slot_granularity_minutes is None else slot_granularity_minutes
        if granularity <= 0:
            raise ValueError("slot_granularity_minutes must be positive")

        schedule = self.load_day(business_id, day)
        if schedule.hours.closed:
            logger.info(f"📅 Business {business_id} is closed on {schedule.day.isoformat()}")
            return []

        logger.debug(
            f"📅 Business {business_id} {schedule.day.isoformat()}: "
            f"{format_hhmm(schedule.hours.open)}-{format_hhmm(schedule.hours.close)}, "
            f"{len(schedule.blocks)} block instance(s), {len(schedule.busy_jobs)} job(s)"
        )
        slots = self.compute_slots(schedule, duration_minutes, granularity)
        logger.info(
            f"✅ Found {len(slots)} available slot(s) for business {business_id} on {schedule.day.isoformat()}"
        )
        return slots
