"""Booking service - turns a selected slot into a scheduled job"""

import logging
from datetime import timedelta
from typing import Optional

from ...models import Job
from .availability_service import AvailabilityService, require_business_id
from .conflict_validator import BookingConflictValidator
from .errors import SlotUnavailableError
from .schemas import BookingRequest
from .time_calculator import local_to_utc, parse_date, parse_time

logger = logging.getLogger(__name__)


class BookingService:
    """
    Two-step commit: an advisory re-check against hours, blocks and jobs,
    then the repository's guarded insert, which re-checks job overlap in the
    same transaction as the write.
    """

    def __init__(
        self,
        store,
        availability: Optional[AvailabilityService] = None,
        validator: Optional[BookingConflictValidator] = None,
    ):
        self.store = store
        self.availability = availability or AvailabilityService(store)
        self.validator = validator or BookingConflictValidator(self.availability)

    def create_booking(self, business_id: int, data: BookingRequest) -> Job:
        require_business_id(business_id)
        day = parse_date(data.date)
        requested_time = parse_time(data.time)

        # Book the matched slot itself so the committed interval is one that was verified free
        slot = self.validator.matching_slot(business_id, day, requested_time, data.duration_minutes)
        if slot is None:
            raise SlotUnavailableError()

        _, tz = self.availability.resolve_zone(business_id)
        start = local_to_utc(day, parse_time(slot), tz)
        # Timed even at local midnight; only jobs without an end are placeholders
        end = start + timedelta(minutes=data.duration_minutes)

        job = self.store.insert_job(
            business_id,
            title=data.title,
            client_name=data.client_name,
            description=data.description,
            scheduled_date=start,
            scheduled_end=end,
            estimated_duration=data.duration_minutes,
            status="scheduled",
        )
        logger.info(f"✅ Booking created: job {job.id} for business {business_id} on {data.date} at {data.time}")
        return job
