"""Commit-time availability re-check for a specific date and time"""

import logging
from datetime import date, datetime, time
from typing import Optional, Union

from ...config import SLOT_TOLERANCE_MINUTES
from .availability_service import AvailabilityService
from .time_calculator import minutes_of_day, parse_instant, parse_time

logger = logging.getLogger(__name__)


class BookingConflictValidator:
    """
    Re-derives the slot list from current state and accepts a requested time
    close to a free slot.

    This is advisory: it holds no lock, so two requests can both pass before
    either commits. The guarded insert in the repository is what actually
    prevents double-booking.
    """

    def __init__(self, availability: AvailabilityService, tolerance_minutes: int = SLOT_TOLERANCE_MINUTES):
        self.availability = availability
        self.tolerance_minutes = tolerance_minutes

    def matching_slot(
        self,
        business_id: int,
        day: Union[str, date],
        requested_time: Union[str, time],
        duration_minutes: int,
    ) -> Optional[str]:
        """The closest free slot within tolerance of ``requested_time``, or None"""
        requested = minutes_of_day(parse_time(requested_time))
        slots = self.availability.get_available_slots(business_id, day, duration_minutes)

        best = None
        best_distance = None
        for slot in slots:
            distance = abs(minutes_of_day(parse_time(slot)) - requested)
            if distance < self.tolerance_minutes and (best_distance is None or distance < best_distance):
                best, best_distance = slot, distance

        if best is None:
            logger.info(f"⛔ {day} {requested_time} is no longer available for business {business_id}")
        return best

    def is_available(
        self,
        business_id: int,
        day: Union[str, date],
        requested_time: Union[str, time],
        duration_minutes: int,
    ) -> bool:
        return self.matching_slot(business_id, day, requested_time, duration_minutes) is not None

    def is_available_at(
        self, business_id: int, instant: Union[str, datetime], duration_minutes: int
    ) -> bool:
        """Same check for an ISO instant, read in the business's own timezone"""
        _, tz = self.availability.resolve_zone(business_id)
        local = parse_instant(instant, tz).astimezone(tz)
        return self.is_available(business_id, local.date(), local.time(), duration_minutes)
