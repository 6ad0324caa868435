"""Business hours resolution with safe defaults"""

import logging
from dataclasses import dataclass
from datetime import date, time
from typing import Any, Optional

from .errors import BusinessHoursValidationError
from .time_calculator import format_hhmm, parse_time

logger = logging.getLogger(__name__)

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

# Used when a business has not configured hours, or a day entry is unusable
DEFAULT_BUSINESS_HOURS: dict[str, dict[str, Any]] = {
    "monday": {"open": "09:00", "close": "17:00", "closed": False},
    "tuesday": {"open": "09:00", "close": "17:00", "closed": False},
    "wednesday": {"open": "09:00", "close": "17:00", "closed": False},
    "thursday": {"open": "09:00", "close": "17:00", "closed": False},
    "friday": {"open": "09:00", "close": "17:00", "closed": False},
    "saturday": {"closed": True},
    "sunday": {"closed": True},
}


@dataclass(frozen=True)
class DayHours:
    closed: bool
    open: Optional[time] = None
    close: Optional[time] = None

    def to_dict(self) -> dict:
        if self.closed:
            return {"closed": True}
        return {"open": format_hhmm(self.open), "close": format_hhmm(self.close), "closed": False}


CLOSED = DayHours(closed=True)


def _parse_entry(entry: Any) -> Optional[DayHours]:
    """
    Parse one day entry. Returns None when the entry is unusable.

    Accepts ``{"open", "close", "closed"}`` as well as the dashboard's
    ``{"enabled", "startTime", "endTime"}`` shape.
    """
    if not isinstance(entry, dict):
        return None

    if entry.get("closed") is True or entry.get("enabled") is False:
        return CLOSED

    open_raw = entry.get("open", entry.get("startTime"))
    close_raw = entry.get("close", entry.get("endTime"))
    if not open_raw or not close_raw:
        return None
    try:
        open_time = parse_time(open_raw)
        close_time = parse_time(close_raw)
    except ValueError:
        return None
    if open_time >= close_time:
        return None
    return DayHours(closed=False, open=open_time, close=close_time)


def _default_for(weekday: str) -> DayHours:
    return _parse_entry(DEFAULT_BUSINESS_HOURS[weekday])


def resolve_day_hours(configured_hours: Optional[dict], day: date) -> DayHours:
    """
    Resolve the open/close window for a local calendar date.

    Unconfigured, absent, or malformed entries fall back to the default hours
    for that weekday rather than failing, so partial configuration never
    blocks bookings.
    """
    weekday = WEEKDAYS[day.weekday()]

    if not configured_hours or not isinstance(configured_hours, dict):
        return _default_for(weekday)

    entry = configured_hours.get(weekday)
    if entry is None:
        return _default_for(weekday)

    resolved = _parse_entry(entry)
    if resolved is None:
        logger.warning(f"⚠️ Malformed business hours for {weekday}: {entry!r} - using defaults")
        return _default_for(weekday)
    return resolved


def resolve_week(configured_hours: Optional[dict]) -> dict[str, dict]:
    """Effective hours for every weekday, as the booking UI displays them"""
    # Any Monday works as an anchor; only the weekday matters
    anchor = date(2024, 1, 1)
    return {
        weekday: resolve_day_hours(configured_hours, date.fromordinal(anchor.toordinal() + offset)).to_dict()
        for offset, weekday in enumerate(WEEKDAYS)
    }


def validate_week(hours: dict) -> dict[str, dict]:
    """Strictly validate an owner-submitted week. Unlike resolution, bad input is rejected."""
    if not isinstance(hours, dict):
        raise BusinessHoursValidationError("Business hours must be an object keyed by weekday")

    cleaned = {}
    for weekday, entry in hours.items():
        key = str(weekday).lower()
        if key not in WEEKDAYS:
            raise BusinessHoursValidationError(f"Unknown weekday: {weekday}")
        if entry is None:
            continue
        if not isinstance(entry, dict):
            raise BusinessHoursValidationError(f"Hours for {key} must be an object")
        if entry.get("closed"):
            cleaned[key] = {"closed": True}
            continue
        try:
            open_time = parse_time(entry.get("open"))
            close_time = parse_time(entry.get("close"))
        except ValueError as e:
            raise BusinessHoursValidationError(f"{key}: {e}") from None
        if open_time >= close_time:
            raise BusinessHoursValidationError(f"{key}: open time must be before close time")
        cleaned[key] = {"open": format_hhmm(open_time), "close": format_hhmm(close_time), "closed": False}
    return cleaned
