"""
Time parsing and calculations shared by the scheduling engine.

Zone policy: a business zone is resolved once per call, local wall-clock
values (a calendar date, an "HH:MM" open time) are converted to UTC at the
boundary, and every interval comparison happens between UTC datetimes.
"""

import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Union

import pytz

from ...config import DEFAULT_TIMEZONE

logger = logging.getLogger(__name__)

_TIME_FORMATS = ("%H:%M", "%H:%M:%S", "%I:%M %p")


def parse_date(value: Union[str, date]) -> date:
    """Parse a ``YYYY-MM-DD`` calendar date"""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(value.strip(), "%Y-%m-%d").date()
    except (AttributeError, ValueError):
        raise ValueError(f"Invalid date format: {value!r}. Expected YYYY-MM-DD") from None


def parse_time(value: Union[str, time]) -> time:
    """Parse a wall-clock time. Accepts 24h ``HH:MM[:SS]`` and 12h ``HH:MM AM``."""
    if isinstance(value, time):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Invalid time: {value!r}")
    raw = value.strip()
    for fmt in _TIME_FORMATS:
        try:
            return datetime.strptime(raw, fmt).time()
        except ValueError:
            continue
    raise ValueError(f"Invalid time format: {value!r}. Expected HH:MM")


def format_hhmm(value: Union[time, datetime]) -> str:
    return value.strftime("%H:%M")


def get_zone(tz_name: Optional[str]):
    """Resolve an IANA zone name, falling back to DEFAULT_TIMEZONE"""
    try:
        return pytz.timezone(tz_name or DEFAULT_TIMEZONE)
    except pytz.UnknownTimeZoneError:
        logger.warning(f"⚠️ Unknown timezone '{tz_name}', using {DEFAULT_TIMEZONE}")
        return pytz.timezone(DEFAULT_TIMEZONE)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalize to an aware UTC datetime. Naive values are stored UTC (SQLite drops tzinfo)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def localize(naive: datetime, tz) -> datetime:
    """Attach ``tz`` to a naive wall-clock datetime"""
    # is_dst=False picks standard time for ambiguous/nonexistent wall times instead of raising
    return tz.normalize(tz.localize(naive, is_dst=False))


def local_to_utc(day: date, wall_time: time, tz) -> datetime:
    return localize(datetime.combine(day, wall_time), tz).astimezone(timezone.utc)


def to_local(value: datetime, tz) -> datetime:
    return as_utc(value).astimezone(tz)


def local_day_bounds(day: date, tz) -> tuple[datetime, datetime]:
    """UTC bounds ``[start, end)`` of a local calendar day. DST days are 23 or 25 hours long."""
    start = local_to_utc(day, time.min, tz)
    end = local_to_utc(day + timedelta(days=1), time.min, tz)
    return start, end


def parse_instant(value: Union[str, datetime], tz=None) -> datetime:
    """Parse an ISO 8601 instant. Naive input is read as wall-clock time in ``tz`` (UTC if omitted)."""
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except (AttributeError, ValueError):
            raise ValueError(f"Invalid ISO datetime: {value!r}") from None
    if parsed.tzinfo is None:
        if tz is None:
            return parsed.replace(tzinfo=timezone.utc)
        return localize(parsed, tz).astimezone(timezone.utc)
    return parsed.astimezone(timezone.utc)


def intervals_overlap(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """Half-open overlap: touching intervals do not conflict"""
    return a_start < b_end and a_end > b_start


def minutes_of_day(value: time) -> int:
    return value.hour * 60 + value.minute
