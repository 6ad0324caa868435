"""
Recurring time-block expansion.

Recurring time blocks are stored once, as templates. Concrete occurrences are
derived on every read and identified by ``"<template id>_<occurrence index>"``,
so the same window always yields the same ids. Occurrences are never stored
and cannot be deleted on their own; the template is the unit of deletion.
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

import pytz
from dateutil.relativedelta import relativedelta

from ...config import MAX_RECURRENCE_OCCURRENCES
from .time_calculator import as_utc, intervals_overlap, localize

logger = logging.getLogger(__name__)

_INSTANCE_ID_RE = re.compile(r"^(\d+)_(\d+)$")


@dataclass(frozen=True)
class TimeBlockInstance:
    """A concrete blocked interval, either a one-off block or one occurrence of a template"""

    id: str
    business_id: int
    title: str
    type: str
    start_time: datetime
    end_time: datetime
    description: Optional[str] = None
    is_recurring_instance: bool = False
    original_id: Optional[int] = None  # template id for derived occurrences
    occurrence_index: Optional[int] = None


def make_instance_id(template_id: int, occurrence_index: int) -> str:
    return f"{template_id}_{occurrence_index}"


def parse_instance_id(value: str) -> Optional[tuple[int, int]]:
    """Return ``(template_id, index)`` for a synthesized occurrence id, else None"""
    match = _INSTANCE_ID_RE.match(str(value).strip())
    if not match:
        return None
    return int(match.group(1)), int(match.group(2))


def _step(pattern: str, n: int):
    if pattern == "daily":
        return timedelta(days=n)
    if pattern == "weekly":
        return timedelta(weeks=n)
    if pattern == "monthly":
        # Always offset from the template start so Jan 31 -> Feb 28 -> Mar 31 (no drift)
        return relativedelta(months=n)
    if pattern == "yearly":
        return relativedelta(years=n)
    raise ValueError(f"Unsupported recurrence pattern: {pattern!r}")


def _first_candidate_index(pattern: str, base: datetime, target: datetime) -> int:
    """
    Index of an occurrence starting at or before ``target`` (both local naive).

    Undershoots by one unit to absorb DST and month-length differences; the
    expansion loop skips the few extra non-overlapping occurrences.
    """
    if target <= base:
        return 0
    if pattern == "daily":
        return max(0, (target - base).days - 1)
    if pattern == "weekly":
        return max(0, (target - base).days // 7 - 1)
    if pattern == "monthly":
        months = (target.year - base.year) * 12 + (target.month - base.month)
        return max(0, months - 1)
    if pattern == "yearly":
        return max(0, target.year - base.year - 1)
    return 0


def _is_recurring(block) -> bool:
    return bool(getattr(block, "is_recurring", False) and getattr(block, "recurrence_pattern", None))


def _single_instance(block, start: datetime, end: datetime) -> TimeBlockInstance:
    return TimeBlockInstance(
        id=str(block.id),
        business_id=block.business_id,
        title=block.title,
        type=block.type,
        description=block.description,
        start_time=start,
        end_time=end,
    )


def expand_recurring_block(
    block,
    window_start: datetime,
    window_end: datetime,
    tz=None,
    max_steps: int = MAX_RECURRENCE_OCCURRENCES,
) -> list[TimeBlockInstance]:
    """
    Occurrences of one recurring template overlapping ``[window_start, window_end)``.

    Stepping happens in the business's local wall-clock time so a weekly 09:00
    block stays at 09:00 across DST changes. Each occurrence keeps the
    template's original duration. The loop stops when an occurrence starts at
    or after the window end, after the recurrence end date, once the
    occurrence count is used up, or after ``max_steps`` iterations.
    """
    tz = tz or pytz.utc
    pattern = block.recurrence_pattern
    base_start = as_utc(block.start_time)
    duration = as_utc(block.end_time) - base_start
    window_start = as_utc(window_start)
    window_end = as_utc(window_end)
    recurrence_end = as_utc(block.recurrence_end_date)
    count_cap = block.recurrence_count if block.recurrence_count and block.recurrence_count > 0 else None

    base_local = base_start.astimezone(tz).replace(tzinfo=None)
    earliest_relevant = (window_start - duration).astimezone(tz).replace(tzinfo=None)
    index = _first_candidate_index(pattern, base_local, earliest_relevant)

    instances = []
    steps = 0
    while steps < max_steps:
        if count_cap is not None and index >= count_cap:
            break
        occurrence_start = localize(base_local + _step(pattern, index), tz).astimezone(timezone.utc)
        if occurrence_start >= window_end:
            break
        if recurrence_end is not None and occurrence_start > recurrence_end:
            break

        occurrence_end = occurrence_start + duration
        if intervals_overlap(occurrence_start, occurrence_end, window_start, window_end):
            instances.append(
                TimeBlockInstance(
                    id=make_instance_id(block.id, index),
                    business_id=block.business_id,
                    title=block.title,
                    type=block.type,
                    description=block.description,
                    start_time=occurrence_start,
                    end_time=occurrence_end,
                    is_recurring_instance=True,
                    original_id=block.id,
                    occurrence_index=index,
                )
            )
        index += 1
        steps += 1
    else:
        logger.warning(
            f"⚠️ Recurrence expansion for time block {block.id} stopped after {max_steps} steps"
        )

    return instances


def expand_time_blocks(
    blocks: Iterable,
    window_start: datetime,
    window_end: datetime,
    tz=None,
    max_steps: int = MAX_RECURRENCE_OCCURRENCES,
) -> list[TimeBlockInstance]:
    """
    Expand time-block templates into the concrete instances overlapping the window.

    Pure function of its inputs. Output is ordered by start time, then id.
    """
    window_start = as_utc(window_start)
    window_end = as_utc(window_end)

    expanded = []
    for block in blocks:
        if _is_recurring(block):
            expanded.extend(expand_recurring_block(block, window_start, window_end, tz, max_steps))
            continue

        start = as_utc(block.start_time)
        end = as_utc(block.end_time)
        if intervals_overlap(start, end, window_start, window_end):
            expanded.append(_single_instance(block, start, end))

    expanded.sort(key=lambda instance: (instance.start_time, instance.id))
    return expanded
