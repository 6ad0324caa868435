"""
Scheduling Domain

Availability engine for bookings: which start times are free for a new job
of a given duration, given weekly business hours, one-off and recurring time
blocks, and jobs already on the calendar.

Structure:
```
opsuite/domain/scheduling/
├── __init__.py
├── errors.py               # Error taxonomy (tenant, stale slot, store failure, ...)
├── schemas.py              # Time block, job, booking, slot schemas
├── repository.py           # Store operations, guarded job writes
├── time_calculator.py      # Time parsing, zone conversion, interval math
├── recurrence.py           # Recurring time-block expansion
├── business_hours.py       # Weekly hours resolution with defaults
├── availability_service.py # Slot generation
├── conflict_validator.py   # Commit-time re-check of a selected slot
├── booking_service.py      # Slot -> scheduled job
├── schedule_service.py     # Time blocks, job moves/status, business hours
└── router.py               # FastAPI endpoints
```

Double-booking protection lives in the store, not in the validator: job
inserts and moves lock the business row and re-check overlap inside the
write transaction, and on PostgreSQL the exclusion constraint from
``migrations/add_job_overlap_exclusion.py`` backs that up.
"""

from .availability_service import AvailabilityService
from .booking_service import BookingService
from .conflict_validator import BookingConflictValidator
from .repository import ScheduleRepository, ScheduleStore
from .schedule_service import ScheduleService

__all__ = [
    "AvailabilityService",
    "BookingConflictValidator",
    "BookingService",
    "ScheduleRepository",
    "ScheduleService",
    "ScheduleStore",
]
