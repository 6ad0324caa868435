"""
Scheduling error taxonomy.

Configuration gaps (missing or malformed business hours) never reach this
module: they are recovered with default hours. A closed day is an empty slot
list, not an error. Everything else maps to one of the kinds below, which the
API layer renders as ``{"detail": message, "code": code}``.
"""

from typing import Optional


class SchedulingError(Exception):
    """Base class for scheduling failures surfaced to callers"""

    status_code = 400
    code = "scheduling_error"
    default_message = "Scheduling request failed"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class MissingBusinessError(SchedulingError):
    status_code = 400
    code = "missing_business"
    default_message = "A business id is required"


class TenantAccessError(SchedulingError):
    """Record does not exist or belongs to another business. Fails closed."""

    status_code = 404
    code = "not_found"
    default_message = "Not found or access denied"


class SlotUnavailableError(SchedulingError):
    """The selected time was taken between display and commit. The user should re-select."""

    status_code = 409
    code = "slot_unavailable"
    default_message = "This time slot is no longer available. Please choose another time."


class TimeBlockValidationError(SchedulingError):
    status_code = 422
    code = "invalid_time_block"
    default_message = "Invalid time block"


class RecurringInstanceDeletionError(SchedulingError):
    status_code = 409
    code = "recurring_instance"
    default_message = "Recurring occurrences cannot be deleted individually"

    def __init__(self, instance_id: str, template_id: int):
        self.instance_id = instance_id
        self.template_id = template_id
        super().__init__(
            f"'{instance_id}' is an occurrence of recurring time block {template_id}. "
            f"Delete time block {template_id} to remove the whole series."
        )


class InvalidStatusTransitionError(SchedulingError):
    status_code = 409
    code = "invalid_status_transition"
    default_message = "Job status change not allowed"


class BusinessHoursValidationError(SchedulingError):
    status_code = 422
    code = "invalid_business_hours"
    default_message = "Invalid business hours"


class ScheduleStoreError(SchedulingError):
    """Storage or connectivity failure. Callers must not fall back to an open calendar."""

    status_code = 503
    code = "store_unavailable"
    default_message = "Unable to load available times. Please try again."
