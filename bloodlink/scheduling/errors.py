# bloodlink/scheduling/errors.py
"""
Domain error kinds raised by the scheduling core.

Every kind carries its own HTTP status and machine-readable code so the
app-level handler in main.py can render it without inspecting messages.
"""

from common.api_error import AppError


class SchedulingError(AppError):
    """Base class for expected, caller-recoverable scheduling failures."""

    code = "SCHEDULING_ERROR"


class NotFound(SchedulingError):
    status_code = 404
    code = "NOT_FOUND"

    def __init__(self, entity: str, entity_id: str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found: {entity_id}")


class IneligibleDonor(SchedulingError):
    status_code = 422
    code = "INELIGIBLE_DONOR"

    def __init__(self, donor_id: str, reasons: list[str] | None = None):
        self.donor_id = donor_id
        self.reasons = list(reasons or [])
        detail = "; ".join(self.reasons) or "Donor is not currently eligible"
        super().__init__(f"Donor {donor_id} is not eligible to donate: {detail}")


class InvalidDate(SchedulingError):
    """Appointment date/time is in the past, or end is not after start."""

    status_code = 400
    code = "INVALID_DATE"


class InvalidTimeFormat(InvalidDate):
    code = "INVALID_TIME_FORMAT"


class InvalidDuration(InvalidDate):
    code = "INVALID_DURATION"


class SlotConflict(SchedulingError):
    status_code = 409
    code = "SLOT_CONFLICT"

    def __init__(self, blood_bank_id: str, on_date: object, start: str, end: str):
        self.blood_bank_id = blood_bank_id
        super().__init__(
            f"Time slot {start}-{end} on {on_date} is not available "
            f"at blood bank {blood_bank_id}"
        )


class RescheduleLimitExceeded(SchedulingError):
    status_code = 409
    code = "RESCHEDULE_LIMIT_EXCEEDED"

    def __init__(self, appointment_id: str, limit: int):
        self.limit = limit
        super().__init__(
            f"Appointment {appointment_id} has already been rescheduled "
            f"{limit} times (maximum {limit})"
        )


class InvalidTransition(SchedulingError):
    status_code = 409
    code = "INVALID_TRANSITION"

    def __init__(self, current: str, target: str, message: str | None = None):
        self.current = current
        self.target = target
        super().__init__(
            message or f"Cannot move appointment from '{current}' to '{target}'"
        )


__all__ = [
    "SchedulingError",
    "NotFound",
    "IneligibleDonor",
    "InvalidDate",
    "InvalidTimeFormat",
    "InvalidDuration",
    "SlotConflict",
    "RescheduleLimitExceeded",
    "InvalidTransition",
]
