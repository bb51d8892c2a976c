# bloodlink/scheduling/lifecycle.py
"""
Appointment status machine and the rule checks around it.

Happy path: scheduled -> confirmed -> reminded -> checked_in -> in_progress
-> completed, with any step skippable. cancelled, no_show and rescheduled are
reachable from every non-terminal state. Only ``completed`` is locked; the
table below keeps every other move open.
"""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum

from .errors import InvalidDate, InvalidTransition, RescheduleLimitExceeded
from .policy import DEFAULT_POLICY, SchedulingPolicy
from .time_slot import TimeSlot


class AppointmentStatus(str, Enum):
    SCHEDULED = "scheduled"  # Booked by the donor
    CONFIRMED = "confirmed"  # Blood bank acknowledged the booking
    REMINDED = "reminded"  # Reminder sent to the donor
    CHECKED_IN = "checked_in"  # Donor arrived
    IN_PROGRESS = "in_progress"  # Donation under way
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"
    RESCHEDULED = "rescheduled"  # Moved at least once, still editable

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES

    @property
    def holds_slot(self) -> bool:
        return self in SLOT_HOLDING_STATUSES


class ActorRole(str, Enum):
    """Who performed a cancellation or reschedule."""

    DONOR = "donor"
    BLOOD_BANK = "blood_bank"
    SYSTEM = "system"

    @classmethod
    def from_user_role(cls, role: str) -> "ActorRole":
        # Administrators act on behalf of the platform.
        value = getattr(role, "value", role)
        if value == "admin":
            return cls.SYSTEM
        return cls(value)


ACTIVE_STATUSES = frozenset(
    {
        AppointmentStatus.SCHEDULED,
        AppointmentStatus.CONFIRMED,
        AppointmentStatus.REMINDED,
        AppointmentStatus.CHECKED_IN,
        AppointmentStatus.IN_PROGRESS,
    }
)

# A rescheduled appointment still occupies its new slot.
SLOT_HOLDING_STATUSES = ACTIVE_STATUSES | {AppointmentStatus.RESCHEDULED}

UPCOMING_STATUSES = frozenset(
    {
        AppointmentStatus.SCHEDULED,
        AppointmentStatus.CONFIRMED,
        AppointmentStatus.REMINDED,
    }
)

TERMINAL_STATUSES = frozenset(
    {
        AppointmentStatus.COMPLETED,
        AppointmentStatus.CANCELLED,
        AppointmentStatus.NO_SHOW,
    }
)

ALLOWED_TRANSITIONS: dict[AppointmentStatus, frozenset[AppointmentStatus]] = {
    status: frozenset(AppointmentStatus) for status in AppointmentStatus
}
ALLOWED_TRANSITIONS[AppointmentStatus.COMPLETED] = frozenset(
    {AppointmentStatus.COMPLETED}
)


def can_transition(current: AppointmentStatus, target: AppointmentStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


def ensure_transition(current: AppointmentStatus, target: AppointmentStatus) -> None:
    """
    Raises:
        InvalidTransition: If the table forbids moving from current to target
    """
    if not can_transition(current, target):
        raise InvalidTransition(
            current.value,
            target.value,
            f"Cannot modify {current.value} appointment (requested '{target.value}')",
        )


def ensure_cancellable(current: AppointmentStatus) -> None:
    if not can_transition(current, AppointmentStatus.CANCELLED):
        raise InvalidTransition(
            current.value,
            AppointmentStatus.CANCELLED.value,
            f"Cannot cancel {current.value} appointment",
        )


def ensure_reschedulable(
    current: AppointmentStatus,
    reschedule_count: int,
    appointment_id: str,
    policy: SchedulingPolicy = DEFAULT_POLICY,
) -> None:
    """
    Raises:
        InvalidTransition: If the appointment already reached an end state
        RescheduleLimitExceeded: If the reschedule budget is used up
    """
    if current.is_terminal:
        raise InvalidTransition(
            current.value,
            AppointmentStatus.RESCHEDULED.value,
            f"Cannot reschedule {current.value} appointment",
        )
    if reschedule_count >= policy.max_reschedules:
        raise RescheduleLimitExceeded(appointment_id, policy.max_reschedules)


def ensure_future(on_date: date, slot: TimeSlot, now: datetime) -> None:
    """
    Raises:
        InvalidDate: If the slot does not start strictly after ``now``
    """
    if _starts_at(on_date, slot, now) <= now:
        raise InvalidDate(
            f"Appointment date must be in the future ({on_date} {slot.start})"
        )


def is_upcoming(
    on_date: date, slot: TimeSlot, status: AppointmentStatus, now: datetime
) -> bool:
    return status in UPCOMING_STATUSES and _starts_at(on_date, slot, now) > now


def is_overdue(
    on_date: date, slot: TimeSlot, status: AppointmentStatus, now: datetime
) -> bool:
    """Still awaiting the donor although its start time has passed."""
    return status in UPCOMING_STATUSES and _starts_at(on_date, slot, now) < now


def format_duration(minutes: int) -> str:
    hours, rest = divmod(minutes, 60)
    return f"{hours}h {rest}m" if hours > 0 else f"{rest}m"


def _starts_at(on_date: date, slot: TimeSlot, now: datetime) -> datetime:
    if now.tzinfo is None:
        return slot.starts_at(on_date).replace(tzinfo=None)
    # Slot times are UTC wall-clock; aware clocks compare across zones.
    return slot.starts_at(on_date)


__all__ = [
    "AppointmentStatus",
    "ActorRole",
    "ACTIVE_STATUSES",
    "SLOT_HOLDING_STATUSES",
    "UPCOMING_STATUSES",
    "TERMINAL_STATUSES",
    "ALLOWED_TRANSITIONS",
    "can_transition",
    "ensure_transition",
    "ensure_cancellable",
    "ensure_reschedulable",
    "ensure_future",
    "is_upcoming",
    "is_overdue",
    "format_duration",
]
