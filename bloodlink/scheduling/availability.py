# bloodlink/scheduling/availability.py
"""
Availability engine.

Pure functions over snapshots the caller has already fetched: the day's
opening hours and the intervals already booked at that blood bank. Nothing
here reads storage or takes locks.
"""

from __future__ import annotations

from typing import Iterable, Optional

from .errors import InvalidDuration
from .operating_hours import DailyHours
from .time_slot import TimeSlot


def conflicting_slots(candidate: TimeSlot, booked: Iterable[TimeSlot]) -> list[TimeSlot]:
    """Booked intervals that intersect ``candidate`` under the half-open rule."""
    return [slot for slot in booked if candidate.overlaps(slot)]


def is_slot_available(candidate: TimeSlot, booked: Iterable[TimeSlot]) -> bool:
    """True when ``candidate`` overlaps none of the booked intervals."""
    return not any(candidate.overlaps(slot) for slot in booked)


def compute_available_slots(
    operating_hours: Optional[DailyHours],
    booked: Iterable[TimeSlot],
    duration_minutes: int,
) -> list[TimeSlot]:
    """
    Generate the open slots of ``duration_minutes`` for one day.

    Slots sit on a fixed grid starting at opening time and stepping by the
    duration; a grid slot is dropped if it overlaps any booked interval. The
    grid never shifts to line up with bookings, so a booking that straddles
    two grid cells removes both even if a shifted slot would have fit.

    Args:
        operating_hours: Hours for the date's weekday, None when closed
        booked: Intervals held by existing appointments on that date
        duration_minutes: Length of each slot

    Returns:
        Slots in ascending start order; empty when closed or fully booked

    Raises:
        InvalidDuration: If duration_minutes is not positive
    """
    if duration_minutes <= 0:
        raise InvalidDuration(
            f"Slot duration must be a positive number of minutes, got {duration_minutes}"
        )
    if operating_hours is None:
        return []

    taken = list(booked)
    close = operating_hours.close.minutes
    current = operating_hours.open.minutes
    slots: list[TimeSlot] = []

    while current + duration_minutes <= close:
        candidate = TimeSlot.from_minutes(current, current + duration_minutes)
        if is_slot_available(candidate, taken):
            slots.append(candidate)
        current += duration_minutes

    return slots


__all__ = ["compute_available_slots", "is_slot_available", "conflicting_slots"]
