# bloodlink/scheduling/time_slot.py
"""
Validated time-of-day and time-slot value types.

Times travel through the system as 24-hour "HH:MM" strings. They are parsed
once, here, and every comparison afterwards happens on minutes since midnight.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, time, timezone, tzinfo

from .errors import InvalidDate, InvalidTimeFormat

_HHMM = re.compile(r"^([0-1]?[0-9]|2[0-3]):([0-5][0-9])$")

MINUTES_PER_DAY = 24 * 60


@dataclass(frozen=True, order=True)
class TimeOfDay:
    """A wall-clock minute within a day (00:00 .. 23:59)."""

    minutes: int

    def __post_init__(self) -> None:
        if not 0 <= self.minutes < MINUTES_PER_DAY:
            raise InvalidTimeFormat(
                f"Time must fall within a single day, got {self.minutes} minutes"
            )

    @classmethod
    def parse(cls, value: str) -> "TimeOfDay":
        """
        Parse "H:MM" or "HH:MM".

        Raises:
            InvalidTimeFormat: If the string is not a valid 24-hour time
        """
        match = _HHMM.match(value.strip()) if isinstance(value, str) else None
        if not match:
            raise InvalidTimeFormat(
                f"Please enter time in HH:MM format, got {value!r}"
            )
        hours, minutes = int(match.group(1)), int(match.group(2))
        return cls(hours * 60 + minutes)

    @classmethod
    def from_time(cls, value: time) -> "TimeOfDay":
        return cls(value.hour * 60 + value.minute)

    def to_time(self) -> time:
        return time(self.minutes // 60, self.minutes % 60)

    def __str__(self) -> str:
        return f"{self.minutes // 60:02d}:{self.minutes % 60:02d}"


@dataclass(frozen=True)
class TimeSlot:
    """
    Half-open interval [start, end) within one day.

    Construction fails with InvalidDate unless end is strictly after start,
    so a TimeSlot always has a positive duration.
    """

    start: TimeOfDay
    end: TimeOfDay

    def __post_init__(self) -> None:
        if self.end <= self.start:
            raise InvalidDate(
                f"End time must be after start time ({self.start} - {self.end})"
            )

    @classmethod
    def from_strings(cls, start: str, end: str) -> "TimeSlot":
        return cls(TimeOfDay.parse(start), TimeOfDay.parse(end))

    @classmethod
    def from_minutes(cls, start: int, end: int) -> "TimeSlot":
        return cls(TimeOfDay(start), TimeOfDay(end))

    @property
    def duration_minutes(self) -> int:
        return self.end.minutes - self.start.minutes

    def overlaps(self, other: "TimeSlot") -> bool:
        # Touching edges (10:00-11:00 vs 11:00-12:00) do not overlap.
        return (
            self.start.minutes < other.end.minutes
            and self.end.minutes > other.start.minutes
        )

    def starts_at(self, on_date: date, tz: tzinfo = timezone.utc) -> datetime:
        """Absolute start moment of this slot on the given date."""
        return datetime.combine(on_date, self.start.to_time(), tzinfo=tz)

    def as_strings(self) -> tuple[str, str]:
        return str(self.start), str(self.end)

    def __str__(self) -> str:
        return f"{self.start}-{self.end}"


__all__ = ["TimeOfDay", "TimeSlot", "MINUTES_PER_DAY"]
