# bloodlink/scheduling/operating_hours.py
"""Weekly opening hours of a blood bank."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Mapping, Optional

from .errors import InvalidDate
from .time_slot import TimeOfDay


class DayOfWeek(str, Enum):
    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"

    @classmethod
    def from_date(cls, value: date) -> "DayOfWeek":
        # date.weekday(): Monday == 0, matching declaration order
        return list(cls)[value.weekday()]


@dataclass(frozen=True)
class DailyHours:
    open: TimeOfDay
    close: TimeOfDay

    def __post_init__(self) -> None:
        if self.close <= self.open:
            raise InvalidDate(
                f"Closing time must be after opening time ({self.open} - {self.close})"
            )

    @classmethod
    def parse(cls, open_: str, close: str) -> "DailyHours":
        return cls(TimeOfDay.parse(open_), TimeOfDay.parse(close))

    def contains(self, moment: TimeOfDay) -> bool:
        # The closing minute itself still counts as open.
        return self.open <= moment <= self.close

    def to_dict(self) -> dict[str, str]:
        return {"open": str(self.open), "close": str(self.close)}


@dataclass(frozen=True)
class WeeklyHours:
    """Opening hours per weekday. A missing day means closed."""

    days: Mapping[DayOfWeek, DailyHours] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, raw: Optional[Mapping[str, Any]]) -> "WeeklyHours":
        """
        Build from the stored JSON shape:
            {"monday": {"open": "09:00", "close": "17:00"}, "sunday": None, ...}

        Days that are null, or miss either bound, are treated as closed.
        """
        days: dict[DayOfWeek, DailyHours] = {}
        for key, value in (raw or {}).items():
            if not value or not value.get("open") or not value.get("close"):
                continue
            days[DayOfWeek(key.lower())] = DailyHours.parse(value["open"], value["close"])
        return cls(days)

    def hours_for(self, on_date: date) -> Optional[DailyHours]:
        return self.days.get(DayOfWeek.from_date(on_date))

    def is_open_at(self, moment: datetime) -> bool:
        hours = self.hours_for(moment.date())
        if hours is None:
            return False
        return hours.contains(TimeOfDay.from_time(moment.time()))

    def next_opening(self, moment: datetime) -> Optional[tuple[int, DayOfWeek, DailyHours]]:
        """
        Find when the bank next opens, relative to ``moment``.

        Returns (days_ahead, weekday, hours), where days_ahead == 0 means
        later today, or None when the bank has no opening hours at all.
        """
        today = self.hours_for(moment.date())
        now = TimeOfDay.from_time(moment.time())
        if today is not None and now < today.open:
            return 0, DayOfWeek.from_date(moment.date()), today

        weekdays = list(DayOfWeek)
        start = moment.date().weekday()
        for days_ahead in range(1, 8):
            weekday = weekdays[(start + days_ahead) % 7]
            hours = self.days.get(weekday)
            if hours is not None:
                return days_ahead, weekday, hours
        return None

    def to_dict(self) -> dict[str, Optional[dict[str, str]]]:
        return {
            day.value: (self.days[day].to_dict() if day in self.days else None)
            for day in DayOfWeek
        }


__all__ = ["DayOfWeek", "DailyHours", "WeeklyHours"]
