# bloodlink/db/schemas/availability_schemas.py
from pydantic import BaseModel, Field
from datetime import date, datetime
from typing import List, Optional

from bloodlink.scheduling import DailyHours, DayOfWeek, TimeSlot


class SlotResponse(BaseModel):
    start_time: str
    end_time: str

    @classmethod
    def from_slot(cls, slot: TimeSlot) -> "SlotResponse":
        start, end = slot.as_strings()
        return cls(start_time=start, end_time=end)


class AvailabilityResponse(BaseModel):
    blood_bank_id: str
    appointment_date: date
    duration_minutes: int
    slots: List[SlotResponse] = Field(default_factory=list)
    message: Optional[str] = Field(None, description="Set when the bank is closed that day")


class HoursResponse(BaseModel):
    open: str
    close: str

    @classmethod
    def from_hours(cls, hours: DailyHours) -> "HoursResponse":
        return cls(**hours.to_dict())


class NextOpeningResponse(BaseModel):
    on_date: date
    day: DayOfWeek
    open: str
    close: str


class BloodBankStatusResponse(BaseModel):
    blood_bank_id: str
    name: str
    is_open: bool
    checked_at: datetime
    today_hours: Optional[HoursResponse] = None
    next_opening: Optional[NextOpeningResponse] = None


class EligibilityResponse(BaseModel):
    donor_id: str
    is_eligible: bool
    last_donation_date: Optional[date] = None
    next_eligible_date: Optional[date] = None
    reasons: List[str] = Field(default_factory=list)


__all__ = [
    "SlotResponse",
    "AvailabilityResponse",
    "HoursResponse",
    "NextOpeningResponse",
    "BloodBankStatusResponse",
    "EligibilityResponse",
]
