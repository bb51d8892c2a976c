# bloodlink/db/schemas/appointment_schemas.py
from pydantic import BaseModel, Field, ConfigDict
from datetime import date, datetime
from typing import Any, List, Optional

from bloodlink.scheduling import ActorRole, AppointmentStatus
from ..models import Appointment, DonationType, Priority

# Times stay plain strings here; the service parses them so a bad value
# surfaces as INVALID_TIME_FORMAT rather than a generic validation error.
_TIME = Field(..., max_length=5, examples=["09:30"])


class AppointmentCreate(BaseModel):
    blood_bank_id: str = Field(..., max_length=36)
    donor_id: Optional[str] = Field(
        None,
        max_length=36,
        description="Defaults to the acting user; blood banks and admins may book for a donor",
    )
    appointment_date: date
    start_time: str = _TIME
    end_time: str = _TIME
    donation_type: DonationType = DonationType.WHOLE_BLOOD
    priority: Priority = Priority.NORMAL
    location: Optional[dict[str, Any]] = None
    pre_screening: Optional[dict[str, Any]] = None
    special_requirements: Optional[List[Any]] = None
    notes: Optional[str] = Field(None, max_length=1000)


class AppointmentStatusUpdate(BaseModel):
    status: AppointmentStatus


class AppointmentReschedule(BaseModel):
    appointment_date: date
    start_time: str = _TIME
    end_time: str = _TIME
    reason: Optional[str] = Field(None, max_length=500)


class AppointmentCancel(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class AppointmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    appointment_id: str
    donor_id: str
    blood_bank_id: str
    appointment_date: date
    start_time: str
    end_time: str
    duration_minutes: int
    formatted_duration: str
    donation_type: DonationType
    status: AppointmentStatus
    priority: Priority

    original_date: Optional[date] = None
    reschedule_count: int
    rescheduled_at: Optional[datetime] = None
    rescheduled_by: Optional[ActorRole] = None
    reschedule_reason: Optional[str] = None

    cancellation_reason: Optional[str] = None
    cancelled_by: Optional[ActorRole] = None
    cancelled_at: Optional[datetime] = None
    checked_in_at: Optional[datetime] = None

    location: Optional[dict[str, Any]] = None
    pre_screening: Optional[dict[str, Any]] = None
    special_requirements: Optional[List[Any]] = None
    notes: Optional[str] = None

    is_upcoming: bool = False
    is_overdue: bool = False

    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_appointment(cls, appointment: Appointment, now: datetime) -> "AppointmentResponse":
        # is_upcoming/is_overdue are methods on the model, so they are not read as attributes
        columns = {
            name: getattr(appointment, name)
            for name in cls.model_fields
            if name not in ("is_upcoming", "is_overdue")
        }
        return cls(
            **columns,
            is_upcoming=appointment.is_upcoming(now),
            is_overdue=appointment.is_overdue(now),
        )


class AppointmentListResponse(BaseModel):
    items: List[AppointmentResponse]
    total: int
    page: int
    limit: int
    pages: int


__all__ = [
    "AppointmentCreate",
    "AppointmentStatusUpdate",
    "AppointmentReschedule",
    "AppointmentCancel",
    "AppointmentResponse",
    "AppointmentListResponse",
]
