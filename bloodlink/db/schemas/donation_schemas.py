# bloodlink/db/schemas/donation_schemas.py
from pydantic import BaseModel, Field, ConfigDict
from datetime import date, datetime
from typing import Any, List, Optional

from bloodlink.scheduling import BloodType
from ..models import Donation, DonationStatus, DonationType, MAX_QUANTITY_ML, MIN_QUANTITY_ML


class DonationCreate(BaseModel):
    donor_id: str = Field(..., max_length=36)
    blood_bank_id: Optional[str] = Field(
        None,
        max_length=36,
        description="Defaults to the acting blood bank; admins must pass it",
    )
    appointment_id: Optional[str] = Field(
        None, max_length=36, description="Appointment to mark completed"
    )
    donation_type: DonationType = DonationType.WHOLE_BLOOD
    blood_type: BloodType
    quantity_ml: int = Field(..., ge=MIN_QUANTITY_ML, le=MAX_QUANTITY_ML)
    donation_date: date
    collected_by: Optional[str] = Field(None, max_length=100)
    pre_screening: Optional[dict[str, Any]] = None
    health_questionnaire: Optional[dict[str, Any]] = None
    notes: Optional[str] = Field(None, max_length=1000)


class DonationUpdate(BaseModel):
    status: Optional[DonationStatus] = None
    pre_screening: Optional[dict[str, Any]] = None
    health_questionnaire: Optional[dict[str, Any]] = None
    notes: Optional[str] = Field(None, max_length=1000)
    staff_notes: Optional[str] = Field(None, max_length=1000)


class DonationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    donation_id: str
    donor_id: str
    blood_bank_id: str
    appointment_id: Optional[str] = None
    donation_type: DonationType
    blood_type: BloodType
    quantity_ml: int
    donation_date: date
    status: DonationStatus
    bag_number: str
    expiration_date: date
    collected_by: Optional[str] = None
    pre_screening: Optional[dict[str, Any]] = None
    health_questionnaire: Optional[dict[str, Any]] = None
    notes: Optional[str] = None
    staff_notes: Optional[str] = None
    is_expired: bool = False

    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_donation(cls, donation: Donation, today: date) -> "DonationResponse":
        return cls.model_validate(donation).model_copy(
            update={"is_expired": donation.expired_on(today)}
        )


class DonationListResponse(BaseModel):
    items: List[DonationResponse]
    total: int
    page: int
    limit: int
    pages: int


__all__ = [
    "DonationCreate",
    "DonationUpdate",
    "DonationResponse",
    "DonationListResponse",
]
