# bloodlink/db/schemas/user_schemas.py
from pydantic import BaseModel, Field, ConfigDict, field_validator
from datetime import date, datetime
from typing import Any, List, Optional

from bloodlink.scheduling import BloodType, InvalidDate, WeeklyHours
from ..models import UserRole


class UserBase(BaseModel):
    role: UserRole
    name: str = Field(..., min_length=2, max_length=100)
    email: str = Field(..., max_length=255, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    phone: Optional[str] = Field(None, max_length=20)

    blood_type: Optional[BloodType] = None
    eligible_to_donate: bool = True
    last_donation_date: Optional[date] = None

    organization_name: Optional[str] = Field(None, max_length=200)
    operating_hours: Optional[dict[str, Any]] = Field(
        None,
        examples=[{"monday": {"open": "09:00", "close": "17:00"}, "sunday": None}],
    )


class UserCreate(UserBase):
    @field_validator("operating_hours")
    @classmethod
    def validate_operating_hours(
        cls, v: Optional[dict[str, Any]]
    ) -> Optional[dict[str, Any]]:
        if v is None:
            return v
        try:
            # Normalizes to zero-padded "HH:MM" and all seven weekdays
            return WeeklyHours.from_mapping(v).to_dict()
        except InvalidDate as exc:
            raise ValueError(exc.message) from exc
        except (AttributeError, ValueError) as exc:
            raise ValueError(f"Invalid operating hours: {exc}") from exc


class UserResponse(UserBase):
    model_config = ConfigDict(from_attributes=True)

    user_id: str
    is_active: bool
    created_at: datetime
    updated_at: datetime


class BloodBankSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: str
    name: str
    organization_name: Optional[str] = None
    email: str
    phone: Optional[str] = None
    operating_hours: Optional[dict[str, Any]] = None
    is_open: bool = False


class BloodBankListResponse(BaseModel):
    items: List[BloodBankSummary]
    total: int
    page: int
    limit: int
    pages: int


class EligibleDonorResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: str
    name: str
    email: str
    phone: Optional[str] = None
    blood_type: BloodType
    last_donation_date: Optional[date] = None
    compatibility_score: int


class EligibleDonorListResponse(BaseModel):
    blood_type: BloodType
    compatible_types: List[BloodType]
    items: List[EligibleDonorResponse]


__all__ = [
    "UserCreate",
    "UserResponse",
    "BloodBankSummary",
    "BloodBankListResponse",
    "EligibleDonorResponse",
    "EligibleDonorListResponse",
]
