# bloodlink/db/models/user_table.py
from datetime import date
from enum import Enum
from typing import Any, Optional
from sqlalchemy import Boolean, Date, JSON, String, Enum as sqlalchemy_Enum
from sqlalchemy.orm import Mapped, mapped_column

from bloodlink.scheduling import BloodType, WeeklyHours
from .db_base_model import DbBaseModel, enum_values, string_enum


class UserRole(str, Enum):
    DONOR = "donor"
    BLOOD_BANK = "blood_bank"
    ADMIN = "admin"


class User(DbBaseModel):
    """
    Donors, blood banks and administrators share one table. Donor-only and
    blood-bank-only columns are simply left null for the other roles.
    """

    __tablename__ = "users"

    user_id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=DbBaseModel.generate_uuid,
    )

    role: Mapped[UserRole] = mapped_column(
        sqlalchemy_Enum(
            UserRole,
            name="user_role",
            native_enum=False,
            length=20,
            values_callable=enum_values,
        ),
        nullable=False,
        index=True,
    )

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # Donor
    blood_type: Mapped[Optional[BloodType]] = mapped_column(
        string_enum(BloodType, "blood_type", length=5), nullable=True
    )
    eligible_to_donate: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True
    )
    last_donation_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    # Blood bank
    organization_name: Mapped[Optional[str]] = mapped_column(
        String(200), nullable=True
    )
    # {"monday": {"open": "09:00", "close": "17:00"}, "sunday": null, ...}
    operating_hours: Mapped[Optional[dict[str, Any]]] = mapped_column(
        JSON, nullable=True
    )

    @property
    def weekly_hours(self) -> WeeklyHours:
        return WeeklyHours.from_mapping(self.operating_hours)

    @property
    def display_name(self) -> str:
        return self.organization_name or self.name


__all__ = ["User", "UserRole", "BloodType"]
