# bloodlink/db/models/donation_table.py
from __future__ import annotations
from datetime import date
from enum import Enum
from typing import Any, Optional
from sqlalchemy import (
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from bloodlink.scheduling import BloodType
from .appointment_table import DonationType
from .db_base_model import DbBaseModel, string_enum

MIN_QUANTITY_ML = 350
MAX_QUANTITY_ML = 500


class DonationStatus(str, Enum):
    """
    Collection outcome. Recording a donation marks it completed; blood-bank
    staff may later move it to another outcome.
    """

    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    SCREENING_FAILED = "screening_failed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    ADVERSE_REACTION = "adverse_reaction"


class Donation(DbBaseModel):
    __tablename__ = "donations"
    __table_args__ = (
        CheckConstraint(
            f"quantity_ml >= {MIN_QUANTITY_ML} AND quantity_ml <= {MAX_QUANTITY_ML}",
            name="ck_donations_quantity",
        ),
        Index("ix_donations_donor_date", "donor_id", "donation_date"),
        Index("ix_donations_bank_date", "blood_bank_id", "donation_date"),
        Index("ix_donations_blood_type_status", "blood_type", "status"),
    )

    donation_id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=DbBaseModel.generate_uuid,
    )

    donor_id: Mapped[str] = mapped_column(
        ForeignKey("users.user_id"),
        nullable=False,
    )

    blood_bank_id: Mapped[str] = mapped_column(
        ForeignKey("users.user_id"),
        nullable=False,
    )

    # At most one donation per appointment
    appointment_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("appointments.appointment_id"),
        nullable=True,
        unique=True,
    )

    donation_type: Mapped[DonationType] = mapped_column(
        string_enum(DonationType, "donation_type"),
        nullable=False,
        default=DonationType.WHOLE_BLOOD,
    )

    blood_type: Mapped[BloodType] = mapped_column(
        string_enum(BloodType, "blood_type", length=5),
        nullable=False,
    )

    quantity_ml: Mapped[int] = mapped_column(Integer, nullable=False)
    donation_date: Mapped[date] = mapped_column(Date, nullable=False)

    status: Mapped[DonationStatus] = mapped_column(
        string_enum(DonationStatus, "donation_status"),
        nullable=False,
        default=DonationStatus.COMPLETED,
    )

    bag_number: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    expiration_date: Mapped[date] = mapped_column(Date, nullable=False)

    collected_by: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    pre_screening: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)
    health_questionnaire: Mapped[Optional[dict[str, Any]]] = mapped_column(
        JSON, nullable=True
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    staff_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    def expired_on(self, today: date) -> bool:
        return self.expiration_date < today


__all__ = ["Donation", "DonationStatus", "MIN_QUANTITY_ML", "MAX_QUANTITY_ML"]
