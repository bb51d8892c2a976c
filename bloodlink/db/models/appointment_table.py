# bloodlink/db/models/appointment_table.py
from __future__ import annotations
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional
from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    Text,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from bloodlink.scheduling import (
    MAX_RESCHEDULES,
    SLOT_HOLDING_STATUSES,
    ActorRole,
    AppointmentStatus,
    TimeSlot,
    format_duration,
    is_overdue,
    is_upcoming,
)
from .db_base_model import DbBaseModel, string_enum


class DonationType(str, Enum):
    WHOLE_BLOOD = "whole_blood"
    PLASMA = "plasma"
    PLATELETS = "platelets"
    DOUBLE_RED_CELLS = "double_red_cells"


class Priority(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


_SLOT_HOLDING_SQL = "status IN ({})".format(
    ", ".join(f"'{status.value}'" for status in sorted(SLOT_HOLDING_STATUSES))
)


class Appointment(DbBaseModel):
    __tablename__ = "appointments"
    __table_args__ = (
        CheckConstraint(
            f"reschedule_count >= 0 AND reschedule_count <= {MAX_RESCHEDULES}",
            name="ck_appointments_reschedule_count",
        ),
        # Two live bookings can never share a bank/date/start, even across workers.
        Index(
            "uq_appointments_bank_slot",
            "blood_bank_id",
            "appointment_date",
            "start_time",
            unique=True,
            postgresql_where=text(_SLOT_HOLDING_SQL),
            sqlite_where=text(_SLOT_HOLDING_SQL),
        ),
        Index("ix_appointments_bank_date_status", "blood_bank_id", "appointment_date", "status"),
        Index("ix_appointments_donor_date", "donor_id", "appointment_date"),
    )

    appointment_id: Mapped[str] = mapped_column(
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

    appointment_date: Mapped[date] = mapped_column(Date, nullable=False)
    start_time: Mapped[str] = mapped_column(String(5), nullable=False)  # "HH:MM"
    end_time: Mapped[str] = mapped_column(String(5), nullable=False)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False)

    donation_type: Mapped[DonationType] = mapped_column(
        string_enum(DonationType, "donation_type"),
        nullable=False,
        default=DonationType.WHOLE_BLOOD,
    )

    status: Mapped[AppointmentStatus] = mapped_column(
        string_enum(AppointmentStatus, "appointment_status"),
        nullable=False,
        default=AppointmentStatus.SCHEDULED,
    )

    priority: Mapped[Priority] = mapped_column(
        string_enum(Priority, "appointment_priority"),
        nullable=False,
        default=Priority.NORMAL,
    )

    # Rescheduling audit
    original_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    reschedule_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    rescheduled_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    rescheduled_by: Mapped[Optional[ActorRole]] = mapped_column(
        string_enum(ActorRole, "actor_role"), nullable=True
    )
    reschedule_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Cancellation
    cancellation_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    cancelled_by: Mapped[Optional[ActorRole]] = mapped_column(
        string_enum(ActorRole, "actor_role"), nullable=True
    )
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    checked_in_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Carried for the blood bank's workflow; nothing here affects scheduling.
    location: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)
    pre_screening: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)
    special_requirements: Mapped[Optional[list[Any]]] = mapped_column(JSON, nullable=True)
    assigned_staff: Mapped[Optional[list[Any]]] = mapped_column(JSON, nullable=True)
    consent_forms: Mapped[Optional[list[Any]]] = mapped_column(JSON, nullable=True)
    feedback: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    internal_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    @property
    def time_slot(self) -> TimeSlot:
        return TimeSlot.from_strings(self.start_time, self.end_time)

    @property
    def formatted_duration(self) -> str:
        return format_duration(self.duration_minutes)

    def is_upcoming(self, now: datetime) -> bool:
        return is_upcoming(self.appointment_date, self.time_slot, self.status, now)

    def is_overdue(self, now: datetime) -> bool:
        return is_overdue(self.appointment_date, self.time_slot, self.status, now)


__all__ = ["Appointment", "DonationType", "Priority"]
