# bloodlink/services/v1/appointment_repository.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Optional, Sequence

from sqlalchemy import func, select, Select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from bloodlink.db.models import Appointment
from bloodlink.scheduling import SLOT_HOLDING_STATUSES, AppointmentStatus, TimeSlot
from common import DatabaseError, get_app_logger

logger = get_app_logger(__name__)


@dataclass(frozen=True)
class AppointmentFilters:
    donor_id: Optional[str] = None
    blood_bank_id: Optional[str] = None
    status: Optional[AppointmentStatus] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    def apply(self, query: Select) -> Select:
        if self.donor_id is not None:
            query = query.where(Appointment.donor_id == self.donor_id)
        if self.blood_bank_id is not None:
            query = query.where(Appointment.blood_bank_id == self.blood_bank_id)
        if self.status is not None:
            query = query.where(Appointment.status == self.status)
        if self.start_date is not None:
            query = query.where(Appointment.appointment_date >= self.start_date)
        if self.end_date is not None:
            query = query.where(Appointment.appointment_date <= self.end_date)
        return query


class AppointmentRepository:
    """
    Reads and writes of the appointments table. Flushes but never commits;
    the caller owns the transaction.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _scalars(self, query: Select, token: str) -> Sequence[Any]:
        try:
            result = await self.db.execute(query.execution_options(logging_token=token))
        except SQLAlchemyError as e:
            logger.error("appointment_query_failed", query=token, error=str(e))
            raise DatabaseError(f"Failed to read appointments ({token})") from e
        return result.scalars().all()

    async def get(
        self, appointment_id: str, for_update: bool = False
    ) -> Optional[Appointment]:
        """
        With ``for_update`` the row is re-read even if already in the session,
        and locked until commit where the database supports it.
        """
        query = select(Appointment).where(Appointment.appointment_id == appointment_id)
        if for_update:
            query = query.with_for_update().execution_options(populate_existing=True)
        rows = await self._scalars(query, "AppointmentRepository.get")
        return rows[0] if rows else None

    async def find_slot_holding(
        self,
        blood_bank_id: str,
        on_date: date,
        exclude_appointment_id: Optional[str] = None,
    ) -> list[Appointment]:
        """Appointments occupying time at this bank on this date."""
        query = (
            select(Appointment)
            .where(
                Appointment.blood_bank_id == blood_bank_id,
                Appointment.appointment_date == on_date,
                Appointment.status.in_(sorted(SLOT_HOLDING_STATUSES)),
            )
            .order_by(Appointment.start_time)
        )
        if exclude_appointment_id is not None:
            query = query.where(Appointment.appointment_id != exclude_appointment_id)
        return list(await self._scalars(query, "AppointmentRepository.find_slot_holding"))

    async def booked_slots(
        self,
        blood_bank_id: str,
        on_date: date,
        exclude_appointment_id: Optional[str] = None,
    ) -> list[TimeSlot]:
        appointments = await self.find_slot_holding(
            blood_bank_id, on_date, exclude_appointment_id
        )
        return [appointment.time_slot for appointment in appointments]

    async def insert(self, appointment: Appointment) -> Appointment:
        self.db.add(appointment)
        await self.db.flush()
        return appointment

    async def update(self, appointment: Appointment, **patch: Any) -> Appointment:
        for field, value in patch.items():
            setattr(appointment, field, value)
        await self.db.flush()
        return appointment

    async def list(
        self, filters: AppointmentFilters, offset: int = 0, limit: int = 10
    ) -> list[Appointment]:
        query = (
            filters.apply(select(Appointment))
            .order_by(Appointment.appointment_date, Appointment.start_time)
            .offset(offset)
            .limit(limit)
        )
        return list(await self._scalars(query, "AppointmentRepository.list"))

    async def count(self, filters: AppointmentFilters) -> int:
        query = filters.apply(select(func.count()).select_from(Appointment))
        rows = await self._scalars(query, "AppointmentRepository.count")
        return int(rows[0]) if rows else 0


__all__ = ["AppointmentRepository", "AppointmentFilters"]
