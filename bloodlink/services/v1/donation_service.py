# bloodlink/services/v1/donation_service.py
"""
Donation records: the write side of the eligibility window.

Recording a donation re-checks the donor's eligibility on the donation date,
stores the record, moves the donor's last donation date forward and, when an
appointment is linked, marks it completed. All of it commits together.
"""

import secrets
from contextlib import AsyncExitStack
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from math import ceil
from typing import Any, Callable, Optional

from sqlalchemy import func, select, Select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from bloodlink.db.models import (
    Appointment,
    Donation,
    DonationStatus,
    DonationType,
    MAX_QUANTITY_ML,
    MIN_QUANTITY_ML,
    utc_now,
)
from bloodlink.scheduling import (
    DEFAULT_POLICY,
    AppointmentStatus,
    BloodType,
    InvalidDate,
    NotFound,
    SchedulingPolicy,
    ensure_eligible,
    ensure_transition,
    shift_months,
)
from common import AppError, DatabaseError, get_app_logger
from .appointment_repository import AppointmentRepository
from .booking_locks import BookingLocks, booking_locks
from .user_service import UserService

logger = get_app_logger(__name__)

# Days a collected unit keeps; plasma is frozen and keeps for a year.
SHELF_LIFE_DAYS = {
    DonationType.WHOLE_BLOOD: 42,
    DonationType.PLATELETS: 5,
    DonationType.DOUBLE_RED_CELLS: 42,
}
PLASMA_SHELF_LIFE_MONTHS = 12

DONATION_PAYLOAD_FIELDS = frozenset(
    {"collected_by", "pre_screening", "health_questionnaire", "notes"}
)
UPDATABLE_FIELDS = frozenset(
    {"status", "pre_screening", "health_questionnaire", "notes", "staff_notes"}
)


class InvalidQuantity(AppError):
    status_code = 400
    code = "INVALID_QUANTITY"


class AppointmentMismatch(AppError):
    status_code = 409
    code = "APPOINTMENT_MISMATCH"


class DonationConflict(AppError):
    status_code = 409
    code = "DONATION_CONFLICT"


def blood_bag_expiry(donation_type: DonationType, donation_date: date) -> date:
    if donation_type == DonationType.PLASMA:
        return shift_months(donation_date, PLASMA_SHELF_LIFE_MONTHS)
    return donation_date + timedelta(days=SHELF_LIFE_DAYS[donation_type])


def new_bag_number(now: datetime) -> str:
    return f"BB{now:%Y%m%d%H%M%S}{secrets.token_hex(3).upper()}"


@dataclass(frozen=True)
class DonationFilters:
    donor_id: Optional[str] = None
    blood_bank_id: Optional[str] = None
    blood_type: Optional[BloodType] = None
    status: Optional[DonationStatus] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    def apply(self, query: Select) -> Select:
        if self.donor_id is not None:
            query = query.where(Donation.donor_id == self.donor_id)
        if self.blood_bank_id is not None:
            query = query.where(Donation.blood_bank_id == self.blood_bank_id)
        if self.blood_type is not None:
            query = query.where(Donation.blood_type == self.blood_type)
        if self.status is not None:
            query = query.where(Donation.status == self.status)
        if self.start_date is not None:
            query = query.where(Donation.donation_date >= self.start_date)
        if self.end_date is not None:
            query = query.where(Donation.donation_date <= self.end_date)
        return query


class DonationService:
    def __init__(
        self,
        db: AsyncSession,
        policy: SchedulingPolicy = DEFAULT_POLICY,
        clock: Callable[[], datetime] = utc_now,
        locks: BookingLocks = booking_locks,
    ):
        self.db = db
        self.policy = policy
        self.clock = clock
        self.locks = locks
        self.users = UserService(db)
        self.appointments = AppointmentRepository(db)

    async def _scalars(self, query: Select, token: str) -> list[Any]:
        try:
            result = await self.db.execute(query.execution_options(logging_token=token))
        except SQLAlchemyError as e:
            logger.error("donation_query_failed", query=token, error=str(e))
            raise DatabaseError(f"Failed to read donations ({token})") from e
        return list(result.scalars().all())

    async def _commit(self, donor_id: str) -> None:
        """
        Raises:
            DonationConflict: If the appointment already has a donation
            DatabaseError: For any other database failure
        """
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            logger.warning("donation_conflict", donor_id=donor_id, error=str(e))
            raise DonationConflict("A donation is already recorded for this appointment") from e
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("donation_write_failed", donor_id=donor_id, error=str(e))
            raise DatabaseError("Failed to save donation") from e

    async def _linked_appointment(
        self, appointment_id: str, donor_id: str, blood_bank_id: str
    ) -> Appointment:
        appointment = await self.appointments.get(appointment_id, for_update=True)
        if appointment is None:
            raise NotFound("Appointment", appointment_id)
        if appointment.donor_id != donor_id or appointment.blood_bank_id != blood_bank_id:
            raise AppointmentMismatch(
                f"Appointment {appointment_id} is not booked by this donor at this blood bank"
            )
        ensure_transition(appointment.status, AppointmentStatus.COMPLETED)
        return appointment

    async def record_donation(
        self,
        blood_bank_id: str,
        donor_id: str,
        donation_date: date,
        blood_type: BloodType,
        quantity_ml: int,
        donation_type: DonationType = DonationType.WHOLE_BLOOD,
        appointment_id: Optional[str] = None,
        **payload: Any,
    ) -> Donation:
        """
        Record a completed donation.

        Raises:
            InvalidQuantity: If the volume is outside 350-500 ml
            InvalidDate: If the donation date is in the future
            NotFound: If the blood bank, donor or appointment does not exist
            IneligibleDonor: If the donor may not donate on that date
            AppointmentMismatch: If the appointment belongs to another donor or bank
            InvalidTransition: If the appointment is already completed
            DonationConflict: If the appointment already has a donation
        """
        unknown = set(payload) - DONATION_PAYLOAD_FIELDS
        if unknown:
            raise TypeError(f"Unexpected donation fields: {', '.join(sorted(unknown))}")
        if not MIN_QUANTITY_ML <= quantity_ml <= MAX_QUANTITY_ML:
            raise InvalidQuantity(
                f"Quantity must be between {MIN_QUANTITY_ML} and {MAX_QUANTITY_ML} ml"
            )

        now = self.clock()
        if donation_date > now.date():
            raise InvalidDate(f"Donation date cannot be in the future ({donation_date})")

        await self.users.get_blood_bank(blood_bank_id)

        async with AsyncExitStack() as stack:
            await stack.enter_async_context(self.locks.hold_donor(donor_id))
            if appointment_id is not None:
                await stack.enter_async_context(self.locks.hold_appointment(appointment_id))

            donor = await self.users.get_donor(donor_id, for_update=True)
            ensure_eligible(
                donor_id,
                donor.eligible_to_donate,
                donor.last_donation_date,
                donation_date,
                self.policy,
            )

            appointment = None
            if appointment_id is not None:
                appointment = await self._linked_appointment(
                    appointment_id, donor_id, blood_bank_id
                )

            donation = Donation(
                donor_id=donor_id,
                blood_bank_id=blood_bank_id,
                appointment_id=appointment_id,
                donation_type=donation_type,
                blood_type=blood_type,
                quantity_ml=quantity_ml,
                donation_date=donation_date,
                status=DonationStatus.COMPLETED,
                bag_number=new_bag_number(now),
                expiration_date=blood_bag_expiry(donation_type, donation_date),
                **{k: v for k, v in payload.items() if v is not None},
            )
            self.db.add(donation)
            donor.last_donation_date = donation_date
            if donor.blood_type is None:
                donor.blood_type = blood_type
            if appointment is not None:
                appointment.status = AppointmentStatus.COMPLETED
            await self._commit(donor_id)

        logger.info(
            "donation_recorded",
            donation_id=donation.donation_id,
            donor_id=donor_id,
            blood_bank_id=blood_bank_id,
            appointment_id=appointment_id,
            donation_date=donation_date.isoformat(),
            quantity_ml=quantity_ml,
        )
        return donation

    async def get_donation(self, donation_id: str) -> Donation:
        """
        Raises:
            NotFound: If no such donation exists
        """
        query = select(Donation).where(Donation.donation_id == donation_id)
        rows = await self._scalars(query, "DonationService.get_donation")
        if not rows:
            raise NotFound("Donation", donation_id)
        return rows[0]

    async def list_donations(
        self,
        filters: DonationFilters,
        page: int = 1,
        limit: int = 10,
    ) -> tuple[list[Donation], int, int]:
        """
        Returns:
            (donations on this page, total matching, total pages), newest first
        """
        count_query = filters.apply(select(func.count()).select_from(Donation))
        total = (await self._scalars(count_query, "DonationService.count"))[0]

        query = (
            filters.apply(select(Donation))
            .order_by(Donation.donation_date.desc(), Donation.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        items = await self._scalars(query, "DonationService.list_donations")
        return items, total, ceil(total / limit) if total else 0

    async def update_donation(self, donation_id: str, **patch: Any) -> Donation:
        """
        Update the outcome or screening notes of a recorded donation. None
        values are left unchanged.

        Raises:
            NotFound: If no such donation exists
        """
        unknown = set(patch) - UPDATABLE_FIELDS
        if unknown:
            raise TypeError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")

        donation = await self.get_donation(donation_id)
        changes = {k: v for k, v in patch.items() if v is not None}
        for field, value in changes.items():
            setattr(donation, field, value)
        await self._commit(donation.donor_id)

        logger.info("donation_updated", donation_id=donation_id, fields=sorted(changes))
        return donation


__all__ = [
    "DonationService",
    "DonationFilters",
    "InvalidQuantity",
    "AppointmentMismatch",
    "DonationConflict",
    "blood_bag_expiry",
]
