# bloodlink/services/v1/availability_service.py
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from bloodlink.db.models import User, utc_now
from bloodlink.scheduling import (
    DEFAULT_POLICY,
    DailyHours,
    DayOfWeek,
    InvalidDuration,
    SchedulingPolicy,
    TimeSlot,
    compute_available_slots,
    is_slot_available,
)
from common import get_app_logger
from .appointment_repository import AppointmentRepository
from .user_service import UserService

logger = get_app_logger(__name__)


@dataclass(frozen=True)
class DayAvailability:
    blood_bank: User
    on_date: date
    duration_minutes: int
    hours: Optional[DailyHours]
    slots: list[TimeSlot] = field(default_factory=list)

    @property
    def is_closed(self) -> bool:
        return self.hours is None


@dataclass(frozen=True)
class BloodBankStatus:
    blood_bank: User
    checked_at: datetime
    is_open: bool
    today_hours: Optional[DailyHours]
    next_opening_date: Optional[date] = None
    next_opening_day: Optional[DayOfWeek] = None
    next_opening_hours: Optional[DailyHours] = None


class AvailabilityService:
    """Binds the availability engine to stored operating hours and bookings."""

    def __init__(
        self,
        db: AsyncSession,
        policy: SchedulingPolicy = DEFAULT_POLICY,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.db = db
        self.policy = policy
        self.clock = clock
        self.users = UserService(db)
        self.appointments = AppointmentRepository(db)

    def _resolve_duration(self, duration_minutes: Optional[int]) -> int:
        duration = (
            self.policy.default_slot_minutes if duration_minutes is None else duration_minutes
        )
        if duration > self.policy.max_slot_minutes:
            raise InvalidDuration(
                f"Slot duration cannot exceed {self.policy.max_slot_minutes} minutes"
            )
        return duration

    async def compute_available_slots(
        self,
        blood_bank_id: str,
        on_date: date,
        duration_minutes: Optional[int] = None,
    ) -> DayAvailability:
        """
        Open slots for one bank and day. A snapshot: a slot listed here can
        still be taken before the donor books it.

        Raises:
            NotFound: If the blood bank does not exist
            InvalidDuration: If the duration is not positive or too long
        """
        duration = self._resolve_duration(duration_minutes)
        bank = await self.users.get_blood_bank(blood_bank_id)
        hours = bank.weekly_hours.hours_for(on_date)

        booked: list[TimeSlot] = []
        if hours is not None:
            booked = await self.appointments.booked_slots(blood_bank_id, on_date)
        slots = compute_available_slots(hours, booked, duration)

        logger.debug(
            "availability_computed",
            blood_bank_id=blood_bank_id,
            on_date=on_date.isoformat(),
            duration_minutes=duration,
            booked=len(booked),
            open_slots=len(slots),
        )
        return DayAvailability(bank, on_date, duration, hours, slots)

    async def is_slot_available(
        self,
        blood_bank_id: str,
        on_date: date,
        slot: TimeSlot,
        exclude_appointment_id: Optional[str] = None,
    ) -> bool:
        booked = await self.appointments.booked_slots(
            blood_bank_id, on_date, exclude_appointment_id
        )
        return is_slot_available(slot, booked)

    def _utc_now(self) -> datetime:
        now = self.clock()
        return now.astimezone(timezone.utc) if now.tzinfo is not None else now

    async def list_blood_banks(
        self, page: int = 1, limit: int = 10
    ) -> tuple[list[tuple[User, bool]], int, int]:
        """
        Returns:
            ((bank, open right now) pairs for this page, total, total pages)
        """
        banks, total, pages = await self.users.list_blood_banks(page, limit)
        now = self._utc_now()
        return [(bank, bank.weekly_hours.is_open_at(now)) for bank in banks], total, pages

    async def blood_bank_status(self, blood_bank_id: str) -> BloodBankStatus:
        """
        Open right now, and if not, when it next opens (within a week).

        Operating hours are UTC wall-clock times, the same reading booking
        uses for slot starts; banks carry no time zone of their own.
        """
        bank = await self.users.get_blood_bank(blood_bank_id)
        now = self._utc_now()
        weekly = bank.weekly_hours
        status = BloodBankStatus(
            blood_bank=bank,
            checked_at=now,
            is_open=weekly.is_open_at(now),
            today_hours=weekly.hours_for(now.date()),
        )
        if status.is_open:
            return status

        upcoming = weekly.next_opening(now)
        if upcoming is None:
            return status
        days_ahead, weekday, hours = upcoming
        return BloodBankStatus(
            blood_bank=bank,
            checked_at=now,
            is_open=False,
            today_hours=status.today_hours,
            next_opening_date=now.date() + timedelta(days=days_ahead),
            next_opening_day=weekday,
            next_opening_hours=hours,
        )


__all__ = ["AvailabilityService", "DayAvailability", "BloodBankStatus"]
