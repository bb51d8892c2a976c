# bloodlink/services/v1/appointment_service.py
"""
Appointment lifecycle: booking, status changes, rescheduling, cancellation.

Every write that can take a slot runs its availability check and its commit
under the booking lock for the (blood bank, date) it targets, so two
requests for the same slot are decided one after the other. Changes to an
existing appointment also hold its own lock and re-read the row inside it,
so the reschedule limit and status checks never act on a stale copy.
"""

from datetime import date, datetime
from math import ceil
from typing import Any, Awaitable, Callable, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from bloodlink.db.models import Appointment, DonationType, utc_now
from bloodlink.scheduling import (
    DEFAULT_POLICY,
    ActorRole,
    AppointmentStatus,
    NotFound,
    SchedulingPolicy,
    SlotConflict,
    TimeSlot,
    ensure_cancellable,
    ensure_eligible,
    ensure_future,
    ensure_reschedulable,
    ensure_transition,
)
from common import DatabaseError, get_app_logger
from .appointment_repository import AppointmentFilters, AppointmentRepository
from .availability_service import AvailabilityService
from .booking_locks import BookingLocks, booking_locks
from .user_service import UserService

logger = get_app_logger(__name__)

DEFAULT_CANCELLATION_REASON = "No reason provided"

# Extra columns a booking may carry; none of them affect scheduling.
BOOKING_PAYLOAD_FIELDS = frozenset(
    {"priority", "location", "pre_screening", "special_requirements", "notes"}
)


class AppointmentService:
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
        self.availability = AvailabilityService(db, policy, clock)

    async def _persist(
        self,
        write: Awaitable[Appointment],
        blood_bank_id: str,
        on_date: date,
        slot: TimeSlot,
    ) -> None:
        """
        Flush the pending repository write and commit it.

        Raises:
            SlotConflict: If the unique slot index rejected the row
            DatabaseError: For any other database failure
        """
        try:
            await write
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            logger.warning(
                "slot_conflict",
                blood_bank_id=blood_bank_id,
                on_date=on_date.isoformat(),
                slot=str(slot),
                source="unique_index",
            )
            raise SlotConflict(blood_bank_id, on_date, str(slot.start), str(slot.end)) from e
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("appointment_write_failed", blood_bank_id=blood_bank_id, error=str(e))
            raise DatabaseError("Failed to save appointment") from e

    async def _ensure_slot_free(
        self,
        blood_bank_id: str,
        on_date: date,
        slot: TimeSlot,
        exclude_appointment_id: Optional[str] = None,
    ) -> None:
        if not await self.availability.is_slot_available(
            blood_bank_id, on_date, slot, exclude_appointment_id
        ):
            logger.info(
                "slot_conflict",
                blood_bank_id=blood_bank_id,
                on_date=on_date.isoformat(),
                slot=str(slot),
                source="overlap_check",
            )
            raise SlotConflict(blood_bank_id, on_date, str(slot.start), str(slot.end))

    async def _ensure_donor_eligible(self, donor_id: str, now: datetime) -> None:
        donor = await self.users.get_donor(donor_id)
        ensure_eligible(
            donor_id,
            donor.eligible_to_donate,
            donor.last_donation_date,
            now.date(),
            self.policy,
        )

    async def get_appointment(self, appointment_id: str, for_update: bool = False) -> Appointment:
        """
        Raises:
            NotFound: If no such appointment exists
        """
        appointment = await self.appointments.get(appointment_id, for_update=for_update)
        if appointment is None:
            raise NotFound("Appointment", appointment_id)
        return appointment

    async def list_appointments(
        self,
        filters: AppointmentFilters,
        page: int = 1,
        limit: int = 10,
    ) -> tuple[list[Appointment], int, int]:
        """
        Returns:
            (appointments on this page, total matching, total pages),
            ordered by date then start time
        """
        total = await self.appointments.count(filters)
        items = await self.appointments.list(filters, offset=(page - 1) * limit, limit=limit)
        return items, total, ceil(total / limit) if total else 0

    async def create_appointment(
        self,
        donor_id: str,
        blood_bank_id: str,
        on_date: date,
        start_time: str,
        end_time: str,
        donation_type: DonationType = DonationType.WHOLE_BLOOD,
        **payload: Any,
    ) -> Appointment:
        """
        Book a slot for a donor. The first failing check decides the error.

        Raises:
            InvalidTimeFormat: If start or end is not HH:MM
            InvalidDate: If end is not after start, or the start has passed
            NotFound: If the blood bank or donor does not exist
            IneligibleDonor: If the donor may not donate yet
            SlotConflict: If the interval overlaps a live booking
        """
        unknown = set(payload) - BOOKING_PAYLOAD_FIELDS
        if unknown:
            raise TypeError(f"Unexpected appointment fields: {', '.join(sorted(unknown))}")

        slot = TimeSlot.from_strings(start_time, end_time)
        now = self.clock()

        await self.users.get_blood_bank(blood_bank_id)
        await self._ensure_donor_eligible(donor_id, now)
        ensure_future(on_date, slot, now)

        start, end = slot.as_strings()
        async with self.locks.hold(blood_bank_id, on_date):
            await self._ensure_slot_free(blood_bank_id, on_date, slot)

            appointment = Appointment(
                donor_id=donor_id,
                blood_bank_id=blood_bank_id,
                appointment_date=on_date,
                start_time=start,
                end_time=end,
                duration_minutes=slot.duration_minutes,
                donation_type=donation_type,
                status=AppointmentStatus.SCHEDULED,
                reschedule_count=0,
                **{k: v for k, v in payload.items() if v is not None},
            )
            await self._persist(
                self.appointments.insert(appointment), blood_bank_id, on_date, slot
            )

        logger.info(
            "appointment_created",
            appointment_id=appointment.appointment_id,
            donor_id=donor_id,
            blood_bank_id=blood_bank_id,
            on_date=on_date.isoformat(),
            slot=str(slot),
        )
        return appointment

    async def update_status(
        self,
        appointment_id: str,
        new_status: AppointmentStatus,
        actor: ActorRole = ActorRole.SYSTEM,
    ) -> Appointment:
        """
        Raises:
            NotFound: If no such appointment exists
            InvalidTransition: If the appointment is completed
            SlotConflict: If reviving a released appointment whose slot was taken
        """
        async with self.locks.hold_appointment(appointment_id):
            appointment = await self.get_appointment(appointment_id, for_update=True)
            current = appointment.status
            ensure_transition(current, new_status)

            now = self.clock()
            patch: dict[str, Any] = {"status": new_status}
            if new_status == AppointmentStatus.CHECKED_IN and appointment.checked_in_at is None:
                patch["checked_in_at"] = now
            if new_status == AppointmentStatus.CANCELLED and appointment.cancelled_at is None:
                patch.update(
                    cancellation_reason=DEFAULT_CANCELLATION_REASON,
                    cancelled_by=actor,
                    cancelled_at=now,
                )

            blood_bank_id = appointment.blood_bank_id
            on_date = appointment.appointment_date
            slot = appointment.time_slot
            async with self.locks.hold(blood_bank_id, on_date):
                # Moving back into a slot-holding state must not double-book.
                if new_status.holds_slot and not current.holds_slot:
                    await self._ensure_slot_free(
                        blood_bank_id, on_date, slot, exclude_appointment_id=appointment_id
                    )
                await self._persist(
                    self.appointments.update(appointment, **patch), blood_bank_id, on_date, slot
                )

        logger.info(
            "appointment_status_changed",
            appointment_id=appointment_id,
            from_status=current.value,
            to_status=new_status.value,
            actor=actor.value,
        )
        return appointment

    async def reschedule(
        self,
        appointment_id: str,
        new_date: date,
        start_time: str,
        end_time: str,
        actor: ActorRole,
        reason: Optional[str] = None,
    ) -> Appointment:
        """
        Move an appointment to a new date and slot.

        Raises:
            NotFound: If the appointment or its donor does not exist
            InvalidTransition: If the appointment is completed, cancelled or no_show
            RescheduleLimitExceeded: If it was already moved the maximum number of times
            InvalidDate: If the new start is not in the future
            IneligibleDonor: If the donor is no longer eligible
            SlotConflict: If the new interval overlaps another live booking
        """
        slot = TimeSlot.from_strings(start_time, end_time)
        async with self.locks.hold_appointment(appointment_id):
            appointment = await self.get_appointment(appointment_id, for_update=True)
            ensure_reschedulable(
                appointment.status, appointment.reschedule_count, appointment_id, self.policy
            )

            now = self.clock()
            ensure_future(new_date, slot, now)
            await self._ensure_donor_eligible(appointment.donor_id, now)

            blood_bank_id = appointment.blood_bank_id
            previous_date = appointment.appointment_date
            start, end = slot.as_strings()
            async with self.locks.hold(blood_bank_id, new_date):
                await self._ensure_slot_free(
                    blood_bank_id, new_date, slot, exclude_appointment_id=appointment_id
                )
                write = self.appointments.update(
                    appointment,
                    original_date=appointment.original_date or previous_date,
                    reschedule_count=appointment.reschedule_count + 1,
                    rescheduled_at=now,
                    rescheduled_by=actor,
                    reschedule_reason=reason,
                    appointment_date=new_date,
                    start_time=start,
                    end_time=end,
                    duration_minutes=slot.duration_minutes,
                    status=AppointmentStatus.RESCHEDULED,
                )
                await self._persist(write, blood_bank_id, new_date, slot)

        logger.info(
            "appointment_rescheduled",
            appointment_id=appointment_id,
            from_date=previous_date.isoformat(),
            to_date=new_date.isoformat(),
            slot=str(slot),
            reschedule_count=appointment.reschedule_count,
            actor=actor.value,
        )
        return appointment

    async def cancel(
        self,
        appointment_id: str,
        reason: Optional[str],
        actor: ActorRole,
    ) -> Appointment:
        """
        Cancel an appointment, releasing its slot. Cancelling twice is a no-op
        that keeps the first cancellation's reason, actor and time.

        Raises:
            NotFound: If no such appointment exists
            InvalidTransition: If the appointment is completed
        """
        async with self.locks.hold_appointment(appointment_id):
            appointment = await self.get_appointment(appointment_id, for_update=True)
            if appointment.status == AppointmentStatus.CANCELLED:
                logger.debug("appointment_already_cancelled", appointment_id=appointment_id)
                return appointment
            ensure_cancellable(appointment.status)

            previous = appointment.status
            write = self.appointments.update(
                appointment,
                status=AppointmentStatus.CANCELLED,
                cancellation_reason=reason or DEFAULT_CANCELLATION_REASON,
                cancelled_by=actor,
                cancelled_at=self.clock(),
            )
            await self._persist(
                write,
                appointment.blood_bank_id,
                appointment.appointment_date,
                appointment.time_slot,
            )

        logger.info(
            "appointment_cancelled",
            appointment_id=appointment_id,
            from_status=previous.value,
            actor=actor.value,
        )
        return appointment


__all__ = ["AppointmentService", "DEFAULT_CANCELLATION_REASON"]
