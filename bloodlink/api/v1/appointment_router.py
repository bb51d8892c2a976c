# bloodlink/api/v1/appointment_router.py
"""
Appointment endpoints. X-User-Id names the acting user for audit fields and
scopes the list endpoint to that user. Routes that take an appointment id do
not check ownership: any known user may read, move, change or cancel any
appointment. Per-appointment access rules belong in front of this service.
"""
from datetime import date, datetime
from typing import Callable, Optional

from fastapi import APIRouter, Body, Depends, Query, status

from bloodlink.db import get_current_user
from bloodlink.db.models import User, UserRole
from bloodlink.db.schemas import (
    AppointmentCancel,
    AppointmentCreate,
    AppointmentListResponse,
    AppointmentReschedule,
    AppointmentResponse,
    AppointmentStatusUpdate,
)
from bloodlink.scheduling import ActorRole, AppointmentStatus
from bloodlink.services.v1 import AppointmentFilters, AppointmentService
from common import AppError
from .dependencies import get_appointment_service, get_clock

appointment_router = APIRouter(
    prefix="/appointments",
    tags=["Appointments"],
)

_ERRORS = {
    401: {"description": "Missing or unknown X-User-Id"},
    404: {"description": "Appointment, donor or blood bank not found"},
    500: {"description": "Internal Database Error"},
}


_UNSCOPED = "Not scoped to the caller: any known user may act on any appointment id."


class DonorRequired(AppError):
    status_code = 400
    code = "DONOR_REQUIRED"


@appointment_router.post(
    "",
    response_model=AppointmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Book an appointment",
    description="""
    Books a donation slot. Donors always book for themselves; blood banks
    and admins pass `donor_id`.

    The slot is re-checked against live bookings at write time, so a slot
    seen in the availability listing can still be rejected with 409.
    """,
    responses={
        **_ERRORS,
        400: {"description": "Bad time format, end before start, or start in the past"},
        409: {"description": "Slot overlaps an existing booking"},
        422: {"description": "Donor not eligible to donate"},
    },
)
async def create_appointment(
    payload: AppointmentCreate,
    user: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    if user.role == UserRole.DONOR:
        donor_id = user.user_id
    elif payload.donor_id:
        donor_id = payload.donor_id
    else:
        raise DonorRequired("donor_id is required when booking on behalf of a donor")

    appointment = await service.create_appointment(
        donor_id=donor_id,
        blood_bank_id=payload.blood_bank_id,
        on_date=payload.appointment_date,
        start_time=payload.start_time,
        end_time=payload.end_time,
        donation_type=payload.donation_type,
        priority=payload.priority,
        location=payload.location,
        pre_screening=payload.pre_screening,
        special_requirements=payload.special_requirements,
        notes=payload.notes,
    )
    return AppointmentResponse.from_appointment(appointment, clock())


@appointment_router.get(
    "",
    response_model=AppointmentListResponse,
    summary="List appointments",
    description="""
    Donors see their own appointments, blood banks the ones booked with
    them, admins everything. Ordered by date, then start time.

    **Expected Query Count:** 2 (count + page)
    """,
    responses=_ERRORS,
)
async def list_appointments(
    status_filter: Optional[AppointmentStatus] = Query(None, alias="status"),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    user: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    filters = AppointmentFilters(
        donor_id=user.user_id if user.role == UserRole.DONOR else None,
        blood_bank_id=user.user_id if user.role == UserRole.BLOOD_BANK else None,
        status=status_filter,
        start_date=start_date,
        end_date=end_date,
    )
    items, total, pages = await service.list_appointments(filters, page, limit)
    now = clock()
    return AppointmentListResponse(
        items=[AppointmentResponse.from_appointment(item, now) for item in items],
        total=total,
        page=page,
        limit=limit,
        pages=pages,
    )


@appointment_router.get(
    "/{appointment_id}",
    response_model=AppointmentResponse,
    summary="Get appointment details",
    description=_UNSCOPED,
    responses=_ERRORS,
)
async def get_appointment(
    appointment_id: str,
    user: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    appointment = await service.get_appointment(appointment_id)
    return AppointmentResponse.from_appointment(appointment, clock())


@appointment_router.patch(
    "/{appointment_id}/status",
    response_model=AppointmentResponse,
    summary="Change appointment status",
    description=f"A completed appointment can no longer change status. {_UNSCOPED}",
    responses={**_ERRORS, 409: {"description": "Appointment already completed"}},
)
async def update_status(
    appointment_id: str,
    payload: AppointmentStatusUpdate,
    user: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    appointment = await service.update_status(
        appointment_id, payload.status, ActorRole.from_user_role(user.role)
    )
    return AppointmentResponse.from_appointment(appointment, clock())


@appointment_router.post(
    "/{appointment_id}/reschedule",
    response_model=AppointmentResponse,
    summary="Reschedule an appointment",
    description=f"""
    Moves the appointment to a new date and slot. Allowed three times per
    appointment; the date first booked is kept in `original_date`.

    {_UNSCOPED}
    """,
    responses={
        **_ERRORS,
        400: {"description": "Bad time format or new start in the past"},
        409: {"description": "Slot taken, reschedule limit reached, or appointment closed"},
        422: {"description": "Donor no longer eligible"},
    },
)
async def reschedule_appointment(
    appointment_id: str,
    payload: AppointmentReschedule,
    user: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    appointment = await service.reschedule(
        appointment_id,
        new_date=payload.appointment_date,
        start_time=payload.start_time,
        end_time=payload.end_time,
        actor=ActorRole.from_user_role(user.role),
        reason=payload.reason,
    )
    return AppointmentResponse.from_appointment(appointment, clock())


@appointment_router.delete(
    "/{appointment_id}",
    response_model=AppointmentResponse,
    summary="Cancel an appointment",
    description=(
        f"Cancelling an already cancelled appointment returns it unchanged. {_UNSCOPED}"
    ),
    responses={**_ERRORS, 409: {"description": "Appointment already completed"}},
)
async def cancel_appointment(
    appointment_id: str,
    payload: Optional[AppointmentCancel] = Body(None),
    user: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    appointment = await service.cancel(
        appointment_id,
        reason=payload.reason if payload else None,
        actor=ActorRole.from_user_role(user.role),
    )
    return AppointmentResponse.from_appointment(appointment, clock())


__all__ = ["appointment_router"]
