# bloodlink/api/v1/availability_router.py
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query

from bloodlink.db.schemas import AvailabilityResponse, SlotResponse
from bloodlink.services.v1 import AvailabilityService
from common.logger.logger_middleware import enable_perf_headers
from .dependencies import get_availability_service

availability_router = APIRouter(
    prefix="/appointments/availability",
    tags=["Availability"],
    dependencies=[Depends(enable_perf_headers)],
)


@availability_router.get(
    "/{blood_bank_id}",
    response_model=AvailabilityResponse,
    summary="Open slots for a blood bank on a date",
    description="""
    Slots of `duration` minutes on a fixed grid from opening time. Slots
    overlapping a live booking are left out. A closed day gives an empty
    list and a message.

    **Expected Query Count:** 2 (blood bank + bookings for the day)
    """,
    responses={
        400: {"description": "Duration not positive or above the maximum"},
        404: {"description": "Blood bank not found"},
    },
)
async def get_availability(
    blood_bank_id: str,
    on_date: date = Query(..., alias="date"),
    duration: Optional[int] = Query(None, description="Slot length in minutes"),
    service: AvailabilityService = Depends(get_availability_service),
):
    day = await service.compute_available_slots(blood_bank_id, on_date, duration)
    message = None
    if day.is_closed:
        message = f"Blood bank is closed on {on_date.strftime('%A')}"
    elif not day.slots:
        message = "No slots available on this date"

    return AvailabilityResponse(
        blood_bank_id=blood_bank_id,
        appointment_date=on_date,
        duration_minutes=day.duration_minutes,
        slots=[SlotResponse.from_slot(slot) for slot in day.slots],
        message=message,
    )


__all__ = ["availability_router"]
