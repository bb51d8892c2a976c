# bloodlink/api/v1/blood_bank_router.py
from fastapi import APIRouter, Depends, Query

from bloodlink.db.schemas import (
    BloodBankListResponse,
    BloodBankStatusResponse,
    BloodBankSummary,
    HoursResponse,
    NextOpeningResponse,
)
from bloodlink.services.v1 import AvailabilityService
from .dependencies import get_availability_service

blood_bank_router = APIRouter(
    prefix="/blood-banks",
    tags=["Blood Banks"],
)


@blood_bank_router.get(
    "",
    response_model=BloodBankListResponse,
    summary="List active blood banks",
    description="""
    Active blood banks ordered by name, each with whether it is open right
    now (operating hours read as UTC).

    **Expected Query Count:** 2 (count + page)
    """,
)
async def list_blood_banks(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    service: AvailabilityService = Depends(get_availability_service),
):
    banks, total, pages = await service.list_blood_banks(page, limit)
    return BloodBankListResponse(
        items=[
            BloodBankSummary.model_validate(bank).model_copy(update={"is_open": is_open})
            for bank, is_open in banks
        ],
        total=total,
        page=page,
        limit=limit,
        pages=pages,
    )


@blood_bank_router.get(
    "/{blood_bank_id}/status",
    response_model=BloodBankStatusResponse,
    summary="Whether a blood bank is open now",
    responses={404: {"description": "Blood bank not found"}},
)
async def get_blood_bank_status(
    blood_bank_id: str,
    service: AvailabilityService = Depends(get_availability_service),
):
    bank_status = await service.blood_bank_status(blood_bank_id)

    next_opening = None
    if bank_status.next_opening_hours is not None:
        next_opening = NextOpeningResponse(
            on_date=bank_status.next_opening_date,
            day=bank_status.next_opening_day,
            **bank_status.next_opening_hours.to_dict(),
        )

    return BloodBankStatusResponse(
        blood_bank_id=blood_bank_id,
        name=bank_status.blood_bank.display_name,
        is_open=bank_status.is_open,
        checked_at=bank_status.checked_at,
        today_hours=(
            HoursResponse.from_hours(bank_status.today_hours)
            if bank_status.today_hours
            else None
        ),
        next_opening=next_opening,
    )


__all__ = ["blood_bank_router"]
