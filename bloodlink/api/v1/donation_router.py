# bloodlink/api/v1/donation_router.py
from datetime import date, datetime
from typing import Callable, Optional

from fastapi import APIRouter, Depends, Query, status

from bloodlink.db import get_current_user
from bloodlink.db.models import DonationStatus, User, UserRole
from bloodlink.db.schemas import (
    DonationCreate,
    DonationListResponse,
    DonationResponse,
    DonationUpdate,
)
from bloodlink.scheduling import BloodType
from bloodlink.services.v1 import DonationFilters, DonationService
from common import AppError
from .dependencies import Forbidden, get_clock, get_donation_service, require_role

donation_router = APIRouter(
    prefix="/donations",
    tags=["Donations"],
)

_ERRORS = {
    401: {"description": "Missing or unknown X-User-Id"},
    403: {"description": "Caller may not access this donation"},
    404: {"description": "Donation, donor, blood bank or appointment not found"},
    500: {"description": "Internal Database Error"},
}


class BloodBankRequired(AppError):
    status_code = 400
    code = "BLOOD_BANK_REQUIRED"


def _ensure_visible(user: User, donor_id: str, blood_bank_id: str) -> None:
    if user.role == UserRole.DONOR and donor_id != user.user_id:
        raise Forbidden("Access denied")
    if user.role == UserRole.BLOOD_BANK and blood_bank_id != user.user_id:
        raise Forbidden("Access denied")


@donation_router.post(
    "",
    response_model=DonationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record a donation",
    description="""
    Records a collected donation. The donor's eligibility is checked on the
    donation date, their last donation date is moved to it, and a linked
    appointment is marked completed, all in one transaction.

    Blood banks record at their own bank; admins pass `blood_bank_id`.
    """,
    responses={
        **_ERRORS,
        400: {"description": "Bad quantity or a future donation date"},
        409: {"description": "Appointment completed, mismatched, or already recorded"},
        422: {"description": "Donor not eligible to donate"},
    },
)
async def record_donation(
    payload: DonationCreate,
    user: User = Depends(get_current_user),
    service: DonationService = Depends(get_donation_service),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    require_role(user, UserRole.BLOOD_BANK, UserRole.ADMIN)
    if user.role == UserRole.BLOOD_BANK:
        blood_bank_id = user.user_id
    elif payload.blood_bank_id:
        blood_bank_id = payload.blood_bank_id
    else:
        raise BloodBankRequired("blood_bank_id is required when an admin records a donation")

    donation = await service.record_donation(
        blood_bank_id=blood_bank_id,
        donor_id=payload.donor_id,
        donation_date=payload.donation_date,
        blood_type=payload.blood_type,
        quantity_ml=payload.quantity_ml,
        donation_type=payload.donation_type,
        appointment_id=payload.appointment_id,
        collected_by=payload.collected_by,
        pre_screening=payload.pre_screening,
        health_questionnaire=payload.health_questionnaire,
        notes=payload.notes,
    )
    return DonationResponse.from_donation(donation, clock().date())


@donation_router.get(
    "",
    response_model=DonationListResponse,
    summary="List donations",
    description="""
    Donors see their own donations and blood banks the ones collected there;
    admins may filter by donor and bank. Newest first.

    **Expected Query Count:** 2 (count + page)
    """,
    responses=_ERRORS,
)
async def list_donations(
    donor_id: Optional[str] = Query(None),
    blood_bank_id: Optional[str] = Query(None),
    blood_type: Optional[BloodType] = Query(None),
    status_filter: Optional[DonationStatus] = Query(None, alias="status"),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    user: User = Depends(get_current_user),
    service: DonationService = Depends(get_donation_service),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    if user.role == UserRole.DONOR:
        donor_id, blood_bank_id = user.user_id, None
    elif user.role == UserRole.BLOOD_BANK:
        blood_bank_id = user.user_id

    filters = DonationFilters(
        donor_id=donor_id,
        blood_bank_id=blood_bank_id,
        blood_type=blood_type,
        status=status_filter,
        start_date=start_date,
        end_date=end_date,
    )
    items, total, pages = await service.list_donations(filters, page, limit)
    today = clock().date()
    return DonationListResponse(
        items=[DonationResponse.from_donation(item, today) for item in items],
        total=total,
        page=page,
        limit=limit,
        pages=pages,
    )


@donation_router.get(
    "/{donation_id}",
    response_model=DonationResponse,
    summary="Get donation details",
    responses=_ERRORS,
)
async def get_donation(
    donation_id: str,
    user: User = Depends(get_current_user),
    service: DonationService = Depends(get_donation_service),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    donation = await service.get_donation(donation_id)
    _ensure_visible(user, donation.donor_id, donation.blood_bank_id)
    return DonationResponse.from_donation(donation, clock().date())


@donation_router.put(
    "/{donation_id}",
    response_model=DonationResponse,
    summary="Update a donation",
    description="Changes the outcome, screening data or notes. Omitted fields are kept.",
    responses=_ERRORS,
)
async def update_donation(
    donation_id: str,
    payload: DonationUpdate,
    user: User = Depends(get_current_user),
    service: DonationService = Depends(get_donation_service),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    require_role(user, UserRole.BLOOD_BANK, UserRole.ADMIN)
    donation = await service.get_donation(donation_id)
    _ensure_visible(user, donation.donor_id, donation.blood_bank_id)

    donation = await service.update_donation(
        donation_id, **payload.model_dump(exclude_unset=True)
    )
    return DonationResponse.from_donation(donation, clock().date())


__all__ = ["donation_router"]
