# bloodlink/api/v1/donor_router.py
from datetime import datetime
from typing import Callable

from fastapi import APIRouter, Depends, Query

from bloodlink.db import get_current_user, get_scheduling_policy
from bloodlink.db.models import User, UserRole
from bloodlink.db.schemas import (
    EligibilityResponse,
    EligibleDonorListResponse,
    EligibleDonorResponse,
)
from bloodlink.scheduling import COMPATIBLE_DONORS, BloodType, SchedulingPolicy
from bloodlink.services.v1 import UserService
from .dependencies import get_clock, get_user_service, require_role

donor_router = APIRouter(
    prefix="/donors",
    tags=["Donors"],
)


@donor_router.get(
    "/search/eligible",
    response_model=EligibleDonorListResponse,
    summary="Find donors who can give to a recipient blood type",
    description="""
    Active, medically eligible donors past their wait, whose blood type is
    compatible with `blood_type`. Exact matches rank first, then O- and O+,
    then donors who have waited longest. Blood banks and admins only.
    """,
    responses={
        401: {"description": "Missing or unknown X-User-Id"},
        403: {"description": "Donors may not search"},
    },
)
async def search_eligible_donors(
    blood_type: BloodType = Query(..., description="Recipient blood type, e.g. A+"),
    limit: int = Query(20, ge=1, le=50),
    user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
    policy: SchedulingPolicy = Depends(get_scheduling_policy),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    require_role(user, UserRole.BLOOD_BANK, UserRole.ADMIN)
    matches = await service.search_eligible_donors(blood_type, clock().date(), policy, limit)
    return EligibleDonorListResponse(
        blood_type=blood_type,
        compatible_types=sorted(COMPATIBLE_DONORS[blood_type]),
        items=[
            EligibleDonorResponse(
                user_id=donor.user_id,
                name=donor.name,
                email=donor.email,
                phone=donor.phone,
                blood_type=donor.blood_type,
                last_donation_date=donor.last_donation_date,
                compatibility_score=score,
            )
            for donor, score in matches
        ],
    )


@donor_router.get(
    "/{donor_id}/eligibility",
    response_model=EligibilityResponse,
    summary="Whether a donor may book now",
    description="Same rules the booking endpoint applies: medical flag and the wait since the last donation.",
    responses={404: {"description": "Donor not found"}},
)
async def get_eligibility(
    donor_id: str,
    service: UserService = Depends(get_user_service),
    policy: SchedulingPolicy = Depends(get_scheduling_policy),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    donor, report = await service.get_eligibility(donor_id, clock().date(), policy)
    return EligibilityResponse(
        donor_id=donor_id,
        is_eligible=report.is_eligible,
        last_donation_date=donor.last_donation_date,
        next_eligible_date=report.next_eligible_date,
        reasons=report.reasons,
    )


__all__ = ["donor_router"]
