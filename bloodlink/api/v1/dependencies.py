# bloodlink/api/v1/dependencies.py
from datetime import datetime
from typing import Callable

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from bloodlink.db import get_db, get_scheduling_policy
from bloodlink.db.models import User, UserRole, utc_now
from bloodlink.scheduling import SchedulingPolicy
from bloodlink.services.v1 import (
    AppointmentService,
    AvailabilityService,
    DonationService,
    UserService,
    booking_locks,
)
from common import AppError


class Forbidden(AppError):
    status_code = 403
    code = "FORBIDDEN"


def require_role(user: User, *roles: UserRole) -> None:
    """
    Raises:
        Forbidden: Unless the acting user has one of ``roles``
    """
    if user.role not in roles:
        allowed = ", ".join(role.value for role in roles)
        raise Forbidden(f"Only {allowed} accounts may do this")


def get_clock(request: Request) -> Callable[[], datetime]:
    """Source of "now"; tests pin it through app.state.clock."""
    return getattr(request.app.state, "clock", utc_now)


def get_user_service(db: AsyncSession = Depends(get_db)) -> UserService:
    return UserService(db)


def get_availability_service(
    db: AsyncSession = Depends(get_db),
    policy: SchedulingPolicy = Depends(get_scheduling_policy),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> AvailabilityService:
    return AvailabilityService(db, policy, clock)


def get_appointment_service(
    db: AsyncSession = Depends(get_db),
    policy: SchedulingPolicy = Depends(get_scheduling_policy),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> AppointmentService:
    return AppointmentService(db, policy, clock, booking_locks)


def get_donation_service(
    db: AsyncSession = Depends(get_db),
    policy: SchedulingPolicy = Depends(get_scheduling_policy),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> DonationService:
    return DonationService(db, policy, clock, booking_locks)


__all__ = [
    "Forbidden",
    "require_role",
    "get_donation_service",
    "get_clock",
    "get_user_service",
    "get_availability_service",
    "get_appointment_service",
]
