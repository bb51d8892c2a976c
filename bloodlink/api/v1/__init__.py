# bloodlink/api/v1/__init__.py
from .appointment_router import appointment_router
from .availability_router import availability_router
from .blood_bank_router import blood_bank_router
from .donation_router import donation_router
from .donor_router import donor_router
from .user_router import user_router

routers = [
    availability_router,
    appointment_router,
    blood_bank_router,
    donation_router,
    donor_router,
    user_router,
]

__all__ = [
    "routers",
    "appointment_router",
    "availability_router",
    "blood_bank_router",
    "donation_router",
    "donor_router",
    "user_router",
]
