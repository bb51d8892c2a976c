"""
Templates for demo data. Generated records append an index to name/email.

    Example: Only blood banks
        await seed_db(db_manager, {"blood_banks": BLOOD_BANK_TEMPLATE}, records=3)
"""

from typing import Any

WEEKDAY_HOURS = {"open": "09:00", "close": "17:00"}

BLOOD_BANK_TEMPLATE: dict[str, Any] = {
    "role": "blood_bank",
    "name": "City Blood Centre",
    "organization_name": "City Blood Centre",
    "email": "bank@bloodlink.example",
    "phone": "555-0100",
    "operating_hours": {
        "monday": WEEKDAY_HOURS,
        "tuesday": WEEKDAY_HOURS,
        "wednesday": WEEKDAY_HOURS,
        "thursday": WEEKDAY_HOURS,
        "friday": WEEKDAY_HOURS,
        "saturday": {"open": "10:00", "close": "14:00"},
        "sunday": None,
    },
}

DONOR_TEMPLATE: dict[str, Any] = {
    "role": "donor",
    "name": "Donor",
    "email": "donor@bloodlink.example",
    "phone": "555-0200",
    "blood_type": "O+",
    "eligible_to_donate": True,
    "last_donation_date": None,
}

DEFAULT_DATA_TEMPLATE: dict[str, dict[str, Any]] = {
    "blood_banks": BLOOD_BANK_TEMPLATE,
    "donors": DONOR_TEMPLATE,
}

__all__ = [
    "DEFAULT_DATA_TEMPLATE",
    "BLOOD_BANK_TEMPLATE",
    "DONOR_TEMPLATE",
]
