# bloodlink/scheduling/eligibility.py
"""Donor eligibility: the medical flag plus the wait between donations."""

from __future__ import annotations

import calendar
from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import Enum
from typing import Optional

from .errors import IneligibleDonor
from .policy import DEFAULT_POLICY, SchedulingPolicy

MEDICAL_REASON = "Medical conditions prevent donation"


class BloodType(str, Enum):
    A_POS = "A+"
    A_NEG = "A-"
    B_POS = "B+"
    B_NEG = "B-"
    AB_POS = "AB+"
    AB_NEG = "AB-"
    O_POS = "O+"
    O_NEG = "O-"


# Recipient type -> donor types it can receive from.
COMPATIBLE_DONORS: dict[BloodType, frozenset[BloodType]] = {
    BloodType.A_POS: frozenset(
        {BloodType.A_POS, BloodType.A_NEG, BloodType.O_POS, BloodType.O_NEG}
    ),
    BloodType.A_NEG: frozenset({BloodType.A_NEG, BloodType.O_NEG}),
    BloodType.B_POS: frozenset(
        {BloodType.B_POS, BloodType.B_NEG, BloodType.O_POS, BloodType.O_NEG}
    ),
    BloodType.B_NEG: frozenset({BloodType.B_NEG, BloodType.O_NEG}),
    BloodType.AB_POS: frozenset(BloodType),
    BloodType.AB_NEG: frozenset(
        {BloodType.A_NEG, BloodType.B_NEG, BloodType.AB_NEG, BloodType.O_NEG}
    ),
    BloodType.O_POS: frozenset({BloodType.O_POS, BloodType.O_NEG}),
    BloodType.O_NEG: frozenset({BloodType.O_NEG}),
}


def compatibility_score(recipient: BloodType, donor: BloodType) -> int:
    """Ranking for donor search: exact match first, then universal donors."""
    if donor == recipient:
        return 10
    if donor == BloodType.O_NEG:
        return 9
    if donor == BloodType.O_POS:
        return 8
    return 5


def shift_months(value: date, months: int) -> date:
    """Move ``value`` by whole calendar months, clamping to the month's last day."""
    month_index = value.year * 12 + (value.month - 1) + months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


@dataclass(frozen=True)
class EligibilityReport:
    is_eligible: bool
    next_eligible_date: Optional[date] = None
    reasons: list[str] = field(default_factory=list)


def evaluate_eligibility(
    eligible_to_donate: bool,
    last_donation_date: Optional[date],
    today: date,
    policy: SchedulingPolicy = DEFAULT_POLICY,
) -> EligibilityReport:
    """
    A donor may book when flagged medically eligible and the eligibility
    window (calendar months after the last donation) has fully passed: the
    wait covers every day up to and including ``shift_months(last, window)``,
    and ``next_eligible_date`` is the day after it.
    """
    window = policy.eligibility_window_months
    reasons: list[str] = []
    next_eligible: Optional[date] = None

    if not eligible_to_donate:
        reasons.append(MEDICAL_REASON)

    if last_donation_date is not None:
        wait_ends = shift_months(last_donation_date, window)
        next_eligible = wait_ends + timedelta(days=1)
        if today <= wait_ends:
            reasons.append(f"Must wait {window} months between donations")

    return EligibilityReport(
        is_eligible=not reasons,
        next_eligible_date=next_eligible,
        reasons=reasons,
    )


def last_eligible_donation_date(
    today: date, policy: SchedulingPolicy = DEFAULT_POLICY
) -> date:
    """
    Latest last-donation date that still allows a donation on ``today``.
    Donors whose last donation is on or before it pass the wait check.
    """
    window = policy.eligibility_window_months
    cutoff = shift_months(today, -window)
    # Month-end clamping can put the exact inverse a few days earlier.
    while shift_months(cutoff, window) >= today:
        cutoff -= timedelta(days=1)
    return cutoff


def ensure_eligible(
    donor_id: str,
    eligible_to_donate: bool,
    last_donation_date: Optional[date],
    today: date,
    policy: SchedulingPolicy = DEFAULT_POLICY,
) -> EligibilityReport:
    """
    Raises:
        IneligibleDonor: With the reasons from evaluate_eligibility
    """
    report = evaluate_eligibility(eligible_to_donate, last_donation_date, today, policy)
    if not report.is_eligible:
        raise IneligibleDonor(donor_id, report.reasons)
    return report


__all__ = [
    "BloodType",
    "COMPATIBLE_DONORS",
    "compatibility_score",
    "last_eligible_donation_date",
    "EligibilityReport",
    "evaluate_eligibility",
    "ensure_eligible",
    "shift_months",
]
