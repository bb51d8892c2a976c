# bloodlink/scheduling/policy.py
"""Scheduling policy knobs. Algorithms read these, never bare literals."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from common.config import SchedulingConfig

MAX_RESCHEDULES = 3
ELIGIBILITY_WINDOW_MONTHS = 3
DEFAULT_SLOT_MINUTES = 60
MAX_SLOT_MINUTES = 480


@dataclass(frozen=True)
class SchedulingPolicy:
    max_reschedules: int = MAX_RESCHEDULES
    eligibility_window_months: int = ELIGIBILITY_WINDOW_MONTHS
    default_slot_minutes: int = DEFAULT_SLOT_MINUTES
    max_slot_minutes: int = MAX_SLOT_MINUTES

    @classmethod
    def from_config(cls, config: "SchedulingConfig") -> "SchedulingPolicy":
        return cls(
            max_reschedules=config.max_reschedules,
            eligibility_window_months=config.eligibility_window_months,
            default_slot_minutes=config.default_slot_minutes,
        )


DEFAULT_POLICY = SchedulingPolicy()

__all__ = [
    "MAX_RESCHEDULES",
    "ELIGIBILITY_WINDOW_MONTHS",
    "DEFAULT_SLOT_MINUTES",
    "MAX_SLOT_MINUTES",
    "SchedulingPolicy",
    "DEFAULT_POLICY",
]
