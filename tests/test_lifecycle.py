# tests/test_lifecycle.py
from datetime import date, datetime, timedelta, timezone

import pytest

from bloodlink.scheduling import (
    ActorRole,
    AppointmentStatus,
    InvalidDate,
    InvalidTransition,
    RescheduleLimitExceeded,
    SchedulingPolicy,
    TimeSlot,
    can_transition,
    ensure_cancellable,
    ensure_future,
    ensure_reschedulable,
    ensure_transition,
    format_duration,
    is_overdue,
    is_upcoming,
)

NOW = datetime(2030, 1, 7, 8, 0, tzinfo=timezone.utc)
SLOT = TimeSlot.from_strings("10:00", "11:00")


class TestTransitions:
    @pytest.mark.parametrize("target", list(AppointmentStatus))
    def test_completed_is_locked(self, target):
        if target == AppointmentStatus.COMPLETED:
            assert can_transition(AppointmentStatus.COMPLETED, target)
            return
        with pytest.raises(InvalidTransition) as exc_info:
            ensure_transition(AppointmentStatus.COMPLETED, target)
        assert exc_info.value.status_code == 409
        assert exc_info.value.current == "completed"

    @pytest.mark.parametrize(
        "current",
        [status for status in AppointmentStatus if status != AppointmentStatus.COMPLETED],
    )
    def test_other_states_stay_open(self, current):
        for target in AppointmentStatus:
            ensure_transition(current, target)

    def test_cancel_completed(self):
        with pytest.raises(InvalidTransition, match="Cannot cancel completed"):
            ensure_cancellable(AppointmentStatus.COMPLETED)
        ensure_cancellable(AppointmentStatus.NO_SHOW)

    def test_slot_holding(self):
        assert AppointmentStatus.SCHEDULED.holds_slot
        assert AppointmentStatus.RESCHEDULED.holds_slot
        assert not AppointmentStatus.CANCELLED.holds_slot
        assert not AppointmentStatus.NO_SHOW.holds_slot
        assert not AppointmentStatus.COMPLETED.holds_slot


class TestReschedulable:
    @pytest.mark.parametrize(
        "status",
        [AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED, AppointmentStatus.NO_SHOW],
    )
    def test_end_states_cannot_move(self, status):
        with pytest.raises(InvalidTransition):
            ensure_reschedulable(status, 0, "appt-1")

    def test_terminal_state_reported_before_limit(self):
        with pytest.raises(InvalidTransition):
            ensure_reschedulable(AppointmentStatus.CANCELLED, 3, "appt-1")

    def test_limit(self):
        ensure_reschedulable(AppointmentStatus.RESCHEDULED, 2, "appt-1")
        with pytest.raises(RescheduleLimitExceeded) as exc_info:
            ensure_reschedulable(AppointmentStatus.RESCHEDULED, 3, "appt-1")
        assert exc_info.value.code == "RESCHEDULE_LIMIT_EXCEEDED"

    def test_limit_follows_policy(self):
        strict = SchedulingPolicy(max_reschedules=1)
        with pytest.raises(RescheduleLimitExceeded):
            ensure_reschedulable(AppointmentStatus.SCHEDULED, 1, "appt-1", strict)


class TestTiming:
    def test_future_start_passes(self):
        ensure_future(date(2030, 1, 7), TimeSlot.from_strings("08:01", "09:00"), NOW)

    @pytest.mark.parametrize(
        "on_date,start",
        [(date(2030, 1, 7), "08:00"), (date(2030, 1, 7), "07:00"), (date(2030, 1, 6), "12:00")],
    )
    def test_start_not_after_now_is_rejected(self, on_date, start):
        with pytest.raises(InvalidDate):
            ensure_future(on_date, TimeSlot.from_strings(start, "23:00"), NOW)

    def test_upcoming_and_overdue(self):
        tomorrow, yesterday = date(2030, 1, 8), date(2030, 1, 6)
        scheduled = AppointmentStatus.SCHEDULED

        assert is_upcoming(tomorrow, SLOT, scheduled, NOW)
        assert not is_overdue(tomorrow, SLOT, scheduled, NOW)
        assert is_overdue(yesterday, SLOT, AppointmentStatus.CONFIRMED, NOW)
        assert not is_upcoming(yesterday, SLOT, scheduled, NOW)

        assert not is_upcoming(tomorrow, SLOT, AppointmentStatus.CHECKED_IN, NOW)
        assert not is_overdue(yesterday, SLOT, AppointmentStatus.COMPLETED, NOW)

    def test_naive_now_is_accepted(self):
        naive = NOW.replace(tzinfo=None)
        assert is_upcoming(date(2030, 1, 8), SLOT, AppointmentStatus.REMINDED, naive)

    def test_slot_times_are_read_as_utc(self):
        # 10:00 at UTC+02:00 is 08:00 UTC
        local_now = NOW.astimezone(timezone(timedelta(hours=2)))
        ensure_future(date(2030, 1, 7), TimeSlot.from_strings("08:01", "09:00"), local_now)
        with pytest.raises(InvalidDate):
            ensure_future(date(2030, 1, 7), TimeSlot.from_strings("08:00", "09:00"), local_now)


@pytest.mark.parametrize(
    "minutes,text", [(45, "45m"), (60, "1h 0m"), (90, "1h 30m"), (125, "2h 5m")]
)
def test_format_duration(minutes, text):
    assert format_duration(minutes) == text


@pytest.mark.parametrize(
    "role,actor",
    [
        ("donor", ActorRole.DONOR),
        ("blood_bank", ActorRole.BLOOD_BANK),
        ("admin", ActorRole.SYSTEM),
    ],
)
def test_actor_from_user_role(role, actor):
    assert ActorRole.from_user_role(role) == actor
