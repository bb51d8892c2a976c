# tests/test_availability.py
import pytest

from bloodlink.scheduling import (
    DailyHours,
    InvalidDate,
    InvalidDuration,
    TimeSlot,
    compute_available_slots,
    conflicting_slots,
    is_slot_available,
)

MORNING = DailyHours.parse("09:00", "12:00")


def as_strings(slots):
    return [slot.as_strings() for slot in slots]


def test_grid_covers_opening_hours():
    slots = compute_available_slots(MORNING, [], 60)
    assert as_strings(slots) == [
        ("09:00", "10:00"),
        ("10:00", "11:00"),
        ("11:00", "12:00"),
    ]


def test_booked_interval_is_excluded():
    booked = [TimeSlot.from_strings("10:00", "11:00")]
    slots = compute_available_slots(MORNING, booked, 60)
    assert as_strings(slots) == [("09:00", "10:00"), ("11:00", "12:00")]


def test_closed_day_yields_no_slots():
    assert compute_available_slots(None, [], 60) == []


def test_last_slot_must_fit_before_closing():
    slots = compute_available_slots(DailyHours.parse("09:00", "10:30"), [], 45)
    assert as_strings(slots) == [("09:00", "09:45"), ("09:45", "10:30")]

    slots = compute_available_slots(DailyHours.parse("09:00", "10:20"), [], 45)
    assert as_strings(slots) == [("09:00", "09:45")]


def test_grid_does_not_snap_to_bookings():
    # 09:30-10:30 knocks out both grid cells it straddles, even though a
    # 10:30-11:30 slot would have fit.
    booked = [TimeSlot.from_strings("09:30", "10:30")]
    slots = compute_available_slots(MORNING, booked, 60)
    assert as_strings(slots) == [("11:00", "12:00")]


@pytest.mark.parametrize("duration", [0, -15])
def test_non_positive_duration_is_rejected(duration):
    with pytest.raises(InvalidDuration) as exc_info:
        compute_available_slots(MORNING, [], duration)
    assert isinstance(exc_info.value, InvalidDate)
    assert exc_info.value.code == "INVALID_DURATION"


def test_duration_longer_than_the_day_yields_nothing():
    assert compute_available_slots(MORNING, [], 240) == []


@pytest.mark.parametrize("duration", [15, 20, 30, 45, 60, 90])
def test_returned_slots_never_overlap_bookings(duration):
    booked = [
        TimeSlot.from_strings("09:10", "09:40"),
        TimeSlot.from_strings("10:45", "11:05"),
    ]
    slots = compute_available_slots(MORNING, booked, duration)

    starts = [slot.start for slot in slots]
    assert starts == sorted(starts)
    for slot in slots:
        assert slot.duration_minutes == duration
        assert MORNING.open <= slot.start and slot.end <= MORNING.close
        assert is_slot_available(slot, booked)


def test_same_inputs_same_output():
    booked = [TimeSlot.from_strings("10:00", "11:00")]
    assert compute_available_slots(MORNING, booked, 30) == compute_available_slots(
        MORNING, list(booked), 30
    )


def test_conflicting_slots_lists_every_overlap():
    booked = [
        TimeSlot.from_strings("09:00", "10:00"),
        TimeSlot.from_strings("10:00", "11:00"),
        TimeSlot.from_strings("11:00", "12:00"),
    ]
    candidate = TimeSlot.from_strings("09:30", "10:30")
    assert conflicting_slots(candidate, booked) == booked[:2]
    assert not is_slot_available(candidate, booked)
    assert is_slot_available(candidate, [])
