# tests/test_operating_hours.py
from datetime import date, datetime

import pytest

from bloodlink.scheduling import DailyHours, DayOfWeek, InvalidDate, WeeklyHours

RAW = {
    "monday": {"open": "09:00", "close": "17:00"},
    "tuesday": {"open": "9:30", "close": "12:00"},
    "wednesday": None,
    "thursday": {"open": "09:00"},
    "saturday": {"open": "10:00", "close": "14:00"},
}


@pytest.fixture
def weekly():
    return WeeklyHours.from_mapping(RAW)


def test_missing_null_and_incomplete_days_are_closed(weekly):
    assert weekly.hours_for(date(2030, 1, 9)) is None  # wednesday, null
    assert weekly.hours_for(date(2030, 1, 10)) is None  # thursday, no close
    assert weekly.hours_for(date(2030, 1, 11)) is None  # friday, absent
    assert weekly.hours_for(date(2030, 1, 7)) == DailyHours.parse("09:00", "17:00")


def test_from_mapping_accepts_nothing():
    assert WeeklyHours.from_mapping(None).hours_for(date(2030, 1, 7)) is None


def test_to_dict_normalizes(weekly):
    data = weekly.to_dict()
    assert data["tuesday"] == {"open": "09:30", "close": "12:00"}
    assert data["sunday"] is None
    assert list(data) == [day.value for day in DayOfWeek]


def test_close_must_follow_open():
    with pytest.raises(InvalidDate):
        DailyHours.parse("17:00", "09:00")


def test_day_of_week_from_date():
    assert DayOfWeek.from_date(date(2030, 1, 7)) == DayOfWeek.MONDAY
    assert DayOfWeek.from_date(date(2030, 1, 13)) == DayOfWeek.SUNDAY


@pytest.mark.parametrize(
    "moment,is_open",
    [
        (datetime(2030, 1, 7, 8, 59), False),
        (datetime(2030, 1, 7, 9, 0), True),
        (datetime(2030, 1, 7, 17, 0), True),
        (datetime(2030, 1, 7, 17, 1), False),
        (datetime(2030, 1, 9, 12, 0), False),
    ],
)
def test_is_open_at(weekly, moment, is_open):
    assert weekly.is_open_at(moment) is is_open


def test_next_opening_later_today(weekly):
    assert weekly.next_opening(datetime(2030, 1, 7, 7, 0)) == (
        0,
        DayOfWeek.MONDAY,
        DailyHours.parse("09:00", "17:00"),
    )


def test_next_opening_skips_closed_days(weekly):
    # Tuesday evening -> next open day is Saturday
    days_ahead, day, hours = weekly.next_opening(datetime(2030, 1, 8, 18, 0))
    assert (days_ahead, day) == (4, DayOfWeek.SATURDAY)
    assert hours == DailyHours.parse("10:00", "14:00")


def test_next_opening_wraps_to_same_weekday():
    only_monday = WeeklyHours.from_mapping({"monday": {"open": "09:00", "close": "10:00"}})
    days_ahead, day, _ = only_monday.next_opening(datetime(2030, 1, 7, 11, 0))
    assert (days_ahead, day) == (7, DayOfWeek.MONDAY)


def test_next_opening_without_hours():
    assert WeeklyHours.from_mapping({}).next_opening(datetime(2030, 1, 7, 11, 0)) is None
