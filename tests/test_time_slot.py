# tests/test_time_slot.py
import pytest

from bloodlink.scheduling import (
    InvalidDate,
    InvalidTimeFormat,
    TimeOfDay,
    TimeSlot,
)


class TestTimeOfDay:
    @pytest.mark.parametrize(
        "raw,minutes,text",
        [
            ("00:00", 0, "00:00"),
            ("9:05", 545, "09:05"),
            ("09:30", 570, "09:30"),
            ("23:59", 1439, "23:59"),
        ],
    )
    def test_parse_and_format(self, raw, minutes, text):
        value = TimeOfDay.parse(raw)
        assert value.minutes == minutes
        assert str(value) == text

    @pytest.mark.parametrize("raw", ["24:00", "12:60", "9am", "0930", "", "12:5", None])
    def test_rejects_malformed(self, raw):
        with pytest.raises(InvalidTimeFormat):
            TimeOfDay.parse(raw)

    def test_time_format_error_is_an_invalid_date(self):
        with pytest.raises(InvalidDate) as exc_info:
            TimeOfDay.parse("25:00")
        assert exc_info.value.code == "INVALID_TIME_FORMAT"
        assert exc_info.value.status_code == 400

    def test_ordering(self):
        assert TimeOfDay.parse("08:59") < TimeOfDay.parse("09:00")


class TestTimeSlot:
    def test_duration(self):
        assert TimeSlot.from_strings("09:00", "10:30").duration_minutes == 90

    @pytest.mark.parametrize("start,end", [("10:00", "10:00"), ("11:00", "10:00")])
    def test_end_must_follow_start(self, start, end):
        with pytest.raises(InvalidDate) as exc_info:
            TimeSlot.from_strings(start, end)
        assert exc_info.value.code == "INVALID_DATE"

    def test_touching_slots_do_not_overlap(self):
        first = TimeSlot.from_strings("10:00", "11:00")
        second = TimeSlot.from_strings("11:00", "12:00")
        assert not first.overlaps(second)
        assert not second.overlaps(first)

    @pytest.mark.parametrize(
        "other",
        [("10:30", "11:30"), ("09:30", "10:01"), ("10:15", "10:45"), ("09:00", "12:00")],
    )
    def test_overlap_is_symmetric(self, other):
        slot = TimeSlot.from_strings("10:00", "11:00")
        candidate = TimeSlot.from_strings(*other)
        assert slot.overlaps(candidate)
        assert candidate.overlaps(slot)

    def test_string_forms(self):
        slot = TimeSlot.from_strings("9:00", "9:45")
        assert slot.as_strings() == ("09:00", "09:45")
        assert str(slot) == "09:00-09:45"
