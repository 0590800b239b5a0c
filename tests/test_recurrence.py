"""Unit tests for weekly occurrence arithmetic and plan entry parsing."""

from datetime import datetime, time, timedelta, timezone

import pytest

from ridecore.domain.entities import PlanEntry, parse_time_of_day
from ridecore.domain.enums import Weekday
from ridecore.domain.errors import InvalidInput
from ridecore.domain.recurrence import due_occurrence, next_occurrence

UTC = timezone.utc
# 2026-10-19 is a Monday
MONDAY = datetime(2026, 10, 19, tzinfo=UTC)
EIGHT = time(8, 0)
GRACE = timedelta(minutes=2)
LOOKAHEAD = timedelta(minutes=1)


class TestNextOccurrence:
    def test_later_the_same_day(self):
        after = MONDAY.replace(hour=7)
        assert next_occurrence(Weekday.MONDAY, EIGHT, after) == MONDAY.replace(hour=8)

    def test_exact_instant_counts(self):
        at = MONDAY.replace(hour=8)
        assert next_occurrence(Weekday.MONDAY, EIGHT, at) == at

    def test_just_missed_rolls_a_week(self):
        after = MONDAY.replace(hour=8, second=1)
        expected = MONDAY.replace(hour=8) + timedelta(days=7)
        assert next_occurrence(Weekday.MONDAY, EIGHT, after) == expected

    def test_other_weekday(self):
        expected = datetime(2026, 10, 25, 8, 0, tzinfo=UTC)
        assert next_occurrence(Weekday.SUNDAY, EIGHT, MONDAY) == expected

    def test_non_utc_reference_is_normalised(self):
        yerevan = timezone(timedelta(hours=4))
        after = datetime(2026, 10, 19, 11, 0, tzinfo=yerevan)  # 07:00 UTC
        assert next_occurrence(Weekday.MONDAY, EIGHT, after) == MONDAY.replace(hour=8)


class TestDueOccurrence:
    def test_tick_just_after_wall_clock_fires(self):
        now = MONDAY.replace(hour=8, second=30)
        assert due_occurrence(Weekday.MONDAY, EIGHT, now, GRACE, LOOKAHEAD) == MONDAY.replace(hour=8)

    def test_tick_inside_lookahead_fires(self):
        now = MONDAY.replace(hour=7, minute=59, second=30)
        assert due_occurrence(Weekday.MONDAY, EIGHT, now, GRACE, LOOKAHEAD) == MONDAY.replace(hour=8)

    def test_too_early(self):
        now = MONDAY.replace(hour=7, minute=58)
        assert due_occurrence(Weekday.MONDAY, EIGHT, now, GRACE, LOOKAHEAD) is None

    def test_past_grace(self):
        now = MONDAY.replace(hour=8, minute=3)
        assert due_occurrence(Weekday.MONDAY, EIGHT, now, GRACE, LOOKAHEAD) is None

    def test_wrong_day(self):
        now = MONDAY.replace(hour=8)
        assert due_occurrence(Weekday.TUESDAY, EIGHT, now, GRACE, LOOKAHEAD) is None


class TestWeekday:
    def test_index_matches_datetime_weekday(self):
        assert Weekday.MONDAY.index == 0
        assert Weekday.SUNDAY.index == 6
        assert MONDAY.weekday() == Weekday.MONDAY.index


class TestPlanEntryParsing:
    def test_round_trip_through_dict(self):
        entry = PlanEntry("Office", 40.18, 44.51, Weekday.FRIDAY, "18:15", "Home run")
        assert PlanEntry.from_dict(entry.to_dict()) == entry

    def test_day_is_case_insensitive(self):
        entry = PlanEntry.from_dict(
            {"address": "Gym", "lat": 40.2, "lng": 44.5, "day": "Monday", "time": "7:05"}
        )
        assert entry.day is Weekday.MONDAY
        assert entry.time_of_day() == time(7, 5)

    @pytest.mark.parametrize(
        "raw",
        [
            {"lat": 40.2, "lng": 44.5, "day": "funday", "time": "08:00"},
            {"lat": 40.2, "day": "monday", "time": "08:00"},
            {"lat": "north", "lng": 44.5, "day": "monday", "time": "08:00"},
            {"lat": 40.2, "lng": 44.5, "day": "monday", "time": "25:00"},
            "not-an-entry",
        ],
    )
    def test_malformed_entries_are_rejected(self, raw):
        with pytest.raises(InvalidInput):
            PlanEntry.from_dict(raw)

    def test_time_with_seconds(self):
        assert parse_time_of_day("08:30:15") == time(8, 30, 15)

    @pytest.mark.parametrize("value", ["8", "08:61", "a:b", "1:2:3:4"])
    def test_bad_times(self, value):
        with pytest.raises(InvalidInput):
            parse_time_of_day(value)
