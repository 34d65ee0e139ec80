"""Tests for resurface timing resolution."""

from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from mindsift.timing import (
    add_elapsed,
    next_weekday,
    parse_timestamp,
    resolve,
    resurface_schedule_for_deadline,
)

NEW_YORK = ZoneInfo("America/New_York")

# Monday 2025-01-06, 05:00 in New York
NOW = datetime(2025, 1, 6, 10, 0, tzinfo=timezone.utc).astimezone(NEW_YORK)


class TestParseTimestamp:
    """Tests for parse_timestamp."""

    def test_parses_offset(self):
        """Offsets are kept."""
        parsed = parse_timestamp("2025-01-07T09:00:00-05:00")
        assert parsed == datetime(2025, 1, 7, 14, 0, tzinfo=timezone.utc)

    def test_parses_trailing_z(self):
        """A trailing Z means UTC."""
        parsed = parse_timestamp("2025-01-07T09:00:00Z")
        assert parsed == datetime(2025, 1, 7, 9, 0, tzinfo=timezone.utc)

    def test_attaches_default_zone_to_naive(self):
        """Naive values get the default zone."""
        parsed = parse_timestamp("2025-01-07T09:00:00", NEW_YORK)
        assert parsed.tzinfo is NEW_YORK
        assert parsed.hour == 9

    def test_date_only(self):
        """Date-only strings parse to midnight."""
        parsed = parse_timestamp("2025-01-10")
        assert parsed == datetime(2025, 1, 10)

    @pytest.mark.parametrize("value", [None, "", "   ", "next friday", 42, ["2025-01-10"]])
    def test_non_timestamps_return_none(self, value):
        """Anything that is not a timestamp yields None."""
        assert parse_timestamp(value) is None

    def test_datetime_passthrough(self):
        """Datetimes are returned as-is when aware."""
        assert parse_timestamp(NOW) is NOW


class TestResolve:
    """Tests for resolve."""

    def test_idempotent(self):
        """Same inputs always give the same output."""
        deadline = datetime(2025, 1, 10, 17, 0, tzinfo=NEW_YORK)
        for expression in ["tomorrow", "in 3 days", "friday", "2 days before deadline", "??"]:
            assert resolve(expression, NOW, deadline) == resolve(expression, NOW, deadline)

    def test_iso_round_trip(self):
        """Absolute timestamps come back unchanged."""
        result = resolve("2025-02-01T15:30:00+01:00", NOW)
        assert result == datetime(2025, 2, 1, 15, 30, tzinfo=timezone(timedelta(hours=1)))
        assert result.utcoffset() == timedelta(hours=1)

    def test_iso_without_offset_takes_reference_zone(self):
        """A naive ISO value is read in the reference zone."""
        result = resolve("2025-02-01T15:30:00", NOW)
        assert result == datetime(2025, 2, 1, 15, 30, tzinfo=NEW_YORK)

    def test_bare_date_resurfaces_that_morning(self):
        """A date without a time means 09:00 local on that day."""
        assert resolve("2025-01-09", NOW) == datetime(2025, 1, 9, 9, 0, tzinfo=NEW_YORK)
        assert resolve(" 2025-02-14 ", NOW) == datetime(2025, 2, 14, 9, 0, tzinfo=NEW_YORK)

    def test_date_with_trailing_words_falls_back(self):
        """Only a bare date is read as a date."""
        assert resolve("2025-01-09 maybe", NOW) == datetime(2025, 1, 7, 9, 0, tzinfo=NEW_YORK)

    def test_tomorrow(self):
        """Plain tomorrow means tomorrow at 09:00 local."""
        assert resolve("tomorrow", NOW) == datetime(2025, 1, 7, 9, 0, tzinfo=NEW_YORK)

    @pytest.mark.parametrize(
        "expression,hour",
        [("tomorrow morning", 9), ("Tomorrow afternoon", 14), ("tomorrow evening", 18)],
    )
    def test_tomorrow_parts_of_day(self, expression, hour):
        """Parts of the day map to fixed wall-clock hours."""
        assert resolve(expression, NOW) == datetime(2025, 1, 7, hour, 0, tzinfo=NEW_YORK)

    def test_next_week(self):
        """next week is seven days out at 09:00."""
        assert resolve("next week", NOW) == datetime(2025, 1, 13, 9, 0, tzinfo=NEW_YORK)

    def test_in_zero_days_is_today_morning(self):
        """in 0 days is today at 09:00, not an error."""
        assert resolve("in 0 days", NOW) == datetime(2025, 1, 6, 9, 0, tzinfo=NEW_YORK)

    def test_in_days(self):
        """in N days lands at 09:00 N days later."""
        assert resolve("in 3 days", NOW) == datetime(2025, 1, 9, 9, 0, tzinfo=NEW_YORK)

    def test_in_one_day_singular(self):
        """Singular day is accepted."""
        assert resolve("in 1 day", NOW) == datetime(2025, 1, 7, 9, 0, tzinfo=NEW_YORK)

    def test_in_hours_keeps_minutes(self):
        """in N hours is elapsed time, not a wall-clock anchor."""
        now = datetime(2025, 1, 6, 10, 17, tzinfo=NEW_YORK)
        assert resolve("in 2 hours", now) == datetime(2025, 1, 6, 12, 17, tzinfo=NEW_YORK)

    def test_days_before_deadline(self):
        """N days before deadline anchors on the deadline at 09:00."""
        deadline = datetime(2025, 1, 10, 17, 0, tzinfo=NEW_YORK)
        result = resolve("2 days before deadline", NOW, deadline)
        assert result == datetime(2025, 1, 8, 9, 0, tzinfo=NEW_YORK)

    def test_before_deadline_without_deadline_falls_back(self):
        """Without a deadline the phrase is unrecognized."""
        result = resolve("2 days before deadline", NOW)
        assert result == datetime(2025, 1, 7, 9, 0, tzinfo=NEW_YORK)

    def test_weekday_is_next_occurrence(self):
        """A weekday name resolves to its next occurrence at 09:00."""
        assert resolve("friday", NOW) == datetime(2025, 1, 10, 9, 0, tzinfo=NEW_YORK)

    def test_same_weekday_rolls_a_full_week(self):
        """Naming today's weekday gives the following week, never today."""
        monday = datetime(2025, 1, 6, 8, 0, tzinfo=NEW_YORK)
        assert monday.weekday() == 0
        assert resolve("monday", monday) == datetime(2025, 1, 13, 9, 0, tzinfo=NEW_YORK)

    def test_weekday_inside_phrase(self):
        """Weekday names are found anywhere in the phrase."""
        assert resolve("on Wednesday please", NOW) == datetime(2025, 1, 8, 9, 0, tzinfo=NEW_YORK)

    def test_unrecognized_falls_back_to_tomorrow_morning(self):
        """Unknown phrases default to tomorrow at 09:00."""
        assert resolve("whenever", NOW) == datetime(2025, 1, 7, 9, 0, tzinfo=NEW_YORK)

    def test_tomorrow_wins_over_weekday(self):
        """Phrases are checked in a fixed order."""
        assert resolve("tomorrow, friday", NOW) == datetime(2025, 1, 7, 9, 0, tzinfo=NEW_YORK)

    def test_does_not_read_the_clock(self):
        """Results depend only on the reference time passed in."""
        past = datetime(2001, 3, 5, 12, 0, tzinfo=timezone.utc)
        assert resolve("tomorrow", past) == datetime(2001, 3, 6, 9, 0, tzinfo=timezone.utc)


class TestHelpers:
    """Tests for the wall-clock helpers."""

    def test_next_weekday_same_day(self):
        """The current day is skipped."""
        assert next_weekday(NOW, 0).date() == datetime(2025, 1, 13).date()

    def test_add_elapsed_across_dst(self):
        """Elapsed time is real time across a DST change."""
        before = datetime(2025, 3, 9, 1, 30, tzinfo=NEW_YORK)
        after = add_elapsed(before, timedelta(hours=1))
        assert after.hour == 3
        assert after.minute == 30


class TestResurfaceSchedule:
    """Tests for resurface_schedule_for_deadline."""

    def test_all_points_ahead(self):
        """Three ordered candidates when the deadline is far out."""
        deadline = datetime(2025, 1, 10, 17, 0, tzinfo=NEW_YORK)
        schedule = resurface_schedule_for_deadline(deadline, NOW)
        assert schedule == [
            datetime(2025, 1, 8, 9, 0, tzinfo=NEW_YORK),
            datetime(2025, 1, 10, 9, 0, tzinfo=NEW_YORK),
            datetime(2025, 1, 10, 15, 0, tzinfo=NEW_YORK),
        ]

    def test_past_points_dropped(self):
        """Only candidates after now remain."""
        deadline = datetime(2025, 1, 7, 17, 0, tzinfo=NEW_YORK)
        schedule = resurface_schedule_for_deadline(deadline, NOW)
        assert schedule == [
            datetime(2025, 1, 7, 9, 0, tzinfo=NEW_YORK),
            datetime(2025, 1, 7, 15, 0, tzinfo=NEW_YORK),
        ]

    def test_deadline_passed(self):
        """Nothing to schedule for a deadline in the past."""
        deadline = datetime(2025, 1, 1, 17, 0, tzinfo=NEW_YORK)
        assert resurface_schedule_for_deadline(deadline, NOW) == []

    def test_collapses_duplicates(self):
        """Coinciding candidates appear once."""
        deadline = datetime(2025, 1, 10, 11, 0, tzinfo=NEW_YORK)
        schedule = resurface_schedule_for_deadline(deadline, NOW)
        assert schedule == [
            datetime(2025, 1, 8, 9, 0, tzinfo=NEW_YORK),
            datetime(2025, 1, 10, 9, 0, tzinfo=NEW_YORK),
        ]
