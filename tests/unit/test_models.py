# File: tests/unit/test_models.py
"""
Unit tests for data models.
Tests intervals, events, goals, coverage rules and schedule configuration.
"""

import pytest
from datetime import date, datetime, timedelta

import pytz

from conftest import at, DAY
from calendar_insight.models import (
    CalendarType,
    ConfigError,
    CoverageRule,
    DayHours,
    DayPart,
    DayPartWindows,
    EngineConfig,
    Event,
    Goal,
    GoalScore,
    Interval,
    InvalidIntervalError,
    WeeklySchedule,
    coverage_rule_from_dict,
    event_from_dict,
    goal_from_dict,
    parse_iso_datetime,
    series_id_of,
)


# ==================== Interval Tests ====================

class TestInterval:
    """Tests for Interval dataclass."""

    def test_interval_creation(self):
        interval = Interval(at(9), at(10, 30))

        assert interval.duration_minutes() == 90

    def test_inverted_interval_raises_error(self):
        with pytest.raises(InvalidIntervalError, match="after start"):
            Interval(at(10), at(9))

    def test_zero_length_interval_raises_error(self):
        with pytest.raises(InvalidIntervalError):
            Interval(at(10), at(10))

    def test_naive_datetime_raises_error(self):
        with pytest.raises(InvalidIntervalError, match="timezone-aware"):
            Interval(datetime(2026, 1, 15, 9), datetime(2026, 1, 15, 10))

    def test_invalid_interval_is_a_value_error(self):
        with pytest.raises(ValueError):
            Interval(at(10), at(9))

    def test_touching_intervals_do_not_overlap(self):
        first = Interval(at(9), at(10))
        second = Interval(at(10), at(11))

        assert first.overlaps(second) is False
        assert first.overlap_minutes(second) == 0

    def test_overlap_minutes(self):
        first = Interval(at(9), at(10))
        second = Interval(at(9, 30), at(11))

        assert first.overlaps(second) is True
        assert first.overlap_minutes(second) == 30

    def test_contains_is_half_open(self):
        interval = Interval(at(9), at(10))

        assert interval.contains(at(9)) is True
        assert interval.contains(at(10)) is False

    def test_clip(self):
        interval = Interval(at(5), at(7))

        clipped = interval.clip(at(6), at(22))

        assert clipped == Interval(at(6), at(7))
        assert interval.clip(at(8), at(22)) is None

    def test_expand(self):
        interval = Interval(at(19), at(22))

        assert interval.expand(60, 60) == Interval(at(18), at(23))

    def test_different_timezones_compare_by_instant(self):
        amsterdam = pytz.timezone("Europe/Amsterdam")
        local = Interval(amsterdam.localize(datetime(2026, 1, 15, 10)),
                         amsterdam.localize(datetime(2026, 1, 15, 11)))

        assert local.overlaps(Interval(at(9), at(9, 30)))


# ==================== Series Id Tests ====================

class TestSeriesId:
    """Tests for series_id_of."""

    @pytest.mark.parametrize("event_id,expected", [
        ("abc123_20260115T170000Z", "abc123"),
        ("abc123_20260115T170000", "abc123"),
        ("abc123_20260115", "abc123"),
        ("abc123", "abc123"),
        ("team_sync", "team_sync"),
        ("weekly_sync_20260115", "weekly_sync"),
    ])
    def test_series_id_of(self, event_id, expected):
        assert series_id_of(event_id) == expected

    def test_event_prefers_recurring_parent(self, make_event):
        event = make_event(at(9), at(10), "xyz_20260115T090000Z", recurring_parent_id="parent")

        assert event.series_id == "parent"
        assert event.is_recurring is True

    def test_single_event_is_its_own_series(self, make_event):
        event = make_event(at(9), at(10), "standalone")

        assert event.series_id == "standalone"
        assert event.is_recurring is False


# ==================== Timestamp Tests ====================

class TestParseIsoDatetime:
    """Tests for parse_iso_datetime."""

    def test_utc_suffix(self):
        assert parse_iso_datetime("2026-01-15T19:00:00Z") == at(19)

    def test_offset_kept(self):
        parsed = parse_iso_datetime("2026-01-15T20:00:00+01:00")

        assert parsed == at(19)
        assert parsed.utcoffset() == timedelta(hours=1)

    def test_bare_date_is_local_midnight(self):
        parsed = parse_iso_datetime("2026-01-15", "Europe/Amsterdam")

        assert parsed == pytz.timezone("Europe/Amsterdam").localize(datetime(2026, 1, 15))

    def test_naive_without_default_stays_naive(self):
        assert parse_iso_datetime("2026-01-15T09:00:00").tzinfo is None

    @pytest.mark.parametrize("value", [None, "", "tomorrow", "2026-13-45", "15/01/2026"])
    def test_unparseable(self, value):
        assert parse_iso_datetime(value) is None


# ==================== Event Tests ====================

class TestEvent:
    """Tests for Event dataclass."""

    def test_calendar_type_from_string(self, make_event):
        event = make_event(at(9), at(10), calendar_type="Blocking")

        assert event.calendar_type == CalendarType.BLOCKING
        assert event.occupies_time is True
        assert event.counts_for_time_tracking is False

    def test_availability_event_does_not_occupy_time(self, make_event):
        event = make_event(at(9), at(10), calendar_type=CalendarType.AVAILABILITY)

        assert event.occupies_time is False

    def test_all_day_event_does_not_occupy_time(self, make_event):
        event = make_event(at(0), at(0, day=DAY + timedelta(days=1)), is_all_day=True)

        assert event.occupies_time is False

    def test_unknown_calendar_type_raises_error(self, make_event):
        with pytest.raises(ValueError):
            make_event(at(9), at(10), calendar_type="sometimes")

    def test_event_requires_id(self):
        with pytest.raises(InvalidIntervalError, match="id"):
            Event(start=at(9), end=at(10), id="")

    def test_event_from_dict_camel_case(self):
        event = event_from_dict({
            'id': 'e1',
            'start': '2026-01-15T09:00:00Z',
            'end': '2026-01-15T10:00:00+00:00',
            'accountId': 'work@example.com',
            'calendarId': 'team',
            'calendarType': 'blocking',
            'recurringParentId': 'series',
            'summary': 'Standup',
        })

        assert event.start == at(9)
        assert event.account_id == 'work@example.com'
        assert event.calendar_id == 'team'
        assert event.calendar_type == CalendarType.BLOCKING
        assert event.series_id == 'series'
        assert event.title == 'Standup'

    def test_event_from_dict_localizes_naive_times(self):
        event = event_from_dict(
            {'id': 'e1', 'start': '2026-01-15T09:00:00', 'end': '2026-01-15T10:00:00'},
            default_tz='UTC',
        )

        assert event.start == at(9)
        assert event.calendar_id == 'primary'

    def test_event_from_dict_unparseable_bounds(self):
        with pytest.raises(InvalidIntervalError, match="unparseable"):
            event_from_dict({'id': 'e1', 'start': 'soon', 'end': 'later'})

    def test_event_to_dict(self, make_event):
        data = make_event(at(9), at(10), "e1", category="meetings").to_dict()

        assert data['id'] == "e1"
        assert data['category'] == "meetings"
        assert data['calendar_type'] == "active"
        assert data['duration_minutes'] == 60


# ==================== Goal Tests ====================

class TestGoal:
    """Tests for Goal dataclass."""

    def test_goal_creation(self, writing_goal):
        assert writing_goal.preferred_day_part == DayPart.MORNING
        assert writing_goal.match_category == "writing"

    def test_category_overrides_match(self):
        goal = Goal(id="run", name="Run", target_minutes=60, category="exercise")

        assert goal.match_category == "exercise"

    def test_min_greater_than_max_raises_error(self):
        with pytest.raises(ConfigError, match="exceeds maximum"):
            Goal(id="g", name="G", target_minutes=60, min_minutes=90, max_minutes=45)

    def test_negative_priority_raises_error(self):
        with pytest.raises(ConfigError, match="negative"):
            Goal(id="g", name="G", target_minutes=60, priority=-1)

    def test_non_positive_target_raises_error(self):
        with pytest.raises(ConfigError, match="Target"):
            Goal(id="g", name="G", target_minutes=0)

    def test_unknown_day_part_raises_error(self):
        with pytest.raises(ConfigError, match="time of day"):
            Goal(id="g", name="G", target_minutes=60, preferred_day_part="midnight")

    def test_config_error_lists_problems(self):
        with pytest.raises(ConfigError) as exc_info:
            Goal(id="", name="G", target_minutes=-5, priority=-1)

        fields = {p.field for p in exc_info.value.problems}
        assert {'id', 'target_minutes', 'priority'} <= fields

    def test_goal_from_dict(self):
        goal = goal_from_dict({
            'id': 'writing',
            'name': 'Writing',
            'totalMinutes': 240,
            'minSessionMinutes': 60,
            'maxSessionMinutes': '120',
            'preferredTimes': {'dayPart': 'afternoon'},
            'recurring': 'yes',
        })

        assert goal.target_minutes == 240
        assert goal.max_minutes == 120
        assert goal.preferred_day_part == DayPart.AFTERNOON
        assert goal.recurring is True

    def test_goal_from_dict_non_numeric(self):
        with pytest.raises(ConfigError, match="non-numeric"):
            goal_from_dict({'id': 'g', 'targetMinutes': 'lots'})


class TestGoalScore:
    """Tests for GoalScore."""

    def test_score_is_capped(self):
        assert GoalScore("g", 60, 90, 1).score == 1.0

    def test_partial_score(self):
        score = GoalScore("g", 120, 90, 1)

        assert score.score == 0.75
        assert score.is_satisfied is False
        assert score.unmet_minutes == 30

    def test_nothing_requested_is_satisfied(self):
        assert GoalScore("g", 0, 0, 1).score == 1.0


# ==================== Coverage Rule Tests ====================

class TestCoverageRule:
    """Tests for CoverageRule dataclass."""

    def test_pattern_is_case_insensitive(self, date_night_rule):
        assert date_night_rule.pattern.search("DATE NIGHT at Luigi's")

    def test_opt_out_marker(self, date_night_rule):
        assert date_night_rule.find_opt_out("Date night #NoSitter") == ("title", "#nositter")
        assert date_night_rule.find_opt_out("Date night", "Sitter off #NOSITTER") == ("description", "#nositter")
        assert date_night_rule.find_opt_out("Date night", None) is None

    def test_invalid_regex_raises_error(self):
        with pytest.raises(ConfigError, match="Invalid pattern"):
            CoverageRule(id="r", trigger_calendars=["a"], trigger_pattern="(unclosed",
                         coverage_calendars=["b"], create_account="x", create_calendar="b")

    @pytest.mark.parametrize("fraction", [0, -0.5, 1.5])
    def test_overlap_fraction_out_of_range(self, fraction):
        with pytest.raises(ConfigError, match="min_overlap_fraction"):
            CoverageRule(id="r", trigger_calendars=["a"], trigger_pattern="x",
                         coverage_calendars=["b"], create_account="x", create_calendar="b",
                         min_overlap_fraction=fraction)

    def test_bad_draft_title_template(self):
        with pytest.raises(ConfigError, match="draft_title"):
            CoverageRule(id="r", trigger_calendars=["a"], trigger_pattern="x",
                         coverage_calendars=["b"], create_account="x", create_calendar="b",
                         draft_title="Cover {event}")

    def test_rule_from_dict(self):
        rule = coverage_rule_from_dict({
            'id': 'sitter',
            'triggerCalendars': 'personal',
            'triggerPattern': 'date night',
            'coverageCalendars': ['family'],
            'createAccount': 'me@home.example',
            'createCalendar': 'family',
            'bufferBeforeMinutes': '30',
        })

        assert rule.trigger_calendars == ['personal']
        assert rule.buffer_before_minutes == 30
        assert rule.min_overlap_fraction == 1.0


# ==================== Schedule Configuration Tests ====================

class TestDayHours:
    """Tests for DayHours parsing."""

    @pytest.mark.parametrize("value", [
        "06:00-22:00",
        {'start': 6, 'end': 22},
        {'start': '06:00', 'end': '22:00'},
        [6, 22],
    ])
    def test_parse_formats(self, value):
        assert DayHours.parse(value) == DayHours(360, 1320)

    def test_start_after_end_raises_error(self):
        with pytest.raises(ConfigError):
            DayHours.parse("22:00-06:00")

    def test_window_for_localizes(self):
        window = DayHours(360, 1320).window_for(DAY, "Europe/Amsterdam")

        # 06:00 CET is 05:00 UTC in January
        assert window.start == at(5)
        assert window.end == at(21)


class TestWeeklySchedule:
    """Tests for WeeklySchedule."""

    def test_default_hours(self):
        schedule = WeeklySchedule()

        assert schedule.get_waking_hours(DAY) == DayHours(360, 1320)
        assert schedule.get_work_hours(DAY) == DayHours(540, 1020)
        assert schedule.get_work_hours(date(2026, 1, 17)) is None

    def test_available_hours_for_work_goals(self):
        schedule = WeeklySchedule()

        assert schedule.get_available_hours(DAY, "work") == DayHours(540, 1020)
        assert schedule.get_available_hours(DAY) == DayHours(360, 1320)
        # Saturday has no work hours, so waking hours are used
        assert schedule.get_available_hours(date(2026, 1, 17), "work") == DayHours(360, 1320)

    def test_holiday_uses_weekend_schedule(self):
        holiday = date(2026, 1, 19)
        schedule = WeeklySchedule(holidays=[holiday])

        assert schedule.is_weekend(holiday) is True
        assert schedule.is_work_day(holiday) is False

    def test_from_dict_with_overrides(self):
        schedule = WeeklySchedule.from_dict({
            'defaultSchedule': {'weekend': {'awakePeriod': {'start': 8, 'end': 23}}},
            'overrides': {'Friday': {'workPeriod': {'start': 9, 'end': 13}}},
        })

        friday = date(2026, 1, 16)
        assert schedule.get_work_hours(friday) == DayHours(540, 780)
        assert schedule.get_waking_hours(date(2026, 1, 17)) == DayHours(480, 1380)

    def test_unknown_override_day(self):
        with pytest.raises(ConfigError, match="Unknown weekday"):
            WeeklySchedule.from_dict({'overrides': {'Funday': {}}})


class TestEngineConfig:
    """Tests for EngineConfig parsing."""

    def test_from_dict(self, engine_config):
        assert engine_config.timezone == 'UTC'
        assert [g.id for g in engine_config.goals] == ['writing', 'exercise']
        assert engine_config.coverage_rules[0].buffer_before_minutes == 60
        assert engine_config.movable_patterns == ['focus', 'gym']
        assert engine_config.day_parts == DayPartWindows()

    def test_window_for(self, engine_config):
        assert engine_config.window_for(DAY) == Interval(at(6), at(22))
        assert engine_config.window_for(DAY, "work") == Interval(at(9), at(17))

    def test_defaults(self):
        config = EngineConfig.from_dict({})

        assert config.min_gap_minutes == 30
        assert config.goals == []
