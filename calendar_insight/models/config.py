# File: calendar_insight/models/config.py
"""
Data models for engine configuration.
"""

import datetime
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union

import pytz

from .calendar import Interval
from .common import first_present, as_bool, parse_date
from .coverage import CoverageRule, coverage_rule_from_dict
from .enums import CalendarType, DayPart, parse_calendar_type
from .errors import ConfigError
from .goals import Goal, goal_from_dict

DAY_NAMES = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]

DEFAULT_MIN_GAP_MINUTES = 30


def _minute_of_day(value: Union[int, float, str]) -> int:
    """Convert an hour number (9, 17.5) or "HH:MM" string to minutes after midnight."""
    if isinstance(value, str):
        if ':' in value:
            hours, minutes = value.strip().split(':', 1)
            return int(hours) * 60 + int(minutes)
        value = float(value)
    return int(round(float(value) * 60))


@dataclass(frozen=True)
class DayHours:
    """A daily time period, stored as minutes after local midnight."""
    start_minute: int
    end_minute: int

    def __post_init__(self):
        if not 0 <= self.start_minute < self.end_minute <= 24 * 60:
            raise ConfigError(
                f"Invalid day hours {self.start_minute}-{self.end_minute}: "
                f"start must precede end within one day"
            )

    @classmethod
    def parse(cls, value) -> 'DayHours':
        """Accept {"start": 6, "end": 22}, {"start": "06:00", ...} or "06:00-22:00"."""
        if isinstance(value, DayHours):
            return value
        try:
            if isinstance(value, str):
                start, end = value.split('-')
                return cls(_minute_of_day(start), _minute_of_day(end))
            if isinstance(value, (list, tuple)):
                return cls(_minute_of_day(value[0]), _minute_of_day(value[1]))
            return cls(_minute_of_day(value['start']), _minute_of_day(value['end']))
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise ConfigError(f"Invalid day hours {value!r}: {e}") from e

    def window_for(self, day: datetime.date, timezone: str) -> Interval:
        """Localize this period on a given date."""
        tz = pytz.timezone(timezone)
        midnight = datetime.datetime.combine(day, datetime.time.min)
        start = tz.localize(midnight + datetime.timedelta(minutes=self.start_minute))
        end = tz.localize(midnight + datetime.timedelta(minutes=self.end_minute))
        return Interval(start, end)


@dataclass(frozen=True)
class DaySchedule:
    awake: DayHours
    work: Optional[DayHours] = None


def _default_weekday() -> DaySchedule:
    return DaySchedule(awake=DayHours(6 * 60, 22 * 60), work=DayHours(9 * 60, 17 * 60))


def _default_weekend() -> DaySchedule:
    return DaySchedule(awake=DayHours(6 * 60, 22 * 60), work=None)


@dataclass
class WeeklySchedule:
    """Waking and work hours by day of week."""
    weekday: DaySchedule = field(default_factory=_default_weekday)
    weekend: DaySchedule = field(default_factory=_default_weekend)
    overrides: Dict[str, DaySchedule] = field(default_factory=dict)
    holidays: List[datetime.date] = field(default_factory=list)

    def get_schedule_for_date(self, day: datetime.date) -> DaySchedule:
        """Holidays use the weekend schedule; overrides apply per weekday name."""
        if day in self.holidays:
            return self.weekend
        day_name = DAY_NAMES[day.weekday()]
        base = self.weekend if day.weekday() >= 5 else self.weekday
        return self.overrides.get(day_name, base)

    def is_weekend(self, day: datetime.date) -> bool:
        return day.weekday() >= 5 or day in self.holidays

    def is_work_day(self, day: datetime.date) -> bool:
        return self.get_schedule_for_date(day).work is not None

    def get_work_hours(self, day: datetime.date) -> Optional[DayHours]:
        return self.get_schedule_for_date(day).work

    def get_waking_hours(self, day: datetime.date) -> DayHours:
        return self.get_schedule_for_date(day).awake

    def get_available_hours(self, day: datetime.date, goal_type: str = "any") -> DayHours:
        """Work goals use work hours when the day has them; everything else uses waking hours."""
        schedule = self.get_schedule_for_date(day)
        if goal_type == "work" and schedule.work is not None:
            return schedule.work
        return schedule.awake

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> 'WeeklySchedule':
        if not data:
            return cls()
        defaults = data.get('default_schedule') or data.get('defaultSchedule') or {}

        def day_schedule(raw: Optional[dict], fallback: DaySchedule) -> DaySchedule:
            if not raw:
                return fallback
            awake_raw = first_present(raw, 'awake', 'awake_period', 'awakePeriod')
            awake = DayHours.parse(awake_raw) if awake_raw is not None else fallback.awake
            if any(k in raw for k in ('work', 'work_period', 'workPeriod')):
                work_raw = first_present(raw, 'work', 'work_period', 'workPeriod')
                work = DayHours.parse(work_raw) if work_raw is not None else None
            else:
                work = fallback.work
            return DaySchedule(awake=awake, work=work)

        weekday = day_schedule(defaults.get('weekday'), _default_weekday())
        weekend = day_schedule(defaults.get('weekend'), _default_weekend())

        overrides = {}
        for day_name, raw in (data.get('overrides') or {}).items():
            name = day_name.strip().lower()
            if name not in DAY_NAMES:
                raise ConfigError(f"Unknown weekday in schedule overrides: {day_name!r}")
            base = weekend if DAY_NAMES.index(name) >= 5 else weekday
            overrides[name] = day_schedule(raw, base)

        try:
            holidays = [parse_date(h) for h in data.get('holidays') or []]
        except ValueError as e:
            raise ConfigError(f"Invalid holiday date: {e}") from e

        return cls(weekday=weekday, weekend=weekend, overrides=overrides, holidays=holidays)


@dataclass
class DayPartWindows:
    """Local hour ranges for goal time-of-day preferences."""
    morning: DayHours = DayHours(6 * 60, 12 * 60)
    afternoon: DayHours = DayHours(12 * 60, 18 * 60)
    evening: DayHours = DayHours(18 * 60, 22 * 60)

    def hours_for(self, day_part: DayPart) -> Optional[DayHours]:
        if day_part == DayPart.NONE:
            return None
        return getattr(self, day_part.value)

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> 'DayPartWindows':
        if not data:
            return cls()
        defaults = cls()
        return cls(**{
            part: DayHours.parse(data[part]) if part in data else getattr(defaults, part)
            for part in ('morning', 'afternoon', 'evening')
        })


@dataclass
class CalendarFilterConfig:
    """Caller rules for classifying calendars."""
    calendar_types: Dict[str, CalendarType] = field(default_factory=dict)
    default_primary: CalendarType = CalendarType.ACTIVE
    default_owner: CalendarType = CalendarType.ACTIVE
    default_shared: CalendarType = CalendarType.ACTIVE
    deny_list: List[str] = field(default_factory=list)
    allow_list: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> 'CalendarFilterConfig':
        if not data:
            return cls()
        try:
            types = {k: parse_calendar_type(v)
                     for k, v in (first_present(data, 'calendar_types', 'calendarTypes', default={})).items()}
            defaults = first_present(data, 'default_type', 'defaultType', default={})
            filtering = data.get('filtering') or {}
            return cls(
                calendar_types=types,
                default_primary=parse_calendar_type(defaults.get('primary', 'active')),
                default_owner=parse_calendar_type(defaults.get('owner', 'active')),
                default_shared=parse_calendar_type(defaults.get('shared', 'active')),
                deny_list=list(first_present(filtering, 'deny_list', 'denyList', default=[])),
                allow_list=list(first_present(filtering, 'allow_list', 'allowList', default=[])),
            )
        except ValueError as e:
            raise ConfigError(f"Invalid calendar filter configuration: {e}") from e


@dataclass
class EngineConfig:
    """Complete per-call engine configuration."""
    timezone: str = "UTC"
    min_gap_minutes: int = DEFAULT_MIN_GAP_MINUTES
    schedule: WeeklySchedule = field(default_factory=WeeklySchedule)
    day_parts: DayPartWindows = field(default_factory=DayPartWindows)
    goals: List[Goal] = field(default_factory=list)
    coverage_rules: List[CoverageRule] = field(default_factory=list)
    movable_patterns: List[str] = field(default_factory=list)
    account_priority: List[str] = field(default_factory=list)
    calendar_filter: CalendarFilterConfig = field(default_factory=CalendarFilterConfig)
    skip_weekends: bool = False

    @classmethod
    def from_dict(cls, data: dict, timezone: str = "UTC",
                  min_gap_minutes: int = DEFAULT_MIN_GAP_MINUTES) -> 'EngineConfig':
        """Create EngineConfig from dictionary (e.g., loaded from JSON)."""
        goals = [goal_from_dict(g) for g in first_present(data, 'goals', 'recurringGoals', default=[])]
        rules = [coverage_rule_from_dict(r)
                 for r in first_present(data, 'coverage_rules', 'coverageRules', default=[])]
        try:
            gap_minutes = int(first_present(data, 'min_gap_minutes', 'minGapMinutes', default=min_gap_minutes))
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid min_gap_minutes: {e}") from e

        return cls(
            timezone=first_present(data, 'timezone', default=timezone),
            min_gap_minutes=gap_minutes,
            schedule=WeeklySchedule.from_dict(data.get('schedule')),
            day_parts=DayPartWindows.from_dict(first_present(data, 'day_parts', 'dayParts')),
            goals=goals,
            coverage_rules=rules,
            movable_patterns=list(first_present(data, 'movable_patterns', 'movableEventPatterns', default=[])),
            account_priority=list(first_present(data, 'account_priority', 'accountPriority', default=[])),
            calendar_filter=CalendarFilterConfig.from_dict(first_present(data, 'calendar_filter', 'calendars')),
            skip_weekends=as_bool(first_present(data, 'skip_weekends', 'skipWeekends'), False),
        )

    def window_for(self, day: datetime.date, goal_type: str = "any") -> Interval:
        """Active window for a date in the configured timezone."""
        return self.schedule.get_available_hours(day, goal_type).window_for(day, self.timezone)
