from .enums import (
    CalendarType,
    CalendarTypeBehavior,
    CALENDAR_TYPE_BEHAVIOR,
    CoverageStatus,
    DayPart,
)
from .errors import EngineError, InvalidIntervalError, ConfigError, ConfigFieldError
from .common import parse_iso_datetime
from .calendar import Interval, Event, CalendarInfo, event_from_dict, calendar_info_from_dict, series_id_of
from .goals import Goal, goal_from_dict
from .coverage import (
    CoverageRule,
    CoverageLink,
    CoverageProposal,
    CoverageOptOut,
    DraftEvent,
    coverage_rule_from_dict,
    coverage_link_from_dict,
)
from .schedule import Gap, ProposedSlot, GoalScore, AllocationResult, RelocationProposal
from .conflicts import OverlapGroup, AttendanceDecision
from .analysis import CategorySummary, DaySummary
from .config import (
    DayHours,
    DaySchedule,
    WeeklySchedule,
    DayPartWindows,
    CalendarFilterConfig,
    EngineConfig,
    DEFAULT_MIN_GAP_MINUTES,
)

__all__ = [
    "CalendarType",
    "CalendarTypeBehavior",
    "CALENDAR_TYPE_BEHAVIOR",
    "CoverageStatus",
    "DayPart",
    "EngineError",
    "InvalidIntervalError",
    "ConfigError",
    "ConfigFieldError",
    "parse_iso_datetime",
    "Interval",
    "Event",
    "event_from_dict",
    "CalendarInfo",
    "calendar_info_from_dict",
    "series_id_of",
    "Goal",
    "goal_from_dict",
    "CoverageRule",
    "CoverageLink",
    "CoverageProposal",
    "CoverageOptOut",
    "DraftEvent",
    "coverage_rule_from_dict",
    "coverage_link_from_dict",
    "Gap",
    "ProposedSlot",
    "GoalScore",
    "AllocationResult",
    "RelocationProposal",
    "OverlapGroup",
    "AttendanceDecision",
    "CategorySummary",
    "DaySummary",
    "DayHours",
    "DaySchedule",
    "WeeklySchedule",
    "DayPartWindows",
    "CalendarFilterConfig",
    "EngineConfig",
    "DEFAULT_MIN_GAP_MINUTES",
]
