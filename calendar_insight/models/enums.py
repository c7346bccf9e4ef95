# File: calendar_insight/models/enums.py

from dataclasses import dataclass
from enum import Enum
from typing import Dict


class CalendarType(Enum):
    """How a calendar's events affect time analysis."""
    ACTIVE = "active"              # Counts as time spent, blocks scheduling
    AVAILABILITY = "availability"  # Context only (e.g. on-call rotation)
    REFERENCE = "reference"        # FYI only (e.g. company holidays)
    BLOCKING = "blocking"          # Blocks time, no time tracking (e.g. holds)


class DayPart(Enum):
    """Preferred time of day for a goal."""
    MORNING = "morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"
    NONE = "none"


class CoverageStatus(Enum):
    """Outcome of a coverage rule for one trigger."""
    SATISFIED = "satisfied"
    MISSING = "missing"
    ORPHANED = "orphaned"


@dataclass(frozen=True)
class CalendarTypeBehavior:
    counts_for_time_tracking: bool
    fills_gaps: bool
    blocks_scheduling: bool


CALENDAR_TYPE_BEHAVIOR: Dict[CalendarType, CalendarTypeBehavior] = {
    CalendarType.ACTIVE: CalendarTypeBehavior(True, True, True),
    CalendarType.AVAILABILITY: CalendarTypeBehavior(False, False, False),
    CalendarType.REFERENCE: CalendarTypeBehavior(False, False, False),
    CalendarType.BLOCKING: CalendarTypeBehavior(False, True, True),
}


def parse_calendar_type(value) -> CalendarType:
    """Accept an enum member or its string value (case-insensitive)."""
    if isinstance(value, CalendarType):
        return value
    return CalendarType(str(value).strip().lower())


def parse_day_part(value) -> DayPart:
    """Accept an enum member, its string value, or None (no preference)."""
    if isinstance(value, DayPart):
        return value
    if value is None or str(value).strip() == "":
        return DayPart.NONE
    return DayPart(str(value).strip().lower())
