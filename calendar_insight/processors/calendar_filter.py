# File: calendar_insight/processors/calendar_filter.py
"""
Calendar classification.
Decides how each calendar's events are treated (active, availability,
reference, blocking) or whether the calendar is left out entirely.
"""

import dataclasses
from typing import Dict, Iterable, List, Optional

from calendar_insight.utils.logger import setup_logger
from calendar_insight.models import CalendarFilterConfig, CalendarInfo, CalendarType, Event

logger = setup_logger(__name__)

_AVAILABILITY_HINTS = ("on call", "oncall", "on-call")
_TIME_OFF_HINTS = ("vacation", "time off", "pto", "out of office")
_SHARED_HINTS = ("company calendar", "social events")


def matches_calendar(pattern: str, calendar: CalendarInfo) -> bool:
    """Exact id match or case-insensitive name match."""
    return pattern == calendar.id or pattern.lower() == calendar.summary.lower()


def resolve_calendar_type(calendar: CalendarInfo, config: CalendarFilterConfig) -> Optional[CalendarType]:
    """
    Resolve a calendar's type.

    Order: deny list (excluded), explicit types, allow list (active), then the
    default for primary, owned or shared calendars.

    Returns:
        The CalendarType, or None when the calendar is excluded
    """
    if any(matches_calendar(p, calendar) for p in config.deny_list):
        return None

    for pattern, calendar_type in config.calendar_types.items():
        if matches_calendar(pattern, calendar):
            return calendar_type

    if any(matches_calendar(p, calendar) for p in config.allow_list):
        return CalendarType.ACTIVE

    if calendar.primary:
        return config.default_primary
    if calendar.is_owner:
        return config.default_owner
    return config.default_shared


def suggest_calendar_type(calendar_name: str) -> Optional[CalendarType]:
    """Guess a type from the calendar name, or None when nothing stands out."""
    name = calendar_name.lower()
    if any(hint in name for hint in _AVAILABILITY_HINTS):
        return CalendarType.AVAILABILITY
    if any(hint in name for hint in _TIME_OFF_HINTS):
        return CalendarType.REFERENCE
    if any(hint in name for hint in _SHARED_HINTS):
        return CalendarType.REFERENCE
    if "team calendar" in name and "my team" not in name:
        return CalendarType.REFERENCE
    return None


class CalendarFilter:
    """Applies a CalendarFilterConfig to fetched calendars and events."""

    def __init__(self, config: Optional[CalendarFilterConfig] = None):
        self.config = config or CalendarFilterConfig()
        self.logger = setup_logger(__name__)

    def resolve_all(self, calendars: Iterable[CalendarInfo]) -> Dict[str, Optional[CalendarType]]:
        """Map of "account:calendar" -> type (None for excluded)."""
        resolved = {}
        for calendar in calendars:
            calendar_type = resolve_calendar_type(calendar, self.config)
            resolved[f"{calendar.account_id}:{calendar.id}"] = calendar_type
            self.logger.debug(
                f"Calendar '{calendar.summary or calendar.id}' -> "
                f"{calendar_type.value if calendar_type else 'excluded'}"
            )
        return resolved

    def apply(self, events: Iterable[Event], calendars: Iterable[CalendarInfo]) -> List[Event]:
        """
        Stamp each event with its calendar's resolved type and drop excluded calendars.

        Events on calendars that were not listed keep their own type.
        """
        resolved = self.resolve_all(calendars)
        kept = []
        dropped = 0
        for event in events:
            key = f"{event.account_id}:{event.calendar_id}"
            if key not in resolved:
                kept.append(event)
                continue
            calendar_type = resolved[key]
            if calendar_type is None:
                dropped += 1
                continue
            if calendar_type != event.calendar_type:
                event = dataclasses.replace(event, calendar_type=calendar_type)
            kept.append(event)

        self.logger.info(f"Calendar filter kept {len(kept)} events, excluded {dropped}")
        return kept
