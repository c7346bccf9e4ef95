# File: calendar_insight/models/calendar.py
"""
Interval and event models.
"""

import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from .common import parse_iso_datetime, first_present, as_bool
from .enums import CalendarType, CALENDAR_TYPE_BEHAVIOR, parse_calendar_type
from .errors import InvalidIntervalError

# Google Calendar instance ids: "<parent>_20260115" (all-day) or
# "<parent>_20260115T170000Z" (timed).
_INSTANCE_SUFFIX = re.compile(r'^(?P<parent>.+)_(?P<stamp>\d{8}(?:T\d{6}Z?)?)$')


def series_id_of(event_id: str) -> str:
    """Return the recurring series id for an instance id.

    Ids without an occurrence suffix are their own series.
    """
    if not event_id:
        return event_id
    match = _INSTANCE_SUFFIX.match(event_id)
    if match:
        return match.group('parent')
    return event_id


@dataclass(frozen=True)
class Interval:
    """Half-open time range [start, end) with timezone-aware bounds."""
    start: datetime
    end: datetime

    def __post_init__(self):
        """Validate bounds."""
        for name in ('start', 'end'):
            value = getattr(self, name)
            if not isinstance(value, datetime):
                raise InvalidIntervalError(f"Interval {name} must be a datetime, got {value!r}")
            if value.tzinfo is None or value.utcoffset() is None:
                raise InvalidIntervalError(f"Interval {name} must be timezone-aware: {value.isoformat()}")
        if self.end <= self.start:
            raise InvalidIntervalError(
                f"Interval end must be after start: {self.start.isoformat()} - {self.end.isoformat()}"
            )

    def duration_minutes(self) -> float:
        """Calculate interval duration in minutes."""
        return (self.end - self.start).total_seconds() / 60

    def overlaps(self, other: 'Interval') -> bool:
        """Check overlap; touching ends (end == start) do not overlap."""
        return self.start < other.end and other.start < self.end

    def overlap_minutes(self, other: 'Interval') -> float:
        start = max(self.start, other.start)
        end = min(self.end, other.end)
        if start >= end:
            return 0.0
        return (end - start).total_seconds() / 60

    def contains(self, instant: datetime) -> bool:
        return self.start <= instant < self.end

    def intersection(self, other: 'Interval') -> Optional['Interval']:
        """Overlapping part of two intervals, or None."""
        return self.clip(other.start, other.end)

    def clip(self, start: datetime, end: datetime) -> Optional['Interval']:
        """Clip to [start, end); None when nothing remains."""
        new_start = max(self.start, start)
        new_end = min(self.end, end)
        if new_end <= new_start:
            return None
        return Interval(new_start, new_end)

    def expand(self, before_minutes: float = 0, after_minutes: float = 0) -> 'Interval':
        return Interval(
            self.start - timedelta(minutes=before_minutes),
            self.end + timedelta(minutes=after_minutes),
        )

    def to_dict(self) -> dict:
        return {
            'start': self.start.isoformat(),
            'end': self.end.isoformat(),
            'duration_minutes': self.duration_minutes(),
        }


@dataclass(frozen=True)
class Event(Interval):
    """A calendar event as handed to the engine (already merged across accounts)."""
    id: str = ""
    account_id: str = ""
    calendar_id: str = ""
    calendar_type: CalendarType = CalendarType.ACTIVE
    category: Optional[str] = None
    recurring_parent_id: Optional[str] = None
    title: str = ""
    description: Optional[str] = None
    is_all_day: bool = False
    is_organizer: bool = True
    has_external_attendees: bool = False

    def __post_init__(self):
        """Validate the interval and convert string calendar types."""
        super().__post_init__()
        if not self.id:
            raise InvalidIntervalError("Event id is required")
        if not isinstance(self.calendar_type, CalendarType):
            object.__setattr__(self, 'calendar_type', parse_calendar_type(self.calendar_type))

    @property
    def series_id(self) -> str:
        """Logical series for update targeting."""
        return self.recurring_parent_id or series_id_of(self.id)

    @property
    def is_recurring(self) -> bool:
        return self.series_id != self.id

    @property
    def occupies_time(self) -> bool:
        """Active and blocking events block gaps and count as conflicts."""
        return CALENDAR_TYPE_BEHAVIOR[self.calendar_type].fills_gaps and not self.is_all_day

    @property
    def counts_for_time_tracking(self) -> bool:
        return CALENDAR_TYPE_BEHAVIOR[self.calendar_type].counts_for_time_tracking and not self.is_all_day

    def to_dict(self) -> dict:
        data = super().to_dict()
        data.update({
            'id': self.id,
            'account_id': self.account_id,
            'calendar_id': self.calendar_id,
            'calendar_type': self.calendar_type.value,
            'category': self.category,
            'recurring_parent_id': self.recurring_parent_id,
            'title': self.title,
        })
        return data


def event_from_dict(data: dict, default_tz: Optional[str] = None) -> Event:
    """Create Event from a dictionary using snake_case or camelCase keys."""
    raw_start = first_present(data, 'start')
    raw_end = first_present(data, 'end')
    start = parse_iso_datetime(raw_start, default_tz)
    end = parse_iso_datetime(raw_end, default_tz)
    if start is None or end is None:
        raise InvalidIntervalError(
            f"Event {data.get('id', '?')} has unparseable bounds: {raw_start!r} - {raw_end!r}"
        )
    try:
        calendar_type = parse_calendar_type(
            first_present(data, 'calendar_type', 'calendarType', default='active'))
    except ValueError as e:
        raise InvalidIntervalError(f"Event {data.get('id', '?')} has unknown calendar type: {e}") from e

    return Event(
        start=start,
        end=end,
        id=str(first_present(data, 'id', default='')),
        account_id=str(first_present(data, 'account_id', 'accountId', 'account', default='')),
        calendar_id=str(first_present(data, 'calendar_id', 'calendarId', default='primary')),
        calendar_type=calendar_type,
        category=first_present(data, 'category'),
        recurring_parent_id=first_present(data, 'recurring_parent_id', 'recurringParentId'),
        title=str(first_present(data, 'title', 'summary', default='')),
        description=first_present(data, 'description'),
        is_all_day=as_bool(first_present(data, 'is_all_day', 'isAllDay'), False),
        is_organizer=as_bool(first_present(data, 'is_organizer', 'isOrganizer'), True),
        has_external_attendees=as_bool(
            first_present(data, 'has_external_attendees', 'hasExternalAttendees'), False),
    )


@dataclass(frozen=True)
class CalendarInfo:
    """A calendar as listed by the provider, used to resolve its type."""
    id: str
    summary: str = ""
    primary: bool = False
    access_role: str = "reader"
    account_id: str = ""

    @property
    def is_owner(self) -> bool:
        return self.access_role == "owner"


def calendar_info_from_dict(data: dict, account_id: str = "") -> CalendarInfo:
    """Create CalendarInfo from a calendarList item or config entry."""
    return CalendarInfo(
        id=str(first_present(data, 'id', default='')),
        summary=str(first_present(data, 'summary', 'name', default='')),
        primary=as_bool(data.get('primary'), False),
        access_role=str(first_present(data, 'access_role', 'accessRole', default='reader')),
        account_id=account_id or str(first_present(data, 'account_id', 'accountId', default='')),
    )
