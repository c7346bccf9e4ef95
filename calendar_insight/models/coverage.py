# File: calendar_insight/models/coverage.py
"""
Data models for dependent-coverage rules and their proposals.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Pattern, Tuple

from .calendar import Interval
from .common import first_present
from .enums import CoverageStatus
from .errors import ConfigError, ConfigFieldError


@dataclass
class CoverageRule:
    """A trigger event that obligates a separately scheduled coverage window."""
    id: str
    trigger_calendars: List[str]
    trigger_pattern: str
    coverage_calendars: List[str]
    create_account: str
    create_calendar: str
    buffer_before_minutes: int = 0
    buffer_after_minutes: int = 0
    min_overlap_fraction: float = 1.0
    opt_out_markers: List[str] = field(default_factory=list)
    draft_title: str = "Coverage: {title}"

    def __post_init__(self):
        problems = []
        if not self.id:
            problems.append(ConfigFieldError('id', "Rule id is required"))
        if not self.trigger_calendars:
            problems.append(ConfigFieldError('trigger_calendars', "At least one trigger calendar is required"))
        if not self.coverage_calendars:
            problems.append(ConfigFieldError('coverage_calendars', "At least one coverage calendar is required"))
        if not self.create_account or not self.create_calendar:
            problems.append(ConfigFieldError('create_calendar', "Creation account and calendar are required"))
        if self.buffer_before_minutes < 0 or self.buffer_after_minutes < 0:
            problems.append(ConfigFieldError('buffer', "Buffers cannot be negative"))
        if not 0 < self.min_overlap_fraction <= 1:
            problems.append(ConfigFieldError(
                'min_overlap_fraction', f"Must be in (0, 1], got {self.min_overlap_fraction}"))
        try:
            self._compiled = re.compile(self.trigger_pattern or "", re.IGNORECASE)
        except re.error as e:
            problems.append(ConfigFieldError('trigger_pattern', f"Invalid pattern: {e}"))
        try:
            self.draft_title.format(title="")
        except (KeyError, IndexError, ValueError) as e:
            problems.append(ConfigFieldError('draft_title', f"Invalid title template: {e!r}"))
        if problems:
            raise ConfigError(
                f"Invalid coverage rule '{self.id}': " + "; ".join(str(p) for p in problems),
                problems,
            )

    @property
    def pattern(self) -> Pattern:
        return self._compiled

    def find_opt_out(self, title: str, description: Optional[str] = None) -> Optional[Tuple[str, str]]:
        """
        First opt-out marker present, as (field, marker).

        The title is checked before the description; matching is case-insensitive.
        """
        for field_name, text in (('title', title or ''), ('description', description or '')):
            lowered = text.lower()
            for marker in self.opt_out_markers:
                if marker and marker.lower() in lowered:
                    return field_name, marker
        return None


@dataclass(frozen=True)
class CoverageLink:
    """A previously accepted coverage event and the trigger it was created for."""
    coverage_event_id: str
    trigger_event_id: str
    rule_id: Optional[str] = None


@dataclass(frozen=True)
class DraftEvent:
    """An event the caller may create through the calendar provider."""
    account_id: str
    calendar_id: str
    title: str
    start: datetime
    end: datetime
    description: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            'account_id': self.account_id,
            'calendar_id': self.calendar_id,
            'title': self.title,
            'start': self.start.isoformat(),
            'end': self.end.isoformat(),
            'description': self.description,
        }


@dataclass(frozen=True)
class CoverageProposal:
    rule_id: Optional[str]
    trigger_event_id: str
    status: CoverageStatus
    required_window: Optional[Interval] = None
    covering_event_id: Optional[str] = None
    draft: Optional[DraftEvent] = None
    covered_minutes: float = 0.0

    @property
    def required_minutes(self) -> float:
        return self.required_window.duration_minutes() if self.required_window else 0.0

    @property
    def coverage_fraction(self) -> float:
        """Share of the required window covered by the best single coverage event."""
        if self.required_minutes <= 0:
            return 0.0
        return min(self.covered_minutes / self.required_minutes, 1.0)

    @property
    def missing_minutes(self) -> float:
        return max(0.0, self.required_minutes - self.covered_minutes)

    def to_dict(self) -> dict:
        return {
            'rule_id': self.rule_id,
            'trigger_event_id': self.trigger_event_id,
            'status': self.status.value,
            'required_window': self.required_window.to_dict() if self.required_window else None,
            'covering_event_id': self.covering_event_id,
            'draft': self.draft.to_dict() if self.draft else None,
            'required_minutes': self.required_minutes,
            'covered_minutes': self.covered_minutes,
            'coverage_fraction': self.coverage_fraction,
            'missing_minutes': self.missing_minutes,
        }


@dataclass(frozen=True)
class CoverageOptOut:
    """A trigger event the rule would apply to, suppressed by an opt-out marker."""
    rule_id: str
    trigger_event_id: str
    title: str
    matched_in: str
    token: str

    def to_dict(self) -> dict:
        return {
            'rule_id': self.rule_id,
            'trigger_event_id': self.trigger_event_id,
            'title': self.title,
            'matched_in': self.matched_in,
            'token': self.token,
        }


def _as_list(value) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return [str(v) for v in value]


def coverage_rule_from_dict(data: dict) -> CoverageRule:
    """Create CoverageRule from dictionary."""
    try:
        before = int(first_present(data, 'buffer_before_minutes', 'bufferBeforeMinutes', default=0))
        after = int(first_present(data, 'buffer_after_minutes', 'bufferAfterMinutes', default=0))
        fraction = float(first_present(data, 'min_overlap_fraction', 'minOverlapFraction', default=1.0))
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Coverage rule {data.get('id', '?')} has a non-numeric field: {e}") from e

    return CoverageRule(
        id=str(first_present(data, 'id', default='')),
        trigger_calendars=_as_list(first_present(data, 'trigger_calendars', 'triggerCalendars')),
        trigger_pattern=str(first_present(data, 'trigger_pattern', 'triggerPattern', default='')),
        coverage_calendars=_as_list(first_present(data, 'coverage_calendars', 'coverageCalendars')),
        create_account=str(first_present(data, 'create_account', 'createAccount', default='')),
        create_calendar=str(first_present(data, 'create_calendar', 'createCalendar', default='')),
        buffer_before_minutes=before,
        buffer_after_minutes=after,
        min_overlap_fraction=fraction,
        opt_out_markers=_as_list(first_present(data, 'opt_out_markers', 'optOutMarkers')),
        draft_title=str(first_present(data, 'draft_title', 'draftTitle', default="Coverage: {title}")),
    )


def coverage_link_from_dict(data: dict) -> CoverageLink:
    return CoverageLink(
        coverage_event_id=str(first_present(data, 'coverage_event_id', 'coverageEventId')),
        trigger_event_id=str(first_present(data, 'trigger_event_id', 'triggerEventId')),
        rule_id=first_present(data, 'rule_id', 'ruleId'),
    )
