# File: calendar_insight/models/analysis.py

from dataclasses import dataclass, field
from datetime import date
from typing import List

from .calendar import Event, Interval
from .schedule import Gap


@dataclass
class CategorySummary:
    """Time spent in one category."""
    category: str
    total_minutes: float = 0.0
    event_count: int = 0
    titles: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            'category': self.category,
            'total_minutes': self.total_minutes,
            'event_count': self.event_count,
            'titles': list(self.titles),
        }


@dataclass
class DaySummary:
    """Scheduled vs. unstructured time for a single local date."""
    day: date
    window: Interval
    scheduled_minutes: float
    gap_minutes: float
    events: List[Event] = field(default_factory=list)
    all_day_events: List[Event] = field(default_factory=list)
    gaps: List[Gap] = field(default_factory=list)
    by_category: List[CategorySummary] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            'day': self.day.isoformat(),
            'window': self.window.to_dict(),
            'scheduled_minutes': self.scheduled_minutes,
            'gap_minutes': self.gap_minutes,
            'events': [e.id for e in self.events],
            'all_day_events': [e.id for e in self.all_day_events],
            'gaps': [g.to_dict() for g in self.gaps],
            'by_category': [c.to_dict() for c in self.by_category],
        }
