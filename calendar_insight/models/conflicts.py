from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .calendar import Event, Interval


@dataclass
class OverlapGroup:
    """A maximal set of transitively overlapping events."""
    id: str
    span: Interval
    events: List[Event]
    suggested_attendance: List[str] = field(default_factory=list)
    split_minutes: Optional[Dict[str, float]] = None

    @property
    def event_ids(self) -> List[str]:
        return [e.id for e in self.events]

    def get_event(self, event_id: str) -> Optional[Event]:
        for event in self.events:
            if event.id == event_id:
                return event
        return None

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'span': self.span.to_dict(),
            'event_ids': self.event_ids,
            'suggested_attendance': list(self.suggested_attendance),
            'split_minutes': dict(self.split_minutes) if self.split_minutes is not None else None,
        }


@dataclass
class AttendanceDecision:
    """The caller's chosen subset for a group and the resulting time split."""
    group_id: str
    attending: List[str]
    declined: List[str]
    split_minutes: Dict[str, float]
