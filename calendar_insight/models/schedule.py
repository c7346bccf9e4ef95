# File: calendar_insight/models/schedule.py

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from .calendar import Interval


@dataclass(frozen=True)
class Gap(Interval):
    """Unscheduled time inside an active window."""

    @classmethod
    def from_interval(cls, interval: Interval) -> 'Gap':
        return cls(interval.start, interval.end)


@dataclass(frozen=True)
class ProposedSlot(Interval):
    """A session carved out of a gap for one goal."""
    goal_id: str = ""
    title: str = ""

    def to_dict(self) -> dict:
        data = super().to_dict()
        data.update({'goal_id': self.goal_id, 'title': self.title})
        return data


@dataclass
class GoalScore:
    goal_id: str
    requested_minutes: float
    allocated_minutes: float
    priority: int

    @property
    def score(self) -> float:
        """Allocated / requested, 0-1. Nothing requested counts as satisfied."""
        if self.requested_minutes <= 0:
            return 1.0
        return min(self.allocated_minutes / self.requested_minutes, 1.0)

    @property
    def is_satisfied(self) -> bool:
        return self.allocated_minutes >= self.requested_minutes

    @property
    def unmet_minutes(self) -> float:
        return max(0.0, self.requested_minutes - self.allocated_minutes)

    def to_dict(self) -> dict:
        return {
            'goal_id': self.goal_id,
            'requested_minutes': self.requested_minutes,
            'allocated_minutes': self.allocated_minutes,
            'score': self.score,
        }


@dataclass
class RelocationProposal:
    """New placement for a movable event released to make room for goals."""
    event_id: str
    original: Interval
    new_start: Optional[datetime] = None
    new_end: Optional[datetime] = None

    @property
    def is_placed(self) -> bool:
        return self.new_start is not None


@dataclass
class AllocationResult:
    """Proposals and scores from one allocator run."""
    slots: List[ProposedSlot] = field(default_factory=list)
    goal_scores: List[GoalScore] = field(default_factory=list)
    source_gaps: List['Gap'] = field(default_factory=list)
    remaining_gaps: List['Gap'] = field(default_factory=list)
    relocations: List[RelocationProposal] = field(default_factory=list)
    overall_score: float = 0.0
    average_block_minutes: float = 0.0
    preference_alignment: float = 0.0

    def slots_for_goal(self, goal_id: str) -> List[ProposedSlot]:
        return [s for s in self.slots if s.goal_id == goal_id]

    def score_for_goal(self, goal_id: str) -> Optional[GoalScore]:
        for score in self.goal_scores:
            if score.goal_id == goal_id:
                return score
        return None

    @property
    def unsatisfied_goal_ids(self) -> List[str]:
        return [s.goal_id for s in self.goal_scores if not s.is_satisfied]

    def allocated_minutes_by_goal(self) -> Dict[str, float]:
        return {s.goal_id: s.allocated_minutes for s in self.goal_scores}

    def to_dict(self) -> dict:
        return {
            'slots': [s.to_dict() for s in self.slots],
            'goal_scores': [s.to_dict() for s in self.goal_scores],
            'source_gaps': [g.to_dict() for g in self.source_gaps],
            'overall_score': self.overall_score,
            'average_block_minutes': self.average_block_minutes,
            'preference_alignment': self.preference_alignment,
            'unsatisfied_goal_ids': self.unsatisfied_goal_ids,
        }
