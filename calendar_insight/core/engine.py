# File: calendar_insight/core/engine.py
"""
Main engine module for Calendar Insight.
Runs the conflict, free-time, goal and coverage analyses over one set of
events and returns every proposal in a single report.

Nothing here writes to a calendar: the caller decides which proposals to act on.
"""

import datetime
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence

from calendar_insight.core.config_manager import load_engine_config, validate_engine_config
from calendar_insight.utils.logger import setup_logger
from calendar_insight.models import (
    AllocationResult,
    CoverageLink,
    CoverageOptOut,
    CoverageProposal,
    EngineConfig,
    Event,
    Gap,
    OverlapGroup,
)
from calendar_insight.processors.overlap_grouper import OverlapGrouper
from calendar_insight.processors.gap_finder import GapFinder, build_windows
from calendar_insight.processors.goal_allocator import GoalAllocator, identify_movable_events
from calendar_insight.processors.coverage_evaluator import CoverageEvaluator
from calendar_insight.processors.time_analysis import scheduled_minutes_by_category, week_start

logger = setup_logger(__name__)


@dataclass
class EngineReport:
    """
    Everything one engine call proposes.

    `gaps` is free time on the calendar as fetched. When movable events are
    released, allocation runs on the larger pool in `allocation.source_gaps`.
    """
    start_date: datetime.date
    end_date: datetime.date
    overlap_groups: List[OverlapGroup] = field(default_factory=list)
    gaps: List[Gap] = field(default_factory=list)
    allocation: AllocationResult = field(default_factory=AllocationResult)
    coverage: List[CoverageProposal] = field(default_factory=list)
    coverage_opt_outs: List[CoverageOptOut] = field(default_factory=list)
    movable_candidates: List[Event] = field(default_factory=list)
    scheduled_minutes: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            'start_date': self.start_date.isoformat(),
            'end_date': self.end_date.isoformat(),
            'overlap_groups': [g.to_dict() for g in self.overlap_groups],
            'gaps': [g.to_dict() for g in self.gaps],
            'allocation': self.allocation.to_dict(),
            'coverage': [p.to_dict() for p in self.coverage],
            'coverage_opt_outs': [o.to_dict() for o in self.coverage_opt_outs],
            'movable_candidates': [e.id for e in self.movable_candidates],
            'scheduled_minutes': dict(self.scheduled_minutes),
        }


class SchedulingEngine:
    """
    Coordinates the four analyses.

    Overlap grouping, gap finding and coverage evaluation each read the same
    normalized events; the gaps feed goal allocation.
    """

    def __init__(self, config: EngineConfig):
        """
        Args:
            config: Engine configuration, validated here before any computation

        Raises:
            ConfigError: if the configuration is invalid
        """
        validate_engine_config(config)
        self.config = config

        self.overlap_grouper = OverlapGrouper(config.account_priority)
        self.gap_finder = GapFinder(config.min_gap_minutes)
        self.goal_allocator = GoalAllocator(
            timezone=config.timezone,
            day_parts=config.day_parts,
            min_fragment_minutes=config.min_gap_minutes,
        )
        self.coverage_evaluator = CoverageEvaluator()
        self.logger = setup_logger(__name__)

    @classmethod
    def from_config_file(cls, path: Optional[Path] = None) -> 'SchedulingEngine':
        return cls(load_engine_config(path))

    def analyze(
        self,
        events: Iterable[Event],
        start_date: datetime.date,
        end_date: datetime.date,
        known_links: Iterable[CoverageLink] = (),
        relocate_ids: Optional[Sequence[str]] = None,
        attending_ids: Optional[Sequence[str]] = None,
    ) -> EngineReport:
        """
        Analyze the local dates in [start_date, end_date).

        Args:
            events: Normalized events merged across accounts
            start_date: First local date
            end_date: Day after the last local date
            known_links: Coverage accepted in earlier runs (for orphan detection)
            relocate_ids: Movable events the user agreed to move
            attending_ids: Attendance choices for conflict groups

        Returns:
            EngineReport with every proposal
        """
        events = list(events)
        self.logger.info("=" * 60)
        self.logger.info(f"Analyzing {len(events)} events from {start_date} to {end_date}")
        self.logger.info("=" * 60)

        report = EngineReport(start_date=start_date, end_date=end_date)

        # Conflicts
        report.overlap_groups = self.overlap_grouper.build_groups(events)
        if attending_ids:
            self.overlap_grouper.apply_attendance(report.overlap_groups, attending_ids)

        # Free time
        windows = [window for _, window in build_windows(
            start_date, end_date, self.config.schedule, self.config.timezone, self.config.skip_weekends)]
        report.gaps = self.gap_finder.find_gaps_in_windows(windows, events)

        # Goals
        report.scheduled_minutes = scheduled_minutes_by_category(events)
        report.movable_candidates = identify_movable_events(events, self.config.movable_patterns)
        if relocate_ids:
            report.allocation = self.goal_allocator.plan_with_relocations(
                self.config.goals, events, windows, relocate_ids,
                scheduled_minutes=report.scheduled_minutes,
                gap_finder=self.gap_finder,
            )
        else:
            report.allocation = self.goal_allocator.allocate(
                self.config.goals, report.gaps, report.scheduled_minutes)

        # Coverage
        report.coverage = self.coverage_evaluator.evaluate(
            events, self.config.coverage_rules, known_links)
        report.coverage_opt_outs = self.coverage_evaluator.evaluate_opt_outs(events, self.config.coverage_rules)

        self.logger.info(
            f"Analysis complete: {len(report.overlap_groups)} conflicts, {len(report.gaps)} gaps, "
            f"{len(report.allocation.slots)} proposed sessions, {len(report.coverage)} coverage proposals"
        )
        return report

    def analyze_week(self, events: Iterable[Event], day: datetime.date,
                     known_links: Iterable[CoverageLink] = (), **kwargs) -> EngineReport:
        """Analyze the Sunday-to-Saturday week containing `day`."""
        start = week_start(day)
        return self.analyze(events, start, start + datetime.timedelta(days=7), known_links, **kwargs)
