# File: calendar_insight/processors/gap_finder.py
"""
Free-time module.
Merges busy intervals inside an active window and returns the complement
as gaps of at least a minimum duration.
"""

import datetime
from typing import Iterable, List, Sequence, Tuple

from calendar_insight.utils.logger import setup_logger
from calendar_insight.models import (
    DEFAULT_MIN_GAP_MINUTES,
    Event,
    Gap,
    Interval,
    WeeklySchedule,
)

logger = setup_logger(__name__)


def merge_intervals(intervals: Iterable[Interval]) -> List[Interval]:
    """Coalesce overlapping or touching intervals into sorted runs."""
    ordered = sorted(intervals, key=lambda i: (i.start, i.end))
    if not ordered:
        return []

    merged: List[Interval] = [Interval(ordered[0].start, ordered[0].end)]
    for current in ordered[1:]:
        last = merged[-1]
        if current.start <= last.end:
            if current.end > last.end:
                merged[-1] = Interval(last.start, current.end)
        else:
            merged.append(Interval(current.start, current.end))
    return merged


def subtract_intervals(window: Interval, busy_runs: Sequence[Interval]) -> List[Interval]:
    """Complement of sorted, disjoint runs inside a window."""
    free: List[Interval] = []
    cursor = window.start
    for run in busy_runs:
        if run.start > cursor:
            free.append(Interval(cursor, min(run.start, window.end)))
        cursor = max(cursor, run.end)
        if cursor >= window.end:
            break
    if cursor < window.end:
        free.append(Interval(cursor, window.end))
    return free


def _blocks_time(item: Interval) -> bool:
    if isinstance(item, Event):
        return item.occupies_time
    return True


class GapFinder:
    """Computes unscheduled time inside bounded windows."""

    def __init__(self, min_gap_minutes: int = DEFAULT_MIN_GAP_MINUTES):
        """
        Args:
            min_gap_minutes: Shorter free segments are discarded
        """
        self.min_gap_minutes = min_gap_minutes
        self.logger = setup_logger(__name__)

    def merge_busy(self, window: Interval, events: Iterable[Interval]) -> List[Interval]:
        """
        Merged busy runs clipped to the window.

        Only active/blocking, non all-day events occupy time. Events partially
        outside the window are clipped, events fully outside contribute nothing.
        """
        clipped = []
        for item in events:
            if not _blocks_time(item):
                continue
            part = item.clip(window.start, window.end)
            if part is not None:
                clipped.append(part)
        return merge_intervals(clipped)

    def find_gaps(self, window: Interval, events: Iterable[Interval]) -> List[Gap]:
        """
        Free segments of the window at least min_gap_minutes long, sorted by start.
        """
        busy_runs = self.merge_busy(window, events)
        gaps = [
            Gap.from_interval(segment)
            for segment in subtract_intervals(window, busy_runs)
            if segment.duration_minutes() >= self.min_gap_minutes
        ]
        self.logger.debug(
            f"Window {window.start.isoformat()} - {window.end.isoformat()}: "
            f"{len(busy_runs)} busy runs, {len(gaps)} gaps"
        )
        return gaps

    def find_gaps_in_windows(self, windows: Iterable[Interval], events: Sequence[Interval]) -> List[Gap]:
        """Gaps for several windows, concatenated in start order."""
        gaps: List[Gap] = []
        for window in sorted(windows, key=lambda w: w.start):
            gaps.extend(self.find_gaps(window, events))
        return gaps

    def find_gaps_for_range(
        self,
        events: Sequence[Interval],
        start_date: datetime.date,
        end_date: datetime.date,
        schedule: WeeklySchedule,
        timezone: str,
        skip_weekends: bool = False,
        goal_type: str = "any",
    ) -> List[Gap]:
        """
        Gaps for every local date in [start_date, end_date).

        Each date's window comes from the weekly schedule (waking hours, or
        work hours for work goals); weekends and holidays can be skipped.
        """
        windows = [window for _, window in build_windows(
            start_date, end_date, schedule, timezone, skip_weekends, goal_type)]
        gaps = self.find_gaps_in_windows(windows, events)
        self.logger.info(
            f"Found {len(gaps)} gaps ({sum(g.duration_minutes() for g in gaps):.0f} min) "
            f"between {start_date} and {end_date}"
        )
        return gaps


def merge_busy_intervals(window: Interval, events: Iterable[Interval]) -> List[Interval]:
    return GapFinder().merge_busy(window, events)


def find_gaps(window: Interval, events: Iterable[Interval],
              min_gap_minutes: int = DEFAULT_MIN_GAP_MINUTES) -> List[Gap]:
    """Convenience wrapper around GapFinder.find_gaps."""
    return GapFinder(min_gap_minutes).find_gaps(window, events)


def build_windows(
    start_date: datetime.date,
    end_date: datetime.date,
    schedule: WeeklySchedule,
    timezone: str,
    skip_weekends: bool = False,
    goal_type: str = "any",
) -> List[Tuple[datetime.date, Interval]]:
    """Active window per local date in [start_date, end_date)."""
    windows = []
    day = start_date
    while day < end_date:
        if not (skip_weekends and schedule.is_weekend(day)):
            hours = schedule.get_available_hours(day, goal_type)
            windows.append((day, hours.window_for(day, timezone)))
        day += datetime.timedelta(days=1)
    return windows
