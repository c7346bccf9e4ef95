# File: calendar_insight/processors/time_analysis.py
"""
Time accounting helpers: where the week's time went, without double-counting
overlapping events.
"""

import datetime
from typing import Dict, Iterable, List

from calendar_insight.utils.logger import setup_logger
from calendar_insight.models import (
    CategorySummary,
    DaySummary,
    DEFAULT_MIN_GAP_MINUTES,
    Event,
    WeeklySchedule,
)
from calendar_insight.processors.gap_finder import GapFinder, merge_intervals

logger = setup_logger(__name__)

UNCATEGORIZED = "uncategorized"


def _tracked(events: Iterable[Event]) -> List[Event]:
    """Timed events on calendars that count toward time tracking."""
    return [e for e in events if e.counts_for_time_tracking and not e.is_all_day]


def effective_busy_minutes(events: Iterable[Event]) -> float:
    """Scheduled minutes with overlapping events merged (no double counting)."""
    return sum(run.duration_minutes() for run in merge_intervals(_tracked(events)))


def category_totals(events: Iterable[Event]) -> List[CategorySummary]:
    """Raw minutes per category, largest first. Only active calendars count."""
    totals: Dict[str, CategorySummary] = {}
    for event in _tracked(events):
        key = event.category or UNCATEGORIZED
        summary = totals.setdefault(key, CategorySummary(category=key))
        summary.total_minutes += event.duration_minutes()
        summary.event_count += 1
        summary.titles.append(event.title)
    return sorted(totals.values(), key=lambda s: (-s.total_minutes, s.category))


def scheduled_minutes_by_category(events: Iterable[Event]) -> Dict[str, float]:
    """Already-scheduled minutes keyed by category, as the allocator expects."""
    return {s.category: s.total_minutes for s in category_totals(events)}


def summarize_day(
    day: datetime.date,
    events: Iterable[Event],
    schedule: WeeklySchedule,
    timezone: str,
    min_gap_minutes: int = DEFAULT_MIN_GAP_MINUTES,
    goal_type: str = "any",
) -> DaySummary:
    """
    Summarize one local date.

    Gaps are measured inside the day's schedule window; scheduled time counts
    every tracked timed event that touches the window.
    """
    window = schedule.get_available_hours(day, goal_type).window_for(day, timezone)
    events = list(events)

    in_window = [e for e in events if e.overlaps(window)]
    timed = sorted((e for e in in_window if not e.is_all_day), key=lambda e: (e.start, e.id))
    all_day = [e for e in events if e.is_all_day and e.start.date() <= day < e.end.date()]

    gaps = GapFinder(min_gap_minutes).find_gaps(window, timed)
    summary = DaySummary(
        day=day,
        window=window,
        scheduled_minutes=effective_busy_minutes(timed),
        gap_minutes=sum(g.duration_minutes() for g in gaps),
        events=timed,
        all_day_events=all_day,
        gaps=gaps,
        by_category=category_totals(timed),
    )
    logger.debug(
        f"{day}: {format_duration(summary.scheduled_minutes)} scheduled, "
        f"{format_duration(summary.gap_minutes)} free"
    )
    return summary


def format_duration(minutes: float) -> str:
    """Format minutes as '45m', '2h' or '1h 30m'."""
    total = int(round(minutes))
    hours, mins = divmod(total, 60)
    if hours == 0:
        return f"{mins}m"
    if mins == 0:
        return f"{hours}h"
    return f"{hours}h {mins}m"


def week_start(day: datetime.date, first_weekday: int = 6) -> datetime.date:
    """
    First day of the week containing `day`.

    Args:
        day: Any date (a datetime is reduced to its date)
        first_weekday: 0=Monday ... 6=Sunday (default Sunday)
    """
    if isinstance(day, datetime.datetime):
        day = day.date()
    return day - datetime.timedelta(days=(day.weekday() - first_weekday) % 7)
