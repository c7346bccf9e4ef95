# File: calendar_insight/processors/goal_allocator.py
"""
Goal allocation module.
Packs weekly goal time into free gaps, re-places movable events that were
released to make room, and scores how much of each goal could be scheduled.
"""

import datetime
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import pytz

from calendar_insight.utils.logger import setup_logger
from calendar_insight.models import (
    AllocationResult,
    ConfigError,
    DayHours,
    DayPartWindows,
    DEFAULT_MIN_GAP_MINUTES,
    Event,
    Gap,
    Goal,
    GoalScore,
    Interval,
    ProposedSlot,
    RelocationProposal,
)
from calendar_insight.processors.gap_finder import GapFinder

logger = setup_logger(__name__)

# Minute values are compared at microsecond resolution, the finest a datetime can carve
MINUTE_DIGITS = 8


def identify_movable_events(events: Iterable[Event], patterns: Sequence[str]) -> List[Event]:
    """
    Candidate events the user could move to free up time.

    An event qualifies when its title contains one of the patterns
    (case-insensitive), it occupies time, it is not all-day, the user
    organizes it, and it has no external attendees.
    """
    lowered = [p.lower() for p in patterns if p and p.strip()]
    if not lowered:
        return []

    movable = []
    for event in events:
        if not event.occupies_time or not event.is_organizer or event.has_external_attendees:
            continue
        title = event.title.lower()
        if any(p in title for p in lowered):
            movable.append(event)
    return movable


def priority_weight(priority: int) -> float:
    """Lower rank = higher priority = larger weight."""
    return 1.0 / (1 + priority)


def allocate_goals(
    goals: Sequence[Goal],
    gaps: Iterable[Gap],
    scheduled_minutes: Optional[Dict[str, float]] = None,
    day_parts: Optional[DayPartWindows] = None,
    timezone: str = "UTC",
    min_fragment_minutes: float = DEFAULT_MIN_GAP_MINUTES,
) -> AllocationResult:
    """Convenience wrapper around GoalAllocator.allocate."""
    allocator = GoalAllocator(timezone, day_parts, min_fragment_minutes)
    return allocator.allocate(goals, gaps, scheduled_minutes)


class GoalAllocator:
    """Deterministic packing of goal sessions into gaps."""

    def __init__(
        self,
        timezone: str = "UTC",
        day_parts: Optional[DayPartWindows] = None,
        min_fragment_minutes: float = DEFAULT_MIN_GAP_MINUTES,
    ):
        """
        Args:
            timezone: Timezone used to interpret time-of-day preferences
            day_parts: Hour ranges for morning/afternoon/evening
            min_fragment_minutes: Leftover gap pieces shorter than this are dropped
        """
        self.timezone = timezone
        self.tz = pytz.timezone(timezone)
        self.day_parts = day_parts or DayPartWindows()
        self.min_fragment_minutes = min_fragment_minutes
        self.logger = setup_logger(__name__)

    # ==================== Allocation ====================

    def allocate(
        self,
        goals: Sequence[Goal],
        gaps: Iterable[Gap],
        scheduled_minutes: Optional[Dict[str, float]] = None,
    ) -> AllocationResult:
        """
        Allocate sessions for each goal in priority order.

        Args:
            goals: Goals; equal priorities are served in list order
            gaps: Free gaps (copied, never mutated)
            scheduled_minutes: Minutes already on the calendar per goal category

        Returns:
            AllocationResult with slots, per-goal scores and leftover gaps
        """
        scheduled_minutes = scheduled_minutes or {}
        pool: List[Gap] = sorted(gaps, key=lambda g: (g.start, g.end))
        ordered = [goal for _, goal in sorted(enumerate(goals), key=lambda p: (p[1].priority, p[0]))]

        result = AllocationResult(source_gaps=list(pool))
        self.logger.info(f"Allocating {len(ordered)} goals into {len(pool)} gaps")

        for goal in ordered:
            already = scheduled_minutes.get(goal.match_category, 0)
            requested = round(max(0.0, goal.target_minutes - already), MINUTE_DIGITS)
            if requested <= 0:
                self.logger.debug(f"Goal '{goal.id}' already met ({already} min scheduled)")
                result.goal_scores.append(GoalScore(goal.id, 0.0, 0.0, goal.priority))
                continue

            slots, pool = self._allocate_goal(goal, requested, pool)
            allocated = round(sum(s.duration_minutes() for s in slots), MINUTE_DIGITS)
            result.slots.extend(slots)
            result.goal_scores.append(GoalScore(goal.id, requested, allocated, goal.priority))

            if allocated < requested:
                self.logger.warning(
                    f"Goal '{goal.id}' unsatisfiable: {allocated:.0f} of {requested:.0f} min allocated"
                )
            else:
                self.logger.debug(f"Goal '{goal.id}' fully allocated in {len(slots)} sessions")

        result.remaining_gaps = pool
        self._score(goals, result)
        return result

    def _allocate_goal(self, goal: Goal, requested: float, pool: List[Gap]) -> Tuple[List[ProposedSlot], List[Gap]]:
        min_len = goal.min_minutes or 0
        max_len = goal.max_minutes
        preferred = self.day_parts.hours_for(goal.preferred_day_part)

        # Preferred gaps only if at least one exists; otherwise the whole pool
        if preferred is not None and not any(self._portion(g, preferred, min_len) for g in pool):
            self.logger.debug(f"Goal '{goal.id}': no {goal.preferred_day_part.value} gaps, using full pool")
            preferred = None

        slots: List[ProposedSlot] = []
        remaining = requested
        while remaining > 0:
            candidates = []
            for idx, gap in enumerate(pool):
                portion = self._portion(gap, preferred, min_len)
                if portion is not None:
                    candidates.append((portion.start, gap.start, idx, portion))
            if not candidates:
                break

            _, _, idx, portion = min(candidates, key=lambda c: (c[0], c[1], c[2]))
            desired = min(remaining, max_len) if max_len else remaining
            desired = max(desired, min_len)
            length = min(desired, portion.duration_minutes())

            slot_start = portion.start
            slot_end = slot_start + datetime.timedelta(minutes=length)
            if slot_end <= slot_start:
                break
            slots.append(ProposedSlot(slot_start, slot_end, goal_id=goal.id, title=goal.name))
            pool = pool[:idx] + self._carve(pool[idx], slot_start, slot_end) + pool[idx + 1:]
            remaining = round(remaining - length, MINUTE_DIGITS)

        return slots, pool

    def _portion(self, gap: Interval, preferred: Optional[DayHours], min_len: float) -> Optional[Interval]:
        """Earliest usable part of a gap: the whole gap, or its overlap with the preferred hours."""
        if preferred is None:
            return gap if gap.duration_minutes() >= min_len else None

        day = gap.start.astimezone(self.tz).date()
        last_day = gap.end.astimezone(self.tz).date()
        while day <= last_day:
            part = gap.intersection(preferred.window_for(day, self.timezone))
            if part is not None and part.duration_minutes() >= min_len:
                return part
            day += datetime.timedelta(days=1)
        return None

    def _carve(self, gap: Gap, start: datetime.datetime, end: datetime.datetime) -> List[Gap]:
        """Residual gaps (0, 1 or 2) after removing [start, end)."""
        pieces = []
        if start > gap.start:
            pieces.append(Gap(gap.start, start))
        if end < gap.end:
            pieces.append(Gap(end, gap.end))
        return [p for p in pieces if p.duration_minutes() >= self.min_fragment_minutes]

    # ==================== Scoring ====================

    def _score(self, goals: Sequence[Goal], result: AllocationResult) -> None:
        if result.goal_scores:
            weights = [priority_weight(s.priority) for s in result.goal_scores]
            result.overall_score = (
                sum(w * s.score for w, s in zip(weights, result.goal_scores)) / sum(weights)
            )

        if result.slots:
            result.average_block_minutes = (
                sum(s.duration_minutes() for s in result.slots) / len(result.slots)
            )

        by_id = {g.id: g for g in goals}
        alignment = []
        for slot in result.slots:
            hours = self.day_parts.hours_for(by_id[slot.goal_id].preferred_day_part)
            if hours is not None:
                alignment.append(self._alignment(slot, hours))
        if alignment:
            result.preference_alignment = sum(alignment) / len(alignment)

        self.logger.info(
            f"Allocation score {result.overall_score:.0%} "
            f"({len(result.slots)} slots, {len(result.unsatisfied_goal_ids)} goals short)"
        )

    def _alignment(self, slot: Interval, hours: DayHours) -> float:
        """1 inside the preferred hours, 0.5 within an hour of them, else 0."""
        local = slot.start.astimezone(self.tz)
        minute = local.hour * 60 + local.minute
        if hours.start_minute <= minute < hours.end_minute:
            return 1.0
        if hours.start_minute - 60 <= minute < hours.end_minute + 60:
            return 0.5
        return 0.0

    # ==================== Movable events ====================

    def plan_with_relocations(
        self,
        goals: Sequence[Goal],
        events: Sequence[Event],
        windows: Iterable[Interval],
        relocate_ids: Iterable[str],
        scheduled_minutes: Optional[Dict[str, float]] = None,
        gap_finder: Optional[GapFinder] = None,
    ) -> AllocationResult:
        """
        Allocate goals after releasing a caller-chosen set of movable events.

        The released events stop counting as busy, gaps are recomputed for the
        windows, goals are allocated, then each released event is re-placed in
        the remaining gaps: at its original time if that is still free, else the
        earliest fitting gap on the same day, else the earliest fitting gap.

        Raises:
            ConfigError: if a relocation id is not among the events
        """
        relocate = list(dict.fromkeys(relocate_ids))
        known = {e.id: e for e in events}
        unknown = [i for i in relocate if i not in known]
        if unknown:
            raise ConfigError(f"Cannot relocate unknown events: {', '.join(unknown)}")

        released = sorted((known[i] for i in relocate), key=lambda e: (e.start, e.id))
        staying = [e for e in events if e.id not in set(relocate)]

        finder = gap_finder or GapFinder(self.min_fragment_minutes)
        gaps = finder.find_gaps_in_windows(windows, staying)
        self.logger.info(f"Released {len(released)} movable events; {len(gaps)} gaps after release")

        result = self.allocate(goals, gaps, scheduled_minutes)

        pool = list(result.remaining_gaps)
        for event in released:
            proposal, pool = self._place_released(event, pool)
            result.relocations.append(proposal)
            if not proposal.is_placed:
                self.logger.warning(f"No room to re-place movable event '{event.title or event.id}'")
        result.remaining_gaps = pool
        return result

    def _place_released(self, event: Event, pool: List[Gap]) -> Tuple[RelocationProposal, List[Gap]]:
        original = Interval(event.start, event.end)
        length = datetime.timedelta(minutes=original.duration_minutes())
        original_day = event.start.astimezone(self.tz).date()

        choice = None
        for idx, gap in enumerate(pool):
            if gap.start <= event.start and event.end <= gap.end:
                choice = (idx, event.start)
                break
        if choice is None:
            fitting = [(idx, gap) for idx, gap in enumerate(pool) if gap.end - gap.start >= length]
            same_day = [(idx, gap) for idx, gap in fitting if gap.start.astimezone(self.tz).date() == original_day]
            for candidates in (same_day, fitting):
                if candidates:
                    idx, gap = candidates[0]
                    choice = (idx, gap.start)
                    break

        if choice is None:
            return RelocationProposal(event.id, original), pool

        idx, new_start = choice
        new_end = new_start + length
        pool = pool[:idx] + self._carve(pool[idx], new_start, new_end) + pool[idx + 1:]
        return RelocationProposal(event.id, original, new_start, new_end), pool
