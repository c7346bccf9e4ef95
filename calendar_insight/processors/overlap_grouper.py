# File: calendar_insight/processors/overlap_grouper.py
"""
Conflict detection module.
Groups transitively overlapping events with a sweep line and suggests
the largest set of events that can be attended without conflicts.
"""

from typing import Dict, Iterable, List, Optional, Sequence

from calendar_insight.utils.logger import setup_logger
from calendar_insight.models import (
    AttendanceDecision,
    ConfigError,
    Event,
    Interval,
    OverlapGroup,
)

logger = setup_logger(__name__)

_END, _START = 0, 1  # ends sort first so back-to-back events never conflict


class _UnionFind:
    """Disjoint sets over event indices."""

    def __init__(self, size: int):
        self.parent = list(range(size))
        self.rank = [0] * size

    def find(self, i: int) -> int:
        while self.parent[i] != i:
            self.parent[i] = self.parent[self.parent[i]]
            i = self.parent[i]
        return i

    def union(self, a: int, b: int) -> None:
        root_a, root_b = self.find(a), self.find(b)
        if root_a == root_b:
            return
        if self.rank[root_a] < self.rank[root_b]:
            root_a, root_b = root_b, root_a
        self.parent[root_b] = root_a
        if self.rank[root_a] == self.rank[root_b]:
            self.rank[root_a] += 1


def calculate_overlap_minutes(a: Interval, b: Interval) -> float:
    """Minutes two intervals share (0 when they only touch)."""
    return a.overlap_minutes(b)


def calculate_split_time(attending: Sequence[Event]) -> Dict[str, float]:
    """
    Split time between events attended concurrently.

    Every instant covered by the attended events is divided evenly among the
    events running at that instant, so two events sharing 30 minutes each
    receive 15 of them.

    Returns:
        Mapping of event id -> allocated minutes
    """
    result: Dict[str, float] = {e.id: 0.0 for e in attending}
    if not attending:
        return result

    boundaries = sorted({e.start for e in attending} | {e.end for e in attending})
    for seg_start, seg_end in zip(boundaries, boundaries[1:]):
        running = [e for e in attending if e.start <= seg_start and e.end >= seg_end]
        if not running:
            continue
        share = (seg_end - seg_start).total_seconds() / 60 / len(running)
        for event in running:
            result[event.id] += share
    return result


class OverlapGrouper:
    """Finds conflicting events and suggests an attendance subset."""

    def __init__(self, account_priority: Optional[Sequence[str]] = None):
        """
        Args:
            account_priority: Accounts in tie-break order (e.g. work before personal)
        """
        self.account_priority = list(account_priority or [])
        self.logger = setup_logger(__name__)

    def build_groups(self, events: Iterable[Event]) -> List[OverlapGroup]:
        """
        Group active/blocking events whose intervals are transitively connected.

        Events on availability/reference calendars and all-day events are ignored.
        Only groups with two or more events are returned, ordered by start.
        """
        busy = [e for e in events if e.occupies_time]
        if not busy:
            return []

        uf = _UnionFind(len(busy))
        boundaries = []
        for idx, event in enumerate(busy):
            boundaries.append((event.start, _START, idx))
            boundaries.append((event.end, _END, idx))
        boundaries.sort(key=lambda b: (b[0], b[1], b[2]))

        active: Dict[int, None] = {}
        for _, kind, idx in boundaries:
            if kind == _END:
                active.pop(idx, None)
                continue
            for other in active:
                uf.union(other, idx)
            active[idx] = None

        members: Dict[int, List[int]] = {}
        for idx in range(len(busy)):
            members.setdefault(uf.find(idx), []).append(idx)

        raw_groups = []
        for indices in members.values():
            if len(indices) < 2:
                continue
            indices.sort(key=lambda i: (busy[i].start, busy[i].end, i))
            raw_groups.append(indices)
        raw_groups.sort(key=lambda ix: (busy[ix[0]].start, ix[0]))

        groups: List[OverlapGroup] = []
        for n, indices in enumerate(raw_groups):
            group_events = [busy[i] for i in indices]
            span = Interval(
                min(e.start for e in group_events),
                max(e.end for e in group_events),
            )
            group = OverlapGroup(id=f"overlap-{n}", span=span, events=group_events)
            group.suggested_attendance = self.suggest_attendance(group_events)
            groups.append(group)

        self.logger.info(
            f"Found {len(groups)} conflict groups among {len(busy)} busy events"
        )
        return groups

    def _account_rank(self, account_id: str) -> int:
        if account_id in self.account_priority:
            return self.account_priority.index(account_id)
        return len(self.account_priority)

    def suggest_attendance(self, group_events: Sequence[Event]) -> List[str]:
        """
        Maximum set of mutually non-overlapping events (earliest-end greedy).

        Ties on end time break by earlier start, then account priority, then input order.
        """
        ordered = sorted(
            enumerate(group_events),
            key=lambda pair: (pair[1].end, pair[1].start, self._account_rank(pair[1].account_id), pair[0]),
        )
        chosen: List[str] = []
        last_end = None
        for _, event in ordered:
            if last_end is None or event.start >= last_end:
                chosen.append(event.id)
                last_end = event.end
        return chosen

    def record_attendance(self, group: OverlapGroup, attending_ids: Iterable[str]) -> AttendanceDecision:
        """
        Record an arbitrary attendance choice for a group.

        Raises:
            ConfigError: if an id is not a member of the group
        """
        member_ids = group.event_ids
        attending: List[str] = []
        for event_id in attending_ids:
            if event_id not in member_ids:
                raise ConfigError(f"Event {event_id} is not part of conflict group {group.id}")
            if event_id not in attending:
                attending.append(event_id)

        split = calculate_split_time([group.get_event(i) for i in attending])
        split_minutes = {i: split.get(i, 0.0) for i in member_ids}
        declined = [i for i in member_ids if i not in attending]

        self.logger.debug(f"Group {group.id}: attending {attending}, declined {declined}")
        return AttendanceDecision(
            group_id=group.id,
            attending=attending,
            declined=declined,
            split_minutes=split_minutes,
        )

    def apply_attendance(self, groups: Sequence[OverlapGroup], attending_ids: Iterable[str]) -> List[OverlapGroup]:
        """Fill split_minutes on every group that has a recorded choice among its members."""
        chosen = set(attending_ids)
        for group in groups:
            in_group = [i for i in group.event_ids if i in chosen]
            if in_group:
                group.split_minutes = self.record_attendance(group, in_group).split_minutes
        return list(groups)
