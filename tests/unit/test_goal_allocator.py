# File: tests/unit/test_goal_allocator.py
"""
Unit tests for GoalAllocator.
Tests packing, priorities, time-of-day preferences, scoring and relocation.
"""

import logging
import random
from datetime import timedelta
import pytest

from conftest import at
from calendar_insight.models import ConfigError, Gap, Interval
from calendar_insight.processors.goal_allocator import (
    GoalAllocator,
    allocate_goals,
    identify_movable_events,
)
from calendar_insight.processors.time_analysis import scheduled_minutes_by_category


@pytest.fixture
def allocator():
    return GoalAllocator(timezone="UTC", min_fragment_minutes=30)


def gap(start, end):
    return Gap(start, end)


def spans(intervals):
    return [(i.start, i.end) for i in intervals]


class TestAllocation:
    """Tests for packing goal sessions into gaps."""

    def test_short_gap_skipped_and_session_capped(self, allocator, create_test_goal):
        goal = create_test_goal("writing", 120, min_minutes=45, max_minutes=90)
        gaps = [gap(at(7), at(7, 40)), gap(at(8), at(10))]

        result = allocator.allocate([goal], gaps)

        assert spans(result.slots) == [(at(8), at(9, 30))]
        assert result.score_for_goal("writing").score == 0.75
        assert result.unsatisfied_goal_ids == ["writing"]

    def test_goal_split_across_gaps(self, allocator, create_test_goal):
        goal = create_test_goal("reading", 90, max_minutes=60)
        gaps = [gap(at(8), at(9)), gap(at(13), at(15))]

        result = allocator.allocate([goal], gaps)

        assert spans(result.slots) == [(at(8), at(9)), (at(13), at(13, 30))]
        assert result.score_for_goal("reading").is_satisfied

    def test_minimum_session_enforced_on_last_session(self, allocator, create_test_goal):
        goal = create_test_goal("gym", 100, min_minutes=60, max_minutes=60)

        result = allocator.allocate([goal], [gap(at(8), at(12))])

        assert [s.duration_minutes() for s in result.slots] == [60, 60]

    def test_higher_priority_goal_served_first(self, allocator, create_test_goal):
        low = create_test_goal("low", 60, priority=3)
        high = create_test_goal("high", 60, priority=0)

        result = allocator.allocate([low, high], [gap(at(9), at(10))])

        assert [s.goal_id for s in result.slots] == ["high"]
        assert result.score_for_goal("low").score == 0.0

    def test_equal_priority_first_listed_wins(self, allocator, create_test_goal):
        first = create_test_goal("first", 60)
        second = create_test_goal("second", 60)

        result = allocator.allocate([first, second], [gap(at(9), at(10))])

        assert [s.goal_id for s in result.slots] == ["first"]

    def test_scheduled_minutes_reduce_request(self, allocator, create_test_goal):
        goal = create_test_goal("exercise", 120)

        result = allocator.allocate([goal], [gap(at(9), at(12))], {"exercise": 90})

        assert result.score_for_goal("exercise").requested_minutes == 30
        assert spans(result.slots) == [(at(9), at(9, 30))]

    def test_already_met_goal_gets_no_slots(self, allocator, create_test_goal):
        goal = create_test_goal("exercise", 60, category="sport")

        result = allocator.allocate([goal], [gap(at(9), at(12))], {"sport": 75})

        assert result.slots == []
        assert result.score_for_goal("exercise").score == 1.0

    def test_second_granular_events_meeting_target(self, allocator, create_test_goal, make_event):
        # 67s + 3847s + 3286s is exactly two hours; the float sum lands just under 120
        events = [
            make_event(at(6), at(6) + timedelta(seconds=67), category="writing"),
            make_event(at(7), at(7) + timedelta(seconds=3847), category="writing"),
            make_event(at(9), at(9) + timedelta(seconds=3286), category="writing"),
        ]
        goal = create_test_goal("writing", 120)

        result = allocator.allocate([goal], [gap(at(12), at(18))], scheduled_minutes_by_category(events))

        assert result.slots == []
        assert result.score_for_goal("writing").is_satisfied

    @pytest.mark.parametrize("already", [119.99999999999999, 120 - 1e-12, 119.9999999999])
    def test_float_residue_does_not_produce_empty_slot(self, allocator, create_test_goal, already):
        goal = create_test_goal("writing", 120)

        result = allocator.allocate([goal], [gap(at(12), at(18))], {"writing": already})

        assert all(s.end > s.start for s in result.slots)
        assert result.score_for_goal("writing").score == 1.0

    def test_short_residual_dropped(self, allocator, create_test_goal):
        goal = create_test_goal("focus", 60)

        result = allocator.allocate([goal], [gap(at(9), at(10, 10))])

        assert spans(result.slots) == [(at(9), at(10))]
        assert result.remaining_gaps == []

    def test_residual_gap_kept(self, allocator, create_test_goal):
        goal = create_test_goal("focus", 60)

        result = allocator.allocate([goal], [gap(at(9), at(12))])

        assert spans(result.remaining_gaps) == [(at(10), at(12))]

    def test_input_gaps_not_mutated(self, allocator, create_test_goal):
        gaps = [gap(at(9), at(12))]

        allocator.allocate([create_test_goal("focus", 60)], gaps)

        assert spans(gaps) == [(at(9), at(12))]

    def test_deterministic(self, allocator, create_test_goal):
        goals = [create_test_goal("a", 90, max_minutes=45), create_test_goal("b", 60)]
        gaps = [gap(at(8), at(10)), gap(at(13), at(15))]

        first = allocator.allocate(goals, gaps)
        second = allocator.allocate(goals, gaps)

        assert first.slots == second.slots
        assert first.overall_score == second.overall_score


    @pytest.mark.parametrize("seed", range(40))
    def test_random_slots_respect_session_bounds(self, allocator, create_test_goal, seed):
        rng = random.Random(seed)
        goals = []
        for n in range(rng.randint(1, 4)):
            min_minutes = 15 * rng.randint(1, 4)
            goals.append(create_test_goal(
                f"g{n}", 15 * rng.randint(1, 16), priority=rng.randint(0, 2),
                min_minutes=min_minutes, max_minutes=min_minutes + 15 * rng.randint(0, 6)))
        gaps, cursor = [], at(6)
        for _ in range(rng.randint(1, 6)):
            start = cursor + timedelta(minutes=15 * rng.randint(0, 8))
            cursor = start + timedelta(minutes=15 * rng.randint(1, 12))
            gaps.append(gap(start, cursor))

        result = allocator.allocate(goals, gaps)

        bounds = {g.id: (g.min_minutes, g.max_minutes) for g in goals}
        for slot in result.slots:
            low, high = bounds[slot.goal_id]
            assert low <= slot.duration_minutes() <= high
            assert any(g.start <= slot.start and slot.end <= g.end for g in gaps)
        ordered = sorted(result.slots, key=lambda s: s.start)
        assert all(a.end <= b.start for a, b in zip(ordered, ordered[1:]))


class TestPreferences:
    """Tests for time-of-day preferences."""

    def test_preferred_gap_used_first(self, allocator, create_test_goal):
        goal = create_test_goal("calls", 60, preferred_day_part="afternoon")

        result = allocator.allocate([goal], [gap(at(8), at(10)), gap(at(13), at(15))])

        assert spans(result.slots) == [(at(13), at(14))]
        assert result.preference_alignment == 1.0

    def test_only_preferred_portion_of_gap_used(self, allocator, create_test_goal):
        goal = create_test_goal("calls", 60, preferred_day_part="afternoon")

        result = allocator.allocate([goal], [gap(at(10), at(15))])

        assert spans(result.slots) == [(at(12), at(13))]
        assert spans(result.remaining_gaps) == [(at(10), at(12)), (at(13), at(15))]

    def test_falls_back_to_full_pool(self, allocator, create_test_goal):
        goal = create_test_goal("journal", 30, preferred_day_part="evening")

        result = allocator.allocate([goal], [gap(at(8), at(9))])

        assert spans(result.slots) == [(at(8), at(8, 30))]
        assert result.preference_alignment == 0.0

    def test_near_miss_alignment(self, allocator, create_test_goal):
        goal = create_test_goal("calls", 60, preferred_day_part="afternoon")

        result = allocator.allocate([goal], [gap(at(11), at(12))])

        assert result.preference_alignment == 0.5

    def test_preference_uses_local_time(self, create_test_goal):
        goal = create_test_goal("run", 60, preferred_day_part="morning")
        gaps = [gap(at(4), at(5)), gap(at(5), at(6))]

        # 05:00 UTC is 06:00 in Amsterdam, the start of the morning
        result = allocate_goals([goal], gaps, timezone="Europe/Amsterdam")

        assert spans(result.slots) == [(at(5), at(6))]


class TestScoring:
    """Tests for allocation scoring."""

    def test_priority_weighted_overall_score(self, allocator, create_test_goal):
        important = create_test_goal("important", 60, priority=0)
        minor = create_test_goal("minor", 60, priority=1)

        result = allocator.allocate([important, minor], [gap(at(9), at(10))])

        # weights 1 and 1/2: (1 * 1.0 + 0.5 * 0.0) / 1.5
        assert result.overall_score == pytest.approx(2 / 3)

    def test_average_block_minutes(self, allocator, create_test_goal):
        goal = create_test_goal("reading", 90, max_minutes=60)

        result = allocator.allocate([goal], [gap(at(8), at(12))])

        assert result.average_block_minutes == 45

    def test_no_goals(self, allocator):
        result = allocator.allocate([], [gap(at(9), at(10))])

        assert result.slots == []
        assert result.overall_score == 0.0

    def test_unsatisfiable_goal_logged(self, allocator, create_test_goal, caplog):
        goal = create_test_goal("marathon", 600)

        with caplog.at_level(logging.WARNING):
            result = allocator.allocate([goal], [gap(at(9), at(10))])

        assert result.unsatisfied_goal_ids == ["marathon"]
        assert "marathon" in caplog.text


class TestMovableEvents:
    """Tests for movable event detection and relocation."""

    def test_identify_movable_events(self, make_event):
        events = [
            make_event(at(9), at(10), "focus", title="Focus block"),
            make_event(at(11), at(12), "guest", title="Focus with client", has_external_attendees=True),
            make_event(at(13), at(14), "invited", title="FOCUS time", is_organizer=False),
            make_event(at(0), at(23), "allday", title="Focus day", is_all_day=True),
            make_event(at(15), at(16), "sync", title="Team sync"),
        ]

        movable = identify_movable_events(events, ["focus"])

        assert [e.id for e in movable] == ["focus"]

    def test_no_patterns(self, make_event):
        assert identify_movable_events([make_event(at(9), at(10))], []) == []

    def test_relocated_event_moved_to_free_time(self, allocator, create_test_goal, make_event):
        events = [
            make_event(at(9), at(10), "focus", title="Focus block"),
            make_event(at(12), at(13), "meeting"),
        ]
        goal = create_test_goal("writing", 180, max_minutes=180)

        result = allocator.plan_with_relocations(
            [goal], events, [Interval(at(8), at(13))], ["focus"])

        assert spans(result.slots) == [(at(8), at(11))]
        proposal = result.relocations[0]
        assert proposal.event_id == "focus"
        assert proposal.is_placed
        assert (proposal.new_start, proposal.new_end) == (at(11), at(12))

    def test_relocated_event_keeps_free_original_time(self, allocator, create_test_goal, make_event):
        events = [make_event(at(9), at(10), "focus", title="Focus block")]
        goal = create_test_goal("writing", 60)

        result = allocator.plan_with_relocations(
            [goal], events, [Interval(at(8), at(13))], ["focus"])

        assert spans(result.slots) == [(at(8), at(9))]
        assert result.relocations[0].new_start == at(9)

    def test_relocated_event_without_room(self, allocator, create_test_goal, make_event):
        events = [make_event(at(9), at(10), "focus", title="Focus block")]
        goal = create_test_goal("writing", 120)

        result = allocator.plan_with_relocations(
            [goal], events, [Interval(at(8), at(10))], ["focus"])

        assert result.relocations[0].is_placed is False
        assert result.relocations[0].new_start is None

    def test_unknown_relocation_id(self, allocator, create_test_goal):
        with pytest.raises(ConfigError, match="unknown events"):
            allocator.plan_with_relocations(
                [create_test_goal()], [], [Interval(at(8), at(10))], ["ghost"])
