# File: calendar_insight/processors/coverage_evaluator.py
"""
Dependent-coverage module.
Finds events that obligate a coverage window (e.g. childcare around a date
night), checks whether coverage already exists, drafts it when it does not,
and flags coverage whose trigger has disappeared.
"""

from typing import Iterable, List, Optional, Sequence

from calendar_insight.utils.logger import LoggerMixin
from calendar_insight.models import (
    CoverageLink,
    CoverageOptOut,
    CoverageProposal,
    CoverageRule,
    CoverageStatus,
    DraftEvent,
    Event,
    Interval,
)


def _on_calendars(event: Event, calendars: Sequence[str]) -> bool:
    """Entries are a calendar id or "account:calendar"."""
    return (event.calendar_id in calendars
            or f"{event.account_id}:{event.calendar_id}" in calendars)


def _searchable_text(event: Event) -> str:
    return f"{event.title}\n{event.description or ''}"


class CoverageEvaluator(LoggerMixin):
    """Evaluates coverage rules over one normalized set of events."""

    def _matching_events(self, events: Iterable[Event], rule: CoverageRule) -> List[Event]:
        matched = [
            e for e in events
            if _on_calendars(e, rule.trigger_calendars) and rule.pattern.search(_searchable_text(e))
        ]
        return sorted(matched, key=lambda e: (e.start, e.id))

    def find_triggers(self, events: Iterable[Event], rule: CoverageRule) -> List[Event]:
        """Events on the rule's trigger calendars matching its pattern, minus opt-outs."""
        triggers = []
        for event in self._matching_events(events, rule):
            if rule.find_opt_out(event.title, event.description) is not None:
                self.logger.debug(f"Rule {rule.id}: '{event.title}' opted out")
                continue
            triggers.append(event)
        return triggers

    def find_opt_outs(self, events: Iterable[Event], rule: CoverageRule) -> List[CoverageOptOut]:
        """Matching trigger events suppressed by an opt-out marker, with the marker and field found."""
        opt_outs = []
        for event in self._matching_events(events, rule):
            match = rule.find_opt_out(event.title, event.description)
            if match is None:
                continue
            matched_in, token = match
            opt_outs.append(CoverageOptOut(
                rule_id=rule.id,
                trigger_event_id=event.id,
                title=event.title,
                matched_in=matched_in,
                token=token,
            ))
        return opt_outs

    def evaluate_opt_outs(self, events: Sequence[Event], rules: Sequence[CoverageRule]) -> List[CoverageOptOut]:
        events = list(events)
        opt_outs = [o for rule in rules for o in self.find_opt_outs(events, rule)]
        if opt_outs:
            self.logger.info(f"Coverage: {len(opt_outs)} triggers opted out")
        return opt_outs

    def find_covering_event(self, window: Interval, candidates: Sequence[Event],
                            min_overlap_fraction: float) -> Optional[Event]:
        """Earliest candidate overlapping the window by the required fraction."""
        needed = min_overlap_fraction * window.duration_minutes()
        for candidate in sorted(candidates, key=lambda e: (e.start, e.id)):
            if candidate.overlap_minutes(window) >= needed:
                return candidate
        return None

    def evaluate_rule(self, events: Sequence[Event], rule: CoverageRule) -> List[CoverageProposal]:
        proposals = []
        coverage_pool = [e for e in events if _on_calendars(e, rule.coverage_calendars)]

        for trigger in self.find_triggers(events, rule):
            window = trigger.expand(rule.buffer_before_minutes, rule.buffer_after_minutes)
            candidates = [e for e in coverage_pool if e.id != trigger.id]
            covering = self.find_covering_event(window, candidates, rule.min_overlap_fraction)

            if covering is not None:
                self.logger.debug(f"Rule {rule.id}: '{trigger.title}' covered by {covering.id}")
                proposals.append(CoverageProposal(
                    rule_id=rule.id,
                    trigger_event_id=trigger.id,
                    status=CoverageStatus.SATISFIED,
                    required_window=window,
                    covering_event_id=covering.id,
                    covered_minutes=covering.overlap_minutes(window),
                ))
                continue

            draft = DraftEvent(
                account_id=rule.create_account,
                calendar_id=rule.create_calendar,
                title=rule.draft_title.format(title=trigger.title),
                start=window.start,
                end=window.end,
                description=f"Coverage for {trigger.title or trigger.id}",
            )
            self.logger.debug(f"Rule {rule.id}: '{trigger.title}' needs coverage")
            proposals.append(CoverageProposal(
                rule_id=rule.id,
                trigger_event_id=trigger.id,
                status=CoverageStatus.MISSING,
                required_window=window,
                draft=draft,
                covered_minutes=max((e.overlap_minutes(window) for e in candidates), default=0.0),
            ))
        return proposals

    def find_orphans(self, events: Sequence[Event], known_links: Iterable[CoverageLink]) -> List[CoverageProposal]:
        """Known coverage events whose trigger is no longer in the fetch."""
        by_id = {e.id: e for e in events}
        orphans = []
        for link in known_links:
            if link.trigger_event_id in by_id:
                continue
            coverage = by_id.get(link.coverage_event_id)
            orphans.append(CoverageProposal(
                rule_id=link.rule_id,
                trigger_event_id=link.trigger_event_id,
                status=CoverageStatus.ORPHANED,
                required_window=Interval(coverage.start, coverage.end) if coverage else None,
                covering_event_id=link.coverage_event_id,
                covered_minutes=coverage.duration_minutes() if coverage else 0.0,
            ))
        return orphans

    def evaluate(
        self,
        events: Sequence[Event],
        rules: Sequence[CoverageRule],
        known_links: Iterable[CoverageLink] = (),
    ) -> List[CoverageProposal]:
        """
        Evaluate every rule independently, then append orphaned coverage.

        Args:
            events: Normalized events across all accounts
            rules: Coverage rules (already validated)
            known_links: Persisted coverage decisions from earlier runs

        Returns:
            Proposals grouped by rule in rule order, orphans last
        """
        events = list(events)
        proposals: List[CoverageProposal] = []
        for rule in rules:
            proposals.extend(self.evaluate_rule(events, rule))
        orphans = self.find_orphans(events, known_links)
        proposals.extend(orphans)

        missing = sum(1 for p in proposals if p.status == CoverageStatus.MISSING)
        self.logger.info(
            f"Coverage: {len(proposals) - missing - len(orphans)} satisfied, "
            f"{missing} missing, {len(orphans)} orphaned across {len(rules)} rules"
        )
        return proposals


def evaluate_coverage(
    events: Sequence[Event],
    rules: Sequence[CoverageRule],
    known_links: Iterable[CoverageLink] = (),
) -> List[CoverageProposal]:
    return CoverageEvaluator().evaluate(events, rules, known_links)
