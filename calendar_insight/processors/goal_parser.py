# File: calendar_insight/processors/goal_parser.py
"""
Free-text goal parsing.
Turns lines such as "4 hours of writing time in the morning" or
"workout 3x this week, 45 min each" into Goal objects.
"""

import re
from typing import List, Optional

from calendar_insight.utils.logger import setup_logger
from calendar_insight.models import ConfigError, DayPart, Goal

logger = setup_logger(__name__)

_BULLET = re.compile(r'^[-•*]\s*')

_OUTCOME = re.compile(
    r'(?:focus on|work on|complete)\s+(.+?)\s+(?:to\s+)?(?:achieve|finish|complete)\s+(.+?)'
    r'(?:,\s*(?:about\s+)?(\d+)\s*(?:hours?|h))?$',
    re.IGNORECASE,
)
_HOURS = re.compile(r'(\d+(?:\.\d+)?)\s*(?:hours?|hrs?|h)\b')
_MINUTES = re.compile(r'(\d+)\s*(?:minutes?|mins?|m)\b')
_SESSIONS = re.compile(r'(\d+)\s*(?:x|times?)\s*(?:this\s+)?(?:week)?')
_SESSION_RANGE = re.compile(r'(\d+)(?:\s*-\s*|\s+to\s+)(\d+)\s*(?:hours?|hrs?|h)\s*(?:sessions?|each|blocks?)?')
_SESSION_LENGTH = re.compile(r'(\d+)\s*(hours?|hrs?|h|minutes?|mins?|m)\s*(?:each|sessions?|blocks?)')
_DAY_PART = re.compile(r'(?:in\s+the\s+)?(morning|afternoon|evening)')

# Stripped in order to leave only the activity name
_NAME_NOISE = [
    re.compile(r'\d+(?:\s*-\s*|\s+to\s+)\d+\s*(?:hours?|hrs?|h)\s*(?:sessions?|each|blocks?)?', re.IGNORECASE),
    re.compile(r'\d+(?:\.\d+)?\s*(?:hours?|hrs?|h|minutes?|mins?|m)\b', re.IGNORECASE),
    re.compile(r'\d+\s*(?:x|times?)\s*(?:this\s+)?week', re.IGNORECASE),
    re.compile(r'(?:in\s+the\s+)?(?:morning|afternoon|evening)', re.IGNORECASE),
    re.compile(r'\b(?:of|the|this|week|each|sessions?|blocks?)\b', re.IGNORECASE),
]


def slugify(name: str) -> str:
    """Lowercase id with runs of non-alphanumerics collapsed to '-'."""
    return re.sub(r'[^a-z0-9]+', '-', name.lower()).strip('-')


def extract_activity_name(text: str) -> str:
    name = _BULLET.sub('', text)
    for pattern in _NAME_NOISE:
        name = pattern.sub('', name)
    name = re.sub(r'\s+', ' ', name.replace(',', '')).strip()
    return name[:1].upper() + name[1:]


def parse_goals_from_text(text: str, priority: int = 1) -> List[Goal]:
    """
    Parse one goal per non-empty line.

    Lines that carry no duration are ignored.

    Args:
        text: Goal description, one goal per line (bullets allowed)
        priority: Priority assigned to every parsed goal

    Returns:
        Parsed goals in line order
    """
    if not text or not text.strip():
        return []

    goals = []
    for line in text.splitlines():
        line = line.strip()
        if not line:
            continue
        goal = parse_goal_line(line, priority)
        if goal is not None:
            goals.append(goal)
        else:
            logger.debug(f"No goal found in: {line!r}")

    logger.info(f"Parsed {len(goals)} goals from text")
    return goals


def parse_goal_line(line: str, priority: int = 1) -> Optional[Goal]:
    original = _BULLET.sub('', line).strip()

    outcome = _OUTCOME.search(original)
    if outcome:
        project, milestone, hours = outcome.groups()
        if not hours:
            logger.warning(f"Outcome goal '{project.strip()}' has no time estimate; skipped")
            return None
        return Goal(
            id=slugify(project),
            name=project.strip(),
            target_minutes=int(hours) * 60,
            priority=priority,
            description=milestone.strip(),
        )

    return _parse_time_goal(original, priority)


def _parse_time_goal(original: str, priority: int) -> Optional[Goal]:
    cleaned = original.lower()

    total = 0.0
    hours = _HOURS.search(cleaned)
    minutes = _MINUTES.search(cleaned)
    if hours:
        total = float(hours.group(1)) * 60
    elif minutes:
        total = float(minutes.group(1))

    min_minutes = max_minutes = None
    session_range = _SESSION_RANGE.search(cleaned)
    session_length = _SESSION_LENGTH.search(cleaned)
    if session_range:
        min_minutes = int(session_range.group(1)) * 60
        max_minutes = int(session_range.group(2)) * 60
    elif session_length:
        value = int(session_length.group(1))
        is_hours = session_length.group(2).startswith('h')
        min_minutes = max_minutes = value * 60 if is_hours else value

    sessions_per_week = None
    sessions = _SESSIONS.search(cleaned)
    if sessions:
        sessions_per_week = int(sessions.group(1))
        if min_minutes:
            total = sessions_per_week * min_minutes
        elif total > 0:
            # A lone duration next to a session count is the session length
            min_minutes = max_minutes = int(total)
            total = sessions_per_week * total

    if total <= 0:
        return None

    name = extract_activity_name(original)
    if not name:
        return None

    day_part = _DAY_PART.search(cleaned)
    try:
        return Goal(
            id=slugify(name),
            name=name,
            target_minutes=int(round(total)),
            min_minutes=min_minutes,
            max_minutes=max_minutes,
            preferred_day_part=DayPart(day_part.group(1)) if day_part else DayPart.NONE,
            priority=priority,
            sessions_per_week=sessions_per_week,
        )
    except ConfigError as e:
        logger.warning(f"Ignoring goal line {original!r}: {e}")
        return None
