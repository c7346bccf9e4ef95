from dataclasses import dataclass
from typing import Optional, List

from .common import first_present, as_bool
from .enums import DayPart, parse_day_part
from .errors import ConfigError, ConfigFieldError


@dataclass
class Goal:
    """Represents a weekly time target."""
    id: str
    name: str
    target_minutes: int
    min_minutes: Optional[int] = None
    max_minutes: Optional[int] = None
    preferred_day_part: DayPart = DayPart.NONE
    priority: int = 1
    category: Optional[str] = None
    sessions_per_week: Optional[int] = None
    recurring: bool = False
    description: Optional[str] = None

    def __post_init__(self):
        """Validate and convert types."""
        if not isinstance(self.preferred_day_part, DayPart):
            try:
                self.preferred_day_part = parse_day_part(self.preferred_day_part)
            except ValueError:
                raise ConfigError(
                    f"Goal '{self.id}' has unknown preferred time of day: {self.preferred_day_part!r}"
                )

        problems = self.validate()
        if problems:
            raise ConfigError(
                f"Invalid goal '{self.id}': " + "; ".join(str(p) for p in problems),
                problems,
            )

    def validate(self) -> List[ConfigFieldError]:
        problems = []
        if not self.id:
            problems.append(ConfigFieldError('id', "Goal id is required"))
        if self.target_minutes is None or self.target_minutes <= 0:
            problems.append(ConfigFieldError('target_minutes', "Target must be positive"))
        if self.min_minutes is not None and self.min_minutes <= 0:
            problems.append(ConfigFieldError('min_minutes', "Minimum session must be positive"))
        if self.max_minutes is not None and self.max_minutes <= 0:
            problems.append(ConfigFieldError('max_minutes', "Maximum session must be positive"))
        if (self.min_minutes is not None and self.max_minutes is not None
                and self.min_minutes > self.max_minutes):
            problems.append(ConfigFieldError(
                'min_minutes', f"Minimum session ({self.min_minutes}) exceeds maximum ({self.max_minutes})"))
        if self.priority is None or self.priority < 0:
            problems.append(ConfigFieldError('priority', "Priority cannot be negative"))
        return problems

    @property
    def match_category(self) -> str:
        """Category used to count already-scheduled time against this goal."""
        return self.category or self.id

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'name': self.name,
            'target_minutes': self.target_minutes,
            'min_minutes': self.min_minutes,
            'max_minutes': self.max_minutes,
            'preferred_day_part': self.preferred_day_part.value,
            'priority': self.priority,
            'category': self.category,
            'sessions_per_week': self.sessions_per_week,
            'recurring': self.recurring,
            'description': self.description,
        }


def _optional_int(value) -> Optional[int]:
    if value is None or value == "":
        return None
    return int(float(value))  # Handle "45.0" strings


def goal_from_dict(data: dict) -> Goal:
    """Create Goal from dictionary (snake_case or camelCase keys)."""
    try:
        target = _optional_int(first_present(data, 'target_minutes', 'targetMinutes', 'totalMinutes'))
        min_minutes = _optional_int(first_present(data, 'min_minutes', 'minMinutes', 'minSessionMinutes'))
        max_minutes = _optional_int(first_present(data, 'max_minutes', 'maxMinutes', 'maxSessionMinutes'))
        priority = int(first_present(data, 'priority', default=1))
        sessions = _optional_int(first_present(data, 'sessions_per_week', 'sessionsPerWeek'))
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Goal {data.get('id', '?')} has a non-numeric field: {e}") from e

    day_part = first_present(data, 'preferred_day_part', 'preferredDayPart', 'preferred_time')
    preferred_times = data.get('preferredTimes')
    if day_part is None and isinstance(preferred_times, dict):
        day_part = preferred_times.get('dayPart')

    goal_id = str(first_present(data, 'id', default=''))
    return Goal(
        id=goal_id,
        name=str(first_present(data, 'name', 'title', default=goal_id)),
        target_minutes=target,
        min_minutes=min_minutes,
        max_minutes=max_minutes,
        preferred_day_part=day_part,
        priority=priority,
        category=first_present(data, 'category'),
        sessions_per_week=sessions,
        recurring=as_bool(data.get('recurring'), False),
        description=first_present(data, 'description'),
    )
