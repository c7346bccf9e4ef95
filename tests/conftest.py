# File: tests/conftest.py
"""
Pytest configuration and shared fixtures.
Provides reusable events, goals, rules and mocks for all tests.
"""

import pytest
from datetime import date, datetime, timedelta
from pathlib import Path
from unittest.mock import Mock
import sys

import pytz

# Add project root to path for imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from calendar_insight.models import (
    CoverageRule,
    EngineConfig,
    Event,
    Goal,
    Interval,
)

UTC = pytz.UTC

# Thursday
DAY = date(2026, 1, 15)


def at(hour: int, minute: int = 0, day: date = DAY) -> datetime:
    """Timezone-aware UTC datetime on the test day."""
    return UTC.localize(datetime(day.year, day.month, day.day, hour, minute))


# ==================== Interval Fixtures ====================

@pytest.fixture
def day_window():
    """Waking-hours window 06:00-22:00 on the test day."""
    return Interval(at(6), at(22))


@pytest.fixture
def make_event():
    """Factory fixture for creating test events."""
    counter = {'n': 0}

    def _create(
        start: datetime,
        end: datetime,
        event_id: str = None,
        **kwargs
    ) -> Event:
        """Create a test event with given parameters."""
        counter['n'] += 1
        kwargs.setdefault('account_id', 'work@example.com')
        kwargs.setdefault('calendar_id', 'primary')
        kwargs.setdefault('title', f"Event {counter['n']}")
        return Event(start=start, end=end, id=event_id or f"evt_{counter['n']}", **kwargs)

    return _create


@pytest.fixture
def overlapping_events(make_event):
    """9-10, 9:30-11 and 10:45-11:15: one transitive group."""
    return [
        make_event(at(9), at(10), "a"),
        make_event(at(9, 30), at(11), "b"),
        make_event(at(10, 45), at(11, 15), "c"),
    ]


# ==================== Goal Fixtures ====================

@pytest.fixture
def writing_goal():
    """Two hours of writing in 45-90 minute morning sessions."""
    return Goal(
        id="writing",
        name="Writing",
        target_minutes=120,
        min_minutes=45,
        max_minutes=90,
        preferred_day_part="morning",
        priority=1,
    )


@pytest.fixture
def create_test_goal():
    """Factory fixture for creating test goals."""
    def _create(goal_id: str = "goal", target: int = 60, **kwargs) -> Goal:
        kwargs.setdefault('name', goal_id.title())
        return Goal(id=goal_id, target_minutes=target, **kwargs)

    return _create


# ==================== Coverage Fixtures ====================

@pytest.fixture
def date_night_rule():
    """Date nights need childcare an hour either side, half-overlap counts."""
    return CoverageRule(
        id="babysitter",
        trigger_calendars=["personal"],
        trigger_pattern=r"date night",
        coverage_calendars=["family"],
        create_account="me@home.example",
        create_calendar="family",
        buffer_before_minutes=60,
        buffer_after_minutes=60,
        min_overlap_fraction=0.5,
        opt_out_markers=["#nositter"],
        draft_title="Babysitter: {title}",
    )


# ==================== Configuration Fixtures ====================

@pytest.fixture
def sample_config_data():
    """Raw engine configuration as it would appear in engine.json."""
    return {
        'timezone': 'UTC',
        'min_gap_minutes': 30,
        'schedule': {
            'default_schedule': {
                'weekday': {'awake': '06:00-22:00', 'work': '09:00-17:00'},
                'weekend': {'awake': {'start': 8, 'end': 22}},
            },
            'holidays': ['2026-01-19'],
        },
        'goals': [
            {'id': 'writing', 'name': 'Writing', 'targetMinutes': 120,
             'minSessionMinutes': 45, 'maxSessionMinutes': 90,
             'preferredTimes': {'dayPart': 'morning'}, 'priority': 1},
            {'id': 'exercise', 'name': 'Exercise', 'target_minutes': 90, 'priority': 2},
        ],
        'coverage_rules': [
            {'id': 'babysitter', 'triggerCalendars': ['personal'], 'triggerPattern': 'date night',
             'coverageCalendars': ['family'], 'createAccount': 'me@home.example',
             'createCalendar': 'family', 'bufferBeforeMinutes': 60, 'bufferAfterMinutes': 60,
             'minOverlapFraction': 0.5, 'optOutMarkers': ['#nositter']},
        ],
        'movable_patterns': ['focus', 'gym'],
        'account_priority': ['work@example.com', 'me@home.example'],
    }


@pytest.fixture
def engine_config(sample_config_data):
    """Parsed engine configuration."""
    return EngineConfig.from_dict(sample_config_data)


@pytest.fixture
def temp_config_file(tmp_path, sample_config_data):
    """Write the sample configuration to a temporary engine.json."""
    import json
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    config_file = config_dir / "engine.json"
    config_file.write_text(json.dumps(sample_config_data))
    return config_file


# ==================== Mock Service Fixtures ====================

@pytest.fixture
def mock_calendar_resource():
    """Mock Google Calendar API resource."""
    mock = Mock()
    mock.calendarList().list().execute.return_value = {
        'items': [{'id': 'primary', 'summary': 'Work', 'primary': True, 'accessRole': 'owner'}]
    }
    mock.events().list().execute.return_value = {'items': []}
    mock.events().insert().execute.return_value = {'id': 'new_event_id'}
    mock.events().patch().execute.return_value = {}
    mock.events().delete().execute.return_value = None
    return mock


# ==================== Pytest Markers ====================

def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )
    config.addinivalue_line(
        "markers", "external: mark test as requiring external services"
    )
