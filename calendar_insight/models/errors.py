# File: calendar_insight/models/errors.py
"""
Error types raised by the interval engine.
"""

from dataclasses import dataclass
from typing import List, Optional


class EngineError(Exception):
    """Base class for all engine errors."""


class InvalidIntervalError(EngineError, ValueError):
    """Interval bounds are missing, naive, inverted or zero-length."""


class ConfigError(EngineError, ValueError):
    """Goal, rule or schedule configuration is malformed."""

    def __init__(self, message: str, problems: Optional[List['ConfigFieldError']] = None):
        super().__init__(message)
        self.problems = problems or []


@dataclass
class ConfigFieldError:
    """Represents one configuration problem."""
    field: str
    message: str
    entry_index: Optional[int] = None

    def __str__(self) -> str:
        """String representation of error."""
        if self.entry_index is not None:
            return f"Entry {self.entry_index} - {self.field}: {self.message}"
        return f"{self.field}: {self.message}"
