# File: calendar_insight/core/config_manager.py
"""
Centralized configuration management for Calendar Insight.
Loads defaults from environment variables and engine settings from a JSON file.
"""

import os
import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytz
from dotenv import load_dotenv

from calendar_insight.models import ConfigError, ConfigFieldError, EngineConfig, DEFAULT_MIN_GAP_MINUTES
from calendar_insight.utils.logger import setup_logger

# Load environment variables
load_dotenv()

logger = setup_logger(__name__)


class Config:
    """Process-level defaults. Per-call settings live in EngineConfig."""

    # Base directories
    BASE_DIR = Path(__file__).parent.parent.parent  # Go up 3 levels from calendar_insight/core/
    CONFIG_DIR = BASE_DIR / "config"

    # Files
    CONFIG_FILE = Path(os.getenv("CALENDAR_INSIGHT_CONFIG", str(CONFIG_DIR / "engine.json")))

    # Engine defaults
    TIMEZONE = os.getenv("TIMEZONE", "UTC")
    MIN_GAP_MINUTES = int(os.getenv("MIN_GAP_MINUTES", str(DEFAULT_MIN_GAP_MINUTES)))

    # Collector settings
    FETCH_MAX_WORKERS = int(os.getenv("FETCH_MAX_WORKERS", "4"))

    @classmethod
    def load_config_data(cls, path: Optional[Path] = None) -> Dict[str, Any]:
        """Load raw engine configuration from JSON file."""
        config_path = Path(path) if path else cls.CONFIG_FILE
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_path, 'r', encoding='utf-8') as f:
            try:
                return json.load(f)
            except json.JSONDecodeError as e:
                raise ConfigError(f"Config file {config_path} is not valid JSON: {e}") from e


def load_engine_config(path: Optional[Path] = None) -> EngineConfig:
    """Load, parse and validate the engine configuration file."""
    data = Config.load_config_data(path)
    config = EngineConfig.from_dict(
        data,
        timezone=Config.TIMEZONE,
        min_gap_minutes=Config.MIN_GAP_MINUTES,
    )
    validate_engine_config(config)
    logger.info(
        f"Loaded engine config: {len(config.goals)} goals, "
        f"{len(config.coverage_rules)} coverage rules, timezone {config.timezone}"
    )
    return config


def validate_engine_config(config: EngineConfig) -> None:
    """
    Validate a complete configuration before any computation runs.

    Raises:
        ConfigError: listing every problem found, so a bad entry is never skipped silently
    """
    problems: List[ConfigFieldError] = []

    try:
        pytz.timezone(config.timezone)
    except pytz.UnknownTimeZoneError:
        problems.append(ConfigFieldError('timezone', f"Unknown timezone: {config.timezone}"))

    if config.min_gap_minutes <= 0:
        problems.append(ConfigFieldError('min_gap_minutes', "Minimum gap must be positive"))

    seen_goals = set()
    for i, goal in enumerate(config.goals):
        for problem in goal.validate():
            problem.entry_index = i
            problems.append(problem)
        if goal.id in seen_goals:
            problems.append(ConfigFieldError('goals.id', f"Duplicate goal id: {goal.id}", i))
        seen_goals.add(goal.id)

    seen_rules = set()
    for i, rule in enumerate(config.coverage_rules):
        if rule.id in seen_rules:
            problems.append(ConfigFieldError('coverage_rules.id', f"Duplicate rule id: {rule.id}", i))
        seen_rules.add(rule.id)

    for i, pattern in enumerate(config.movable_patterns):
        if not str(pattern).strip():
            problems.append(ConfigFieldError('movable_patterns', "Empty movable pattern", i))

    if problems:
        for problem in problems:
            logger.error(f"Configuration Error: {problem}")
        raise ConfigError(
            f"Configuration validation failed with {len(problems)} problem(s)",
            problems,
        )
