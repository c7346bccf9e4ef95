# File: calendar_insight/models/common.py

from datetime import datetime, date
from typing import Any, Optional, Union

import pytz


def parse_iso_datetime(value: Union[str, datetime, None],
                       default_tz: Optional[str] = None) -> Optional[datetime]:
    """Robustly parse ISO date strings with 'Z' or offsets; bare dates become midnight.

    Naive results are localized to ``default_tz`` when one is given and
    returned naive otherwise, so the caller can reject them.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            # fromisoformat only understands 'Z' from Python 3.11 on
            parsed = datetime.fromisoformat(str(value).strip().replace('Z', '+00:00'))
        except ValueError:
            return None
    if parsed.tzinfo is None and default_tz:
        parsed = pytz.timezone(default_tz).localize(parsed)
    return parsed


def parse_date(value: Union[str, date]) -> date:
    """Parse a YYYY-MM-DD string (or pass a date through)."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.strptime(str(value).strip(), "%Y-%m-%d").date()


def first_present(data: dict, *keys: str, default: Any = None) -> Any:
    """Return the first key present in ``data`` (camelCase/snake_case aliases)."""
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


def as_bool(value: Any, default: bool = False) -> bool:
    """Interpret loose boolean values ("yes", "true", 1...)."""
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ['yes', 'true', '1', 'y', 't', 'on']
