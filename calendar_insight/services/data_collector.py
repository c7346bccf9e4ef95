# File: calendar_insight/services/data_collector.py

import datetime
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from calendar_insight.core.config_manager import Config
from calendar_insight.utils.logger import setup_logger
from calendar_insight.models import CalendarInfo, Event
from calendar_insight.processors.calendar_filter import CalendarFilter
from calendar_insight.services.calendar_service import CalendarProvider

logger = setup_logger(__name__)


@dataclass
class CollectionResult:
    """Events merged across accounts plus the accounts that could not be read."""
    events: List[Event] = field(default_factory=list)
    calendars: List[CalendarInfo] = field(default_factory=list)
    failed_accounts: Dict[str, str] = field(default_factory=dict)

    @property
    def is_complete(self) -> bool:
        return not self.failed_accounts


class MultiAccountCollector:
    """Collects events from every account and converts them into one normalized list."""

    def __init__(
        self,
        provider: CalendarProvider,
        accounts: Sequence[str],
        calendar_filter: Optional[CalendarFilter] = None,
        max_workers: Optional[int] = None,
    ):
        """
        Initialize data collector.

        Args:
            provider: Calendar backend (e.g. GoogleCalendarService)
            accounts: Account ids to read
            calendar_filter: Resolves calendar types; None keeps provider types
            max_workers: Concurrent fetches (default: Config.FETCH_MAX_WORKERS)
        """
        self.provider = provider
        self.accounts = list(accounts)
        self.calendar_filter = calendar_filter
        self.max_workers = max_workers or Config.FETCH_MAX_WORKERS
        self.logger = setup_logger(__name__)

    def _collect_account(self, account_id: str, start: datetime.datetime,
                         end: datetime.datetime):
        calendars = []
        if self.calendar_filter is not None:
            calendars = self.provider.list_calendars(account_id)
        events = self.provider.fetch_events(account_id, start, end)
        return calendars, events

    def collect(self, start: datetime.datetime, end: datetime.datetime) -> CollectionResult:
        """
        Fetch all accounts concurrently.

        A failing account is logged and listed in failed_accounts; the other
        accounts' events are still returned, sorted by start.
        """
        self.logger.info(f"Collecting events for {len(self.accounts)} accounts")
        result = CollectionResult()
        if not self.accounts:
            return result

        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(self.accounts))) as pool:
            futures = {
                account_id: pool.submit(self._collect_account, account_id, start, end)
                for account_id in self.accounts
            }
            for account_id, future in futures.items():
                try:
                    calendars, events = future.result()
                except Exception as e:
                    self.logger.error(f"Failed to collect {account_id}: {e}", exc_info=True)
                    result.failed_accounts[account_id] = str(e)
                    continue
                result.calendars.extend(calendars)
                result.events.extend(events)

        if self.calendar_filter is not None:
            result.events = self.calendar_filter.apply(result.events, result.calendars)
        result.events.sort(key=lambda e: (e.start, e.id))

        self.logger.info(
            f"Collection finished: {len(result.events)} events, "
            f"{len(result.failed_accounts)} failed accounts"
        )
        return result
