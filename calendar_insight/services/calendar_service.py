# File: calendar_insight/services/calendar_service.py

import datetime
from typing import Dict, List, Optional, Protocol

from googleapiclient.discovery import Resource
from googleapiclient.errors import HttpError

from calendar_insight.utils.logger import setup_logger
from calendar_insight.models import (
    CalendarInfo,
    ConfigError,
    DraftEvent,
    Event,
    InvalidIntervalError,
    calendar_info_from_dict,
    parse_iso_datetime,
)

logger = setup_logger(__name__)

EVENT_STATUSES = ('confirmed', 'tentative', 'cancelled')


class CalendarProvider(Protocol):
    """What the collector and callers need from a calendar backend."""

    def list_calendars(self, account_id: str) -> List[CalendarInfo]: ...

    def fetch_events(self, account_id: str, start: datetime.datetime,
                     end: datetime.datetime) -> List[Event]: ...

    def create_event(self, account_id: str, calendar_id: str, draft: DraftEvent) -> Optional[str]: ...

    def update_color(self, event_id: str, color_id: str, **kwargs) -> bool: ...

    def update_status(self, event_id: str, status: str, **kwargs) -> bool: ...

    def delete_event(self, event_id: str, **kwargs) -> bool: ...


def _email_domain(address: str) -> Optional[str]:
    if not address or '@' not in address:
        return None
    return address.rsplit('@', 1)[1].lower()


class GoogleCalendarService:
    """Handles Google Calendar operations for one or more accounts."""

    def __init__(
        self,
        resources: Dict[str, Resource],
        timezone: str = "UTC",
        color_categories: Optional[Dict[str, str]] = None,
    ):
        """
        Initialize calendar service.

        Args:
            resources: Authenticated Google Calendar API resource per account id
            timezone: Timezone for all-day dates and created events
            color_categories: Google colorId -> category name
        """
        self.resources = dict(resources)
        self.timezone = timezone
        self.color_categories = dict(color_categories or {})
        self.logger = setup_logger(__name__)

    def _service(self, account_id: Optional[str]) -> Resource:
        if account_id is None and len(self.resources) == 1:
            return next(iter(self.resources.values()))
        if account_id not in self.resources:
            raise ConfigError(f"No calendar resource configured for account {account_id!r}")
        return self.resources[account_id]

    # ==================== Reading ====================

    def list_calendars(self, account_id: str) -> List[CalendarInfo]:
        """Calendars visible to the account (calendarList)."""
        service = self._service(account_id)
        calendars = []
        page_token = None
        while True:
            result = service.calendarList().list(pageToken=page_token).execute()
            for item in result.get('items', []):
                calendars.append(calendar_info_from_dict(item, account_id))
            page_token = result.get('nextPageToken')
            if not page_token:
                break
        self.logger.debug(f"{account_id}: {len(calendars)} calendars")
        return calendars

    def fetch_events(
        self,
        account_id: str,
        start: datetime.datetime,
        end: datetime.datetime,
        calendar_ids: Optional[List[str]] = None,
    ) -> List[Event]:
        """
        Fetch events in [start, end) from the account's calendars.

        Args:
            account_id: Account to read
            start: Range start (timezone-aware)
            end: Range end (timezone-aware)
            calendar_ids: Calendars to read (default: every listed calendar)

        Returns:
            Events in start order; cancelled and malformed items are skipped

        Raises:
            HttpError: when the provider rejects the request
        """
        service = self._service(account_id)
        if calendar_ids is None:
            calendar_ids = [c.id for c in self.list_calendars(account_id)] or ['primary']

        events: List[Event] = []
        for calendar_id in calendar_ids:
            for item in self._list_items(service, calendar_id, start, end):
                event = self.item_to_event(item, account_id, calendar_id)
                if event is not None:
                    events.append(event)

        events.sort(key=lambda e: (e.start, e.id))
        self.logger.info(f"Fetched {len(events)} events for {account_id} from {len(calendar_ids)} calendars")
        return events

    def _list_items(self, service: Resource, calendar_id: str,
                    start: datetime.datetime, end: datetime.datetime) -> List[dict]:
        items = []
        page_token = None
        while True:
            result = service.events().list(
                calendarId=calendar_id,
                timeMin=start.isoformat(),
                timeMax=end.isoformat(),
                singleEvents=True,
                orderBy='startTime',
                pageToken=page_token,
            ).execute()
            items.extend(result.get('items', []))
            page_token = result.get('nextPageToken')
            if not page_token:
                return items

    def item_to_event(self, item: dict, account_id: str, calendar_id: str) -> Optional[Event]:
        """Convert a Google Calendar item to an Event, or None when it should be ignored."""
        if item.get('status') == 'cancelled':
            return None

        start_raw = item.get('start', {})
        end_raw = item.get('end', {})
        is_all_day = 'dateTime' not in start_raw and 'date' in start_raw
        start = parse_iso_datetime(start_raw.get('dateTime', start_raw.get('date')), self.timezone)
        end = parse_iso_datetime(end_raw.get('dateTime', end_raw.get('date')), self.timezone)
        if start is None or end is None:
            self.logger.warning(f"No start or end time for event {item.get('summary', item.get('id'))}")
            return None

        organizer = item.get('organizer') or {}
        own_domain = _email_domain(account_id)
        external = False
        if own_domain:
            for attendee in item.get('attendees', []):
                if attendee.get('self') or attendee.get('resource'):
                    continue
                domain = _email_domain(attendee.get('email', ''))
                if domain and domain != own_domain:
                    external = True
                    break

        try:
            return Event(
                start=start,
                end=end,
                id=item.get('id', ''),
                account_id=account_id,
                calendar_id=calendar_id,
                category=self.color_categories.get(item.get('colorId')),
                recurring_parent_id=item.get('recurringEventId'),
                title=item.get('summary', 'No Title'),
                description=item.get('description'),
                is_all_day=is_all_day,
                is_organizer=bool(organizer.get('self', False)) if organizer else True,
                has_external_attendees=external,
            )
        except InvalidIntervalError as e:
            self.logger.warning(f"Could not parse event data for {item.get('summary')}: {e}")
            return None

    # ==================== Writing ====================

    def create_event(self, account_id: str, calendar_id: str, draft: DraftEvent) -> Optional[str]:
        """
        Create an event from a draft.

        Returns:
            The new event id, or None when the provider refused it
        """
        body = {
            'summary': draft.title,
            'description': draft.description or '',
            'start': {'dateTime': draft.start.isoformat(), 'timeZone': self.timezone},
            'end': {'dateTime': draft.end.isoformat(), 'timeZone': self.timezone},
        }
        try:
            created = self._service(account_id).events().insert(
                calendarId=calendar_id, body=body).execute()
        except HttpError as e:
            self.logger.error(f"Failed to create '{draft.title}' on {account_id}/{calendar_id}: {e}")
            return None
        self.logger.info(f"Created '{draft.title}' on {account_id}/{calendar_id}")
        return created.get('id')

    def _patch(self, event_id: str, body: dict, account_id: Optional[str], calendar_id: str) -> bool:
        try:
            self._service(account_id).events().patch(
                calendarId=calendar_id, eventId=event_id, body=body).execute()
        except HttpError as e:
            self.logger.error(f"Failed to update event {event_id}: {e}")
            return False
        return True

    def update_color(self, event_id: str, color_id: str,
                     account_id: Optional[str] = None, calendar_id: str = 'primary') -> bool:
        """Set an event's colorId (how categories are recorded)."""
        return self._patch(event_id, {'colorId': str(color_id)}, account_id, calendar_id)

    def update_status(self, event_id: str, status: str,
                      account_id: Optional[str] = None, calendar_id: str = 'primary') -> bool:
        """Set an event's status: confirmed, tentative or cancelled."""
        if status not in EVENT_STATUSES:
            raise ValueError(f"Unknown event status {status!r}; expected one of {EVENT_STATUSES}")
        return self._patch(event_id, {'status': status}, account_id, calendar_id)

    def delete_event(self, event_id: str,
                     account_id: Optional[str] = None, calendar_id: str = 'primary') -> bool:
        try:
            self._service(account_id).events().delete(
                calendarId=calendar_id, eventId=event_id).execute()
        except HttpError as e:
            self.logger.error(f"Failed to delete event {event_id}: {e}")
            return False
        self.logger.info(f"Deleted event {event_id}")
        return True
