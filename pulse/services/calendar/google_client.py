"""
Google Calendar API client.
Lists expanded event instances on a calendar within a time window.
"""

from datetime import UTC, datetime

from pulse.infrastructure.observability.logging import get_logger
from pulse.models.domain.calendar_domain import CalendarEvent
from pulse.services.google_api_client import GoogleAPIClient

logger = get_logger(__name__)

CALENDAR_API_BASE_URL = "https://www.googleapis.com/calendar/v3"
CALENDAR_PRIMARY = "primary"
EVENT_LIST_PAGE_SIZE = 250


def _format_rfc3339(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat().replace("+00:00", "Z")


class GoogleCalendarService(GoogleAPIClient):
    """Low-level Calendar API client. Callers supply a valid access token per call."""

    SERVICE_NAME = "Calendar"
    CONSOLE_API_URL = "https://console.cloud.google.com/apis/library/calendar-json.googleapis.com"

    async def list_events(
        self,
        access_token: str,
        time_min: datetime,
        time_max: datetime,
        page_token: str | None = None,
        calendar_id: str = CALENDAR_PRIMARY,
        max_results: int = EVENT_LIST_PAGE_SIZE,
    ) -> tuple[list[CalendarEvent], str | None]:
        """
        List one page of events starting within [time_min, time_max].

        Recurring events are expanded into single instances, ordered by start time.

        Returns:
            Tuple of (events, next page token or None)

        Raises:
            GoogleAPIError: If the list call fails
        """
        params: dict = {
            "timeMin": _format_rfc3339(time_min),
            "timeMax": _format_rfc3339(time_max),
            "maxResults": max_results,
            "singleEvents": "true",
            "orderBy": "startTime",
        }
        if page_token:
            params["pageToken"] = page_token

        response = await self._request_with_retry(
            "GET",
            f"{CALENDAR_API_BASE_URL}/calendars/{calendar_id}/events",
            headers=self._get_auth_headers(access_token),
            params=params,
        )
        data = self._handle_api_response(response, "list events")

        events = [CalendarEvent(item) for item in data.get("items", [])]
        next_page_token = data.get("nextPageToken")

        logger.debug(
            "Calendar event page listed",
            calendar_id=calendar_id,
            event_count=len(events),
            has_next_page=bool(next_page_token),
        )
        return events, next_page_token
