"""
Calendar ingestion.

Walks the primary calendar over the configured lookback/lookahead window and records
one MEETING interaction per (event, attendee) pair, excluding the user and
cancelled events.
"""

from datetime import UTC, datetime, timedelta

from pulse.config import settings
from pulse.features.relationship_sync.domain.errors import (
    MalformedTimestamp,
    TransientFetchFailure,
    translate_provider_error,
)
from pulse.features.relationship_sync.domain.models import (
    FetchCounts,
    InteractionRecord,
    InteractionType,
    RecencyUpdate,
    normalize_email,
)
from pulse.features.relationship_sync.pipeline.pagination import iterate_pages
from pulse.features.relationship_sync.pipeline.results import (
    ItemProcessed,
    ItemResult,
    ItemSkipped,
    fold_results,
)
from pulse.features.relationship_sync.repository.contact_repository import ContactRepository
from pulse.features.relationship_sync.repository.interaction_repository import InteractionRepository
from pulse.features.relationship_sync.services.token_service import TokenService
from pulse.infrastructure.observability.logging import get_logger
from pulse.models.domain.calendar_domain import CalendarEvent
from pulse.services.calendar.google_client import GoogleCalendarService
from pulse.services.google_api_client import GoogleAPIError

logger = get_logger(__name__)

DEFAULT_MEETING_SUBJECT = "Meeting"


class CalendarFetcher:
    """Calendar ingestion for one user, writing through the given repositories."""

    def __init__(
        self,
        token_service: TokenService,
        calendar_client: GoogleCalendarService,
        contacts: ContactRepository,
        interactions: InteractionRepository,
        lookback_days: int | None = None,
        lookahead_days: int | None = None,
    ):
        self._token_service = token_service
        self._calendar = calendar_client
        self._contacts = contacts
        self._interactions = interactions
        if lookback_days is None:
            lookback_days = settings.CALENDAR_LOOKBACK_DAYS
        if lookahead_days is None:
            lookahead_days = settings.CALENDAR_LOOKAHEAD_DAYS
        self._lookback = timedelta(days=lookback_days)
        self._lookahead = timedelta(days=lookahead_days)

    async def fetch(self, user_id: str, user_email: str) -> FetchCounts:
        """
        Ingest meetings in the window [now - lookback, now + lookahead].

        Raises:
            AuthExpired: No usable token, or Calendar answered 401 while listing
            ProviderUnavailable: Calendar API disabled, access denied, or rate limited
            ProviderError: Listing failed for another reason
        """
        access_token = await self._token_service.get_valid_access_token(user_id)
        now = datetime.now(UTC)
        time_min, time_max = now - self._lookback, now + self._lookahead
        user_email = normalize_email(user_email)

        async def fetch_page(page_token: str | None) -> tuple[list[CalendarEvent], str | None]:
            return await self._calendar.list_events(access_token, time_min, time_max, page_token)

        results: list[ItemResult] = []
        event_count = 0
        try:
            async for events in iterate_pages(fetch_page):
                event_count += len(events)
                for event in events:
                    results.extend(await self._process_event(user_id, user_email, event, now))
        except GoogleAPIError as e:
            raise translate_provider_error(e, provider="calendar", user_id=user_id) from e

        counts = fold_results(results, source="calendar")
        logger.info(
            "Calendar ingestion complete",
            user_id=user_id,
            events_seen=event_count,
            contacts_upserted=counts.contacts_upserted,
            meetings_created=counts.interactions_created,
        )
        return counts

    async def _process_event(
        self, user_id: str, user_email: str, event: CalendarEvent, now: datetime
    ) -> list[ItemResult]:
        if event.is_cancelled or not event.attendees:
            return []

        if event.start_time is None:
            if event.has_start():
                error = MalformedTimestamp(f"Unparseable start for event {event.id}", item_id=event.id)
                logger.warning("Skipping event", user_id=user_id, event_id=event.id, error=str(error))
                return [ItemSkipped(event.id, error)]
            return []

        recency = RecencyUpdate.KEEP if event.is_upcoming(now) else RecencyUpdate.ADVANCE
        subject = event.summary or DEFAULT_MEETING_SUBJECT

        results: list[ItemResult] = []
        for attendee in event.attendees:
            if attendee.is_self or attendee.email == user_email:
                continue

            record = InteractionRecord(
                contact_email=attendee.email,
                contact_name=attendee.display_name,
                type=InteractionType.MEETING,
                timestamp=event.start_time,
                subject=subject,
            )
            try:
                contact = await self._contacts.upsert(
                    user_id, attendee.email, attendee.display_name, event.start_time, recency
                )
                created = await self._interactions.upsert_if_absent(user_id, contact.id, record)
            except Exception as e:
                logger.warning(
                    "Failed to record meeting attendee",
                    user_id=user_id,
                    event_id=event.id,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                results.append(ItemSkipped(event.id, TransientFetchFailure(str(e), item_id=event.id)))
                continue

            results.append(ItemProcessed(event.id, contacts_upserted=1, interactions_created=int(created)))
        return results
