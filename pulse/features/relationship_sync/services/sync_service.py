"""
Sync orchestration: email ingestion, then calendar ingestion, then scoring.
"""

from pulse.features.relationship_sync.domain.models import SyncReport
from pulse.features.relationship_sync.pipeline.ingestion.calendar_fetcher import CalendarFetcher
from pulse.features.relationship_sync.pipeline.ingestion.email_fetcher import EmailFetcher
from pulse.features.relationship_sync.pipeline.scoring.service import ScoringService
from pulse.features.relationship_sync.repository.contact_repository import ContactRepository
from pulse.features.relationship_sync.repository.interaction_repository import InteractionRepository
from pulse.features.relationship_sync.repository.store import StoreProvider
from pulse.features.relationship_sync.services.token_service import TokenService
from pulse.infrastructure.observability.logging import get_logger, log_sync_event
from pulse.services.calendar.google_client import GoogleCalendarService
from pulse.services.gmail.google_client import GoogleGmailService

logger = get_logger(__name__)


class SyncOrchestrator:
    """
    Runs a full sync for one user.

    Email failures abort the sync. Calendar failures are recorded on the
    report and the sync continues. Scoring always runs over whatever was
    stored. Each run uses a single store session.
    """

    def __init__(
        self,
        store_provider: StoreProvider,
        token_service: TokenService,
        gmail_client: GoogleGmailService,
        calendar_client: GoogleCalendarService,
        email_batch_delay_seconds: float | None = None,
    ):
        self._store_provider = store_provider
        self._token_service = token_service
        self._gmail = gmail_client
        self._calendar = calendar_client
        self._email_batch_delay = email_batch_delay_seconds

    async def sync(self, user_id: str, user_email: str) -> SyncReport:
        """
        Raises:
            AuthExpired, ProviderUnavailable, ProviderError: From email ingestion
        """
        log_sync_event("sync_started", user_id)

        async with self._store_provider.session() as store:
            contacts = ContactRepository(store)
            interactions = InteractionRepository(store)

            email_fetcher = EmailFetcher(
                self._token_service,
                self._gmail,
                contacts,
                interactions,
                batch_delay_seconds=self._email_batch_delay,
            )
            try:
                email_counts = await email_fetcher.fetch(user_id, user_email)
            except Exception as e:
                log_sync_event(
                    "sync_failed",
                    user_id,
                    stage="gmail",
                    error=str(e),
                    error_type=type(e).__name__,
                )
                raise

            calendar_fetcher = CalendarFetcher(self._token_service, self._calendar, contacts, interactions)
            calendar_error = None
            try:
                calendar_counts = await calendar_fetcher.fetch(user_id, user_email)
                calendar_contacts, calendar_meetings = (
                    calendar_counts.contacts_upserted,
                    calendar_counts.interactions_created,
                )
            except Exception as e:
                calendar_error = str(e) or "Calendar sync failed"
                calendar_contacts = calendar_meetings = 0
                log_sync_event(
                    "calendar_sync_failed",
                    user_id,
                    error=calendar_error,
                    error_type=type(e).__name__,
                )

            contacts_scored = await ScoringService(store).recompute_all(user_id)

        report = SyncReport(
            email_contacts_upserted=email_counts.contacts_upserted,
            email_interactions_created=email_counts.interactions_created,
            calendar_contacts_upserted=calendar_contacts,
            calendar_interactions_created=calendar_meetings,
            calendar_error=calendar_error,
            contacts_scored=contacts_scored,
        )
        log_sync_event(
            "sync_completed",
            user_id,
            email_contacts=report.email_contacts_upserted,
            email_interactions=report.email_interactions_created,
            calendar_contacts=report.calendar_contacts_upserted,
            calendar_meetings=report.calendar_interactions_created,
            calendar_error=report.calendar_error,
            contacts_scored=report.contacts_scored,
        )
        return report

    async def recompute_scores(self, user_id: str) -> int:
        """Rescore every contact of a user without fetching anything."""
        async with self._store_provider.session() as store:
            contacts_scored = await ScoringService(store).recompute_all(user_id)
        log_sync_event("scores_recomputed", user_id, contacts_scored=contacts_scored)
        return contacts_scored
