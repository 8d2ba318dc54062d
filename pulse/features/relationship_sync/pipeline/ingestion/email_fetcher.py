"""
Email ingestion.

Lists recent Gmail message ids, fetches their metadata in small concurrent
batches, and turns each message into a contact upsert plus a deduplicated
EMAIL_IN / EMAIL_OUT interaction.
"""

import asyncio
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
from pulse.models.domain.gmail_domain import GmailMessageMetadata
from pulse.services.gmail.google_client import GoogleGmailService
from pulse.services.google_api_client import GoogleAPIError

logger = get_logger(__name__)

SNIPPET_MAX_LENGTH = 200


def build_gmail_query(since_days: int, now: datetime) -> str:
    """Gmail search restricting results to messages on or after now - since_days."""
    since = (now - timedelta(days=since_days)).astimezone(UTC)
    return f"after:{since:%Y/%m/%d}"


def message_to_record(
    message: GmailMessageMetadata, user_email: str, now: datetime
) -> InteractionRecord | None:
    """
    Classify a message relative to the user.

    Returns None for messages with no counterpart address (mail to self,
    no recipients, unparseable From).

    Raises:
        MalformedTimestamp: If the Date header is present but unparseable
    """
    user_email = normalize_email(user_email)
    outbound = message.sender.email == user_email

    counterpart = message.recipient if outbound else message.sender
    contact_email = normalize_email(counterpart.email)
    if not contact_email or contact_email == user_email:
        return None

    try:
        timestamp = message.get_sent_datetime()
    except ValueError as e:
        raise MalformedTimestamp(str(e), item_id=message.id) from e

    snippet = message.snippet[:SNIPPET_MAX_LENGTH] if message.snippet else None
    return InteractionRecord(
        contact_email=contact_email,
        contact_name=counterpart.name or None,
        type=InteractionType.EMAIL_OUT if outbound else InteractionType.EMAIL_IN,
        timestamp=timestamp or now,
        subject=message.subject,
        snippet=snippet,
        thread_id=message.thread_id,
    )


class EmailFetcher:
    """Gmail ingestion for one user, writing through the given repositories."""

    def __init__(
        self,
        token_service: TokenService,
        gmail_client: GoogleGmailService,
        contacts: ContactRepository,
        interactions: InteractionRepository,
        batch_size: int | None = None,
        batch_delay_seconds: float | None = None,
    ):
        self._token_service = token_service
        self._gmail = gmail_client
        self._contacts = contacts
        self._interactions = interactions
        self._batch_size = settings.EMAIL_BATCH_SIZE if batch_size is None else batch_size
        if self._batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self._batch_delay = (
            settings.EMAIL_BATCH_DELAY_SECONDS if batch_delay_seconds is None else batch_delay_seconds
        )

    async def fetch(self, user_id: str, user_email: str, since_days: int | None = None) -> FetchCounts:
        """
        Ingest messages from the last since_days days.

        Raises:
            AuthExpired: No usable token, or Gmail answered 401 while listing
            ProviderUnavailable: Gmail API disabled, access denied, or rate limited
            ProviderError: Listing failed for another reason
        """
        if since_days is None:
            since_days = settings.EMAIL_LOOKBACK_DAYS
        access_token = await self._token_service.get_valid_access_token(user_id)
        now = datetime.now(UTC)
        query = build_gmail_query(since_days, now)

        message_ids = await self._list_message_ids(user_id, access_token, query)
        logger.info("Gmail messages listed", user_id=user_id, query=query, message_count=len(message_ids))

        results: list[ItemResult] = []
        for start in range(0, len(message_ids), self._batch_size):
            batch = message_ids[start : start + self._batch_size]
            results.extend(
                await asyncio.gather(
                    *(self._process_message(user_id, user_email, access_token, mid, now) for mid in batch)
                )
            )
            if start + self._batch_size < len(message_ids) and self._batch_delay > 0:
                await asyncio.sleep(self._batch_delay)

        counts = fold_results(results, source="gmail")
        logger.info(
            "Gmail ingestion complete",
            user_id=user_id,
            contacts_upserted=counts.contacts_upserted,
            interactions_created=counts.interactions_created,
        )
        return counts

    async def _list_message_ids(self, user_id: str, access_token: str, query: str) -> list[str]:
        async def fetch_page(page_token: str | None) -> tuple[list[str], str | None]:
            return await self._gmail.list_message_ids(access_token, query, page_token)

        message_ids: list[str] = []
        try:
            async for page in iterate_pages(fetch_page):
                message_ids.extend(page)
        except GoogleAPIError as e:
            raise translate_provider_error(e, provider="gmail", user_id=user_id) from e
        return message_ids

    async def _process_message(
        self, user_id: str, user_email: str, access_token: str, message_id: str, now: datetime
    ) -> ItemResult:
        try:
            message = await self._gmail.get_message_metadata(access_token, message_id)
            record = message_to_record(message, user_email, now)
            if record is None:
                return ItemProcessed(message_id)

            contact = await self._contacts.upsert(
                user_id,
                record.contact_email,
                record.contact_name,
                record.timestamp,
                RecencyUpdate.OVERWRITE,
            )
            created = await self._interactions.upsert_if_absent(user_id, contact.id, record)
            return ItemProcessed(message_id, contacts_upserted=1, interactions_created=int(created))

        except TransientFetchFailure as e:
            logger.warning("Skipping message", user_id=user_id, message_id=message_id, error=str(e))
            return ItemSkipped(message_id, e)
        except Exception as e:
            logger.warning(
                "Failed to process message",
                user_id=user_id,
                message_id=message_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return ItemSkipped(message_id, TransientFetchFailure(str(e), item_id=message_id))
