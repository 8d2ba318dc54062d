"""
Google Gmail API client.
Lists message ids for a search query and fetches message metadata
(From/To/Subject/Date headers only).
"""

from pulse.infrastructure.observability.logging import get_logger
from pulse.models.domain.gmail_domain import GmailMessageMetadata
from pulse.services.google_api_client import GoogleAPIClient, GoogleAPIError

logger = get_logger(__name__)

GMAIL_API_BASE_URL = "https://gmail.googleapis.com/gmail/v1"
MESSAGE_LIST_PAGE_SIZE = 500
METADATA_HEADERS = ["From", "To", "Subject", "Date"]


class GoogleGmailService(GoogleAPIClient):
    """Low-level Gmail API client. Callers supply a valid access token per call."""

    SERVICE_NAME = "Gmail"
    CONSOLE_API_URL = "https://console.cloud.google.com/apis/library/gmail.googleapis.com"

    async def list_message_ids(
        self,
        access_token: str,
        query: str,
        page_token: str | None = None,
        max_results: int = MESSAGE_LIST_PAGE_SIZE,
    ) -> tuple[list[str], str | None]:
        """
        List one page of message ids matching a Gmail search query.

        Returns:
            Tuple of (message ids, next page token or None)

        Raises:
            GoogleAPIError: If the list call fails
        """
        params: dict = {"q": query, "maxResults": max_results}
        if page_token:
            params["pageToken"] = page_token

        response = await self._request_with_retry(
            "GET",
            f"{GMAIL_API_BASE_URL}/users/me/messages",
            headers=self._get_auth_headers(access_token),
            params=params,
        )
        data = self._handle_api_response(response, "list messages")

        message_ids = [m["id"] for m in data.get("messages", []) if m.get("id")]
        next_page_token = data.get("nextPageToken")

        logger.debug(
            "Gmail message page listed",
            message_count=len(message_ids),
            has_next_page=bool(next_page_token),
        )
        return message_ids, next_page_token

    async def get_message_metadata(self, access_token: str, message_id: str) -> GmailMessageMetadata:
        """
        Fetch the metadata headers of a single message.

        Raises:
            GoogleAPIError: If the message cannot be fetched
        """
        if not message_id:
            raise GoogleAPIError("Message ID is required", error_code="invalid_request")

        response = await self._request_with_retry(
            "GET",
            f"{GMAIL_API_BASE_URL}/users/me/messages/{message_id}",
            headers=self._get_auth_headers(access_token),
            params={"format": "metadata", "metadataHeaders": METADATA_HEADERS},
        )
        data = self._handle_api_response(response, "get message metadata")
        return GmailMessageMetadata(data)
