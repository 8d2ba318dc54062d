"""
Error kinds raised by the relationship sync pipeline.

Fetch-level errors (AuthExpired, ProviderUnavailable, ProviderError) abort
the fetcher that raised them. Item-level errors (TransientFetchFailure and
MalformedTimestamp) never leave the fetch loop: the item is skipped.
"""

from pulse.services.google_api_client import GoogleAPIError

UNAUTHORIZED = "unauthorized"
FORBIDDEN = "forbidden"
INTERNAL = "internal"


class RelationshipSyncError(Exception):
    """Base class for sync pipeline errors."""

    status_classification = INTERNAL

    def __init__(self, message: str, user_id: str | None = None):
        super().__init__(message)
        self.user_id = user_id


class AuthExpired(RelationshipSyncError):
    """No valid or refreshable token; the user must sign in again."""

    status_classification = UNAUTHORIZED


class ProviderError(RelationshipSyncError):
    """A provider call failed at the fetch level (timeouts, 5xx, unexpected payloads)."""

    def __init__(
        self,
        message: str,
        provider: str,
        status_code: int | None = None,
        user_id: str | None = None,
    ):
        super().__init__(message, user_id=user_id)
        self.provider = provider
        self.status_code = status_code


class ProviderUnavailable(ProviderError):
    """The provider API is disabled, access was denied, or the user is rate-limited."""

    status_classification = FORBIDDEN


class TransientFetchFailure(RelationshipSyncError):
    """A single message or attendee could not be fetched or parsed."""

    def __init__(self, message: str, item_id: str | None = None):
        super().__init__(message)
        self.item_id = item_id


class MalformedTimestamp(TransientFetchFailure):
    """An unparseable date on a message or event."""


def translate_provider_error(
    error: GoogleAPIError, provider: str, user_id: str | None = None
) -> RelationshipSyncError:
    """Map a Google API failure on a page-list call to a fetch-level error kind."""
    if error.status_code == 401:
        return AuthExpired(str(error), user_id=user_id)
    if error.status_code in (403, 429):
        return ProviderUnavailable(
            str(error), provider=provider, status_code=error.status_code, user_id=user_id
        )
    return ProviderError(str(error), provider=provider, status_code=error.status_code, user_id=user_id)


def classify_sync_error(error: Exception) -> str:
    """Status classification (unauthorized / forbidden / internal) for a fatal sync error."""
    if isinstance(error, RelationshipSyncError):
        return error.status_classification
    return INTERNAL
