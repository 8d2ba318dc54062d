"""
Token Service for Google access tokens.
Returns a usable access token for a user, refreshing and persisting it when
the stored one has expired. Refreshes are single-flight per user.
"""

import asyncio
import weakref

from pulse.config import settings
from pulse.features.relationship_sync.domain.errors import AuthExpired, ProviderError
from pulse.infrastructure.observability.logging import get_logger
from pulse.repositories.user_token_repository import UserTokenStore
from pulse.services.google_oauth_service import GoogleOAuthError, GoogleOAuthService
from pulse.services.infrastructure.encryption_service import EncryptionError

logger = get_logger(__name__)


class TokenService:
    """
    Hands out valid Google access tokens.

    Concurrent callers for the same user share one refresh: the first takes
    the user's lock and refreshes, the rest re-read the stored token after
    the lock is released.
    """

    def __init__(
        self,
        token_store: UserTokenStore,
        oauth_service: GoogleOAuthService,
        refresh_timeout_seconds: float | None = None,
    ):
        self._token_store = token_store
        self._oauth_service = oauth_service
        self._refresh_timeout = (
            settings.TOKEN_REFRESH_TIMEOUT_SECONDS if refresh_timeout_seconds is None else refresh_timeout_seconds
        )
        # A user's lock lives only while some caller holds a reference to it
        self._refresh_locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()

    def _refresh_lock(self, user_id: str) -> asyncio.Lock:
        lock = self._refresh_locks.get(user_id)
        if lock is None:
            lock = asyncio.Lock()
            self._refresh_locks[user_id] = lock
        return lock

    async def _load_tokens(self, user_id: str):
        try:
            tokens = await self._token_store.get_user_tokens(user_id)
        except EncryptionError as e:
            logger.error("Stored tokens could not be decrypted", user_id=user_id, error=str(e))
            raise AuthExpired("Stored Google credentials are unreadable. Please sign in again.", user_id) from e

        if tokens is None or not tokens.access_token:
            raise AuthExpired("No Google access token found. Please sign in.", user_id)
        return tokens

    async def get_valid_access_token(self, user_id: str) -> str:
        """
        Return an access token valid right now.

        Raises:
            AuthExpired: No token, no refresh token, or Google rejected the refresh
            ProviderError: The refresh call failed for another reason (timeout, 5xx)
        """
        tokens = await self._load_tokens(user_id)
        if not tokens.is_expired():
            return tokens.access_token

        async with self._refresh_lock(user_id):
            # Another caller may have refreshed while we waited for the lock
            tokens = await self._load_tokens(user_id)
            if not tokens.is_expired():
                return tokens.access_token

            if not tokens.refresh_token:
                logger.warning("Access token expired with no refresh token", user_id=user_id)
                raise AuthExpired("Google access expired. Please sign in again.", user_id)

            return await self._refresh(user_id, tokens.refresh_token)

    async def _refresh(self, user_id: str, refresh_token: str) -> str:
        logger.info("Refreshing Google access token", user_id=user_id)
        try:
            token_response = await asyncio.wait_for(
                self._oauth_service.refresh_access_token(refresh_token),
                timeout=self._refresh_timeout,
            )
        except TimeoutError as e:
            logger.error("Token refresh timed out", user_id=user_id, timeout_seconds=self._refresh_timeout)
            raise ProviderError("Google token refresh timed out", provider="google_oauth", user_id=user_id) from e
        except GoogleOAuthError as e:
            if e.token_rejected:
                logger.warning("Refresh token rejected by Google", user_id=user_id, error_code=e.error_code)
                raise AuthExpired("Failed to refresh token. Please sign in again.", user_id) from e
            raise ProviderError(
                f"Google token refresh failed: {e}",
                provider="google_oauth",
                status_code=e.status_code,
                user_id=user_id,
            ) from e

        await self._token_store.update_user_tokens(
            user_id,
            access_token=token_response.access_token,
            token_expiry=token_response.expires_at,
            refresh_token=token_response.refresh_token,
        )
        logger.info("Google access token refreshed", user_id=user_id, expires_in=token_response.expires_in)
        return token_response.access_token
