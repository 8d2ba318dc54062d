"""
Persistence for the Google credentials stored on the user row.
Tokens are Fernet-encrypted at rest and decrypted on read.
"""

from abc import ABC, abstractmethod
from datetime import datetime

from pulse.db.helpers import execute_query, fetch_one, with_db_retry
from pulse.db.pool import DatabasePoolManager
from pulse.infrastructure.observability.logging import get_logger
from pulse.models.domain.user_domain import UserTokens
from pulse.services.infrastructure.encryption_service import (
    decrypt_optional_token,
    encrypt_optional_token,
    encrypt_token,
)

logger = get_logger(__name__)


class UserTokenStore(ABC):
    """Read and update a user's Google credentials."""

    @abstractmethod
    async def get_user_tokens(self, user_id: str) -> UserTokens | None:
        """
        Load decrypted tokens, or None when the user does not exist.

        Raises:
            EncryptionError: If a stored token cannot be decrypted
        """

    @abstractmethod
    async def update_user_tokens(
        self,
        user_id: str,
        access_token: str,
        token_expiry: datetime | None,
        refresh_token: str | None = None,
    ) -> None:
        """Persist a refreshed access token. A None refresh_token keeps the stored one."""


class PostgresUserTokenStore(UserTokenStore):
    """UserTokenStore over the users table. Each call borrows its own pooled connection."""

    def __init__(self, db_pool: DatabasePoolManager):
        self._db_pool = db_pool

    @with_db_retry(max_retries=3, base_delay=0.1)
    async def get_user_tokens(self, user_id: str) -> UserTokens | None:
        query = """
        SELECT id::text AS user_id, access_token, refresh_token, token_expiry
        FROM users
        WHERE id = %s
        """
        async with self._db_pool.connection() as conn:
            row = await fetch_one(conn, query, (user_id,))

        if not row:
            return None

        return UserTokens(
            user_id=row["user_id"],
            access_token=decrypt_optional_token(row["access_token"]),
            refresh_token=decrypt_optional_token(row["refresh_token"]),
            token_expiry=row["token_expiry"],
        )

    @with_db_retry(max_retries=3, base_delay=0.1)
    async def update_user_tokens(
        self,
        user_id: str,
        access_token: str,
        token_expiry: datetime | None,
        refresh_token: str | None = None,
    ) -> None:
        query = """
        UPDATE users
        SET access_token = %s,
            refresh_token = COALESCE(%s, refresh_token),
            token_expiry = %s,
            updated_at = NOW()
        WHERE id = %s
        """
        params = (encrypt_token(access_token), encrypt_optional_token(refresh_token), token_expiry, user_id)
        async with self._db_pool.connection() as conn:
            updated = await execute_query(conn, query, params)

        if updated == 0:
            logger.warning("Token update matched no user", user_id=user_id)
        else:
            logger.info(
                "User access token updated",
                user_id=user_id,
                expires_at=token_expiry.isoformat() if token_expiry else None,
                refresh_token_rotated=bool(refresh_token),
            )
