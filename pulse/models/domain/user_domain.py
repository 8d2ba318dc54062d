# pulse/models/domain/user_domain.py
"""
User token domain model (decrypted Google credentials for one user).
"""

from datetime import UTC, datetime

from pydantic import BaseModel


class UserTokens(BaseModel):
    """Decrypted Google OAuth credentials stored on the user row."""

    user_id: str
    access_token: str | None = None
    refresh_token: str | None = None
    token_expiry: datetime | None = None

    def is_expired(self, now: datetime | None = None) -> bool:
        """An unknown expiry counts as expired."""
        if not self.token_expiry:
            return True
        return (now or datetime.now(UTC)) >= self.token_expiry
