"""
Contact upserts keyed by (owner, normalized email).
"""

from datetime import datetime

from pulse.features.relationship_sync.domain.models import (
    Contact,
    ContactUpsert,
    RecencyUpdate,
    normalize_email,
)
from pulse.features.relationship_sync.repository.store import RelationshipStore


class ContactRepository:
    """
    Applies the contact merge rules on top of a RelationshipStore:

    - emails are trimmed and lower-cased before lookup
    - a non-empty observed name overwrites the stored one, an empty one never does
    - last_interaction_at moves according to the caller's RecencyUpdate
    """

    def __init__(self, store: RelationshipStore):
        self._store = store

    async def upsert(
        self,
        owner_user_id: str,
        email: str,
        display_name: str | None,
        observed_at: datetime,
        recency: RecencyUpdate = RecencyUpdate.OVERWRITE,
    ) -> Contact:
        normalized = normalize_email(email)
        if not normalized:
            raise ValueError("Contact email is required")

        name = (display_name or "").strip() or None
        return await self._store.upsert_contact(
            ContactUpsert(
                owner_user_id=owner_user_id,
                email=normalized,
                display_name=name,
                observed_at=observed_at,
                recency=recency,
            )
        )
