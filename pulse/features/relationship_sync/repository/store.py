"""
Persistence interface for contacts and interactions.

A RelationshipStore is scoped to one sync run. StoreProvider hands one out
per run and releases it afterwards.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager

from pulse.features.relationship_sync.domain.models import (
    Contact,
    ContactHistory,
    ContactUpsert,
    Interaction,
    InteractionKey,
    InteractionRecord,
    RiskLabel,
)


class RelationshipStore(ABC):
    @abstractmethod
    async def upsert_contact(self, upsert: ContactUpsert) -> Contact:
        """
        Insert or update the contact keyed by (owner_user_id, email), atomically.

        A None display_name keeps the stored name. last_interaction_at follows
        upsert.recency; a newly inserted contact gets observed_at unless the
        policy is KEEP.
        """

    @abstractmethod
    async def find_interaction(self, key: InteractionKey) -> Interaction | None:
        """Return an existing interaction matching the dedup key, if any."""

    @abstractmethod
    async def create_interaction(
        self, owner_user_id: str, contact_id: str, record: InteractionRecord
    ) -> Interaction:
        """Insert a new interaction row."""

    @abstractmethod
    async def list_contact_histories(self, owner_user_id: str) -> list[ContactHistory]:
        """All contacts of a user, each with interactions ordered newest first."""

    @abstractmethod
    async def update_contact_score(self, contact_id: str, score: int, risk_label: RiskLabel) -> None:
        """Persist a computed score and label."""


class StoreProvider(ABC):
    @abstractmethod
    def session(self) -> AbstractAsyncContextManager[RelationshipStore]:
        """Async context manager yielding a store for one sync run."""
