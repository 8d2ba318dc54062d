"""
Interaction writes guarded by a dedup lookup.
"""

import asyncio
from collections import defaultdict

from pulse.features.relationship_sync.domain.models import InteractionKey, InteractionRecord
from pulse.features.relationship_sync.repository.store import RelationshipStore


class InteractionRepository:
    """
    Creates an interaction only when no row with the same dedup key exists.

    Lookups and inserts for one contact are serialized, so items processed
    concurrently within a run cannot both pass the check. Separate runs for
    the same user can still race: there is no unique constraint behind it.
    """

    def __init__(self, store: RelationshipStore):
        self._store = store
        self._contact_locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def upsert_if_absent(self, owner_user_id: str, contact_id: str, record: InteractionRecord) -> bool:
        """Returns True when a new interaction was created."""
        key = InteractionKey.for_record(contact_id, record)

        async with self._contact_locks[contact_id]:
            if await self._store.find_interaction(key) is not None:
                return False
            await self._store.create_interaction(owner_user_id, contact_id, record)
            return True
