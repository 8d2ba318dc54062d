"""
PostgreSQL implementation of the relationship store.

PostgresStore borrows one pooled connection per sync run and yields a
PostgresRelationshipStore bound to it.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import psycopg

from pulse.db.helpers import execute_query, fetch_all, fetch_one
from pulse.db.pool import DatabasePoolManager
from pulse.features.relationship_sync.domain.models import (
    Contact,
    ContactHistory,
    ContactUpsert,
    Interaction,
    InteractionKey,
    InteractionRecord,
    InteractionType,
    RecencyUpdate,
    RiskLabel,
)
from pulse.features.relationship_sync.repository.store import RelationshipStore, StoreProvider
from pulse.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

CONTACT_COLUMNS = """
    id::text AS id, owner_user_id::text AS owner_user_id, email, display_name,
    last_interaction_at, score, risk_label, created_at
"""

INTERACTION_COLUMNS = """
    id::text AS id, owner_user_id::text AS owner_user_id, contact_id::text AS contact_id,
    type, subject, snippet, timestamp, thread_id
"""

UPSERT_CONTACT_SQL = f"""
INSERT INTO contacts (owner_user_id, email, display_name, last_interaction_at)
VALUES (%(owner_user_id)s, %(email)s, %(display_name)s, %(initial_last_interaction_at)s)
ON CONFLICT (owner_user_id, email) DO UPDATE SET
    display_name = COALESCE(EXCLUDED.display_name, contacts.display_name),
    last_interaction_at = CASE %(recency)s::text
        WHEN 'overwrite' THEN %(observed_at)s::timestamptz
        WHEN 'advance' THEN GREATEST(contacts.last_interaction_at, %(observed_at)s::timestamptz)
        ELSE contacts.last_interaction_at
    END,
    updated_at = NOW()
RETURNING {CONTACT_COLUMNS}
"""

FIND_EMAIL_INTERACTION_SQL = f"""
SELECT {INTERACTION_COLUMNS}
FROM interactions
WHERE contact_id = %s
  AND type IN ('EMAIL_IN', 'EMAIL_OUT')
  AND thread_id IS NOT DISTINCT FROM %s::text
  AND timestamp = %s
LIMIT 1
"""

FIND_MEETING_INTERACTION_SQL = f"""
SELECT {INTERACTION_COLUMNS}
FROM interactions
WHERE contact_id = %s
  AND type = 'MEETING'
  AND timestamp = %s
  AND subject IS NOT DISTINCT FROM %s::text
LIMIT 1
"""

INSERT_INTERACTION_SQL = f"""
INSERT INTO interactions (owner_user_id, contact_id, type, subject, snippet, timestamp, thread_id)
VALUES (%s, %s, %s, %s, %s, %s, %s)
RETURNING {INTERACTION_COLUMNS}
"""


def _row_to_contact(row: dict[str, Any]) -> Contact:
    return Contact(
        id=row["id"],
        owner_user_id=row["owner_user_id"],
        email=row["email"],
        display_name=row["display_name"],
        last_interaction_at=row["last_interaction_at"],
        created_at=row["created_at"],
        score=row["score"],
        risk_label=RiskLabel(row["risk_label"]),
    )


def _row_to_interaction(row: dict[str, Any]) -> Interaction:
    return Interaction(
        id=row["id"],
        owner_user_id=row["owner_user_id"],
        contact_id=row["contact_id"],
        type=InteractionType(row["type"]),
        timestamp=row["timestamp"],
        subject=row["subject"],
        snippet=row["snippet"],
        thread_id=row["thread_id"],
    )


class PostgresRelationshipStore(RelationshipStore):
    """RelationshipStore over a single connection held for one sync run."""

    def __init__(self, connection: psycopg.AsyncConnection):
        self._conn = connection

    async def upsert_contact(self, upsert: ContactUpsert) -> Contact:
        params = {
            "owner_user_id": upsert.owner_user_id,
            "email": upsert.email,
            "display_name": upsert.display_name,
            "initial_last_interaction_at": (
                None if upsert.recency is RecencyUpdate.KEEP else upsert.observed_at
            ),
            "recency": upsert.recency.value,
            "observed_at": upsert.observed_at,
        }
        row = await fetch_one(self._conn, UPSERT_CONTACT_SQL, params)
        return _row_to_contact(row)

    async def find_interaction(self, key: InteractionKey) -> Interaction | None:
        if key.type.is_email:
            row = await fetch_one(
                self._conn, FIND_EMAIL_INTERACTION_SQL, (key.contact_id, key.thread_id, key.timestamp)
            )
        else:
            row = await fetch_one(
                self._conn, FIND_MEETING_INTERACTION_SQL, (key.contact_id, key.timestamp, key.subject)
            )
        return _row_to_interaction(row) if row else None

    async def create_interaction(
        self, owner_user_id: str, contact_id: str, record: InteractionRecord
    ) -> Interaction:
        row = await fetch_one(
            self._conn,
            INSERT_INTERACTION_SQL,
            (
                owner_user_id,
                contact_id,
                record.type.value,
                record.subject,
                record.snippet,
                record.timestamp,
                record.thread_id,
            ),
        )
        return _row_to_interaction(row)

    async def list_contact_histories(self, owner_user_id: str) -> list[ContactHistory]:
        contact_rows = await fetch_all(
            self._conn,
            f"SELECT {CONTACT_COLUMNS} FROM contacts WHERE owner_user_id = %s ORDER BY created_at",
            (owner_user_id,),
        )
        interaction_rows = await fetch_all(
            self._conn,
            f"""
            SELECT {INTERACTION_COLUMNS}
            FROM interactions
            WHERE owner_user_id = %s
            ORDER BY timestamp DESC
            """,
            (owner_user_id,),
        )

        histories = {row["id"]: ContactHistory(contact=_row_to_contact(row)) for row in contact_rows}
        for row in interaction_rows:
            history = histories.get(row["contact_id"])
            if history is not None:
                history.interactions.append(_row_to_interaction(row))
        return list(histories.values())

    async def update_contact_score(self, contact_id: str, score: int, risk_label: RiskLabel) -> None:
        await execute_query(
            self._conn,
            "UPDATE contacts SET score = %s, risk_label = %s, updated_at = NOW() WHERE id = %s",
            (score, risk_label.value, contact_id),
        )


class PostgresStore(StoreProvider):
    """StoreProvider backed by the database pool."""

    def __init__(self, db_pool: DatabasePoolManager):
        self._db_pool = db_pool

    @asynccontextmanager
    async def session(self) -> AsyncIterator[RelationshipStore]:
        async with self._db_pool.connection() as conn:
            logger.debug("Relationship store session opened")
            yield PostgresRelationshipStore(conn)
