"""
Tests for the SQL parameters and row mapping of the Postgres relationship store.
"""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from pulse.features.relationship_sync.domain.models import (
    ContactUpsert,
    InteractionKey,
    InteractionType,
    RecencyUpdate,
    RiskLabel,
)
from pulse.features.relationship_sync.repository.postgres_store import (
    FIND_EMAIL_INTERACTION_SQL,
    FIND_MEETING_INTERACTION_SQL,
    UPSERT_CONTACT_SQL,
    PostgresRelationshipStore,
)
from tests.fakes import USER_ID

STORE_MODULE = "pulse.features.relationship_sync.repository.postgres_store"
OBSERVED = datetime(2024, 1, 2, 9, 0, tzinfo=UTC)


def _contact_row(contact_id="c-1", **overrides) -> dict:
    row = {
        "id": contact_id,
        "owner_user_id": USER_ID,
        "email": "ana@example.com",
        "display_name": "Ana",
        "last_interaction_at": OBSERVED,
        "score": 55,
        "risk_label": "Warm",
        "created_at": datetime(2023, 12, 1, tzinfo=UTC),
    }
    row.update(overrides)
    return row


def _interaction_row(interaction_id, contact_id, timestamp, type_="EMAIL_IN") -> dict:
    return {
        "id": interaction_id,
        "owner_user_id": USER_ID,
        "contact_id": contact_id,
        "type": type_,
        "subject": "Hello",
        "snippet": None,
        "timestamp": timestamp,
        "thread_id": "t-1",
    }


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "recency,initial_last_interaction_at",
    [
        (RecencyUpdate.OVERWRITE, OBSERVED),
        (RecencyUpdate.ADVANCE, OBSERVED),
        (RecencyUpdate.KEEP, None),
    ],
)
async def test_upsert_contact_parameters_follow_recency(recency, initial_last_interaction_at):
    with patch(f"{STORE_MODULE}.fetch_one", new_callable=AsyncMock) as mock_fetch:
        mock_fetch.return_value = _contact_row()
        store = PostgresRelationshipStore(MagicMock())

        contact = await store.upsert_contact(
            ContactUpsert(USER_ID, "ana@example.com", None, OBSERVED, recency)
        )

    _, query, params = mock_fetch.call_args.args
    assert query == UPSERT_CONTACT_SQL
    assert params["recency"] == recency.value
    assert params["observed_at"] == OBSERVED
    assert params["initial_last_interaction_at"] == initial_last_interaction_at
    assert params["display_name"] is None
    assert contact.risk_label is RiskLabel.WARM


def test_upsert_sql_branches_match_recency_values():
    assert f"WHEN '{RecencyUpdate.OVERWRITE.value}'" in UPSERT_CONTACT_SQL
    assert f"WHEN '{RecencyUpdate.ADVANCE.value}' THEN GREATEST" in UPSERT_CONTACT_SQL
    assert "COALESCE(EXCLUDED.display_name, contacts.display_name)" in UPSERT_CONTACT_SQL


@pytest.mark.asyncio
async def test_find_interaction_picks_query_by_type():
    with patch(f"{STORE_MODULE}.fetch_one", new_callable=AsyncMock) as mock_fetch:
        mock_fetch.return_value = None
        store = PostgresRelationshipStore(MagicMock())

        email_key = InteractionKey("c-1", InteractionType.EMAIL_OUT, OBSERVED, thread_id="t-1")
        meeting_key = InteractionKey("c-1", InteractionType.MEETING, OBSERVED, subject="Meeting")
        assert await store.find_interaction(email_key) is None
        assert await store.find_interaction(meeting_key) is None

    email_call, meeting_call = mock_fetch.call_args_list
    assert email_call.args[1:] == (FIND_EMAIL_INTERACTION_SQL, ("c-1", "t-1", OBSERVED))
    assert meeting_call.args[1:] == (FIND_MEETING_INTERACTION_SQL, ("c-1", OBSERVED, "Meeting"))


@pytest.mark.asyncio
async def test_contact_histories_group_interactions_by_contact():
    newer, older = datetime(2024, 1, 5, tzinfo=UTC), datetime(2024, 1, 1, tzinfo=UTC)
    contact_rows = [_contact_row("c-1"), _contact_row("c-2", email="bob@example.com")]
    interaction_rows = [
        _interaction_row("i-1", "c-1", newer),
        _interaction_row("i-2", "c-1", older, type_="EMAIL_OUT"),
        _interaction_row("i-3", "c-9", older),
    ]

    with patch(f"{STORE_MODULE}.fetch_all", new_callable=AsyncMock) as mock_fetch_all:
        mock_fetch_all.side_effect = [contact_rows, interaction_rows]
        histories = await PostgresRelationshipStore(MagicMock()).list_contact_histories(USER_ID)

    assert [h.contact.id for h in histories] == ["c-1", "c-2"]
    assert [i.id for i in histories[0].interactions] == ["i-1", "i-2"]
    assert histories[0].interactions[1].type is InteractionType.EMAIL_OUT
    assert histories[1].interactions == []
