"""
Tests for the follow-up dashboard: at-risk list, pending replies, upcoming
meetings and quick stats.
"""

from datetime import UTC, datetime, timedelta

import httpx
import pytest
from fastapi import FastAPI

from pulse.features.relationship_sync.api.router import router
from pulse.features.relationship_sync.domain.models import InteractionRecord, InteractionType, RiskLabel
from pulse.features.relationship_sync.services.dashboard_service import DashboardService
from tests.fakes import USER_ID

NOW = datetime(2024, 3, 1, 12, 0, tzinfo=UTC)


def _record(contact, type_, days, subject=None):
    return InteractionRecord(
        contact.email,
        contact.display_name,
        type_,
        NOW + timedelta(days=days),
        subject=subject,
        thread_id=None if type_ is InteractionType.MEETING else f"t-{days}",
    )


@pytest.fixture
def populated_store(relationship_store):
    store = relationship_store
    ana = store.add_contact(USER_ID, "ana@example.com", display_name="Ana", score=10)
    bob = store.add_contact(USER_ID, "bob@example.com", score=30)
    cara = store.add_contact(USER_ID, "cara@example.com", score=90, risk_label=RiskLabel.ACTIVE)
    dan = store.add_contact(USER_ID, "dan@example.com", score=50, risk_label=RiskLabel.WARM)

    store.add_interaction(ana, _record(ana, InteractionType.EMAIL_OUT, -4))
    store.add_interaction(ana, _record(ana, InteractionType.EMAIL_IN, -10))
    store.add_interaction(bob, _record(bob, InteractionType.EMAIL_IN, -1))
    store.add_interaction(bob, _record(bob, InteractionType.EMAIL_OUT, -3))
    store.add_interaction(cara, _record(cara, InteractionType.EMAIL_OUT, -9))
    store.add_interaction(cara, _record(cara, InteractionType.MEETING, 2, subject="Planning"))
    store.add_interaction(dan, _record(dan, InteractionType.MEETING, 2, subject="Planning"))
    store.add_interaction(dan, _record(dan, InteractionType.MEETING, 10, subject="Offsite"))
    store.add_interaction(dan, _record(dan, InteractionType.MEETING, -1, subject="Retro"))
    return store


@pytest.mark.asyncio
async def test_dashboard_lists_contacts_needing_attention(populated_store):
    dashboard = await DashboardService(populated_store).get_dashboard(USER_ID, now=NOW)

    assert [c.email for c in dashboard.at_risk_contacts] == ["ana@example.com", "bob@example.com"]
    assert [(p.contact.email, p.days_pending) for p in dashboard.outbound_pending] == [
        ("cara@example.com", 9),
        ("ana@example.com", 4),
    ]
    assert dashboard.latest_interaction_at == NOW + timedelta(days=10)


@pytest.mark.asyncio
async def test_upcoming_meetings_are_grouped_by_subject_and_start(populated_store):
    dashboard = await DashboardService(populated_store).get_dashboard(USER_ID, now=NOW)

    [meeting] = dashboard.upcoming_meetings
    assert meeting.subject == "Planning"
    assert meeting.timestamp == NOW + timedelta(days=2)
    assert [a.email for a in meeting.attendees] == ["cara@example.com", "dan@example.com"]


@pytest.mark.asyncio
async def test_quick_stats(populated_store):
    stats = (await DashboardService(populated_store).get_dashboard(USER_ID, now=NOW)).quick_stats

    assert stats.total_contacts == 4
    assert stats.at_risk_count == 2
    assert stats.outbound_pending_count == 2
    # everything stamped on or after NOW - 7d, upcoming meetings included
    assert stats.interactions_last_7_days == 7


@pytest.mark.asyncio
async def test_at_risk_list_keeps_five_worst_scores(relationship_store):
    for score in (35, 5, 25, 15, 30, 0, 20):
        relationship_store.add_contact(USER_ID, f"p{score}@example.com", score=score)

    dashboard = await DashboardService(relationship_store).get_dashboard(USER_ID, now=NOW)

    assert [c.score for c in dashboard.at_risk_contacts] == [0, 5, 15, 20, 25]
    assert dashboard.quick_stats.at_risk_count == 7


@pytest.mark.asyncio
async def test_dashboard_is_empty_for_new_user(relationship_store):
    dashboard = await DashboardService(relationship_store).get_dashboard(USER_ID, now=NOW)

    assert dashboard.latest_interaction_at is None
    assert dashboard.at_risk_contacts == []
    assert dashboard.upcoming_meetings == []
    assert dashboard.quick_stats.total_contacts == 0


@pytest.mark.asyncio
async def test_dashboard_route_returns_view(populated_store, apply_auth_override):
    app = FastAPI()
    app.include_router(router)
    app.state.dashboard_service = DashboardService(populated_store)
    apply_auth_override(app)

    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as client:
        response = await client.get("/dashboard")

    assert response.status_code == 200
    body = response.json()
    assert body["quick_stats"]["total_contacts"] == 4
    assert body["at_risk_contacts"][0]["name"] == "Ana"
    assert body["at_risk_contacts"][0]["risk_label"] == "At Risk"
    assert {p["email"] for p in body["outbound_pending_contacts"]} == {"ana@example.com", "cara@example.com"}


class FailingDashboardService:
    async def get_dashboard(self, user_id, now=None):
        raise RuntimeError("connection pool exhausted")


@pytest.mark.asyncio
async def test_dashboard_route_hides_internal_errors(apply_auth_override):
    app = FastAPI()
    app.include_router(router)
    app.state.dashboard_service = FailingDashboardService()
    apply_auth_override(app)

    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as client:
        response = await client.get("/dashboard")

    assert response.status_code == 500
    assert response.json()["detail"] == "Internal server error"
