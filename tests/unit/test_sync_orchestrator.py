"""
Tests for the full sync flow: email, then calendar, then scoring.
"""

from datetime import UTC, datetime, timedelta

import psycopg
import pytest

from pulse.features.relationship_sync.domain.errors import ProviderUnavailable
from pulse.features.relationship_sync.domain.models import RiskLabel
from pulse.features.relationship_sync.services.sync_service import SyncOrchestrator
from pulse.services.google_api_client import GoogleAPIError
from tests.fakes import (
    USER_EMAIL,
    USER_ID,
    FakeCalendarClient,
    FakeGmailClient,
    calendar_event,
    gmail_message,
)


def _recent_date(days_ago: int) -> str:
    return (datetime.now(UTC) - timedelta(days=days_ago)).strftime("%a, %d %b %Y %H:%M:%S +0000")


def _orchestrator(store, token_service, gmail, calendar):
    return SyncOrchestrator(
        store_provider=store,
        token_service=token_service,
        gmail_client=gmail,
        calendar_client=calendar,
        email_batch_delay_seconds=0,
    )


@pytest.mark.asyncio
async def test_sync_reports_counts_and_scores_contacts(relationship_store, token_service):
    gmail = FakeGmailClient(
        [
            gmail_message("m1", "Ana <ana@example.com>", USER_EMAIL, date=_recent_date(2)),
            gmail_message("m2", USER_EMAIL, "ana@example.com", date=_recent_date(1)),
        ]
    )
    calendar = FakeCalendarClient(
        [[calendar_event("e1", datetime.now(UTC) - timedelta(days=3), [{"email": "bob@example.com"}])]]
    )

    report = await _orchestrator(relationship_store, token_service, gmail, calendar).sync(USER_ID, USER_EMAIL)

    assert report.email_contacts_upserted == 2
    assert report.email_interactions_created == 2
    assert report.calendar_contacts_upserted == 1
    assert report.calendar_interactions_created == 1
    assert report.calendar_error is None
    assert report.contacts_scored == 2
    assert report.contacts_processed == 3
    assert report.interactions_created == 3
    assert relationship_store.sessions_opened == 1

    ana = relationship_store.contact_by_email("ana@example.com")
    # 100 - 2*1 - 15 (last email was ours) + 2*2
    assert ana.score == 87
    assert ana.risk_label is RiskLabel.ACTIVE


@pytest.mark.asyncio
async def test_calendar_failure_is_reported_and_scoring_still_runs(relationship_store, token_service):
    gmail = FakeGmailClient([gmail_message("m1", "ana@example.com", USER_EMAIL, date=_recent_date(40))])
    calendar = FakeCalendarClient()
    calendar.list_error = GoogleAPIError("Calendar API is not enabled for your Google Cloud project.", status_code=403)

    report = await _orchestrator(relationship_store, token_service, gmail, calendar).sync(USER_ID, USER_EMAIL)

    assert report.calendar_error.startswith("Calendar API is not enabled")
    assert report.calendar_contacts_upserted == 0
    assert report.email_interactions_created == 1
    ana = relationship_store.contact_by_email("ana@example.com")
    assert ana.score == 20
    assert ana.risk_label is RiskLabel.AT_RISK


@pytest.mark.asyncio
async def test_email_failure_aborts_sync(relationship_store, token_service):
    gmail = FakeGmailClient([])
    gmail.list_error = GoogleAPIError("Gmail API is not enabled", status_code=403)
    calendar = FakeCalendarClient([[calendar_event("e1", datetime.now(UTC), [{"email": "bob@example.com"}])]])

    with pytest.raises(ProviderUnavailable):
        await _orchestrator(relationship_store, token_service, gmail, calendar).sync(USER_ID, USER_EMAIL)

    assert calendar.windows == []
    assert relationship_store.contacts == {}


@pytest.mark.asyncio
async def test_recompute_scores_without_fetching(relationship_store, token_service):
    relationship_store.add_contact(USER_ID, "ana@example.com", last_interaction_at=datetime.now(UTC))
    gmail = FakeGmailClient([])
    calendar = FakeCalendarClient()

    scored = await _orchestrator(relationship_store, token_service, gmail, calendar).recompute_scores(USER_ID)

    assert scored == 1
    assert token_service.calls == 0
    assert gmail.queries == []


@pytest.mark.asyncio
async def test_unexpected_calendar_error_is_reported_and_scoring_still_runs(relationship_store, token_service):
    gmail = FakeGmailClient([gmail_message("m1", "ana@example.com", USER_EMAIL, date=_recent_date(1))])
    calendar = FakeCalendarClient()

    async def broken_list_events(*args, **kwargs):
        raise psycopg.OperationalError("server closed the connection unexpectedly")

    calendar.list_events = broken_list_events

    report = await _orchestrator(relationship_store, token_service, gmail, calendar).sync(USER_ID, USER_EMAIL)

    assert report.calendar_error == "server closed the connection unexpectedly"
    assert report.email_interactions_created == 1
    assert report.contacts_scored == 1
    assert relationship_store.contact_by_email("ana@example.com").score > 0


@pytest.mark.asyncio
async def test_database_timeout_on_calendar_attendee_does_not_fail_sync(relationship_store, token_service):
    gmail = FakeGmailClient([gmail_message("m1", "ana@example.com", USER_EMAIL, date=_recent_date(1))])
    calendar = FakeCalendarClient(
        [[calendar_event("e1", datetime.now(UTC) - timedelta(days=1), [{"email": "bob@example.com"}])]]
    )
    relationship_store.failing_emails.add("bob@example.com")

    report = await _orchestrator(relationship_store, token_service, gmail, calendar).sync(USER_ID, USER_EMAIL)

    assert report.calendar_error is None
    assert report.calendar_contacts_upserted == 0
    assert report.email_interactions_created == 1
    assert report.contacts_scored == 1
