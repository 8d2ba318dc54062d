"""
Follow-up view over a user's scored contacts.

Surfaces the contacts that need attention (worst At Risk scores, replies
still pending on the other side), meetings coming up in the next week and a
few headline counts.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

from pulse.features.relationship_sync.domain.models import (
    Contact,
    ContactHistory,
    InteractionType,
    RiskLabel,
)
from pulse.features.relationship_sync.repository.store import StoreProvider
from pulse.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

LIST_LIMIT = 5
UPCOMING_WINDOW = timedelta(days=7)
ACTIVITY_WINDOW = timedelta(days=7)


@dataclass(frozen=True, slots=True)
class PendingReply:
    contact: Contact
    last_outbound_at: datetime
    days_pending: int


@dataclass(frozen=True, slots=True)
class MeetingAttendee:
    contact_id: str
    display_name: str | None
    email: str
    risk_label: RiskLabel


@dataclass(slots=True)
class UpcomingMeeting:
    interaction_id: str
    subject: str | None
    timestamp: datetime
    attendees: list[MeetingAttendee] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class QuickStats:
    total_contacts: int
    at_risk_count: int
    outbound_pending_count: int
    interactions_last_7_days: int


@dataclass(slots=True)
class Dashboard:
    latest_interaction_at: datetime | None
    at_risk_contacts: list[Contact]
    outbound_pending: list[PendingReply]
    upcoming_meetings: list[UpcomingMeeting]
    quick_stats: QuickStats


def find_pending_reply(history: ContactHistory, now: datetime) -> PendingReply | None:
    """A reply is pending when the newest email with this contact was sent by the user."""
    latest_email = next((i for i in history.interactions if i.type.is_email), None)
    if latest_email is None or latest_email.type is not InteractionType.EMAIL_OUT:
        return None
    days_pending = max(0, (now - latest_email.timestamp) // timedelta(days=1))
    return PendingReply(history.contact, latest_email.timestamp, days_pending)


def group_upcoming_meetings(histories: list[ContactHistory], now: datetime) -> list[UpcomingMeeting]:
    """Meetings in [now, now + 7d], one entry per (subject, start) with every attendee."""
    horizon = now + UPCOMING_WINDOW
    entries = sorted(
        (
            (interaction, history.contact)
            for history in histories
            for interaction in history.interactions
            if interaction.type is InteractionType.MEETING and now <= interaction.timestamp <= horizon
        ),
        key=lambda entry: entry[0].timestamp,
    )

    meetings: dict[tuple[str | None, datetime], UpcomingMeeting] = {}
    for interaction, contact in entries:
        key = (interaction.subject, interaction.timestamp)
        meeting = meetings.get(key)
        if meeting is None:
            meeting = meetings[key] = UpcomingMeeting(
                interaction_id=interaction.id,
                subject=interaction.subject,
                timestamp=interaction.timestamp,
            )
        meeting.attendees.append(
            MeetingAttendee(contact.id, contact.display_name, contact.email, contact.risk_label)
        )
    return list(meetings.values())


def build_dashboard(histories: list[ContactHistory], now: datetime) -> Dashboard:
    contacts = [h.contact for h in histories]
    at_risk = sorted((c for c in contacts if c.risk_label is RiskLabel.AT_RISK), key=lambda c: c.score)

    pending = [p for p in (find_pending_reply(h, now) for h in histories) if p is not None]
    pending.sort(key=lambda p: p.days_pending, reverse=True)

    timestamps = [i.timestamp for h in histories for i in h.interactions]
    since = now - ACTIVITY_WINDOW

    return Dashboard(
        latest_interaction_at=max(timestamps, default=None),
        at_risk_contacts=at_risk[:LIST_LIMIT],
        outbound_pending=pending[:LIST_LIMIT],
        upcoming_meetings=group_upcoming_meetings(histories, now)[:LIST_LIMIT],
        quick_stats=QuickStats(
            total_contacts=len(contacts),
            at_risk_count=len(at_risk),
            outbound_pending_count=len(pending),
            interactions_last_7_days=sum(1 for ts in timestamps if ts >= since),
        ),
    )


class DashboardService:
    """Reads a user's contact histories and shapes them into a Dashboard."""

    def __init__(self, store_provider: StoreProvider):
        self._store_provider = store_provider

    async def get_dashboard(self, user_id: str, now: datetime | None = None) -> Dashboard:
        now = now or datetime.now(UTC)
        async with self._store_provider.session() as store:
            histories = await store.list_contact_histories(user_id)

        dashboard = build_dashboard(histories, now)
        logger.info(
            "Dashboard built",
            user_id=user_id,
            total_contacts=dashboard.quick_stats.total_contacts,
            at_risk_count=dashboard.quick_stats.at_risk_count,
            outbound_pending_count=dashboard.quick_stats.outbound_pending_count,
        )
        return dashboard
