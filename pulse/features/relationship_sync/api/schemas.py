"""
Relationship sync API response models.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from pulse.features.relationship_sync.domain.models import SyncReport
from pulse.features.relationship_sync.services.dashboard_service import Dashboard


class GmailSyncResult(BaseModel):
    contacts_processed: int = Field(..., description="Contacts upserted from email")
    interactions_created: int = Field(..., description="New email interactions")


class CalendarSyncResult(BaseModel):
    contacts_processed: int = Field(..., description="Contacts upserted from meetings")
    meetings_created: int = Field(..., description="New meeting interactions")
    error: str | None = Field(None, description="Why calendar ingestion failed, if it did")


class SyncResponse(BaseModel):
    """Response for POST /sync."""

    success: bool = Field(default=True)
    gmail: GmailSyncResult
    calendar: CalendarSyncResult
    contacts_processed: int = Field(..., description="Total contacts upserted (email + calendar)")
    interactions_created: int = Field(..., description="Total interactions created (email + calendar)")
    contacts_scored: int = Field(..., description="Contacts rescored after ingestion")

    @classmethod
    def from_report(cls, report: SyncReport) -> "SyncResponse":
        return cls(
            gmail=GmailSyncResult(
                contacts_processed=report.email_contacts_upserted,
                interactions_created=report.email_interactions_created,
            ),
            calendar=CalendarSyncResult(
                contacts_processed=report.calendar_contacts_upserted,
                meetings_created=report.calendar_interactions_created,
                error=report.calendar_error,
            ),
            contacts_processed=report.contacts_processed,
            interactions_created=report.interactions_created,
            contacts_scored=report.contacts_scored,
        )


class RecomputeScoresResponse(BaseModel):
    """Response for POST /scores/recompute."""

    success: bool = Field(default=True)
    contacts_scored: int


class DashboardContact(BaseModel):
    id: str
    name: str | None
    email: str
    score: int
    risk_label: str
    last_interaction_at: datetime | None


class PendingReplyContact(BaseModel):
    id: str
    name: str | None
    email: str
    score: int
    risk_label: str
    last_outbound_at: datetime
    days_pending: int = Field(..., description="Whole days since the user's unanswered email")


class MeetingAttendeeSchema(BaseModel):
    contact_id: str
    name: str | None
    email: str
    risk_label: str


class UpcomingMeetingSchema(BaseModel):
    id: str
    subject: str | None
    timestamp: datetime
    attendees: list[MeetingAttendeeSchema]


class QuickStatsSchema(BaseModel):
    total_contacts: int
    at_risk_count: int
    outbound_pending_count: int
    interactions_last_7_days: int


class DashboardResponse(BaseModel):
    """Response for GET /dashboard."""

    latest_interaction_at: datetime | None = Field(
        None, description="Newest stored interaction, a proxy for the last sync"
    )
    at_risk_contacts: list[DashboardContact]
    outbound_pending_contacts: list[PendingReplyContact]
    upcoming_meetings: list[UpcomingMeetingSchema]
    quick_stats: QuickStatsSchema

    @classmethod
    def from_dashboard(cls, dashboard: Dashboard) -> "DashboardResponse":
        return cls(
            latest_interaction_at=dashboard.latest_interaction_at,
            at_risk_contacts=[
                DashboardContact(
                    id=c.id,
                    name=c.display_name,
                    email=c.email,
                    score=c.score,
                    risk_label=c.risk_label.value,
                    last_interaction_at=c.last_interaction_at,
                )
                for c in dashboard.at_risk_contacts
            ],
            outbound_pending_contacts=[
                PendingReplyContact(
                    id=p.contact.id,
                    name=p.contact.display_name,
                    email=p.contact.email,
                    score=p.contact.score,
                    risk_label=p.contact.risk_label.value,
                    last_outbound_at=p.last_outbound_at,
                    days_pending=p.days_pending,
                )
                for p in dashboard.outbound_pending
            ],
            upcoming_meetings=[
                UpcomingMeetingSchema(
                    id=m.interaction_id,
                    subject=m.subject,
                    timestamp=m.timestamp,
                    attendees=[
                        MeetingAttendeeSchema(
                            contact_id=a.contact_id,
                            name=a.display_name,
                            email=a.email,
                            risk_label=a.risk_label.value,
                        )
                        for a in m.attendees
                    ],
                )
                for m in dashboard.upcoming_meetings
            ],
            quick_stats=QuickStatsSchema(
                total_contacts=dashboard.quick_stats.total_contacts,
                at_risk_count=dashboard.quick_stats.at_risk_count,
                outbound_pending_count=dashboard.quick_stats.outbound_pending_count,
                interactions_last_7_days=dashboard.quick_stats.interactions_last_7_days,
            ),
        )
