"""
Domain models for the relationship sync feature.

Plain dataclasses shared by the fetchers, repositories, scoring pipeline and
API layer. They carry no I/O so every layer can build and inspect them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class InteractionType(str, Enum):
    EMAIL_IN = "EMAIL_IN"
    EMAIL_OUT = "EMAIL_OUT"
    MEETING = "MEETING"

    @property
    def is_email(self) -> bool:
        return self in (InteractionType.EMAIL_IN, InteractionType.EMAIL_OUT)


class RiskLabel(str, Enum):
    ACTIVE = "Active"
    WARM = "Warm"
    AT_RISK = "At Risk"


class RecencyUpdate(str, Enum):
    """How an observed interaction moves a contact's last_interaction_at."""

    OVERWRITE = "overwrite"  # always set to the observed timestamp (email)
    ADVANCE = "advance"  # set only if later than the stored value (past meetings)
    KEEP = "keep"  # leave untouched (future meetings)


def normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


@dataclass(slots=True)
class Contact:
    id: str
    owner_user_id: str
    email: str
    display_name: str | None
    last_interaction_at: datetime | None
    created_at: datetime
    score: int = 0
    risk_label: RiskLabel = RiskLabel.AT_RISK


@dataclass(slots=True)
class Interaction:
    id: str
    owner_user_id: str
    contact_id: str
    type: InteractionType
    timestamp: datetime
    subject: str | None = None
    snippet: str | None = None
    thread_id: str | None = None


@dataclass(slots=True)
class ContactHistory:
    """A contact together with its full interaction history, newest first."""

    contact: Contact
    interactions: list[Interaction] = field(default_factory=list)


@dataclass(slots=True)
class ContactUpsert:
    owner_user_id: str
    email: str
    display_name: str | None
    observed_at: datetime
    recency: RecencyUpdate


@dataclass(slots=True)
class InteractionRecord:
    """A normalized interaction produced by a fetcher, before it is tied to a contact."""

    contact_email: str
    contact_name: str | None
    type: InteractionType
    timestamp: datetime
    subject: str | None = None
    snippet: str | None = None
    thread_id: str | None = None


@dataclass(frozen=True, slots=True)
class InteractionKey:
    """
    Dedup identity of an interaction.

    Email types match on (contact_id, thread_id, timestamp) across both
    directions; meetings match on (contact_id, MEETING, timestamp, subject).
    """

    contact_id: str
    type: InteractionType
    timestamp: datetime
    thread_id: str | None = None
    subject: str | None = None

    @classmethod
    def for_record(cls, contact_id: str, record: InteractionRecord) -> InteractionKey:
        if record.type.is_email:
            return cls(
                contact_id=contact_id,
                type=record.type,
                timestamp=record.timestamp,
                thread_id=record.thread_id,
            )
        return cls(
            contact_id=contact_id,
            type=InteractionType.MEETING,
            timestamp=record.timestamp,
            subject=record.subject,
        )

    def matches(self, interaction: Interaction) -> bool:
        if interaction.contact_id != self.contact_id or interaction.timestamp != self.timestamp:
            return False
        if self.type.is_email:
            return interaction.type.is_email and interaction.thread_id == self.thread_id
        return interaction.type is InteractionType.MEETING and interaction.subject == self.subject


@dataclass(slots=True)
class FetchCounts:
    contacts_upserted: int = 0
    interactions_created: int = 0


@dataclass(slots=True)
class SyncReport:
    email_contacts_upserted: int
    email_interactions_created: int
    calendar_contacts_upserted: int
    calendar_interactions_created: int
    calendar_error: str | None = None
    contacts_scored: int = 0

    @property
    def contacts_processed(self) -> int:
        return self.email_contacts_upserted + self.calendar_contacts_upserted

    @property
    def interactions_created(self) -> int:
        return self.email_interactions_created + self.calendar_interactions_created
