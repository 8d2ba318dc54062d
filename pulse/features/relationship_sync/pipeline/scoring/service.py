"""
Relationship scoring - turns a contact's interaction history into a 0-100
health score and a risk label.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from pulse.features.relationship_sync.domain.models import (
    ContactHistory,
    InteractionType,
    RiskLabel,
)
from pulse.features.relationship_sync.repository.store import RelationshipStore
from pulse.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

BASE_SCORE = 100
RECENCY_PENALTY_PER_DAY = 2
OUTBOUND_PENDING_PENALTY = 15
MEETING_BONUS = 8
EMAIL_BONUS = 2

ACTIVE_THRESHOLD = 70
WARM_THRESHOLD = 40

ACTIVITY_WINDOW = timedelta(days=30)


@dataclass(frozen=True, slots=True)
class ScoringInputs:
    days_since_last_interaction: int
    outbound_pending: bool
    meeting_count_last_30: int
    email_count_last_30: int


@dataclass(frozen=True, slots=True)
class ScoreResult:
    score: int
    risk_label: RiskLabel


def risk_label_for(score: int) -> RiskLabel:
    if score >= ACTIVE_THRESHOLD:
        return RiskLabel.ACTIVE
    if score >= WARM_THRESHOLD:
        return RiskLabel.WARM
    return RiskLabel.AT_RISK


def compute_score(
    days_since_last_interaction: int,
    outbound_pending: bool,
    meeting_count_last_30: int,
    email_count_last_30: int,
) -> ScoreResult:
    """
    score = 100 - 2*days - 15*(outbound pending) + 8*meetings + 2*emails,
    clamped to [0, 100]. Labels: >=70 Active, >=40 Warm, otherwise At Risk.
    """
    if days_since_last_interaction < 0 or meeting_count_last_30 < 0 or email_count_last_30 < 0:
        raise ValueError("Scoring inputs must be non-negative")

    raw = (
        BASE_SCORE
        - RECENCY_PENALTY_PER_DAY * days_since_last_interaction
        - (OUTBOUND_PENDING_PENALTY if outbound_pending else 0)
        + MEETING_BONUS * meeting_count_last_30
        + EMAIL_BONUS * email_count_last_30
    )
    score = max(0, min(100, raw))
    return ScoreResult(score=score, risk_label=risk_label_for(score))


def derive_scoring_inputs(history: ContactHistory, now: datetime) -> ScoringInputs:
    """
    Build scoring inputs from a contact and its interactions.

    Recency falls back to the contact's creation time when it has never had a
    recorded interaction. "Outbound pending" means the newest email-type
    interaction is one the user sent.
    """
    contact = history.contact
    reference = contact.last_interaction_at or contact.created_at
    days_since = max(0, (now - reference) // timedelta(days=1))

    window_start = now - ACTIVITY_WINDOW
    recent = [i for i in history.interactions if i.timestamp >= window_start]
    meeting_count = sum(1 for i in recent if i.type is InteractionType.MEETING)
    email_count = sum(1 for i in recent if i.type.is_email)

    newest_email = max(
        (i for i in history.interactions if i.type.is_email),
        key=lambda i: i.timestamp,
        default=None,
    )
    outbound_pending = newest_email is not None and newest_email.type is InteractionType.EMAIL_OUT

    return ScoringInputs(
        days_since_last_interaction=days_since,
        outbound_pending=outbound_pending,
        meeting_count_last_30=meeting_count,
        email_count_last_30=email_count,
    )


class ScoringService:
    """Recomputes and persists scores for every contact a user owns."""

    def __init__(self, store: RelationshipStore):
        self._store = store

    async def recompute_all(self, owner_user_id: str, now: datetime | None = None) -> int:
        """Score all of the user's contacts. Returns the number of contacts scored."""
        now = now or datetime.now(UTC)
        histories = await self._store.list_contact_histories(owner_user_id)

        label_counts = {label: 0 for label in RiskLabel}
        for history in histories:
            inputs = derive_scoring_inputs(history, now)
            result = compute_score(
                inputs.days_since_last_interaction,
                inputs.outbound_pending,
                inputs.meeting_count_last_30,
                inputs.email_count_last_30,
            )
            await self._store.update_contact_score(history.contact.id, result.score, result.risk_label)
            label_counts[result.risk_label] += 1

        logger.info(
            "Contact scores recomputed",
            user_id=owner_user_id,
            contacts_scored=len(histories),
            active=label_counts[RiskLabel.ACTIVE],
            warm=label_counts[RiskLabel.WARM],
            at_risk=label_counts[RiskLabel.AT_RISK],
        )
        return len(histories)
