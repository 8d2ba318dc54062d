"""
Domain subpackage for the relationship sync feature.
"""

from .errors import (
    AuthExpired,
    MalformedTimestamp,
    ProviderError,
    ProviderUnavailable,
    RelationshipSyncError,
    TransientFetchFailure,
    classify_sync_error,
)
from .models import (
    Contact,
    ContactHistory,
    ContactUpsert,
    FetchCounts,
    Interaction,
    InteractionKey,
    InteractionRecord,
    InteractionType,
    RecencyUpdate,
    RiskLabel,
    SyncReport,
    normalize_email,
)

__all__ = [
    "AuthExpired",
    "Contact",
    "ContactHistory",
    "ContactUpsert",
    "FetchCounts",
    "Interaction",
    "InteractionKey",
    "InteractionRecord",
    "InteractionType",
    "MalformedTimestamp",
    "ProviderError",
    "ProviderUnavailable",
    "RecencyUpdate",
    "RelationshipSyncError",
    "RiskLabel",
    "SyncReport",
    "TransientFetchFailure",
    "classify_sync_error",
    "normalize_email",
]
