"""
Per-item outcomes of a fetch and their aggregation into FetchCounts.
"""

from dataclasses import dataclass

from pulse.features.relationship_sync.domain.errors import TransientFetchFailure
from pulse.features.relationship_sync.domain.models import FetchCounts
from pulse.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class ItemProcessed:
    item_id: str | None
    contacts_upserted: int = 0
    interactions_created: int = 0


@dataclass(frozen=True, slots=True)
class ItemSkipped:
    item_id: str | None
    error: TransientFetchFailure


ItemResult = ItemProcessed | ItemSkipped


def fold_results(results: list[ItemResult], source: str) -> FetchCounts:
    """Sum processed items into FetchCounts; skipped items are logged and dropped."""
    counts = FetchCounts()
    skipped = 0
    for result in results:
        if isinstance(result, ItemSkipped):
            skipped += 1
            continue
        counts.contacts_upserted += result.contacts_upserted
        counts.interactions_created += result.interactions_created

    if skipped:
        logger.warning(
            "Items skipped during fetch",
            source=source,
            skipped=skipped,
            total=len(results),
        )
    return counts
