"""
Deduplicator - Decides NEW vs DUPLICATE and applies the merge policy.

Identity: (platform, original_id) first, then source_url.

Merge policy for duplicates:
- engagement metrics: last write wins (the fresh scrape replaces them)
- local engagement: never lowered by a scrape (scraped candidates carry zeros)
- content, tags, thumbnail, media: untouched
"""
import logging
from dataclasses import replace
from enum import Enum
from typing import Tuple

from .errors import PersistenceError, PostConflictError
from .gateway import PersistenceGateway, StoredEngagement
from .normalizer import EngagementMetrics, LocalEngagement, PostCandidate

logger = logging.getLogger(__name__)


class DedupOutcome(str, Enum):
    NEW = "new"
    DUPLICATE = "duplicate"


class IngestResult(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"


def merge_engagement(stored: StoredEngagement, candidate: PostCandidate) -> Tuple[EngagementMetrics, LocalEngagement]:
    """
    Engagement to store for a duplicate.

    Returns:
        (engagement metrics, local engagement)
    """
    engagement = replace(candidate.engagement)
    local = LocalEngagement(
        likes=max(stored.local.likes, candidate.local_engagement.likes),
        comments=max(stored.local.comments, candidate.local_engagement.comments),
        bookmarks=max(stored.local.bookmarks, candidate.local_engagement.bookmarks),
    )
    return engagement, local


class Deduplicator:
    """Routes candidates to insert or engagement merge through a gateway."""

    def __init__(self, gateway: PersistenceGateway):
        self.gateway = gateway

    def classify(self, candidate: PostCandidate) -> DedupOutcome:
        if self.gateway.exists_by_key(candidate.platform, candidate.original_id):
            return DedupOutcome.DUPLICATE
        if self.gateway.exists_by_url(candidate.source_url):
            return DedupOutcome.DUPLICATE
        return DedupOutcome.NEW

    def ingest(self, candidate: PostCandidate) -> IngestResult:
        """
        Store one candidate.

        A NEW candidate that loses an insert race to a concurrent writer is
        merged like any other duplicate.

        Raises:
            PersistenceError: The store rejected the write
        """
        if self.classify(candidate) == DedupOutcome.NEW:
            try:
                self.gateway.upsert(candidate)
                return IngestResult.CREATED
            except PostConflictError:
                logger.info(f"Insert conflict for {candidate.source_url}, merging into stored post")

        return self._merge(candidate)

    def _merge(self, candidate: PostCandidate) -> IngestResult:
        stored = self.gateway.find_existing(candidate.platform, candidate.original_id, candidate.source_url)
        if stored is None:
            raise PersistenceError(f"Duplicate {candidate.source_url} could not be re-read")

        engagement, local = merge_engagement(stored, candidate)
        if engagement == stored.engagement and local == stored.local:
            return IngestResult.UNCHANGED

        merged = replace(candidate, engagement=engagement, local_engagement=local)
        self.gateway.upsert(merged, existing_id=stored.post_id)
        return IngestResult.UPDATED
