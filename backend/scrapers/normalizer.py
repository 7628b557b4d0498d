"""
Normalizer - RawPost -> canonical post candidate.

The candidate is the platform-agnostic shape handed to the quality scorer,
deduplicator and persistence gateway. Content fields are copied verbatim;
platform-local engagement starts at zero.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from constants import DEFAULT_QUALITY_SCORE, POST_STATUS_ACTIVE
from .base import RawPost


@dataclass
class EngagementMetrics:
    """Platform-reported counters. Last write wins on re-ingestion."""
    likes: int = 0
    comments: int = 0
    shares: int = 0
    views: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {"likes": self.likes, "comments": self.comments, "shares": self.shares, "views": self.views}


@dataclass
class LocalEngagement:
    """Counters owned by this system's users, never scraped."""
    likes: int = 0
    comments: int = 0
    bookmarks: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {"likes": self.likes, "comments": self.comments, "bookmarks": self.bookmarks}


@dataclass
class ScrapingMetadata:
    scraped_at: datetime
    original_author: Optional[str] = None
    original_created_at: Optional[datetime] = None
    quality_score: float = DEFAULT_QUALITY_SCORE
    tags: List[str] = field(default_factory=list)


@dataclass
class PostCandidate:
    """Canonical post shape before persistence."""
    title: str
    content: str
    source_url: str
    platform: str
    original_id: str
    community_id: int
    owner_id: int
    engagement: EngagementMetrics
    scraping_metadata: ScrapingMetadata
    status: str = POST_STATUS_ACTIVE
    thumbnail: Optional[str] = None
    media_urls: List[Dict[str, str]] = field(default_factory=list)
    local_engagement: LocalEngagement = field(default_factory=LocalEngagement)
    is_promoted: bool = False
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def dedup_key(self):
        return (self.platform, self.original_id)


def _count(value: Optional[int]) -> int:
    """Unknown (None) and negative counts become 0."""
    if value is None:
        return 0
    return max(int(value), 0)


def normalize_raw_post(
    raw: RawPost,
    community_id: int,
    owner_id: int,
    scraped_at: Optional[datetime] = None,
) -> PostCandidate:
    """
    Map one RawPost into a canonical post candidate.

    Args:
        raw: Scraped post
        community_id: Owning community
        owner_id: User the post is attributed to
        scraped_at: Normalization timestamp (defaults to now, UTC)

    Returns:
        PostCandidate with default quality score (scored afterwards)
    """
    return PostCandidate(
        title=raw.title,
        content=raw.content,
        source_url=raw.url,
        platform=raw.platform,
        original_id=raw.id,
        community_id=community_id,
        owner_id=owner_id,
        engagement=EngagementMetrics(
            likes=_count(raw.likes),
            comments=_count(raw.comments),
            shares=_count(raw.shares),
            views=_count(raw.views),
        ),
        scraping_metadata=ScrapingMetadata(
            scraped_at=scraped_at or datetime.utcnow(),
            original_author=raw.author,
            original_created_at=raw.created_at,
            tags=list(raw.tags),
        ),
        thumbnail=raw.thumbnail,
        media_urls=list(raw.media_urls),
        extra=dict(raw.extra),
    )
