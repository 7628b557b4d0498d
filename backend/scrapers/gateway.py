"""
Persistence Gateway - The pipeline's only path to storage.

The pipeline needs:
- Existence checks by (platform, original_id) and by source_url
- A snapshot of a stored post's engagement for merging
- upsert(): insert a new post, or write merged engagement onto an existing one
- update_community_last_scraped()
- record_run(): persist a run report

SQLAlchemyPostGateway commits per post so that one bad row never rolls
back the rest of a run.
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import and_, or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from .errors import PersistenceError, PostConflictError
from .normalizer import EngagementMetrics, LocalEngagement, PostCandidate
from .run_report import RunReport

logger = logging.getLogger(__name__)


@dataclass
class StoredEngagement:
    """Engagement counters of an already-stored post."""
    post_id: int
    engagement: EngagementMetrics
    local: LocalEngagement


class PersistenceGateway(ABC):
    """Storage interface used by the deduplicator and orchestrator."""

    @abstractmethod
    def exists_by_key(self, platform: str, original_id: str) -> bool:
        pass

    @abstractmethod
    def exists_by_url(self, source_url: str) -> bool:
        pass

    @abstractmethod
    def find_existing(self, platform: str, original_id: str, source_url: str) -> Optional[StoredEngagement]:
        """Stored post matching the key or the URL (key first), or None."""
        pass

    @abstractmethod
    def upsert(self, candidate: PostCandidate, existing_id: Optional[int] = None) -> int:
        """
        Insert `candidate`, or update engagement on post `existing_id`.

        Returns:
            Post id

        Raises:
            PostConflictError: Insert collided with a stored post
            PersistenceError: Anything else the store rejected
        """
        pass

    @abstractmethod
    def update_community_last_scraped(self, community_id: int, timestamp: datetime) -> None:
        pass

    def record_run(self, report: RunReport) -> Optional[str]:
        """Persist a run report. Returns the stored run id, if any."""
        return None


class SQLAlchemyPostGateway(PersistenceGateway):
    """PersistenceGateway over a SQLAlchemy session."""

    def __init__(self, session):
        """
        Args:
            session: SQLAlchemy session (db.session inside a Flask app)
        """
        self.session = session

    def exists_by_key(self, platform: str, original_id: str) -> bool:
        from models.post import Post

        try:
            row = self.session.query(Post.id).filter(
                Post.platform == platform,
                Post.original_id == original_id,
            ).first()
        except SQLAlchemyError as e:
            raise self._failed(f"look up {platform}:{original_id}", e) from e
        return row is not None

    def exists_by_url(self, source_url: str) -> bool:
        from models.post import Post

        try:
            row = self.session.query(Post.id).filter(Post.source_url == source_url).first()
        except SQLAlchemyError as e:
            raise self._failed(f"look up {source_url}", e) from e
        return row is not None

    def find_existing(self, platform: str, original_id: str, source_url: str) -> Optional[StoredEngagement]:
        from models.post import Post

        by_key = and_(Post.platform == platform, Post.original_id == original_id)
        try:
            rows = self.session.query(Post).filter(or_(by_key, Post.source_url == source_url)).all()
        except SQLAlchemyError as e:
            raise self._failed(f"re-read {source_url}", e) from e
        if not rows:
            return None
        # Prefer the key match when key and URL point at different rows
        rows.sort(key=lambda p: 0 if (p.platform == platform and p.original_id == original_id) else 1)
        post = rows[0]
        return StoredEngagement(
            post_id=post.id,
            engagement=EngagementMetrics(
                likes=post.likes, comments=post.comments, shares=post.shares, views=post.views,
            ),
            local=LocalEngagement(
                likes=post.local_likes, comments=post.local_comments, bookmarks=post.local_bookmarks,
            ),
        )

    def upsert(self, candidate: PostCandidate, existing_id: Optional[int] = None) -> int:
        from models.post import Post

        if existing_id is None:
            post = self._build_post(candidate)
            self.session.add(post)
            try:
                self.session.flush()
                post_id = post.id
                self.session.commit()
            except IntegrityError as e:
                self.session.rollback()
                raise PostConflictError(
                    f"Post already stored: {candidate.platform}:{candidate.original_id} ({candidate.source_url})"
                ) from e
            except SQLAlchemyError as e:
                self.session.rollback()
                raise PersistenceError(f"Failed to insert {candidate.source_url}: {e}") from e
            return post_id

        try:
            post = self.session.get(Post, existing_id)
        except SQLAlchemyError as e:
            raise self._failed(f"load post {existing_id}", e) from e
        if post is None:
            raise PersistenceError(f"Post {existing_id} disappeared before update")

        # Engagement only; content columns are never rewritten
        post.likes = candidate.engagement.likes
        post.comments = candidate.engagement.comments
        post.shares = candidate.engagement.shares
        post.views = candidate.engagement.views
        post.local_likes = candidate.local_engagement.likes
        post.local_comments = candidate.local_engagement.comments
        post.local_bookmarks = candidate.local_engagement.bookmarks
        self._commit(f"update post {existing_id}")
        return existing_id

    def update_community_last_scraped(self, community_id: int, timestamp: datetime) -> None:
        from models.community import Community

        try:
            community = self.session.get(Community, community_id)
        except SQLAlchemyError as e:
            raise self._failed(f"load community {community_id}", e) from e
        if community is None:
            raise PersistenceError(f"Community {community_id} not found")
        community.last_scraped_at = timestamp
        self._commit(f"update lastScrapedAt for community {community_id}")

    def record_run(self, report: RunReport) -> Optional[str]:
        from models.scrape_run import ScrapeRun

        run = ScrapeRun(
            community_id=report.community_id,
            started_at=report.started_at,
            finished_at=report.finished_at,
            status=report.status,
            fetched_count=report.fetched,
            created_count=report.created,
            updated_count=report.updated,
            unchanged_count=report.unchanged,
            error_count=report.error_count,
            report=report.to_dict(),
            triggered_by=report.triggered_by,
            config_hash=report.config_hash,
        )
        self.session.add(run)
        self._commit(f"record run for community {report.community_id}")
        return run.id

    def _build_post(self, candidate: PostCandidate):
        from models.post import Post

        metadata = candidate.scraping_metadata
        return Post(
            title=candidate.title,
            content=candidate.content,
            source_url=candidate.source_url,
            platform=candidate.platform,
            original_id=candidate.original_id,
            community_id=candidate.community_id,
            owner_id=candidate.owner_id,
            likes=candidate.engagement.likes,
            comments=candidate.engagement.comments,
            shares=candidate.engagement.shares,
            views=candidate.engagement.views,
            local_likes=candidate.local_engagement.likes,
            local_comments=candidate.local_engagement.comments,
            local_bookmarks=candidate.local_engagement.bookmarks,
            scraped_at=metadata.scraped_at,
            original_author=metadata.original_author,
            original_created_at=metadata.original_created_at,
            quality_score=metadata.quality_score,
            tags=list(metadata.tags),
            status=candidate.status,
            thumbnail=candidate.thumbnail,
            media_urls=list(candidate.media_urls),
            is_promoted=candidate.is_promoted,
            extra=dict(candidate.extra),
        )

    def _commit(self, action: str):
        try:
            self.session.commit()
        except SQLAlchemyError as e:
            raise self._failed(action, e) from e

    def _failed(self, action: str, error: SQLAlchemyError) -> PersistenceError:
        """Roll back the session and wrap a database error for the run report."""
        try:
            self.session.rollback()
        except SQLAlchemyError as rollback_error:
            logger.warning(f"Rollback after failed {action} also failed: {rollback_error}")
        return PersistenceError(f"Failed to {action}: {error}")
