"""
Post Model - Canonical record for ingested external content.

Identity is enforced twice:
- source_url is unique
- (platform, original_id) is unique

Content columns (title, content, tags, thumbnail, media_urls) are written
once at creation. Re-ingestion only touches the engagement counters.
"""
from models.database import db
from datetime import datetime

from constants import ALL_PLATFORMS, POST_STATUS_ACTIVE, POST_STATUSES


def _in_list(column, values):
    quoted = ", ".join(f"'{v}'" for v in values)
    return f"{column} IN ({quoted})"


class Post(db.Model):
    __tablename__ = 'posts'

    id = db.Column(db.Integer, primary_key=True)

    # ==========================================================================
    # CONTENT (immutable after creation)
    # ==========================================================================
    title = db.Column(db.Text, nullable=False)
    content = db.Column(db.Text, nullable=False)
    source_url = db.Column(db.Text, nullable=False)
    platform = db.Column(db.String(20), nullable=False, index=True)
    original_id = db.Column(db.String(255), nullable=False)
    thumbnail = db.Column(db.Text)
    media_urls = db.Column(db.JSON, nullable=False, default=list)  # [{"type": "image", "url": ...}]
    extra = db.Column(db.JSON, nullable=False, default=dict)

    # ==========================================================================
    # OWNERSHIP
    # ==========================================================================
    community_id = db.Column(db.Integer, db.ForeignKey('communities.id'), nullable=False, index=True)
    owner_id = db.Column(db.Integer, nullable=False)

    # ==========================================================================
    # ENGAGEMENT (platform-reported, last write wins)
    # ==========================================================================
    likes = db.Column(db.Integer, nullable=False, default=0)
    comments = db.Column(db.Integer, nullable=False, default=0)
    shares = db.Column(db.Integer, nullable=False, default=0)
    views = db.Column(db.Integer, nullable=False, default=0)

    # Local engagement (this system's users)
    local_likes = db.Column(db.Integer, nullable=False, default=0)
    local_comments = db.Column(db.Integer, nullable=False, default=0)
    local_bookmarks = db.Column(db.Integer, nullable=False, default=0)

    # ==========================================================================
    # SCRAPING METADATA
    # ==========================================================================
    scraped_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    original_author = db.Column(db.String(255))
    original_created_at = db.Column(db.DateTime)
    quality_score = db.Column(db.Float, nullable=False, default=0.5)
    tags = db.Column(db.JSON, nullable=False, default=list)

    status = db.Column(db.String(20), nullable=False, default=POST_STATUS_ACTIVE, index=True)
    is_promoted = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    # ==========================================================================
    # CONSTRAINTS
    # ==========================================================================
    __table_args__ = (
        db.UniqueConstraint('source_url', name='uq_posts_source_url'),
        db.UniqueConstraint('platform', 'original_id', name='uq_posts_platform_original_id'),
        db.Index('ix_posts_community_scraped', 'community_id', 'scraped_at'),
        db.CheckConstraint(
            _in_list("status", POST_STATUSES),
            name='posts_status_check',
        ),
        db.CheckConstraint(
            _in_list("platform", ALL_PLATFORMS),
            name='posts_platform_check',
        ),
        db.CheckConstraint(
            'quality_score >= 0 AND quality_score <= 1',
            name='posts_quality_score_range',
        ),
        db.CheckConstraint(
            'likes >= 0 AND comments >= 0 AND shares >= 0 AND views >= 0 '
            'AND local_likes >= 0 AND local_comments >= 0 AND local_bookmarks >= 0',
            name='posts_counters_non_negative',
        ),
    )

    def engagement_metrics(self):
        return {'likes': self.likes, 'comments': self.comments, 'shares': self.shares, 'views': self.views}

    def local_engagement(self):
        return {'likes': self.local_likes, 'comments': self.local_comments, 'bookmarks': self.local_bookmarks}

    def to_dict(self):
        """Convert to dictionary for JSON serialization"""
        return {
            'id': self.id,
            'title': self.title,
            'content': self.content,
            'source_url': self.source_url,
            'platform': self.platform,
            'original_id': self.original_id,
            'community_id': self.community_id,
            'owner_id': self.owner_id,
            'engagement_metrics': self.engagement_metrics(),
            'scraping_metadata': {
                'scraped_at': self.scraped_at.isoformat() if self.scraped_at else None,
                'original_author': self.original_author,
                'original_created_at': self.original_created_at.isoformat() if self.original_created_at else None,
                'quality_score': self.quality_score,
                'tags': list(self.tags or []),
            },
            'status': self.status,
            'thumbnail': self.thumbnail,
            'media_urls': list(self.media_urls or []),
            'local_engagement': self.local_engagement(),
            'is_promoted': self.is_promoted,
            'extra': dict(self.extra or {}),
        }

    def __repr__(self):
        return f"<Post {self.platform}:{self.original_id}>"
