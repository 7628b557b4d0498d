"""
Community Model - Curated topic spaces that pull external content.

Ingestion reads:
- scraping_platforms: enabled platforms (subset of Platform)
- scraping_config: {platform: {sourceUrl, keywords?, maxPosts?}}
- is_active

and writes only last_scraped_at.
"""
from models.database import db
from datetime import datetime


class Community(db.Model):
    __tablename__ = 'communities'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    category = db.Column(db.String(100), index=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    # Ingestion configuration
    scraping_platforms = db.Column(db.JSON, nullable=False, default=list)  # ["medium", "reddit"]
    scraping_config = db.Column(db.JSON, nullable=False, default=dict)
    last_scraped_at = db.Column(db.DateTime)

    # Owner of ingested posts (falls back to SCRAPER_OWNER_ID)
    curator_id = db.Column(db.Integer)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    posts = db.relationship('Post', backref='community', lazy='dynamic')

    def platform_config(self, platform):
        """scraping_config entry for one platform, or None."""
        config = self.scraping_config or {}
        return config.get(platform)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'category': self.category,
            'is_active': self.is_active,
            'scraping_platforms': list(self.scraping_platforms or []),
            'scraping_config': dict(self.scraping_config or {}),
            'last_scraped_at': self.last_scraped_at.isoformat() if self.last_scraped_at else None,
            'curator_id': self.curator_id,
        }

    def __repr__(self):
        return f"<Community {self.id} {self.name!r}>"
