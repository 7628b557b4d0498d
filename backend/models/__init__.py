"""
Models package - SQLAlchemy models
"""
from models.database import db
from models.community import Community
from models.post import Post
from models.scrape_run import ScrapeRun

__all__ = [
    'db',
    'Community',
    'Post',
    'ScrapeRun',
]
