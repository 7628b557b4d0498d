"""
ScrapeRun Model - One orchestrator execution for one community.

Each run has:
- Timing (started_at, finished_at)
- Status (succeeded, partial, failed)
- Totals (fetched, created, updated, unchanged, errors)
- The full run report as JSON (per-platform results and errors)
"""
from models.database import db
from datetime import datetime
import uuid


class ScrapeRun(db.Model):
    __tablename__ = 'scrape_runs'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    community_id = db.Column(db.Integer, db.ForeignKey('communities.id'), nullable=False, index=True)

    # Timing
    started_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    finished_at = db.Column(db.DateTime)

    # Status: succeeded | partial | failed
    status = db.Column(db.String(20), nullable=False, index=True)

    # Totals
    fetched_count = db.Column(db.Integer, nullable=False, default=0)
    created_count = db.Column(db.Integer, nullable=False, default=0)
    updated_count = db.Column(db.Integer, nullable=False, default=0)
    unchanged_count = db.Column(db.Integer, nullable=False, default=0)
    error_count = db.Column(db.Integer, nullable=False, default=0)

    report = db.Column(db.JSON, nullable=False, default=dict)
    triggered_by = db.Column(db.String(20), default='cron')  # cron | manual | cli
    config_hash = db.Column(db.String(64))  # SHA256 of scraping_platforms + scraping_config

    __table_args__ = (
        db.Index('ix_scrape_runs_community_started', 'community_id', 'started_at'),
        db.CheckConstraint(
            "status IN ('succeeded', 'partial', 'failed')",
            name='scrape_runs_status_check',
        ),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'community_id': self.community_id,
            'started_at': self.started_at.isoformat() if self.started_at else None,
            'finished_at': self.finished_at.isoformat() if self.finished_at else None,
            'status': self.status,
            'fetched': self.fetched_count,
            'created': self.created_count,
            'updated': self.updated_count,
            'unchanged': self.unchanged_count,
            'errors': self.error_count,
            'triggered_by': self.triggered_by,
            'config_hash': self.config_hash,
            'report': self.report,
        }
