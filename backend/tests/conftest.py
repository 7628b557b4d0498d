"""
Root pytest configuration for backend tests.

Provides:
- Shared fixtures (app, client, in-memory database session)
- Fake clock/sleep for pacing tests
- A rate limiter with small, known delays
"""

import sys
from pathlib import Path

# Add backend directory to Python path so imports like
# `from scrapers.base import ...` and `from models.post import ...` work
backend_dir = Path(__file__).parent.parent
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))
tests_dir = Path(__file__).parent
if str(tests_dir) not in sys.path:
    sys.path.insert(0, str(tests_dir))

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from helpers import FakeClock


TEST_RATE_LIMITS = """
defaults:
  rate_limit_delay_ms: 1000
  backoff_delay_ms: 5000
  backoff_multiplier: 2.0
  max_retries: 1
  timeout_seconds: 15
platforms: {}
"""


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def rate_limits_path(tmp_path):
    path = tmp_path / "rate_limits.yaml"
    path.write_text(TEST_RATE_LIMITS)
    return str(path)


@pytest.fixture
def rate_limiter(rate_limits_path, monkeypatch):
    """Rate limiter with 1s delay, 5s backoff and one 429 retry for every platform."""
    from scrapers.rate_limiter import ScraperRateLimiter

    for platform in ("MEDIUM", "REDDIT", "TWITTER", "LINKEDIN"):
        monkeypatch.delenv(f"SCRAPER_{platform}_DELAY_MS", raising=False)
    return ScraperRateLimiter(config_path=rate_limits_path)


@pytest.fixture
def scraper_kwargs(rate_limiter, fake_clock):
    """Constructor kwargs that make a scraper deterministic and sleep-free."""
    return {"rate_limiter": rate_limiter, "sleep": fake_clock.sleep, "clock": fake_clock}


@pytest.fixture
def engine():
    """In-memory SQLite engine shared across threads."""
    from models.database import db
    import models  # noqa: F401  (registers every table)

    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    db.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def make_community(db_session):
    """Factory for persisted communities."""
    from models.community import Community

    def _make(name="Founders", platforms=None, config=None, is_active=True, curator_id=None):
        community = Community(
            name=name,
            is_active=is_active,
            scraping_platforms=platforms or [],
            scraping_config=config or {},
            curator_id=curator_id,
        )
        db_session.add(community)
        db_session.commit()
        return community

    return _make


@pytest.fixture
def app():
    """Create test Flask application backed by in-memory SQLite."""
    from app import create_app

    app = create_app(
        config_overrides={
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": "sqlite://",
            "SQLALCHEMY_ENGINE_OPTIONS": {},
        },
        start_scheduler=False,
    )
    yield app

    from services.scrape_scheduler import get_scrape_scheduler
    scheduler = get_scrape_scheduler()
    if scheduler is not None:
        scheduler.shutdown()


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()
