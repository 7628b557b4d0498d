"""
Tests for the /api/scraping endpoints.
"""

from datetime import datetime

import pytest

from models.community import Community
from models.database import db
from models.scrape_run import ScrapeRun


@pytest.fixture
def scheduler(app):
    return app.extensions["scrape_scheduler"]


@pytest.fixture
def add_community(app):
    def _add(name="Founders", is_active=True):
        with app.app_context():
            community = Community(name=name, is_active=is_active, scraping_platforms=[], scraping_config={})
            db.session.add(community)
            db.session.commit()
            return community.id

    return _add


@pytest.fixture
def add_run(app):
    def _add(community_id, started_at, status="succeeded", created=0):
        with app.app_context():
            run = ScrapeRun(
                community_id=community_id,
                started_at=started_at,
                finished_at=started_at,
                status=status,
                created_count=created,
                report={"community_id": community_id},
                triggered_by="cron",
            )
            db.session.add(run)
            db.session.commit()
            return run.id

    return _add


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.get_json() == {"status": "ok"}


class TestStatusEndpoint:
    def test_returns_scheduler_status(self, client):
        response = client.get("/api/scraping/status")

        assert response.status_code == 200
        data = response.get_json()
        assert data["running"] is False
        assert data["in_progress"] == []
        assert "cron" in data


class TestRunEndpoint:
    """POST /api/scraping/communities/<id>/run"""

    def test_unknown_community_is_404(self, client):
        response = client.post("/api/scraping/communities/999/run")
        assert response.status_code == 404

    def test_inactive_community_is_409(self, client, add_community):
        community_id = add_community(is_active=False)
        response = client.post(f"/api/scraping/communities/{community_id}/run")
        assert response.status_code == 409

    def test_started_run_is_202(self, client, add_community, scheduler, monkeypatch):
        community_id = add_community()
        triggered = []
        monkeypatch.setattr(scheduler, "enabled", True)
        monkeypatch.setattr(
            scheduler, "trigger_community",
            lambda cid, triggered_by="manual": triggered.append((cid, triggered_by)) or True,
        )

        response = client.post(f"/api/scraping/communities/{community_id}/run")

        assert response.status_code == 202
        assert response.get_json() == {"started": True, "community_id": community_id}
        assert triggered == [(community_id, "manual")]

    def test_run_in_progress_is_409(self, client, add_community, scheduler, monkeypatch):
        community_id = add_community()
        monkeypatch.setattr(scheduler, "enabled", True)
        monkeypatch.setattr(scheduler, "trigger_community", lambda cid, triggered_by="manual": False)

        response = client.post(f"/api/scraping/communities/{community_id}/run")

        assert response.status_code == 409
        assert response.get_json()["started"] is False

    def test_disabled_scraping_is_503(self, client, add_community, scheduler, monkeypatch):
        community_id = add_community()
        monkeypatch.setattr(scheduler, "enabled", False)

        response = client.post(f"/api/scraping/communities/{community_id}/run")
        assert response.status_code == 503


class TestRunsEndpoint:
    """GET /api/scraping/runs"""

    def test_newest_first(self, client, add_community, add_run):
        community_id = add_community()
        add_run(community_id, datetime(2024, 1, 1), created=1)
        add_run(community_id, datetime(2024, 1, 3), created=3)
        add_run(community_id, datetime(2024, 1, 2), created=2)

        data = client.get("/api/scraping/runs").get_json()

        assert data["count"] == 3
        assert [r["created"] for r in data["data"]] == [3, 2, 1]

    def test_filter_and_limit(self, client, add_community, add_run):
        first, second = add_community(name="One"), add_community(name="Two")
        add_run(first, datetime(2024, 1, 1))
        add_run(second, datetime(2024, 1, 2), status="partial")
        add_run(second, datetime(2024, 1, 3), status="failed")

        data = client.get(f"/api/scraping/runs?community_id={second}&limit=1").get_json()

        assert data["count"] == 1
        assert data["data"][0]["community_id"] == second
        assert data["data"][0]["status"] == "failed"


# =============================================================================
# App wiring
# =============================================================================

class TestSchedulerWiring:
    """create_app hands its own config to every scheduled run"""

    def test_orchestrator_uses_app_config(self, rate_limits_path):
        from app import create_app

        app = create_app(
            config_overrides={
                "TESTING": True,
                "SQLALCHEMY_DATABASE_URI": "sqlite://",
                "SQLALCHEMY_ENGINE_OPTIONS": {},
                "SCRAPER_OWNER_ID": 42,
                "SCRAPE_PLATFORM_TIMEOUT_SECONDS": 7,
                "SCRAPER_ESTIMATE_MISSING_METRICS": True,
                "SCRAPER_RATE_LIMITS_PATH": rate_limits_path,
                "TWITTER_MIRROR_URL": "https://mirror.example.org",
            },
            start_scheduler=False,
        )
        scheduler = app.extensions["scrape_scheduler"]
        try:
            with app.app_context():
                orchestrator = scheduler.orchestrator_factory(db.session)
        finally:
            scheduler.shutdown()

        assert orchestrator.owner_id == 42
        assert orchestrator.platform_timeout_seconds == 7
        assert orchestrator.estimate_missing_metrics is True
        assert orchestrator.twitter_mirror_url == "https://mirror.example.org"
        assert orchestrator.rate_limiter.config_path == rate_limits_path
        assert orchestrator.gateway.session is db.session
