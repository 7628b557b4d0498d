"""
Scrape Scheduler Service

Runs the ingestion pipeline for every active community on a cron cadence.

- APScheduler BackgroundScheduler with a crontab trigger (SCRAPE_CRON)
- Per-community in-progress flag: a trigger for a community that is still
  running is skipped and logged, never queued
- Communities run concurrently, bounded by SCRAPE_MAX_CONCURRENT_COMMUNITIES
- Each community run gets its own database session
- SCRAPER_ENABLED=false turns every trigger into a logged no-op
"""
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from config import Config

logger = logging.getLogger(__name__)

JOB_ID = "scrape_communities"
MAX_STORED_REPORTS = 50


def build_orchestrator(session, **orchestrator_kwargs):
    """
    Orchestrator over `session`. The app binds its config values into
    orchestrator_kwargs with functools.partial; unset values fall back to Config.
    """
    from scrapers.gateway import SQLAlchemyPostGateway
    from scrapers.orchestrator import CommunityScrapeOrchestrator

    return CommunityScrapeOrchestrator(SQLAlchemyPostGateway(session), **orchestrator_kwargs)


class CommunityScrapeScheduler:
    """
    Cron-driven trigger for community scrape runs.

    The in-progress set is the only exclusivity mechanism: the orchestrator
    assumes it never runs twice for the same community at once.
    """

    def __init__(
        self,
        session_factory: Callable[[], Any],
        orchestrator_factory: Optional[Callable[[Any], Any]] = None,
        cron: Optional[str] = None,
        max_concurrent: Optional[int] = None,
        enabled: Optional[bool] = None,
    ):
        """
        Args:
            session_factory: Returns a new SQLAlchemy session
            orchestrator_factory: session -> CommunityScrapeOrchestrator
            cron: Crontab expression (defaults to SCRAPE_CRON)
            max_concurrent: Communities processed at once per tick
            enabled: Kill switch (defaults to SCRAPER_ENABLED)
        """
        self.session_factory = session_factory
        self.orchestrator_factory = orchestrator_factory or build_orchestrator
        self.cron = cron or Config.SCRAPE_CRON
        self.max_concurrent = max(1, max_concurrent or Config.SCRAPE_MAX_CONCURRENT_COMMUNITIES)
        self.enabled = Config.SCRAPER_ENABLED if enabled is None else enabled

        self._lock = threading.Lock()
        self._in_progress = set()
        self._last_tick_at: Optional[datetime] = None
        self._last_reports: Dict[int, Dict[str, Any]] = {}
        self._scheduler: Optional[BackgroundScheduler] = None

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def start(self) -> bool:
        """Start the cron job. Returns False if disabled or already running."""
        if not self.enabled:
            logger.info("Scrape scheduler disabled by SCRAPER_ENABLED=false, not starting")
            return False
        if self._scheduler is not None and self._scheduler.running:
            return False

        self._scheduler = BackgroundScheduler(timezone="UTC")
        self._scheduler.add_job(
            self.tick,
            CronTrigger.from_crontab(self.cron, timezone="UTC"),
            id=JOB_ID,
            name="Scrape active communities",
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        self._scheduler.start()
        logger.info(f"Scrape scheduler started (cron='{self.cron}', max_concurrent={self.max_concurrent})")
        return True

    def shutdown(self, wait: bool = False):
        if self._scheduler is not None and self._scheduler.running:
            self._scheduler.shutdown(wait=wait)
            logger.info("Scrape scheduler stopped")
        self._scheduler = None

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    # =========================================================================
    # Triggers
    # =========================================================================

    def tick(self) -> List[Any]:
        """
        One cron firing: run every active community.

        Returns:
            RunReports of the communities that actually ran
        """
        if not self.enabled:
            logger.info("Scrape tick skipped: SCRAPER_ENABLED=false")
            return []

        self._last_tick_at = datetime.utcnow()
        try:
            community_ids = self.load_active_community_ids()
        except Exception as e:
            logger.error(f"Scrape tick could not load communities: {e}")
            return []

        logger.info(f"Scrape tick: {len(community_ids)} active communities")
        if not community_ids:
            return []

        with ThreadPoolExecutor(max_workers=self.max_concurrent, thread_name_prefix="community") as executor:
            reports = list(executor.map(lambda cid: self.run_community_once(cid, "cron"), community_ids))
        return [r for r in reports if r is not None]

    def run_community_once(self, community_id: int, triggered_by: str = "manual"):
        """
        Run one community now, in the calling thread.

        Returns:
            RunReport, or None if skipped (already running, missing) or failed
        """
        if not self._acquire(community_id):
            return None
        try:
            return self._run_acquired(community_id, triggered_by)
        finally:
            self._release(community_id)

    def trigger_community(self, community_id: int, triggered_by: str = "manual") -> bool:
        """
        Start one community run in a background thread.

        Returns:
            True if started, False if the community is already in progress
        """
        if not self.enabled:
            logger.info(f"Manual scrape of community {community_id} skipped: SCRAPER_ENABLED=false")
            return False
        if not self._acquire(community_id):
            return False

        def _do_run():
            try:
                self._run_acquired(community_id, triggered_by)
            finally:
                self._release(community_id)

        thread = threading.Thread(target=_do_run, name=f"community-{community_id}", daemon=True)
        thread.start()
        return True

    # =========================================================================
    # Internals
    # =========================================================================

    def _acquire(self, community_id: int) -> bool:
        with self._lock:
            if community_id in self._in_progress:
                logger.info(f"Community {community_id} scrape already in progress, skipping")
                return False
            self._in_progress.add(community_id)
            return True

    def _release(self, community_id: int):
        with self._lock:
            self._in_progress.discard(community_id)

    def _run_acquired(self, community_id: int, triggered_by: str):
        from models.community import Community

        session = self.session_factory()
        try:
            community = session.get(Community, community_id)
            if community is None:
                logger.warning(f"Community {community_id} not found, skipping scrape")
                return None
            if not community.is_active:
                logger.info(f"Community {community_id} is inactive, skipping scrape")
                return None

            report = self.orchestrator_factory(session).run_community(community, triggered_by=triggered_by)
            self._store_report(community_id, report.to_dict())
            return report
        except Exception as e:
            # A community run must never take the scheduler down
            logger.exception(f"Scrape run for community {community_id} failed: {e}")
            self._store_report(community_id, {"community_id": community_id, "error": str(e)})
            return None
        finally:
            session.close()

    def _store_report(self, community_id: int, report: Dict[str, Any]):
        with self._lock:
            self._last_reports.pop(community_id, None)
            self._last_reports[community_id] = report
            while len(self._last_reports) > MAX_STORED_REPORTS:
                self._last_reports.pop(next(iter(self._last_reports)))

    def load_active_community_ids(self) -> List[int]:
        from models.community import Community

        session = self.session_factory()
        try:
            rows = session.query(Community.id).filter(Community.is_active.is_(True)).order_by(Community.id).all()
            return [row[0] for row in rows]
        finally:
            session.close()

    def in_progress(self) -> List[int]:
        with self._lock:
            return sorted(self._in_progress)

    def get_status(self) -> Dict[str, Any]:
        """Current scheduler status."""
        next_run = None
        if self.running:
            job = self._scheduler.get_job(JOB_ID)
            if job is not None and job.next_run_time is not None:
                next_run = job.next_run_time.isoformat()

        with self._lock:
            last_reports = dict(self._last_reports)
            in_progress = sorted(self._in_progress)

        return {
            "enabled": self.enabled,
            "running": self.running,
            "cron": self.cron,
            "max_concurrent": self.max_concurrent,
            "in_progress": in_progress,
            "last_tick_at": self._last_tick_at.isoformat() if self._last_tick_at else None,
            "next_run_at": next_run,
            "last_reports": last_reports,
        }


# Global scheduler instance
_scheduler: Optional[CommunityScrapeScheduler] = None


def init_scrape_scheduler(session_factory, **kwargs) -> CommunityScrapeScheduler:
    """Create (or replace) the global scheduler."""
    global _scheduler
    if _scheduler is not None:
        _scheduler.shutdown()
    _scheduler = CommunityScrapeScheduler(session_factory, **kwargs)
    return _scheduler


def get_scrape_scheduler() -> Optional[CommunityScrapeScheduler]:
    return _scheduler
