"""
Community Scrape Orchestrator - One ingestion run for one community.

Responsibilities:
1. Resolve enabled platforms and their scrape configs
2. Run platform scrapers concurrently, each in isolation
3. Enforce the per-platform time budget (cancel at page granularity)
4. Normalize, score and deduplicate every RawPost through the gateway
5. Advance the community's last_scraped_at and record the run

A failing platform never stops the others: every error is classified and
recorded in the RunReport.
"""
import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor, wait
from concurrent.futures import TimeoutError as FutureTimeoutError
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple, Type

from constants import Platform, parse_platform
from .base import BaseScraper, RawPost, ScrapeConfig
from .dedup import Deduplicator, IngestResult
from .errors import ConfigError, PlatformTimeoutError, ScraperError
from .gateway import PersistenceGateway
from .normalizer import normalize_raw_post
from .platforms import SCRAPER_REGISTRY
from .quality import score_candidate
from .rate_limiter import ScraperRateLimiter
from .run_report import SCOPE_COMMUNITY, SCOPE_POST, ErrorRecord, RunReport
from .utils.hashing import compute_json_hash

logger = logging.getLogger(__name__)


class CommunityScrapeOrchestrator:
    """
    Runs the ingestion pipeline for a single community.

    Not responsible for exclusivity: the scheduler guarantees that a
    community is never processed by two orchestrator runs at once.
    """

    def __init__(
        self,
        gateway: PersistenceGateway,
        rate_limiter: Optional[ScraperRateLimiter] = None,
        owner_id: Optional[int] = None,
        platform_timeout_seconds: Optional[float] = None,
        estimate_missing_metrics: Optional[bool] = None,
        twitter_mirror_url: Optional[str] = None,
        scraper_classes: Optional[Dict[Platform, Type[BaseScraper]]] = None,
        scraper_kwargs: Optional[Dict[str, Any]] = None,
        cancel_grace_seconds: float = 30,
        now: Callable[[], datetime] = datetime.utcnow,
    ):
        """
        Initialize orchestrator.

        Args:
            gateway: Persistence gateway
            rate_limiter: Pacing config source for scrapers
            owner_id: Fallback owner for communities without a curator
            platform_timeout_seconds: Time budget per platform invocation
            estimate_missing_metrics: Let scrapers estimate unexposed counts
            twitter_mirror_url: Server-rendered mirror for Twitter timelines
            scraper_classes: Platform -> scraper class (registry by default)
            scraper_kwargs: Extra constructor kwargs for every scraper (session, sleep, clock)
            cancel_grace_seconds: How long to wait for cancelled workers to stop
            now: Timestamp source
        """
        from config import Config

        self.gateway = gateway
        self.deduplicator = Deduplicator(gateway)
        self.rate_limiter = rate_limiter
        self.owner_id = owner_id if owner_id is not None else Config.SCRAPER_OWNER_ID
        self.platform_timeout_seconds = (
            platform_timeout_seconds if platform_timeout_seconds is not None
            else Config.SCRAPE_PLATFORM_TIMEOUT_SECONDS
        )
        self.estimate_missing_metrics = (
            estimate_missing_metrics if estimate_missing_metrics is not None
            else Config.SCRAPER_ESTIMATE_MISSING_METRICS
        )
        self.twitter_mirror_url = twitter_mirror_url or Config.TWITTER_MIRROR_URL
        self.scraper_classes = scraper_classes or SCRAPER_REGISTRY
        self.scraper_kwargs = scraper_kwargs or {}
        self.cancel_grace_seconds = cancel_grace_seconds
        self.now = now

    # =========================================================================
    # Entry point
    # =========================================================================

    def run_community(self, community, triggered_by: str = "cron") -> RunReport:
        """
        Execute one ingestion run.

        Args:
            community: Community (id, scraping_platforms, scraping_config, curator_id)
            triggered_by: 'cron', 'manual' or 'cli'

        Returns:
            RunReport (also recorded through the gateway)
        """
        report = RunReport(community_id=community.id, started_at=self.now(), triggered_by=triggered_by)
        report.config_hash = compute_json_hash({
            "platforms": list(community.scraping_platforms or []),
            "config": community.scraping_config or {},
        })
        logger.info(f"Starting scrape run for community {community.id} (triggered_by={triggered_by})")

        jobs = self.resolve_jobs(community, report)
        scraped = self.run_scrapers(jobs, report)

        owner_id = getattr(community, "curator_id", None) or self.owner_id
        for platform, raw_posts in scraped:
            self.ingest_posts(platform, raw_posts, community.id, owner_id, report)

        finished_at = self.now()
        try:
            self.gateway.update_community_last_scraped(community.id, finished_at)
        except ScraperError as e:
            logger.error(f"Could not update last_scraped_at for community {community.id}: {e}")
            report.errors.append(ErrorRecord.from_exception(e, scope=SCOPE_COMMUNITY))

        report.finished_at = finished_at
        try:
            self.gateway.record_run(report)
        except ScraperError as e:
            logger.error(f"Could not record run for community {community.id}: {e}")

        logger.info(
            f"Scrape run for community {community.id} {report.status}: "
            f"fetched={report.fetched} created={report.created} updated={report.updated} "
            f"unchanged={report.unchanged} errors={report.error_count}"
        )
        return report

    # =========================================================================
    # Stages
    # =========================================================================

    def resolve_jobs(self, community, report: RunReport) -> List[Tuple[Platform, ScrapeConfig]]:
        """
        Enabled platforms paired with their ScrapeConfig.

        Unsupported platforms and bad configs are recorded as config errors.
        """
        jobs = []
        seen = set()
        for name in community.scraping_platforms or []:
            try:
                platform = parse_platform(name)
            except ValueError:
                report.result_for(str(name)).errors.append(
                    ErrorRecord.from_exception(ConfigError(f"Unsupported platform: {name}"))
                )
                continue
            if platform in seen:
                continue
            seen.add(platform)

            entry = community.platform_config(platform.value)
            try:
                if entry is None:
                    raise ConfigError(f"No scraping config for {platform.value}")
                config = ScrapeConfig.from_dict(entry)
            except ConfigError as e:
                logger.warning(f"Community {community.id}: {e}")
                report.result_for(platform.value).errors.append(ErrorRecord.from_exception(e))
                continue

            report.result_for(platform.value)
            jobs.append((platform, config))
        return jobs

    def run_scrapers(
        self,
        jobs: List[Tuple[Platform, ScrapeConfig]],
        report: RunReport,
    ) -> List[Tuple[Platform, List[RawPost]]]:
        """
        Run every job concurrently within the platform time budget.

        A platform that overruns gets a timeout error and its cancel event
        set; its worker stops before fetching another page and its posts
        are discarded. Cancelled workers are joined for up to
        cancel_grace_seconds before returning.
        """
        if not jobs:
            return []

        results = []
        timed_out = []
        executor = ThreadPoolExecutor(max_workers=len(jobs), thread_name_prefix="scrape")
        try:
            futures = []
            for platform, config in jobs:
                cancel_event = threading.Event()
                future = executor.submit(self._scrape_platform, platform, config, cancel_event)
                futures.append((platform, config, cancel_event, future))

            deadline = time.monotonic() + self.platform_timeout_seconds
            for platform, config, cancel_event, future in futures:
                result = report.result_for(platform.value)
                remaining = max(deadline - time.monotonic(), 0)
                try:
                    raw_posts, duration = future.result(timeout=remaining)
                except FutureTimeoutError:
                    cancel_event.set()
                    timed_out.append(future)
                    error = PlatformTimeoutError(
                        f"{platform.value} exceeded {self.platform_timeout_seconds}s for {config.source_url}"
                    )
                    logger.warning(str(error))
                    result.errors.append(ErrorRecord.from_exception(error, url=config.source_url))
                    continue
                except Exception as e:
                    logger.warning(f"{platform.value} scrape failed for {config.source_url}: {e}")
                    result.errors.append(ErrorRecord.from_exception(e, url=config.source_url))
                    continue

                result.fetched = len(raw_posts)
                result.duration_seconds = round(duration, 3)
                results.append((platform, raw_posts))
        finally:
            if timed_out:
                _, still_running = wait(timed_out, timeout=self.cancel_grace_seconds)
                if still_running:
                    logger.error(
                        f"{len(still_running)} cancelled scraper(s) still running after "
                        f"{self.cancel_grace_seconds}s grace period"
                    )
            executor.shutdown(wait=False)

        return results

    def _scrape_platform(self, platform: Platform, config: ScrapeConfig, cancel_event: threading.Event):
        started = time.monotonic()
        scraper = self.build_scraper(platform, cancel_event)
        raw_posts = scraper.scrape_content(config)
        return raw_posts, time.monotonic() - started

    def build_scraper(self, platform: Platform, cancel_event: threading.Event) -> BaseScraper:
        """Fresh scraper instance (own pacer, own HTTP session)."""
        scraper_class = self.scraper_classes[platform]
        kwargs = dict(self.scraper_kwargs)
        kwargs.update(
            estimate_missing_metrics=self.estimate_missing_metrics,
            cancel_event=cancel_event,
        )
        if self.rate_limiter is not None:
            kwargs["rate_limiter"] = self.rate_limiter
        if platform == Platform.TWITTER:
            kwargs["mirror_url"] = self.twitter_mirror_url
        return scraper_class(**kwargs)

    def ingest_posts(self, platform: Platform, raw_posts: List[RawPost], community_id: int,
                     owner_id: int, report: RunReport):
        """Normalize -> score -> dedup/persist each RawPost; errors are per post."""
        result = report.result_for(platform.value)
        for raw in raw_posts:
            candidate = normalize_raw_post(raw, community_id=community_id, owner_id=owner_id, scraped_at=self.now())
            candidate.scraping_metadata.quality_score = score_candidate(candidate)
            try:
                outcome = self.deduplicator.ingest(candidate)
            except ScraperError as e:
                logger.warning(f"Failed to store {raw.url}: {e}")
                result.errors.append(ErrorRecord.from_exception(e, scope=SCOPE_POST, url=raw.url))
                continue
            except Exception as e:
                logger.exception(f"Unexpected error storing {raw.url}: {e}")
                result.errors.append(ErrorRecord.from_exception(e, scope=SCOPE_POST, url=raw.url))
                continue

            if outcome == IngestResult.CREATED:
                result.created += 1
            elif outcome == IngestResult.UPDATED:
                result.updated += 1
            else:
                result.unchanged += 1
