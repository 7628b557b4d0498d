"""
Base Scraper - Abstract template for all platform scrapers.

Provides common functionality:
- Source resolution and page-by-page fetching
- Politeness pacing and bounded 429 backoff
- Per-element error isolation
- Keyword filtering and max_posts truncation

Subclasses implement extract_source(), build_page_url() and parse_page().
"""
import logging
import math
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Optional

import requests

from constants import BROWSER_HEADERS, DEFAULT_MAX_POSTS, Platform
from .errors import ConfigError, ExtractionError, NetworkError, RateLimitError
from .rate_limiter import ScraperRateLimiter, get_scraper_rate_limiter
from .utils.extraction import estimate_metric, extract_tags, matches_keywords
from .utils.urls import derive_post_id, is_absolute_http

logger = logging.getLogger(__name__)


@dataclass
class RawPost:
    """Platform-shaped post produced by one scrape call. Not persisted."""
    id: str
    title: str
    content: str
    url: str
    platform: str
    author: Optional[str] = None
    created_at: Optional[datetime] = None
    # None means the platform did not expose the count
    likes: Optional[int] = None
    comments: Optional[int] = None
    shares: Optional[int] = None
    views: Optional[int] = None
    thumbnail: Optional[str] = None
    media_urls: List[Dict[str, str]] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "url": self.url,
            "platform": self.platform,
            "author": self.author,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "likes": self.likes,
            "comments": self.comments,
            "shares": self.shares,
            "views": self.views,
            "thumbnail": self.thumbnail,
            "media_urls": list(self.media_urls),
            "tags": list(self.tags),
            "extra": dict(self.extra),
        }


@dataclass(frozen=True)
class ScrapeConfig:
    """Per-platform scrape configuration."""
    source_url: str
    keywords: FrozenSet[str] = frozenset()
    max_posts: int = DEFAULT_MAX_POSTS

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScrapeConfig":
        """
        Build from a community's scrapingConfig entry.

        Accepts camelCase (sourceUrl, maxPosts) and snake_case keys.

        Raises:
            ConfigError: If the entry has no source URL, bad keywords or a bad max_posts
        """
        if not isinstance(data, dict):
            raise ConfigError(f"Platform config must be a mapping, got {type(data).__name__}")

        source_url = data.get("sourceUrl") or data.get("source_url")
        if not source_url or not isinstance(source_url, str):
            raise ConfigError("Platform config is missing sourceUrl")

        keywords = data.get("keywords")
        if keywords is None:
            keywords = []
        elif isinstance(keywords, str):
            keywords = [keywords]
        elif not isinstance(keywords, (list, tuple, set, frozenset)):
            raise ConfigError(f"keywords must be a string or a list, got {type(keywords).__name__}")
        keywords = frozenset(k.strip() for k in keywords if isinstance(k, str) and k.strip())

        max_posts = data.get("maxPosts", data.get("max_posts"))
        if max_posts is None:
            max_posts = DEFAULT_MAX_POSTS
        try:
            max_posts = int(max_posts)
        except (TypeError, ValueError):
            raise ConfigError(f"Invalid maxPosts: {max_posts!r}")
        if max_posts < 1:
            raise ConfigError(f"maxPosts must be positive, got {max_posts}")

        return cls(source_url=source_url.strip(), keywords=keywords, max_posts=max_posts)


class BaseScraper(ABC):
    """
    Abstract base class for all platform scrapers.

    Subclasses must implement:
    - extract_source(): Source identity (user, board, publication) from a URL
    - build_page_url(): URL of page N for a source
    - parse_page(): Parse a response body into RawPosts

    Subclasses should set class attributes:
    - PLATFORM: Platform enum value
    - BASE_URL: Root used to resolve relative links
    - PER_PAGE_ESTIMATE: Typical items per page, bounds the page count
    """

    # Override in subclass
    PLATFORM: Platform = None
    BASE_URL: str = ""
    PER_PAGE_ESTIMATE: int = 10

    def __init__(
        self,
        rate_limiter: Optional[ScraperRateLimiter] = None,
        session: Optional[requests.Session] = None,
        sleep: Optional[Callable[[float], None]] = None,
        clock: Optional[Callable[[], float]] = None,
        estimate_missing_metrics: bool = False,
        cancel_event: Optional[threading.Event] = None,
    ):
        """
        Initialize scraper.

        Args:
            rate_limiter: Pacing config source (global limiter by default)
            session: requests.Session to fetch with
            sleep: Sleep function (tests inject a fake)
            clock: Monotonic clock (tests inject a fake)
            estimate_missing_metrics: Fill unexposed counts with reproducible estimates
            cancel_event: Set by the orchestrator to stop before the next page
        """
        self.rate_limiter = rate_limiter or get_scraper_rate_limiter()
        self.limits = self.rate_limiter.get_limits(self.platform_name)
        pacer_kwargs = {}
        if sleep is not None:
            pacer_kwargs["sleep"] = sleep
        if clock is not None:
            pacer_kwargs["clock"] = clock
        self.pacer = self.rate_limiter.pacer(self.platform_name, **pacer_kwargs)
        self.session = session or requests.Session()
        self.session.headers.update(BROWSER_HEADERS)
        self.estimate_missing_metrics = estimate_missing_metrics
        self.cancel_event = cancel_event or threading.Event()
        self._stats = {
            "pages_fetched": 0,
            "items_extracted": 0,
            "items_dropped": 0,
            "rate_limit_retries": 0,
        }

    @property
    def platform_name(self) -> str:
        return self.PLATFORM.value

    @property
    def stats(self) -> Dict[str, int]:
        return dict(self._stats)

    # =========================================================================
    # Platform hooks
    # =========================================================================

    @abstractmethod
    def extract_source(self, source_url: str) -> Optional[str]:
        """
        Resolve the source identity from a configured URL.

        Returns:
            Source identifier, or None if the URL is not recognised
        """
        pass

    @abstractmethod
    def build_page_url(self, source_url: str, source: str, page: int) -> Optional[str]:
        """
        URL for page `page` (0-based).

        Returns:
            URL, or None when the platform has no further page
        """
        pass

    @abstractmethod
    def parse_page(self, body: str, page_url: str) -> List[RawPost]:
        """
        Parse a response body into RawPosts.

        Implementations should route each element through extract_elements()
        so that malformed elements are dropped without failing the page.
        """
        pass

    def reset_pagination(self):
        """Clear cursor state before a new scrape. Override for cursor-based platforms."""
        pass

    # =========================================================================
    # Pipeline
    # =========================================================================

    def scrape_content(self, config: ScrapeConfig) -> List[RawPost]:
        """
        Scrape up to config.max_posts RawPosts from the configured source.

        Raises:
            ConfigError: Source could not be resolved from source_url
            NetworkError: A page fetch failed (timeout, connection, non-2xx)
            RateLimitError: 429 persisted through all backoff retries
        """
        source = self.extract_source(config.source_url)
        if not source:
            raise ConfigError(
                f"Invalid {self.platform_name} URL - could not extract source: {config.source_url}"
            )

        logger.info(f"Scraping {self.platform_name}: {config.source_url} (source={source})")

        self.reset_pagination()
        posts: List[RawPost] = []
        seen_ids = set()
        max_pages = math.ceil(config.max_posts / self.PER_PAGE_ESTIMATE)
        page = 0

        while len(posts) < config.max_posts and page < max_pages:
            if self.cancel_event.is_set():
                logger.info(f"{self.platform_name}: cancelled before page {page}")
                break

            page_url = self.build_page_url(config.source_url, source, page)
            if not page_url:
                break

            page_posts = self._fetch_and_parse(page_url)

            fresh = [p for p in page_posts if p.id not in seen_ids]
            if not fresh:
                break
            seen_ids.update(p.id for p in fresh)

            if config.keywords:
                fresh = [p for p in fresh if self.matches_keywords(p, config.keywords)]

            posts.extend(fresh)
            page += 1

        logger.info(f"Scraped {len(posts)} posts from {self.platform_name} ({self._stats['pages_fetched']} pages)")
        return posts[:config.max_posts]

    def _fetch_and_parse(self, page_url: str) -> List[RawPost]:
        body = self.fetch_page(page_url)
        return self.parse_page(body, page_url)

    def fetch_page(self, url: str) -> str:
        """
        Fetch one page with pacing and bounded 429 backoff.

        Every fetch made by this instance is paced, including fetches from
        separate scrape_content() or helper calls. Only the very first fetch
        starts immediately.

        Returns:
            Response body
        """
        self.pacer.wait()

        attempt = 0
        while True:
            response = self._get(url)

            if response.status_code == 429:
                if attempt >= self.limits.max_retries:
                    raise RateLimitError(
                        f"{self.platform_name} rate limited after {attempt} retries: {url}",
                        status_code=429,
                        url=url,
                    )
                backoff = self.limits.backoff_seconds(attempt)
                logger.warning(
                    f"{self.platform_name} rate limited, waiting {backoff:.1f}s before retry "
                    f"{attempt + 1}/{self.limits.max_retries}"
                )
                self._stats["rate_limit_retries"] += 1
                self.pacer.sleep(backoff)
                self.pacer.wait()
                attempt += 1
                continue

            if not 200 <= response.status_code < 300:
                raise NetworkError(
                    f"{self.platform_name} returned HTTP {response.status_code} for {url}",
                    status_code=response.status_code,
                    url=url,
                )

            self._stats["pages_fetched"] += 1
            return response.text

    def _get(self, url: str) -> requests.Response:
        try:
            return self.session.get(url, timeout=self.limits.timeout_seconds)
        except requests.exceptions.Timeout as e:
            raise NetworkError(f"Timeout fetching {url}: {e}", url=url) from e
        except requests.exceptions.RequestException as e:
            raise NetworkError(f"Request failed for {url}: {e}", url=url) from e

    # =========================================================================
    # Element helpers
    # =========================================================================

    def extract_elements(self, elements: Iterable[Any], extractor: Callable[[Any], Optional[RawPost]]) -> List[RawPost]:
        """
        Apply `extractor` to each element.

        Elements without a title or URL come back as None and are dropped
        silently. Malformed elements raise and are dropped with a debug log;
        the rest of the page is still extracted.
        """
        posts = []
        for element in elements:
            try:
                post = extractor(element)
            except (ExtractionError, AttributeError, KeyError, TypeError, ValueError) as e:
                self._stats["items_dropped"] += 1
                logger.debug(f"Dropping malformed {self.platform_name} element: {e}")
                continue
            if post is None:
                self._stats["items_dropped"] += 1
                continue
            posts.append(post)
        self._stats["items_extracted"] += len(posts)
        return posts

    def make_post(self, title: str, url: Optional[str], content: str = "", post_id: Optional[str] = None,
                  explicit_tags: Iterable[str] = (), **fields) -> Optional[RawPost]:
        """
        Build a RawPost, or None when title or absolute URL is missing.

        Fills id (deterministic from URL unless given) and tags.
        """
        title = (title or "").strip()
        if not title or not is_absolute_http(url):
            return None
        content = content or title
        return RawPost(
            id=post_id or derive_post_id(self.platform_name, url),
            title=title,
            content=content,
            url=url,
            platform=self.platform_name,
            tags=extract_tags(explicit_tags, content),
            **fields,
        )

    def metric_or_unknown(self, value: Optional[int], seed: str, low: int, high: int) -> Optional[int]:
        """
        Pass through a parsed count. When missing, return None unless the
        reproducible estimator is enabled.
        """
        if value is not None:
            return value
        if self.estimate_missing_metrics:
            return estimate_metric(f"{self.platform_name}:{seed}", low, high)
        return None

    def matches_keywords(self, post: RawPost, keywords: Iterable[str]) -> bool:
        return matches_keywords(post.title, post.content, post.tags, keywords)
