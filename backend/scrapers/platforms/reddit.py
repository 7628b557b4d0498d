"""
Reddit Scraper - Forum boards via the public JSON listings.

Source URLs:
    https://www.reddit.com/r/<subreddit>
    https://old.reddit.com/r/<subreddit>/top

Pagination follows the listing's `after` cursor, so pages must be fetched
in order.
"""
import json
import logging
import re
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

from constants import Platform
from ..base import BaseScraper, RawPost
from ..errors import ExtractionError
from ..utils.extraction import parse_datetime
from ..utils.urls import classify_media_url, resolve_url

logger = logging.getLogger(__name__)

_SUBREDDIT_RE = re.compile(r"reddit\.com/r/([\w]+)(?:/(hot|new|top|rising))?", re.IGNORECASE)

PAGE_SIZE = 25


class RedditScraper(BaseScraper):
    """Scraper for subreddit listings."""

    PLATFORM = Platform.REDDIT
    BASE_URL = "https://www.reddit.com"
    PER_PAGE_ESTIMATE = PAGE_SIZE

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._after: Optional[str] = None
        self._exhausted = False

    def reset_pagination(self):
        self._after = None
        self._exhausted = False

    def extract_source(self, source_url: str) -> Optional[str]:
        match = _SUBREDDIT_RE.search(source_url)
        return match.group(1) if match else None

    def build_page_url(self, source_url: str, source: str, page: int) -> Optional[str]:
        if page > 0 and (self._exhausted or not self._after):
            return None

        match = _SUBREDDIT_RE.search(source_url)
        listing = (match.group(2) or "hot").lower() if match else "hot"
        params = {"limit": PAGE_SIZE, "raw_json": 1}
        if page > 0:
            params["after"] = self._after
        return f"{self.BASE_URL}/r/{source}/{listing}.json?{urlencode(params)}"

    def parse_page(self, body: str, page_url: str) -> List[RawPost]:
        try:
            payload = json.loads(body)
        except ValueError as e:
            raise ExtractionError(f"Reddit listing is not JSON: {e}") from e

        if not isinstance(payload, dict):
            raise ExtractionError("Reddit listing has an unexpected shape")

        data = payload.get("data") or {}
        self._after = data.get("after")
        if not self._after:
            self._exhausted = True

        children = [child.get("data") or {} for child in data.get("children") or [] if isinstance(child, dict)]
        return self.extract_elements(children, self.extract_post)

    def extract_post(self, item: Dict[str, Any]) -> Optional[RawPost]:
        """Build a RawPost from one listing child's `data` object."""
        title = (item.get("title") or "").strip()
        if not title:
            return None

        url = resolve_url(self.BASE_URL, item.get("permalink")) or resolve_url(self.BASE_URL, item.get("url"))
        if not url:
            return None

        reddit_id = item.get("id")
        if reddit_id is not None and not isinstance(reddit_id, str):
            raise ExtractionError(f"Unexpected reddit id type: {type(reddit_id).__name__}")

        flair = item.get("link_flair_text")
        thumbnail = item.get("thumbnail")
        if not (thumbnail and thumbnail.startswith("http")):
            thumbnail = None

        return self.make_post(
            title=title,
            url=url,
            content=(item.get("selftext") or "").strip() or title,
            post_id=f"reddit_{reddit_id}" if reddit_id else None,
            explicit_tags=[flair] if flair else [],
            author=item.get("author"),
            created_at=parse_datetime(item.get("created_utc")),
            likes=_non_negative(item.get("score")),
            comments=_non_negative(item.get("num_comments")),
            # Reddit listings do not expose share counts; view_count is usually null
            shares=self.metric_or_unknown(None, f"{url}:shares", 0, 10),
            views=self.metric_or_unknown(_non_negative(item.get("view_count")), f"{url}:views", 100, 1100),
            thumbnail=thumbnail,
            media_urls=self.extract_media_urls(item),
            extra={
                "subreddit": item.get("subreddit"),
                "upvote_ratio": item.get("upvote_ratio"),
                "is_self": bool(item.get("is_self")),
            },
        )

    def extract_media_urls(self, item: Dict[str, Any]) -> List[Dict[str, str]]:
        media = []
        target = item.get("url_overridden_by_dest") or item.get("url")
        media_type = classify_media_url(target)
        if media_type:
            media.append({"type": media_type, "url": target})
        return media


def _non_negative(value) -> Optional[int]:
    if value is None:
        return None
    try:
        return max(int(value), 0)
    except (TypeError, ValueError):
        return None
