"""
Twitter/X Scraper - Microblog timelines.

x.com renders timelines client-side, so timelines are read from a
server-rendered mirror (Nitter-compatible markup, TWITTER_MIRROR_URL).
x.com's own markup is tried as a second selector strategy for saved or
pre-rendered pages. Post URLs are always rewritten to https://x.com/...
so identities stay stable when the mirror changes.

Source URLs:
    https://twitter.com/<handle>
    https://x.com/<handle>
"""
import logging
import re
from typing import Dict, List, Optional
from urllib.parse import unquote, urlsplit

from bs4 import BeautifulSoup

from constants import Platform
from ..base import BaseScraper, RawPost
from ..utils.extraction import first_attr, first_text, make_title, parse_datetime, parse_number
from ..utils.urls import classify_media_url, resolve_url

logger = logging.getLogger(__name__)

_HANDLE_RE = re.compile(r"(?:^|//|\.)(?:twitter|x)\.com/@?(\w{1,15})", re.IGNORECASE)
_STATUS_RE = re.compile(r"/(\w{1,15})/status/(\d+)")
_RESERVED_PATHS = {"home", "explore", "search", "i", "intent", "share", "hashtag", "settings"}

DEFAULT_MIRROR_URL = "https://nitter.net"

ELEMENT_SELECTORS = '.timeline-item, article[data-testid="tweet"]'
TEXT_SELECTORS = ['.tweet-content', '[data-testid="tweetText"]']
LINK_SELECTORS = ['a.tweet-link', 'a[href*="/status/"]']
AUTHOR_SELECTORS = ['.username', '[data-testid="User-Name"] a']
DATE_SELECTORS = ['.tweet-date a', 'time']
NEXT_CURSOR_SELECTORS = ['.show-more a[href*="cursor="]']
TAG_SELECTORS = '.tweet-content a[href*="/search?q=%23"], a[href^="/hashtag/"]'

# Nitter stat icons, x.com data-testid buttons
STAT_SELECTORS = {
    "comments": ['.icon-comment', '[data-testid="reply"]'],
    "shares": ['.icon-retweet', '[data-testid="retweet"]'],
    "likes": ['.icon-heart', '[data-testid="like"]'],
    "views": ['.icon-views', 'a[href$="/analytics"]'],
}


class TwitterScraper(BaseScraper):
    """Scraper for public Twitter/X timelines."""

    PLATFORM = Platform.TWITTER
    BASE_URL = "https://x.com"
    PER_PAGE_ESTIMATE = 20

    def __init__(self, *args, mirror_url: Optional[str] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.mirror_url = (mirror_url or DEFAULT_MIRROR_URL).rstrip("/")
        self._next_page_url: Optional[str] = None

    def reset_pagination(self):
        self._next_page_url = None

    def extract_source(self, source_url: str) -> Optional[str]:
        match = _HANDLE_RE.search(source_url)
        if not match or match.group(1).lower() in _RESERVED_PATHS:
            return None
        return match.group(1)

    def build_page_url(self, source_url: str, source: str, page: int) -> Optional[str]:
        if page == 0:
            return f"{self.mirror_url}/{source}"
        return self._next_page_url

    def parse_page(self, body: str, page_url: str) -> List[RawPost]:
        soup = BeautifulSoup(body, "html.parser")

        cursor_href = first_attr(soup, NEXT_CURSOR_SELECTORS, 'href')
        self._next_page_url = resolve_url(page_url, cursor_href) if cursor_href else None

        return self.extract_elements(soup.select(ELEMENT_SELECTORS), self.extract_post)

    def extract_post(self, element) -> Optional[RawPost]:
        """Build a RawPost from one timeline item."""
        text = first_text(element, TEXT_SELECTORS)
        title = make_title(text)
        if not title:
            return None

        href = first_attr(element, LINK_SELECTORS, 'href')
        match = _STATUS_RE.search(href or "")
        if not match:
            return None
        handle, status_id = match.group(1), match.group(2)
        url = f"{self.BASE_URL}/{handle}/status/{status_id}"

        date_value = first_attr(element, DATE_SELECTORS, 'title') or first_attr(element, DATE_SELECTORS, 'datetime')
        stats = self.extract_stats(element)
        explicit_tags = [a.get_text(" ", strip=True) for a in element.select(TAG_SELECTORS)]

        media_urls = self.extract_media_urls(element)

        return self.make_post(
            title=title,
            url=url,
            content=text,
            post_id=f"twitter_{status_id}",
            explicit_tags=explicit_tags,
            author=(first_text(element, AUTHOR_SELECTORS) or f"@{handle}").lstrip("@"),
            created_at=parse_datetime(date_value.replace("·", "") if date_value else None),
            likes=self.metric_or_unknown(stats.get("likes"), f"{url}:likes", 0, 100),
            comments=self.metric_or_unknown(stats.get("comments"), f"{url}:comments", 0, 20),
            shares=self.metric_or_unknown(stats.get("shares"), f"{url}:shares", 0, 10),
            views=self.metric_or_unknown(stats.get("views"), f"{url}:views", 100, 1100),
            thumbnail=media_urls[0]["url"] if media_urls else None,
            media_urls=media_urls,
            extra={"handle": handle},
        )

    def extract_stats(self, element) -> Dict[str, Optional[int]]:
        """
        Engagement counts. Nitter puts the number next to an icon span;
        x.com puts it in the button's aria-label ("12 Likes. Like").
        """
        stats = {}
        for name, selectors in STAT_SELECTORS.items():
            value = None
            for selector in selectors:
                node = element.select_one(selector)
                if node is None:
                    continue
                label = node.get("aria-label")
                if label:
                    value = parse_number(label)
                else:
                    container = node.parent if node.name == "span" else node
                    value = parse_number(container.get_text(" ", strip=True))
                if value is not None:
                    break
            stats[name] = value
        return stats

    def extract_media_urls(self, element) -> List[Dict[str, str]]:
        media = []
        for node in element.select('.attachments img, .attachments video, [data-testid="tweetPhoto"] img, video'):
            src = node.get('src') or node.get('data-url')
            if not src:
                continue
            absolute = resolve_url(self.mirror_url, src)
            media_type = classify_media_url(absolute) or ("video" if node.name == "video" else "image")
            if absolute:
                media.append({"type": media_type, "url": _unmirror_media(absolute)})
        return media


def _unmirror_media(url: str) -> str:
    """Nitter proxies media as /pic/<encoded-url>; keep the origin when present."""
    parts = urlsplit(url)
    if parts.path.startswith("/pic/"):
        original = unquote(parts.path[len("/pic/"):])
        if original.startswith("http"):
            return original
        return f"https://pbs.twimg.com/{original.lstrip('/')}"
    return url
