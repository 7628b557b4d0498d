"""
Medium Scraper - Long-form articles from user profiles and publications.

Medium has no public API, so profile and publication pages are parsed as
HTML. Source URLs may be:
    https://medium.com/@username
    https://medium.com/publication-name
    https://publication.medium.com
"""
import logging
import re
from typing import Any, Dict, List, Optional
from urllib.parse import quote_plus

from bs4 import BeautifulSoup

from constants import Platform
from ..base import BaseScraper, RawPost
from ..errors import NetworkError
from ..utils.extraction import first_attr, first_text, parse_datetime, parse_number, parse_reading_time
from ..utils.urls import classify_media_url, resolve_url

logger = logging.getLogger(__name__)

_PATH_SOURCE_RE = re.compile(r"medium\.com/(@[\w.-]+|[\w-]+)", re.IGNORECASE)
_SUBDOMAIN_SOURCE_RE = re.compile(r"^(?:https?://)?([\w-]+)\.medium\.com", re.IGNORECASE)

# Ordered selector strategies, most specific first
ELEMENT_SELECTORS = 'article, .postArticle, [data-testid="post-preview"]'
TITLE_SELECTORS = ['h1', 'h2', 'h3', '.graf--title', '[data-testid="post-preview-title"]', 'a']
CONTENT_SELECTORS = ['.graf--subtitle', '.postArticle-content p', '[data-testid="post-preview-content"]', 'p']
AUTHOR_SELECTORS = ['.postMetaInline-authorLockup a', '[data-testid="post-preview-author"]', '.author']
DATE_SELECTORS = ['time', '.postMetaInline time', '[data-testid="post-preview-date"]']
CLAPS_SELECTORS = ['.clapCount', '[data-testid="clap-count"]']
READING_TIME_SELECTORS = ['.readingTime', '[data-testid="reading-time"]']
TAG_SELECTORS = '.tag, .postTags a, [data-testid="tag"]'
PUBLICATION_SELECTORS = ['.postMetaInline-authorLockup .link', '[data-testid="publication-name"]']

DEFAULT_READING_TIME = 5


class MediumScraper(BaseScraper):
    """Scraper for Medium profiles and publications."""

    PLATFORM = Platform.MEDIUM
    BASE_URL = "https://medium.com"
    PER_PAGE_ESTIMATE = 10

    def extract_source(self, source_url: str) -> Optional[str]:
        match = _SUBDOMAIN_SOURCE_RE.match(source_url.strip())
        if match and match.group(1).lower() != "www":
            return match.group(1)
        match = _PATH_SOURCE_RE.search(source_url)
        return match.group(1) if match else None

    def build_page_url(self, source_url: str, source: str, page: int) -> Optional[str]:
        base = source_url.split("?", 1)[0].rstrip("/")
        return f"{base}?page={page}" if page > 0 else base

    def parse_page(self, body: str, page_url: str) -> List[RawPost]:
        soup = BeautifulSoup(body, "html.parser")
        return self.extract_elements(soup.select(ELEMENT_SELECTORS), self.extract_post)

    def extract_post(self, element) -> Optional[RawPost]:
        """Build a RawPost from one article preview element."""
        title = first_text(element, TITLE_SELECTORS)
        if not title:
            return None

        url = resolve_url(self.BASE_URL, first_attr(element, ['a'], 'href'))
        if not url:
            return None
        url = url.split("?", 1)[0]

        content = first_text(element, CONTENT_SELECTORS) or title
        author = first_text(element, AUTHOR_SELECTORS) or "Medium Author"

        date_value = first_attr(element, DATE_SELECTORS, 'datetime') or first_text(element, DATE_SELECTORS)
        created_at = parse_datetime(date_value)

        likes = parse_number(first_text(element, CLAPS_SELECTORS))
        reading_time_text = first_text(element, READING_TIME_SELECTORS)
        reading_time = parse_reading_time(reading_time_text, default=DEFAULT_READING_TIME)

        thumbnail = first_attr(element, ['img'], 'src')
        explicit_tags = [tag.get_text(" ", strip=True) for tag in element.select(TAG_SELECTORS)]

        return self.make_post(
            title=title,
            url=url,
            content=content,
            explicit_tags=explicit_tags,
            author=author,
            created_at=created_at,
            # Medium does not expose comment, share or view counts on previews
            likes=self.metric_or_unknown(likes, f"{url}:likes", 0, 100),
            comments=self.metric_or_unknown(None, f"{url}:comments", 0, 20),
            shares=self.metric_or_unknown(None, f"{url}:shares", 0, 10),
            views=self.metric_or_unknown(None, f"{url}:views", 100, 1100),
            thumbnail=thumbnail,
            media_urls=self.extract_media_urls(element),
            extra={
                "reading_time": reading_time,
                "publication_name": first_text(element, PUBLICATION_SELECTORS) or None,
            },
        )

    def extract_media_urls(self, element) -> List[Dict[str, str]]:
        media = []
        for img in element.select('img'):
            src = img.get('src')
            if src and classify_media_url(src) == "image":
                media.append({"type": "image", "url": src})
        return media

    # =========================================================================
    # Publication helpers
    # =========================================================================

    def get_publication_info(self, publication_name: str) -> Optional[Dict[str, Any]]:
        """
        Fetch a publication's title, description and follower count.

        Returns:
            Dict, or None if the page could not be fetched
        """
        url = f"{self.BASE_URL}/{publication_name}"
        try:
            body = self.fetch_page(url)
        except NetworkError as e:
            logger.warning(f"Could not fetch Medium publication info for {publication_name}: {e}")
            return None

        soup = BeautifulSoup(body, "html.parser")
        return {
            "name": publication_name,
            "title": first_text(soup, ['h1']),
            "description": first_text(soup, ['.description', '.bio']),
            "followers": parse_number(first_text(soup, ['.followerCount'])) or 0,
            "url": url,
        }

    def search_posts(self, query: str, max_posts: int = 20) -> List[RawPost]:
        """Scrape Medium search results for a topic."""
        search_url = f"{self.BASE_URL}/search?q={quote_plus(query)}"
        body = self.fetch_page(search_url)
        posts = self.parse_page(body, search_url)
        return posts[:max_posts]
