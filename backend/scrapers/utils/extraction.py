"""
Extraction heuristics shared by platform scrapers.

- Selector strategies over BeautifulSoup elements
- Suffixed number parsing ("1.2K" -> 1200)
- Tag extraction (markup + hashtags + topical vocabulary)
- Keyword filtering
"""
import hashlib
import math
import re
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Sequence

from dateutil import parser as date_parser

from constants import TOPICAL_KEYWORDS

# Suffix must not run into a word ("12 Bookmarks" is 12, not 12e9)
_NUMBER_RE = re.compile(r"(\d[\d,]*(?:\.\d+)?)\s*([KMB]?)(?![a-z])", re.IGNORECASE)
_READING_TIME_RE = re.compile(r"(\d+)")
_HASHTAG_RE = re.compile(r"#(\w+)")

_SUFFIX_MULTIPLIERS = {
    "": 1,
    "K": 1_000,
    "M": 1_000_000,
    "B": 1_000_000_000,
}


# =============================================================================
# Selector strategies
# =============================================================================

def first_text(element, selectors: Sequence[str]) -> str:
    """
    Text of the first non-empty match, trying each CSS selector in order.

    Returns:
        Stripped text, or '' if no selector produced text
    """
    for selector in selectors:
        for match in element.select(selector):
            text = clean_text(match.get_text(" ", strip=True))
            if text:
                return text
    return ""


def first_attr(element, selectors: Sequence[str], attr: str) -> Optional[str]:
    """Attribute value of the first match that has it, trying selectors in order."""
    for selector in selectors:
        for match in element.select(selector):
            value = match.get(attr)
            if value:
                return value.strip()
    return None


def clean_text(text: Optional[str]) -> str:
    """Collapse whitespace."""
    if not text:
        return ""
    return " ".join(text.split())


def make_title(text: str, max_length: int = 120) -> str:
    """Title for platforms without titles: first line, cut at a word boundary."""
    first_line = clean_text(text.strip().split("\n", 1)[0]) if text else ""
    if len(first_line) <= max_length:
        return first_line
    cut = first_line[:max_length].rsplit(" ", 1)[0]
    return f"{cut}..."


# =============================================================================
# Numbers and dates
# =============================================================================

def parse_number(text: Optional[str]) -> Optional[int]:
    """
    Parse a count with optional K/M/B suffix.

    Examples:
        >>> parse_number("1.2K")
        1200
        >>> parse_number("3,401 claps")
        3401
        >>> parse_number("no claps") is None
        True
    """
    if not text:
        return None
    match = _NUMBER_RE.search(text)
    if not match:
        return None
    number = float(match.group(1).replace(",", ""))
    multiplier = _SUFFIX_MULTIPLIERS[match.group(2).upper()]
    return int(math.floor(number * multiplier))


def parse_reading_time(text: Optional[str], default: int = 5) -> int:
    """Minutes from text like '7 min read'."""
    if not text:
        return default
    match = _READING_TIME_RE.search(text)
    return int(match.group(1)) if match else default


def parse_datetime(value) -> Optional[datetime]:
    """
    Parse an ISO string, epoch seconds, or free-form date into UTC datetime.

    Returns:
        Naive UTC datetime, or None if unparseable
    """
    if value is None or value == "":
        return None
    try:
        if isinstance(value, (int, float)):
            parsed = datetime.fromtimestamp(float(value), tz=timezone.utc)
        else:
            parsed = date_parser.parse(str(value))
    except (ValueError, OverflowError, OSError):
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def estimate_metric(seed: str, low: int, high: int) -> int:
    """
    Reproducible placeholder for a count the platform does not expose.

    Same seed always yields the same value in [low, high]. Only used when
    SCRAPER_ESTIMATE_MISSING_METRICS is enabled.
    """
    digest = hashlib.sha256(seed.encode("utf-8")).digest()
    span = max(high - low, 0) + 1
    return low + int.from_bytes(digest[:8], "big") % span


# =============================================================================
# Tags and keywords
# =============================================================================

def extract_hashtags(text: Optional[str]) -> List[str]:
    if not text:
        return []
    return [tag.lower() for tag in _HASHTAG_RE.findall(text)]


def extract_tags(
    explicit_tags: Iterable[str],
    content: Optional[str],
    vocabulary: Sequence[str] = TOPICAL_KEYWORDS,
) -> List[str]:
    """
    Merge explicit tag markup, hashtags found in content, and topical
    vocabulary words present in content.

    Returns:
        Sorted, deduplicated list of lowercase tags
    """
    tags = set()
    for tag in explicit_tags:
        tag = clean_text(tag).lower().lstrip("#")
        if tag:
            tags.add(tag)

    tags.update(extract_hashtags(content))

    content_lower = (content or "").lower()
    for keyword in vocabulary:
        if keyword in content_lower:
            tags.add(keyword)

    return sorted(tags)


def matches_keywords(title: str, content: str, tags: Iterable[str], keywords: Iterable[str]) -> bool:
    """
    True if any keyword is a case-insensitive substring of the title,
    content, or any tag.
    """
    haystack = " ".join([title or "", content or "", " ".join(tags or [])]).lower()
    return any(keyword.lower() in haystack for keyword in keywords if keyword)
