"""
Centralized Constants - SINGLE SOURCE OF TRUTH

Platform identifiers, post statuses, tag vocabulary and HTTP defaults used
across scrapers, models and services.

DO NOT duplicate these definitions in other files.
"""
from enum import Enum


# =============================================================================
# PLATFORMS
# =============================================================================

class Platform(str, Enum):
    """Supported external platforms (closed set)."""
    REDDIT = "reddit"  # Forum-style boards
    TWITTER = "twitter"  # Microblog
    LINKEDIN = "linkedin"  # Professional network
    MEDIUM = "medium"  # Long-form articles


ALL_PLATFORMS = [p.value for p in Platform]


def parse_platform(value) -> Platform:
    """
    Coerce a platform name into the Platform enum.

    Args:
        value: Platform enum or string (case-insensitive)

    Returns:
        Platform

    Raises:
        ValueError: If the value is not a supported platform
    """
    if isinstance(value, Platform):
        return value
    normalized = str(value or "").strip().lower()
    # X is the current name of Twitter
    if normalized == "x":
        normalized = Platform.TWITTER.value
    return Platform(normalized)


# =============================================================================
# POST STATUS
# =============================================================================

POST_STATUS_ACTIVE = "active"
POST_STATUS_HIDDEN = "hidden"
POST_STATUS_FLAGGED = "flagged"
POST_STATUS_DELETED = "deleted"

POST_STATUSES = [
    POST_STATUS_ACTIVE,
    POST_STATUS_HIDDEN,
    POST_STATUS_FLAGGED,
    POST_STATUS_DELETED,
]


# =============================================================================
# SCRAPING DEFAULTS
# =============================================================================

DEFAULT_MAX_POSTS = 50
DEFAULT_QUALITY_SCORE = 0.5
REQUEST_TIMEOUT_SECONDS = 15

BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
}


# =============================================================================
# TAG VOCABULARY
# =============================================================================

# Topical keywords matched by presence in post content
TOPICAL_KEYWORDS = [
    'business', 'startup', 'entrepreneur', 'technology', 'innovation',
    'leadership', 'management', 'strategy', 'growth', 'marketing',
    'productivity', 'success', 'career', 'professional', 'development',
]
