"""
Platform scrapers (closed set, one per supported platform).
"""
from typing import Dict, Type

from constants import Platform, parse_platform
from ..base import BaseScraper
from .linkedin import LinkedInScraper
from .medium import MediumScraper
from .reddit import RedditScraper
from .twitter import TwitterScraper

SCRAPER_REGISTRY: Dict[Platform, Type[BaseScraper]] = {
    Platform.REDDIT: RedditScraper,
    Platform.TWITTER: TwitterScraper,
    Platform.LINKEDIN: LinkedInScraper,
    Platform.MEDIUM: MediumScraper,
}


def get_scraper_class(platform) -> Type[BaseScraper]:
    """
    Scraper class for a platform.

    Raises:
        ValueError: If the platform is not supported
    """
    return SCRAPER_REGISTRY[parse_platform(platform)]


__all__ = [
    "SCRAPER_REGISTRY",
    "get_scraper_class",
    "LinkedInScraper",
    "MediumScraper",
    "RedditScraper",
    "TwitterScraper",
]
