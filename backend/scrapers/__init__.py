"""
Community Content Scraping Package

Ingestion pipeline for external platform content:
- Platform scrapers (reddit, twitter, linkedin, medium)
- Config-driven per-platform pacing
- Normalization, quality scoring and deduplication
- Per-community orchestration with failure isolation
"""

from .base import BaseScraper, RawPost, ScrapeConfig
from .errors import (
    ConfigError,
    ErrorKind,
    ExtractionError,
    NetworkError,
    PersistenceError,
    PlatformTimeoutError,
    RateLimitError,
    ScraperError,
)
from .gateway import PersistenceGateway, SQLAlchemyPostGateway
from .orchestrator import CommunityScrapeOrchestrator
from .platforms import SCRAPER_REGISTRY, get_scraper_class
from .run_report import RunReport

__all__ = [
    "BaseScraper",
    "RawPost",
    "ScrapeConfig",
    "ConfigError",
    "ErrorKind",
    "ExtractionError",
    "NetworkError",
    "PersistenceError",
    "PlatformTimeoutError",
    "RateLimitError",
    "ScraperError",
    "PersistenceGateway",
    "SQLAlchemyPostGateway",
    "CommunityScrapeOrchestrator",
    "SCRAPER_REGISTRY",
    "get_scraper_class",
    "RunReport",
]
