"""
Scraper error taxonomy.

Errors are recovered at the smallest scope that can absorb them:
element -> page -> platform -> community. Anything that escapes a platform
invocation is classified with ErrorKind and recorded in the run report.
"""
from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Error classes recorded in run reports."""
    CONFIG = "config"
    NETWORK = "network"
    RATE_LIMIT = "rate_limit"
    EXTRACTION = "extraction"
    TIMEOUT = "timeout"
    PERSISTENCE = "persistence"
    UNEXPECTED = "unexpected"


class ScraperError(Exception):
    """Base exception for scraping pipeline errors."""
    kind = ErrorKind.UNEXPECTED


class ConfigError(ScraperError):
    """Source URL or platform config could not be resolved."""
    kind = ErrorKind.CONFIG


class NetworkError(ScraperError):
    """Timeout, connection failure, or non-2xx response (except 429)."""
    kind = ErrorKind.NETWORK

    def __init__(self, message: str, status_code: Optional[int] = None, url: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.url = url


class RateLimitError(NetworkError):
    """HTTP 429 that persisted after the bounded backoff retries."""
    kind = ErrorKind.RATE_LIMIT


class ExtractionError(ScraperError):
    """A single element could not be turned into a RawPost."""
    kind = ErrorKind.EXTRACTION


class PersistenceError(ScraperError):
    """The persistence gateway failed to store a post."""
    kind = ErrorKind.PERSISTENCE


class PostConflictError(PersistenceError):
    """Insert lost a race on source_url or (platform, original_id)."""


class PlatformTimeoutError(ScraperError):
    """A platform invocation exceeded its time budget."""
    kind = ErrorKind.TIMEOUT


def classify_error(error: BaseException) -> ErrorKind:
    """
    Map an exception to the ErrorKind recorded in run reports.

    Args:
        error: Exception raised by a pipeline stage

    Returns:
        ErrorKind
    """
    if isinstance(error, ScraperError):
        return error.kind
    if isinstance(error, TimeoutError):
        return ErrorKind.TIMEOUT
    return ErrorKind.UNEXPECTED
