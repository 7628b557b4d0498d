"""
Scraper Rate Limiter - Per-platform request pacing for web scraping.

Pacing is a minimum delay between the starts of consecutive fetches made by
one scraper invocation. Pacers are local to that invocation and do not
coordinate across concurrent scrapers.

Config: scrapers/rate_limits.yaml (override path with SCRAPER_RATE_LIMITS_PATH,
per-platform delay with SCRAPER_<PLATFORM>_DELAY_MS).
"""
import os
import time
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import yaml

from constants import REQUEST_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)

DEFAULT_LIMITS = {
    "rate_limit_delay_ms": 3000,
    "backoff_delay_ms": 10000,
    "backoff_multiplier": 2.0,
    "max_retries": 1,
    "timeout_seconds": REQUEST_TIMEOUT_SECONDS,
}


@dataclass(frozen=True)
class PlatformLimits:
    """Resolved pacing and retry settings for one platform."""
    platform: str
    rate_limit_delay_ms: int
    backoff_delay_ms: int
    backoff_multiplier: float
    max_retries: int
    timeout_seconds: float

    def backoff_seconds(self, attempt: int) -> float:
        """Extended delay before retry number `attempt` (0-based)."""
        return (self.backoff_delay_ms / 1000.0) * (self.backoff_multiplier ** attempt)


class RequestPacer:
    """
    Blocking pacer for one scraper invocation.

    wait() sleeps until at least `delay_ms` has elapsed since the previous
    fetch start, then marks a new fetch start.
    """

    def __init__(
        self,
        delay_ms: int,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.delay_seconds = max(delay_ms, 0) / 1000.0
        self._sleep = sleep
        self._clock = clock
        self._last_fetch_at: Optional[float] = None

    def mark(self):
        """Record a fetch start without waiting."""
        self._last_fetch_at = self._clock()

    def wait(self):
        """Sleep out the remainder of the delay window, then record the fetch start."""
        if self._last_fetch_at is not None:
            remaining = self.delay_seconds - (self._clock() - self._last_fetch_at)
            if remaining > 0:
                logger.debug(f"Pacing: sleeping {remaining:.2f}s")
                self._sleep(remaining)
        self.mark()

    def sleep(self, seconds: float):
        """Extended sleep (backoff) using the pacer's sleep function."""
        if seconds > 0:
            self._sleep(seconds)


class ScraperRateLimiter:
    """Loads per-platform pacing config and hands out pacers."""

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize rate limiter.

        Args:
            config_path: Path to YAML config file.
                        Defaults to SCRAPER_RATE_LIMITS_PATH or scrapers/rate_limits.yaml
        """
        self.config_path = (
            config_path
            or os.environ.get("SCRAPER_RATE_LIMITS_PATH")
            or self._default_config_path()
        )
        self._config = None

    def _default_config_path(self) -> str:
        return str(Path(__file__).parent / "rate_limits.yaml")

    @property
    def config(self) -> Dict[str, Any]:
        """Load config (cached)."""
        if self._config is None:
            self._config = self._load_config()
        return self._config

    def _load_config(self) -> Dict[str, Any]:
        """Load rate limit configuration from YAML."""
        try:
            with open(self.config_path, "r") as f:
                config = yaml.safe_load(f) or {}
                logger.info(f"Loaded rate limits from {self.config_path}")
                return config
        except FileNotFoundError:
            logger.warning(
                f"Rate limit config not found at {self.config_path}, using defaults"
            )
            return {"defaults": dict(DEFAULT_LIMITS), "platforms": {}}

    def get_limits(self, platform: str) -> PlatformLimits:
        """
        Get pacing limits for a platform.

        Precedence: built-in defaults < YAML defaults < YAML platform
        section < SCRAPER_<PLATFORM>_DELAY_MS environment variable.
        """
        limits = dict(DEFAULT_LIMITS)
        defaults = self.config.get("defaults") or {}
        platform_config = (self.config.get("platforms") or {}).get(platform) or {}

        for key in limits:
            if key in defaults:
                limits[key] = defaults[key]
        for key in limits:
            if key in platform_config:
                limits[key] = platform_config[key]

        env_delay = os.environ.get(f"SCRAPER_{platform.upper()}_DELAY_MS")
        if env_delay:
            try:
                limits["rate_limit_delay_ms"] = int(env_delay)
            except ValueError:
                logger.warning(f"Ignoring invalid SCRAPER_{platform.upper()}_DELAY_MS={env_delay!r}")

        return PlatformLimits(
            platform=platform,
            rate_limit_delay_ms=int(limits["rate_limit_delay_ms"]),
            backoff_delay_ms=int(limits["backoff_delay_ms"]),
            backoff_multiplier=float(limits["backoff_multiplier"]),
            max_retries=max(int(limits["max_retries"]), 0),
            timeout_seconds=float(limits["timeout_seconds"]),
        )

    def pacer(
        self,
        platform: str,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> RequestPacer:
        """Create a fresh pacer for one scraper invocation."""
        return RequestPacer(self.get_limits(platform).rate_limit_delay_ms, sleep=sleep, clock=clock)


# Global instance (lazy init)
_rate_limiter = None


def get_scraper_rate_limiter() -> ScraperRateLimiter:
    """Get the global scraper rate limiter instance."""
    global _rate_limiter
    if _rate_limiter is None:
        _rate_limiter = ScraperRateLimiter()
    return _rate_limiter
