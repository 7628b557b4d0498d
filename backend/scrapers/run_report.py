"""
Run Report - Outcome of one orchestrator execution for one community.

Tracks:
- Per-platform counts (fetched, created, updated, unchanged)
- Per-unit errors, classified by ErrorKind
- Run status: succeeded, partial (some platforms failed), failed (all did)
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from .errors import ErrorKind, classify_error

RUN_STATUS_SUCCEEDED = "succeeded"
RUN_STATUS_PARTIAL = "partial"
RUN_STATUS_FAILED = "failed"

# Error scopes
SCOPE_PLATFORM = "platform"
SCOPE_POST = "post"
SCOPE_COMMUNITY = "community"


@dataclass
class ErrorRecord:
    kind: ErrorKind
    message: str
    scope: str = SCOPE_PLATFORM
    url: Optional[str] = None

    @classmethod
    def from_exception(cls, error: BaseException, scope: str = SCOPE_PLATFORM, url: Optional[str] = None) -> "ErrorRecord":
        return cls(
            kind=classify_error(error),
            message=str(error) or type(error).__name__,
            scope=scope,
            url=url or getattr(error, "url", None),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "scope": self.scope,
            "url": self.url,
        }


@dataclass
class PlatformResult:
    platform: str
    fetched: int = 0
    created: int = 0
    updated: int = 0
    unchanged: int = 0
    errors: List[ErrorRecord] = field(default_factory=list)
    duration_seconds: Optional[float] = None

    @property
    def failed(self) -> bool:
        """True if the platform invocation itself failed (not just single posts)."""
        return any(e.scope == SCOPE_PLATFORM for e in self.errors)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "platform": self.platform,
            "fetched": self.fetched,
            "created": self.created,
            "updated": self.updated,
            "unchanged": self.unchanged,
            "errors": [e.to_dict() for e in self.errors],
            "duration_seconds": self.duration_seconds,
        }


@dataclass
class RunReport:
    community_id: int
    started_at: datetime
    finished_at: Optional[datetime] = None
    platform_results: List[PlatformResult] = field(default_factory=list)
    triggered_by: str = "cron"
    # Fingerprint of the community scraping config this run used
    config_hash: Optional[str] = None
    # Community-scope errors (e.g. lastScrapedAt update)
    errors: List[ErrorRecord] = field(default_factory=list)

    def result_for(self, platform: str) -> PlatformResult:
        """PlatformResult for `platform`, created on first use."""
        for result in self.platform_results:
            if result.platform == platform:
                return result
        result = PlatformResult(platform=platform)
        self.platform_results.append(result)
        return result

    def _total(self, name: str) -> int:
        return sum(getattr(r, name) for r in self.platform_results)

    @property
    def fetched(self) -> int:
        return self._total("fetched")

    @property
    def created(self) -> int:
        return self._total("created")

    @property
    def updated(self) -> int:
        return self._total("updated")

    @property
    def unchanged(self) -> int:
        return self._total("unchanged")

    @property
    def error_count(self) -> int:
        return len(self.errors) + sum(len(r.errors) for r in self.platform_results)

    @property
    def status(self) -> str:
        if not self.platform_results:
            return RUN_STATUS_SUCCEEDED
        failed = [r for r in self.platform_results if r.failed]
        if not failed:
            return RUN_STATUS_SUCCEEDED
        if len(failed) == len(self.platform_results):
            return RUN_STATUS_FAILED
        return RUN_STATUS_PARTIAL

    def to_dict(self) -> Dict[str, Any]:
        return {
            "community_id": self.community_id,
            "status": self.status,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "triggered_by": self.triggered_by,
            "config_hash": self.config_hash,
            "totals": {
                "fetched": self.fetched,
                "created": self.created,
                "updated": self.updated,
                "unchanged": self.unchanged,
                "errors": self.error_count,
            },
            "platform_results": [r.to_dict() for r in self.platform_results],
            "errors": [e.to_dict() for e in self.errors],
        }
