"""Cached callup lookups shared by the HTTP surface."""
from __future__ import annotations

from typing import Any, Callable, Dict, Optional

from .cache import CallupCache, Clock, _utcnow
from .error_codes import ErrorCode
from .errors import ScraperError
from .logging_utils import _scraper_event
from .models import CacheEntry
from .run import CallupScraper, failure_payload
from .summary import callup_payload
from .utils import log_line, validate_player_search


class CallupService:
    """Serve callup summaries from a TTL cache backed by fresh scrapes.

    Each load builds a new :class:`CallupScraper`, so every refresh runs in
    its own browser session on the calling thread.
    """

    def __init__(
        self,
        scraper_factory: Callable[[], CallupScraper] = CallupScraper,
        cache: Optional[CallupCache] = None,
        *,
        ttl_seconds: Optional[float] = None,
        clock: Clock = _utcnow,
    ) -> None:
        self._scraper_factory = scraper_factory
        self.cache = cache or CallupCache(self._load, ttl_seconds=ttl_seconds, clock=clock)

    def _load(self) -> CacheEntry:
        return self._scraper_factory().load()

    def scrape(self, search_filter: Any = None, force_refresh: bool = False) -> Dict[str, Any]:
        ok, search = validate_player_search(search_filter)
        if not ok:
            _scraper_event("error", phase="service", error=ErrorCode.INVALID_INPUT)
            return {"success": False, "error": search, "errorCode": ErrorCode.INVALID_INPUT}

        before = self.cache.entry
        try:
            entry = self.cache.get(force_refresh=force_refresh)
        except ScraperError as exc:
            log_line(f"[SERVICE] Callup scrape failed: {exc}")
            return failure_payload(exc)
        except Exception as exc:  # noqa: BLE001
            log_line(f"[SERVICE][ERROR] Unexpected callup failure: {exc!r}")
            return failure_payload(exc)

        return callup_payload(entry, search=search, cached=entry is before)

    def get_cached(self, search_filter: Any = None) -> Dict[str, Any]:
        ok, search = validate_player_search(search_filter)
        if not ok:
            return {"success": False, "error": search, "errorCode": ErrorCode.INVALID_INPUT}
        try:
            entry = self.cache.get_cached_only()
        except ScraperError as exc:
            return failure_payload(exc)
        return callup_payload(entry, search=search, cached=True)

    def cache_state(self) -> Dict[str, Any]:
        entry = self.cache.entry
        if entry is None:
            return {"populated": False, "valid": False}
        return {
            "populated": True,
            "valid": self.cache.is_valid(entry),
            "lastUpdated": entry.last_updated.isoformat(),
            "totalRecords": entry.total_records,
        }


__all__ = ["CallupService"]
