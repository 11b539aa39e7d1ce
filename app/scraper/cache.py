from __future__ import annotations

import threading
from datetime import datetime, timezone
from typing import Callable, Optional

from . import config
from .errors import NotAvailableError
from .logging_utils import _scraper_event
from .models import CacheEntry

Loader = Callable[[], CacheEntry]
Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CallupCache:
    """Time-windowed cache of callup summaries with single-flight refresh.

    Concurrent callers that find the cache stale queue on one lock; the first
    one runs ``loader`` and the others receive its entry instead of starting
    their own scrape. A failed load leaves the previous entry untouched.
    """

    def __init__(
        self,
        loader: Loader,
        *,
        ttl_seconds: Optional[float] = None,
        clock: Clock = _utcnow,
    ) -> None:
        self._loader = loader
        self._ttl_seconds = config.cache_ttl_seconds() if ttl_seconds is None else float(ttl_seconds)
        self._clock = clock
        self._entry: Optional[CacheEntry] = None
        self._generation = 0
        self._lock = threading.Lock()

    @property
    def ttl_seconds(self) -> float:
        return self._ttl_seconds

    @property
    def entry(self) -> Optional[CacheEntry]:
        return self._entry

    def is_valid(self, entry: Optional[CacheEntry] = None) -> bool:
        candidate = self._entry if entry is None else entry
        if candidate is None:
            return False
        age = (self._clock() - candidate.last_updated).total_seconds()
        return age < self._ttl_seconds

    def get(self, force_refresh: bool = False) -> CacheEntry:
        if not force_refresh:
            entry = self._entry
            if entry is not None and self.is_valid(entry):
                _scraper_event("cache", phase="hit", total_records=entry.total_records)
                return entry
        return self._load(force=force_refresh)

    def refresh(self) -> CacheEntry:
        """Always re-scrape, unless a refresh finished while waiting for the lock."""

        return self._load(force=True)

    def get_cached_only(self) -> CacheEntry:
        entry = self._entry
        if entry is None:
            raise NotAvailableError("No cached data available")
        return entry

    def _load(self, *, force: bool) -> CacheEntry:
        generation = self._generation
        with self._lock:
            if self._generation != generation and self._entry is not None:
                _scraper_event("cache", phase="joined_in_flight_refresh")
                return self._entry
            if not force and self._entry is not None and self.is_valid(self._entry):
                return self._entry

            _scraper_event("cache", phase="refresh", force=force)
            entry = self._loader()
            self._entry = entry
            self._generation += 1
            return entry


__all__ = ["CallupCache"]
