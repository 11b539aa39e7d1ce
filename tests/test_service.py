from __future__ import annotations

from datetime import datetime, timedelta, timezone

from app.scraper.errors import NavigationError
from app.scraper.models import CacheEntry, RawRecord
from app.scraper.service import CallupService
from app.scraper.summary import build_callup_summary


def _entry(*names: str) -> CacheEntry:
    records = [RawRecord(player_name=n, record_type="Callup: Game", source_table_index=0) for n in names]
    return CacheEntry(
        summary=tuple(build_callup_summary(records)),
        total_records=len(records),
        last_updated=datetime.now(timezone.utc),
    )


class StubScraper:
    def __init__(self, results: list) -> None:
        self._results = results
        self.loads = 0

    def __call__(self) -> "StubScraper":
        return self

    def load(self) -> CacheEntry:
        self.loads += 1
        result = self._results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


def test_scrape_populates_cache_and_serves_hits() -> None:
    stub = StubScraper([_entry("Jane Smith", "Jane Smith", "Ann Bell")])
    service = CallupService(scraper_factory=stub, ttl_seconds=600)

    first = service.scrape()
    second = service.scrape(search_filter="ann")

    assert first["success"] is True
    assert first["cached"] is False
    assert first["totalRecords"] == 3
    assert [p["playerName"] for p in first["summary"]] == ["Jane Smith", "Ann Bell"]
    assert second["cached"] is True
    assert [p["playerName"] for p in second["summary"]] == ["Ann Bell"]
    assert second["stats"]["totalPlayers"] == 2
    assert stub.loads == 1


def test_force_refresh_runs_new_scrape() -> None:
    stub = StubScraper([_entry("Jane Smith"), _entry("Jane Smith", "Bo Chen")])
    service = CallupService(scraper_factory=stub, ttl_seconds=600)

    service.scrape()
    refreshed = service.scrape(force_refresh=True)

    assert refreshed["totalRecords"] == 2
    assert stub.loads == 2


def test_scrape_failure_is_reported_not_raised() -> None:
    stub = StubScraper([NavigationError("goto timed out")])
    service = CallupService(scraper_factory=stub, ttl_seconds=600)

    result = service.scrape()

    assert result == {"success": False, "error": "goto timed out", "errorCode": "navigation_error"}
    assert service.cache.entry is None


def test_invalid_search_rejected_before_scraping() -> None:
    stub = StubScraper([_entry("Jane Smith")])
    service = CallupService(scraper_factory=stub, ttl_seconds=600)

    too_long = service.scrape(search_filter="x" * 101)
    script = service.scrape(search_filter="javascript:alert(1)")

    assert too_long["errorCode"] == "invalid_input"
    assert too_long["error"] == "Search input too long"
    assert script["errorCode"] == "invalid_input"
    assert stub.loads == 0


def test_get_cached_before_and_after_scrape() -> None:
    stub = StubScraper([_entry("Jane Smith")])
    service = CallupService(scraper_factory=stub, ttl_seconds=600)

    empty = service.get_cached()
    service.scrape()
    cached = service.get_cached()

    assert empty["success"] is False
    assert empty["errorCode"] == "cache_empty"
    assert cached["success"] is True
    assert cached["cached"] is True
    assert stub.loads == 1


def test_cache_state() -> None:
    stub = StubScraper([_entry("Jane Smith")])
    service = CallupService(scraper_factory=stub, ttl_seconds=600)

    assert service.cache_state() == {"populated": False, "valid": False}
    service.scrape()
    state = service.cache_state()
    assert state["populated"] is True
    assert state["valid"] is True
    assert state["totalRecords"] == 1


def test_expired_entry_is_reloaded_on_next_scrape() -> None:
    entry = _entry("Jane Smith")
    now = [entry.last_updated + timedelta(minutes=5)]
    stub = StubScraper([entry, _entry("Jane Smith", "Bo Chen")])
    service = CallupService(scraper_factory=stub, ttl_seconds=600, clock=lambda: now[0])

    service.scrape()
    hit = service.scrape()
    now[0] = entry.last_updated + timedelta(minutes=10)
    expired = service.scrape()

    assert hit["cached"] is True
    assert expired["cached"] is False
    assert expired["totalRecords"] == 2
    assert stub.loads == 2
