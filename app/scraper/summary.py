"""Callup aggregation and status classification."""
from __future__ import annotations

from collections import Counter
from typing import Any, Iterable, Sequence

from .models import CacheEntry, CallupStatus, PlayerSummary, RawRecord

WARNING_COUNT = 3
UNAVAILABLE_COUNT = 4


def classify_callup_count(count: int) -> CallupStatus:
    """Map a season callup count to its league status."""

    if count < 0:
        raise ValueError(f"callup count must be non-negative, got {count}")
    if count > UNAVAILABLE_COUNT:
        return CallupStatus.OVER_LIMIT
    if count == UNAVAILABLE_COUNT:
        return CallupStatus.UNAVAILABLE
    if count == WARNING_COUNT:
        return CallupStatus.WARNING
    return CallupStatus.OK


def build_callup_summary(records: Iterable[RawRecord]) -> list[PlayerSummary]:
    """Count records per player name and classify each player.

    Names are grouped by their exact scraped text. Two spellings of the same
    person are counted separately.
    """

    counts = Counter(record.player_name for record in records)
    summary = [
        PlayerSummary(player_name=name, callup_count=count, status=classify_callup_count(count))
        for name, count in counts.items()
    ]
    summary.sort(key=lambda player: (-player.callup_count, player.player_name))
    return summary


def calculate_stats(summary: Sequence[PlayerSummary] | None) -> dict[str, Any]:
    if not summary:
        return {
            "totalPlayers": 0,
            "warnings": 0,
            "unavailable": 0,
            "overLimit": 0,
            "totalCallups": 0,
        }

    return {
        "totalPlayers": len(summary),
        "warnings": sum(1 for player in summary if player.is_warning),
        "unavailable": sum(1 for player in summary if player.is_unavailable),
        "overLimit": sum(1 for player in summary if player.is_over_limit),
        "totalCallups": sum(player.callup_count for player in summary),
    }


def filter_summary(summary: Sequence[PlayerSummary], search: str) -> list[PlayerSummary]:
    """Return players whose name contains ``search`` (case-insensitive)."""

    if not search:
        return list(summary)
    needle = search.lower()
    return [player for player in summary if needle in player.player_name.lower()]


def callup_payload(entry: CacheEntry, *, search: str = "", cached: bool = False) -> dict[str, Any]:
    """Build the caller-facing result for a cache entry.

    Stats always describe the full summary; ``search`` only narrows the
    returned player list.
    """

    return {
        "success": True,
        "summary": [player.to_dict() for player in filter_summary(entry.summary, search)],
        "stats": calculate_stats(entry.summary),
        "totalRecords": entry.total_records,
        "lastUpdated": entry.last_updated.isoformat(),
        "cached": cached,
    }


__all__ = [
    "classify_callup_count",
    "build_callup_summary",
    "calculate_stats",
    "filter_summary",
    "callup_payload",
]
