from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class CallupStatus(str, Enum):
    OK = "OK"
    WARNING = "WARNING"
    UNAVAILABLE = "UNAVAILABLE"
    OVER_LIMIT = "OVER_LIMIT"


@dataclass(frozen=True)
class RawRecord:
    """One callup row found on the game fines page."""

    player_name: str
    record_type: str
    source_table_index: int


@dataclass(frozen=True)
class DivisionLink:
    url: str
    gender: str
    age: int
    division_number: int
    label: str

    @property
    def key(self) -> tuple[str, int, int]:
        return (self.gender, self.age, self.division_number)

    @classmethod
    def build(cls, url: str, gender: str, age: int, division_number: int) -> "DivisionLink":
        return cls(
            url=url,
            gender=gender,
            age=age,
            division_number=division_number,
            label=f"{gender} U{age} Div {division_number}",
        )


@dataclass(frozen=True)
class GameRecord:
    division: str
    gender: str
    age: int
    division_number: int
    game_id: str
    day: str
    date: str
    time: str
    status: str
    home_team: str
    home_score: str
    home_fines: str
    visiting_team: str
    visiting_score: str
    visiting_fines: str
    site_field: str


@dataclass(frozen=True)
class PlayerSummary:
    player_name: str
    callup_count: int
    status: CallupStatus

    @property
    def is_warning(self) -> bool:
        return self.status is CallupStatus.WARNING

    @property
    def is_unavailable(self) -> bool:
        return self.status is CallupStatus.UNAVAILABLE

    @property
    def is_over_limit(self) -> bool:
        return self.status is CallupStatus.OVER_LIMIT

    def to_dict(self) -> dict[str, Any]:
        return {
            "playerName": self.player_name,
            "callupCount": self.callup_count,
            "status": self.status.value,
            "isWarning": self.is_warning,
            "isUnavailable": self.is_unavailable,
            "isOverLimit": self.is_over_limit,
        }


@dataclass(frozen=True)
class CacheEntry:
    """A complete scrape result; replaced wholesale, never patched."""

    summary: tuple[PlayerSummary, ...]
    total_records: int
    last_updated: datetime


@dataclass(frozen=True)
class AuthResult:
    success: bool
    already_authenticated: bool = False


@dataclass
class SeasonResult:
    games: list[GameRecord] = field(default_factory=list)
    divisions_scraped: int = 0
    divisions_failed: int = 0
    csv_path: str | None = None


__all__ = [
    "CallupStatus",
    "RawRecord",
    "DivisionLink",
    "GameRecord",
    "PlayerSummary",
    "CacheEntry",
    "AuthResult",
    "SeasonResult",
]
