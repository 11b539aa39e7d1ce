"""CSV export of season game records."""
from __future__ import annotations

import csv
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Optional, Sequence

from . import config
from .models import GameRecord
from .utils import log_line

# Column order is part of the export contract.
GAME_CSV_COLUMNS: tuple[tuple[str, str], ...] = (
    ("division", "Division"),
    ("gender", "Gender"),
    ("age", "Age"),
    ("division_number", "Division Number"),
    ("game_id", "Game"),
    ("day", "Day"),
    ("date", "Date"),
    ("time", "Time"),
    ("status", "Status"),
    ("home_team", "Home Team Name"),
    ("home_score", "Home Team Score"),
    ("home_fines", "Home Team Fines"),
    ("visiting_team", "Visiting Team Name"),
    ("visiting_score", "Visiting Team Score"),
    ("visiting_fines", "Visiting Team Fines"),
    ("site_field", "Site & Field"),
)


def game_to_row(game: GameRecord) -> list[str]:
    return [str(getattr(game, field)) for field, _title in GAME_CSV_COLUMNS]


def write_games_csv(
    games: Sequence[GameRecord] | Iterable[GameRecord],
    year: int,
    output_dir: Optional[Path] = None,
    *,
    now: Optional[datetime] = None,
) -> Optional[Path]:
    """Write ``games`` to a timestamped CSV and return its path.

    Returns ``None`` without creating a file when there is nothing to export.
    """

    rows = list(games)
    if not rows:
        log_line("[EXPORT] No games to export")
        return None

    target_dir = Path(output_dir) if output_dir else config.EXPORTS_DIR
    target_dir.mkdir(parents=True, exist_ok=True)

    timestamp = (now or datetime.now(timezone.utc)).strftime("%Y-%m-%dT%H-%M-%S")
    path = target_dir / f"rdysl-{year}-season-{timestamp}.csv"

    with path.open("w", encoding="utf-8", newline="") as handle:
        writer = csv.writer(handle)
        writer.writerow([title for _field, title in GAME_CSV_COLUMNS])
        for game in rows:
            writer.writerow(game_to_row(game))

    log_line(f"[EXPORT] Exported {len(rows)} games to {path}")
    return path


__all__ = ["GAME_CSV_COLUMNS", "game_to_row", "write_games_csv"]
