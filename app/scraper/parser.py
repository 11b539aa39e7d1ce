"""Heuristic table parsers for RDYSL pages.

The league site is an uncontrolled third party with inconsistent markup, so
both parsers are tolerant: they scan every table, pick the first one whose
header looks right, and return an empty list (with a log line) instead of
raising when nothing matches.

Two table shapes are handled:

* the game fines page, a flat table with a ``Type`` and a ``Name`` column
  (:func:`parse_callup_records`);
* division standings pages, whose game schedule table has a wide row layout
  where only some columns are labelled (:func:`parse_schedule_table`).
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from bs4 import BeautifulSoup
from bs4.element import Tag

from .logging_utils import _scraper_event
from .models import DivisionLink, GameRecord, RawRecord
from .utils import log_line, log_warning

CALLUP_MARKER = "callup:"
HEADER_SCAN_ROWS = 3
SUB_HEADER_LABELS = frozenset({"team name", "score", "fines"})

# Columns after the home team are not reliably labelled upstream; their
# positions follow this fixed layout, one column after the previous.
INFERRED_COLUMNS_AFTER_HOME = (
    "home_score",
    "home_fines",
    "visiting_team",
    "visiting_score",
    "visiting_fines",
    "site_field",
)

_HAS_LETTER = re.compile(r"[A-Za-z]")
_ALL_DIGITS = re.compile(r"^\d+$")


def _soup(html: str) -> Optional[BeautifulSoup]:
    try:
        return BeautifulSoup(html or "", "html5lib")
    except Exception as exc:  # noqa: BLE001
        log_line(f"[PARSE] Failed to parse HTML: {exc}")
        return None


def _cells(row: Tag) -> list[Tag]:
    return row.find_all(["th", "td"], recursive=False)


def _cell_text(cell: Tag) -> str:
    return cell.get_text().strip()


def _row_texts(row: Tag) -> list[str]:
    return [_cell_text(cell).lower() for cell in _cells(row)]


# ---------------------------------------------------------------------------
# Callups (game fines page)
# ---------------------------------------------------------------------------


def is_valid_player_name(text: str | None) -> bool:
    """Return ``True`` when ``text`` plausibly holds a player name."""

    if not text or len(text) < 2:
        return False
    if not _HAS_LETTER.search(text):
        return False
    if _ALL_DIGITS.match(text):
        return False
    if "callup" in text.lower():
        return False
    return True


def _locate_type_and_name_columns(header_row: Tag) -> tuple[int, int]:
    type_index = -1
    name_index = -1
    for index, text in enumerate(_row_texts(header_row)):
        if "type" in text:
            type_index = index
        if "name" in text:
            name_index = index
    return type_index, name_index


def parse_callup_records(html: str) -> list[RawRecord]:
    """Extract callup rows from every table with ``Type``/``Name`` headers."""

    soup = _soup(html)
    if soup is None:
        return []

    records: list[RawRecord] = []
    tables = soup.find_all("table")
    for table_index, table in enumerate(tables):
        rows = table.find_all("tr")
        if not rows:
            continue

        type_index, name_index = _locate_type_and_name_columns(rows[0])
        if type_index == -1 or name_index == -1:
            continue

        needed = max(type_index, name_index)
        for row in rows[1:]:
            cells = _cells(row)
            if len(cells) <= needed:
                continue
            type_text = _cell_text(cells[type_index])
            name_text = _cell_text(cells[name_index])
            if CALLUP_MARKER in type_text.lower() and is_valid_player_name(name_text):
                records.append(
                    RawRecord(
                        player_name=name_text,
                        record_type=type_text,
                        source_table_index=table_index,
                    )
                )

    if not records:
        log_warning(
            f"[PARSE][WARN] No callup records found across {len(tables)} tables; "
            "the game fines page layout may have changed."
        )
    _scraper_event("parse", phase="callups", tables=len(tables), records=len(records))
    return records


# ---------------------------------------------------------------------------
# Game schedule (division standings pages)
# ---------------------------------------------------------------------------


@dataclass
class ScheduleHeader:
    row_index: int
    columns: dict[str, int]


def _is_home_team_label(text: str) -> bool:
    return "home" in text and "team" in text


def _is_visiting_team_label(text: str) -> bool:
    return ("visiting" in text or "visitor" in text) and "team" in text


def _looks_like_schedule_header(texts: list[str]) -> bool:
    has_game = any(t == "game" or ("game" in t and "standings" not in t) for t in texts)
    has_day = "day" in texts
    has_date = "date" in texts
    has_time = "time" in texts
    has_status = "status" in texts
    has_team = any(_is_home_team_label(t) or _is_visiting_team_label(t) for t in texts)
    return (has_game and has_day and has_date and has_time and has_status) or (
        has_date and has_time and has_team
    )


def _map_schedule_columns(texts: list[str]) -> Optional[dict[str, int]]:
    """Map labelled columns exactly, then infer the rest from the home team."""

    columns: dict[str, int] = {}
    visiting_label_index: Optional[int] = None
    for index, text in enumerate(texts):
        if text in ("game", "day", "date", "time", "status"):
            columns.setdefault(text if text != "game" else "game_id", index)
        elif _is_home_team_label(text) and "score" not in text and "fines" not in text:
            columns.setdefault("home_team", index)
        elif _is_visiting_team_label(text) and visiting_label_index is None:
            visiting_label_index = index

    if "home_team" not in columns:
        if "status" not in columns:
            return None
        columns["home_team"] = columns["status"] + 1

    if visiting_label_index is not None and visiting_label_index < columns["home_team"]:
        # Visiting team labelled before the home team: the fixed layout no
        # longer holds and positional inference would mis-map every column.
        return None

    position = columns["home_team"]
    for name in INFERRED_COLUMNS_AFTER_HOME:
        position += 1
        columns[name] = position
    return columns


def find_schedule_header(table: Tag) -> Optional[ScheduleHeader]:
    """Return the schedule header of ``table`` if one sits in its first rows."""

    rows = table.find_all("tr")
    if len(rows) < 2:
        return None
    for row_index, row in enumerate(rows[:HEADER_SCAN_ROWS]):
        texts = _row_texts(row)
        if _looks_like_schedule_header(texts):
            columns = _map_schedule_columns(texts)
            if columns is None:
                log_warning(
                    "[PARSE][WARN] Schedule header found but column layout is not "
                    f"recognised: {texts!r}"
                )
                continue
            return ScheduleHeader(row_index=row_index, columns=columns)
    return None


def _cell_at(cells: list[Tag], index: Optional[int]) -> str:
    if index is None or index < 0 or index >= len(cells):
        return ""
    return _cell_text(cells[index])


def parse_schedule_table(html: str, division: DivisionLink) -> list[GameRecord]:
    """Extract the game schedule of one division standings page."""

    soup = _soup(html)
    if soup is None:
        return []

    table: Optional[Tag] = None
    header: Optional[ScheduleHeader] = None
    for candidate in soup.find_all("table"):
        header = find_schedule_header(candidate)
        if header is not None:
            table = candidate
            break

    if table is None or header is None:
        log_warning(f"[PARSE][WARN] No game schedule table found for {division.label}")
        return []

    columns = header.columns
    games: list[GameRecord] = []
    rows = table.find_all("tr")
    for row in rows[header.row_index + 1 :]:
        cells = _cells(row)
        if not cells:
            continue
        if _cell_text(cells[0]).lower() in SUB_HEADER_LABELS:
            continue

        game_id = _cell_at(cells, columns.get("game_id"))
        date = _cell_at(cells, columns.get("date"))
        if not game_id and not date:
            continue

        games.append(
            GameRecord(
                division=division.label,
                gender=division.gender,
                age=division.age,
                division_number=division.division_number,
                game_id=game_id,
                day=_cell_at(cells, columns.get("day")),
                date=date,
                time=_cell_at(cells, columns.get("time")),
                status=_cell_at(cells, columns.get("status")),
                home_team=_cell_at(cells, columns.get("home_team")),
                home_score=_cell_at(cells, columns.get("home_score")),
                home_fines=_cell_at(cells, columns.get("home_fines")),
                visiting_team=_cell_at(cells, columns.get("visiting_team")),
                visiting_score=_cell_at(cells, columns.get("visiting_score")),
                visiting_fines=_cell_at(cells, columns.get("visiting_fines")),
                site_field=_cell_at(cells, columns.get("site_field")),
            )
        )

    _scraper_event(
        "parse",
        phase="schedule",
        division=division.label,
        header_row=header.row_index,
        games=len(games),
    )
    return games


__all__ = [
    "is_valid_player_name",
    "parse_callup_records",
    "find_schedule_header",
    "parse_schedule_table",
    "ScheduleHeader",
]
