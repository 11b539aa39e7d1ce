from __future__ import annotations

import pytest

from app.scraper import parser
from app.scraper.models import DivisionLink
from app.scraper.parser import find_schedule_header, parse_schedule_table

DIVISION = DivisionLink.build(
    "https://www.rdysl.com/standings?Y=2025;GAD=Boys:13:1", "Boys", 13, 1
)

GAME_ROW = [
    "101", "Sat", "2025-09-06", "10:00", "Final",
    "Home FC", "2", "", "Away FC", "1", "", "Field 3",
]


def _row(cells: list[str], tag: str = "td") -> str:
    return "<tr>" + "".join(f"<{tag}>{c}</{tag}>" for c in cells) + "</tr>"


def _page(*rows: str, before: str = "") -> str:
    return f"<html><body>{before}<table>{''.join(rows)}</table></body></html>"


def test_header_on_second_row_with_inferred_positions() -> None:
    html = _page(
        _row(["Boys U13 Division 1 - Fall 2025"], "th"),
        _row(["Game", "Day", "Date", "Time", "Status", "", "", "", "", "", "", ""], "th"),
        _row(GAME_ROW),
    )

    games = parse_schedule_table(html, DIVISION)

    assert len(games) == 1
    game = games[0]
    assert game.game_id == "101"
    assert game.date == "2025-09-06"
    assert game.home_team == "Home FC"
    assert game.home_score == "2"
    assert game.visiting_team == "Away FC"
    assert game.visiting_score == "1"
    assert game.site_field == "Field 3"
    assert (game.division, game.gender, game.age, game.division_number) == (
        "Boys U13 Div 1",
        "Boys",
        13,
        1,
    )


def test_sub_header_rows_are_discarded() -> None:
    html = _page(
        _row(["Game", "Day", "Date", "Time", "Status", "Home Team"], "th"),
        _row(["", "", "", "", "", "Team Name", "Score", "Fines", "Team Name", "Score", "Fines", ""]),
        _row(["Team Name", "x", "2025-09-06", "", "", "", "", "", "", "", "", ""]),
        _row(GAME_ROW),
    )

    games = parse_schedule_table(html, DIVISION)

    assert [g.game_id for g in games] == ["101"]


def test_labelled_home_team_column_anchors_inference() -> None:
    html = _page(
        _row(["Game", "Day", "Date", "Time", "Status", "Notes", "Home Team", "", "", "Visiting Team", "", "", "Site"], "th"),
        _row(["7", "Sun", "2025-09-07", "13:00", "Sched", "moved", "Lions", "", "", "Tigers", "", "", "Park 2"]),
    )

    game = parse_schedule_table(html, DIVISION)[0]

    assert game.home_team == "Lions"
    assert game.visiting_team == "Tigers"
    assert game.site_field == "Park 2"


def test_date_time_team_header_without_game_column() -> None:
    html = _page(
        _row(["Date", "Time", "Status", "Home Team", "", "", "Visiting Team", "", "", "Field"], "th"),
        _row(["2025-09-13", "09:00", "", "Rovers", "0", "", "United", "3", "", "Field 1"]),
    )

    game = parse_schedule_table(html, DIVISION)[0]

    assert game.game_id == ""
    assert game.date == "2025-09-13"
    assert game.home_team == "Rovers"
    assert game.visiting_team == "United"
    assert game.visiting_score == "3"
    assert game.site_field == "Field 1"


def test_rows_without_game_or_date_are_skipped() -> None:
    html = _page(
        _row(["Game", "Day", "Date", "Time", "Status"], "th"),
        _row(["", "Sat", "", "10:00", "Bye"]),
        _row(GAME_ROW),
    )

    assert [g.game_id for g in parse_schedule_table(html, DIVISION)] == ["101"]


def test_short_rows_yield_empty_fields() -> None:
    html = _page(
        _row(["Game", "Day", "Date", "Time", "Status"], "th"),
        _row(["202", "Sat", "2025-10-04"]),
    )

    game = parse_schedule_table(html, DIVISION)[0]

    assert game.game_id == "202"
    assert game.time == ""
    assert game.home_team == ""
    assert game.site_field == ""


def test_standings_table_is_not_mistaken_for_schedule() -> None:
    standings = (
        "<table>"
        + _row(["Team", "W", "L", "T", "Pts"], "th")
        + _row(["Lions", "3", "0", "0", "9"])
        + "</table>"
    )
    html = _page(
        _row(["Game", "Day", "Date", "Time", "Status"], "th"),
        _row(GAME_ROW),
        before=standings,
    )

    assert [g.game_id for g in parse_schedule_table(html, DIVISION)] == ["101"]


def test_header_below_scan_window_is_not_found(monkeypatch: pytest.MonkeyPatch) -> None:
    warnings: list[str] = []
    monkeypatch.setattr(parser, "log_warning", warnings.append)
    html = _page(
        _row(["Title"], "th"),
        _row(["Subtitle"], "th"),
        _row(["Updated"], "th"),
        _row(["Game", "Day", "Date", "Time", "Status"], "th"),
        _row(GAME_ROW),
    )

    assert parse_schedule_table(html, DIVISION) == []
    assert any("No game schedule table" in w for w in warnings)


def test_visiting_team_before_home_team_is_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    warnings: list[str] = []
    monkeypatch.setattr(parser, "log_warning", warnings.append)
    html = _page(
        _row(["Game", "Day", "Date", "Time", "Status", "Visiting Team", "", "", "Home Team"], "th"),
        _row(["5", "Sat", "2025-09-06", "10:00", "Final", "Away", "1", "", "Home"]),
    )

    assert parse_schedule_table(html, DIVISION) == []
    assert any("column layout is not recognised" in w for w in warnings)


def test_single_row_table_has_no_header() -> None:
    from bs4 import BeautifulSoup

    soup = BeautifulSoup(_page(_row(["Game", "Day", "Date", "Time", "Status"], "th")), "html5lib")

    assert find_schedule_header(soup.find("table")) is None


def test_header_row_index_reported() -> None:
    from bs4 import BeautifulSoup

    soup = BeautifulSoup(
        _page(_row(["Fall"], "th"), _row(["Game", "Day", "Date", "Time", "Status"], "th"), _row(GAME_ROW)),
        "html5lib",
    )

    header = find_schedule_header(soup.find("table"))

    assert header is not None
    assert header.row_index == 1
    assert header.columns["home_team"] == 5
    assert header.columns["site_field"] == 11


def test_unmappable_header_row_falls_through_to_next(monkeypatch: pytest.MonkeyPatch) -> None:
    warnings: list[str] = []
    monkeypatch.setattr(parser, "log_warning", warnings.append)
    html = _page(
        _row(["Date", "Time", "Visiting Team", "", "", "Home Team"], "th"),
        _row(["Game", "Day", "Date", "Time", "Status"], "th"),
        _row(GAME_ROW),
    )

    games = parse_schedule_table(html, DIVISION)

    assert [g.game_id for g in games] == ["101"]
    assert games[0].home_team == "Home FC"
    assert any("column layout is not recognised" in w for w in warnings)


def test_team_cells_with_inline_markup_keep_spacing() -> None:
    row = GAME_ROW[:5] + ["<a>Home</a> <span>FC</span>"] + GAME_ROW[6:8] + ["<b>Away</b> FC"] + GAME_ROW[9:]
    html = _page(_row(["Game", "Day", "Date", "Time", "Status"], "th"), _row(row))

    game = parse_schedule_table(html, DIVISION)[0]

    assert game.home_team == "Home FC"
    assert game.visiting_team == "Away FC"
