"""Scrape orchestration for the RDYSL league site.

Workflow for callups:

- Launch a browser session (local or constrained Chromium).
- Log in to the club area.
- Load ``/gamefines?F=club`` and parse every ``Type``/``Name`` table.
- Aggregate callup rows per player and classify each player.

Workflow for a season:

- Load ``/season-past.htm`` and collect every ``standings?Y=<year>;GAD=...``
  link, one per (gender, age, division).
- Visit each standings page in turn, pausing 2-4 s between requests, and
  parse its game schedule table.
- Write all games to a CSV under the exports directory.

Both flows release the browser on every exit path. :func:`run` is the public
entrypoint; it never raises and always returns ``{"success": bool, ...}``.
"""

from __future__ import annotations

import argparse
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, TypeVar

from . import config
from .auth import Authenticator
from .browser import BrowserSession, SessionManager
from .cancellation import CancelToken
from .config import Credentials
from .config_validation import Entrypoint, validate_runtime_config
from .csv_export import write_games_csv
from .divisions import extract_division_links, parse_division_from_url, year_from_url
from .error_codes import ErrorCode
from .errors import EmptyResultError, InvalidInputError, ScrapeCancelled, ScraperError
from .logging_utils import _scraper_event
from .models import CacheEntry, DivisionLink, GameRecord, RawRecord, SeasonResult
from .navigator import PageNavigator
from .parser import parse_callup_records, parse_schedule_table
from .retry_policy import compute_backoff_seconds, decide_retry
from .summary import build_callup_summary, callup_payload
from .telemetry import FAILED, RunTelemetry
from .utils import (
    ensure_dirs,
    extract_error_message,
    log_line,
    log_warning,
    random_delay,
    sanitize_for_logging,
    setup_run_logger,
    validate_player_search,
)

T = TypeVar("T")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _short_error_message(exc: BaseException, max_length: int = 200) -> str:
    message = extract_error_message(exc)
    return message if len(message) <= max_length else message[: max_length - 3] + "..."


def failure_payload(exc: BaseException) -> Dict[str, Any]:
    code = getattr(exc, "error_code", None) or ErrorCode.INTERNAL
    return {"success": False, "error": _short_error_message(exc), "errorCode": code}


def run_with_retries(
    attempt_fn: Callable[[int, int], T],
    *,
    max_attempts: int,
    sleep: Callable[[float], None],
    label: str,
) -> T:
    """Call ``attempt_fn(attempt, max_attempts)`` until it succeeds.

    Only :class:`ScraperError` subclasses whose code is retryable are retried;
    anything else propagates immediately.
    """

    effective = max(1, max_attempts)
    for attempt in range(1, effective + 1):
        try:
            log_line(f"[RUN] {label}: attempt {attempt}/{effective}")
            return attempt_fn(attempt, effective)
        except ScraperError as exc:
            _scraper_event(
                "error",
                context=label,
                error=exc.error_code,
                attempt=attempt,
                max_attempts=effective,
                message=_short_error_message(exc),
            )
            if not decide_retry(attempt, effective, exc, error_code=exc.error_code):
                raise
            if isinstance(exc, EmptyResultError):
                delay = random_delay(config.EMPTY_RESULT_RETRY_SECONDS)
            else:
                delay = compute_backoff_seconds(attempt)
            log_line(f"[RUN] {label}: retrying in {delay:.1f}s after {exc.error_code}")
            sleep(delay)

    raise RuntimeError("run_with_retries exhausted without returning a result")


def respectful_delay() -> float:
    """Jittered pause between sequential page fetches, never below the floor."""

    low = max(config.REQUEST_DELAY_FLOOR_SECONDS, config.REQUEST_DELAY_MIN_SECONDS)
    high = max(low, config.REQUEST_DELAY_MAX_SECONDS)
    return random_delay((low, high))


# ---------------------------------------------------------------------------
# Callups
# ---------------------------------------------------------------------------


class CallupScraper:
    """Scrape the club game fines page into callup records."""

    def __init__(
        self,
        session_manager: Optional[SessionManager] = None,
        credentials: Optional[Credentials] = None,
        *,
        authenticator: Optional[Authenticator] = None,
        navigator: Optional[PageNavigator] = None,
        cancel: Optional[CancelToken] = None,
        sleep: Optional[Callable[[float], None]] = None,
        max_attempts: int = config.SCRAPE_MAX_ATTEMPTS,
        clock: Callable[[], datetime] = _utcnow,
        target_url: str = config.GAME_FINES_URL,
    ) -> None:
        self._session_manager = session_manager or SessionManager()
        self._credentials = credentials if credentials is not None else config.get_credentials()
        self._cancel = cancel or CancelToken()
        self._sleep = sleep or self._cancel.sleep
        self._authenticator = authenticator or Authenticator(cancel=self._cancel, sleep=self._sleep)
        self._navigator = navigator or PageNavigator(
            self._authenticator, self._credentials, cancel=self._cancel, sleep=self._sleep
        )
        self._max_attempts = max_attempts
        self._clock = clock
        self._target_url = target_url

    def scrape_records(self) -> List[RawRecord]:
        with self._session_manager.session() as session:
            self._authenticator.authenticate(session, self._credentials)

            def _attempt(attempt: int, max_attempts: int) -> List[RawRecord]:
                return self._fetch_and_parse(session, attempt, max_attempts)

            return run_with_retries(
                _attempt, max_attempts=self._max_attempts, sleep=self._sleep, label="callups"
            )

    def _fetch_and_parse(
        self, session: BrowserSession, attempt: int, max_attempts: int
    ) -> List[RawRecord]:
        html = self._navigator.fetch_page(session, self._target_url, label="game fines")
        records = parse_callup_records(html)
        if records:
            log_line(f"[RUN] Found {len(records)} callup records")
            return records
        if attempt < max_attempts:
            raise EmptyResultError(f"No callup records found (attempt {attempt})")
        log_warning(
            "[RUN][WARN] Game fines page parsed to zero callup records; "
            f"sample: {sanitize_for_logging(html)}"
        )
        _scraper_event("state", phase="parse_yielded_nothing", url=self._target_url)
        return records

    def load(self) -> CacheEntry:
        """Scrape and aggregate into a complete cache entry."""

        records = self.scrape_records()
        summary = build_callup_summary(records)
        return CacheEntry(
            summary=tuple(summary),
            total_records=len(records),
            last_updated=self._clock(),
        )


# ---------------------------------------------------------------------------
# Season schedule
# ---------------------------------------------------------------------------


class SeasonScraper:
    """Scrape every division schedule of one season into game records."""

    def __init__(
        self,
        year: Optional[int] = None,
        *,
        session_manager: Optional[SessionManager] = None,
        credentials: Optional[Credentials] = None,
        authenticate: bool = False,
        output_dir: Optional[Path] = None,
        authenticator: Optional[Authenticator] = None,
        navigator: Optional[PageNavigator] = None,
        telemetry: Optional[RunTelemetry] = None,
        cancel: Optional[CancelToken] = None,
        sleep: Optional[Callable[[float], None]] = None,
        index_url: str = config.SEASON_PAGE_URL,
    ) -> None:
        self.year = int(year or config.SEASON_YEAR)
        self._session_manager = session_manager or SessionManager()
        self._credentials = credentials if credentials is not None else config.get_credentials()
        self._authenticate = authenticate
        self._output_dir = output_dir
        self._cancel = cancel or CancelToken()
        self._sleep = sleep or self._cancel.sleep
        self._authenticator = authenticator or Authenticator(cancel=self._cancel, sleep=self._sleep)
        self._navigator = navigator or PageNavigator(
            self._authenticator, self._credentials, cancel=self._cancel, sleep=self._sleep
        )
        self.telemetry = telemetry or RunTelemetry(mode="season")
        self._index_url = index_url
        self._requests_made = 0

    def _fetch(self, session: BrowserSession, url: str, label: str) -> str:
        if self._requests_made:
            self._sleep(respectful_delay())

        def _attempt(_attempt: int, _max_attempts: int) -> str:
            self._requests_made += 1
            return self._navigator.fetch_page(session, url, label=label)

        return run_with_retries(
            _attempt,
            max_attempts=config.DIVISION_MAX_ATTEMPTS,
            sleep=self._sleep,
            label=label,
        )

    def discover_divisions(self, session: BrowserSession) -> List[DivisionLink]:
        html = self._fetch(session, self._index_url, "season index")
        return extract_division_links(html, self.year, base_url=session.base_url)

    def scrape_division(
        self, session: BrowserSession, division: DivisionLink, progress: str = ""
    ) -> List[GameRecord]:
        """Scrape one division; a failed division yields no games, not an error."""

        log_line(f"[RUN] Scraping {division.label}{progress}")
        try:
            html = self._fetch(session, division.url, division.label)
        except ScrapeCancelled:
            raise
        except ScraperError as exc:
            log_line(f"[RUN][WARN] Error scraping {division.label}: {exc}")
            self.telemetry.record_page(
                division.label, division.url, error_code=exc.error_code, error=str(exc)
            )
            return []

        games = parse_schedule_table(html, division)
        self.telemetry.record_page(division.label, division.url, records=len(games))
        log_line(f"[RUN]   Parsed {len(games)} games")
        return games

    def scrape(self, single_url: Optional[str] = None) -> SeasonResult:
        result = SeasonResult()
        single_division: Optional[DivisionLink] = None
        if single_url:
            single_division = parse_division_from_url(single_url)
            if single_division is None:
                raise InvalidInputError(f"Invalid division URL format: {single_url}")

        with self._session_manager.session() as session:
            if self._authenticate:
                self._authenticator.authenticate(session, self._credentials)

            if single_division is not None:
                divisions = [single_division]
            else:
                divisions = self.discover_divisions(session)
                if not divisions:
                    log_warning(f"[RUN][WARN] No division links found for {self.year}")
                    return result

            total = len(divisions)
            for index, division in enumerate(divisions, start=1):
                self._cancel.check()
                progress = f" ({index}/{total})" if total > 1 else ""
                games = self.scrape_division(session, division, progress)
                result.games.extend(games)
                if self.telemetry.entries and self.telemetry.entries[-1]["status"] == FAILED:
                    result.divisions_failed += 1
                else:
                    result.divisions_scraped += 1

        log_line(f"[RUN] Total games scraped: {len(result.games)}")
        return result

    def run(self, single_url: Optional[str] = None) -> Dict[str, Any]:
        result = self.scrape(single_url)
        csv_path = write_games_csv(result.games, self.year, self._output_dir)
        result.csv_path = str(csv_path) if csv_path else None
        empty = self.telemetry.empty_labels
        if empty:
            log_warning(f"[RUN][WARN] Divisions with no parsable schedule: {', '.join(empty)}")
        telemetry_path = self.telemetry.finalize(
            {"year": self.year, "games": len(result.games), "csv_path": result.csv_path}
        )
        return {
            "success": True,
            "year": self.year,
            "gamesCount": len(result.games),
            "divisionsScraped": result.divisions_scraped,
            "divisionsFailed": result.divisions_failed,
            "csvPath": result.csv_path,
            "telemetryPath": str(telemetry_path),
        }


# ---------------------------------------------------------------------------
# Main entrypoint
# ---------------------------------------------------------------------------

MODES = ("callups", "season")


def run(
    mode: str,
    params: Optional[Dict[str, Any]] = None,
    *,
    cancel: Optional[CancelToken] = None,
    entrypoint: Entrypoint = "cli",
) -> Dict[str, Any]:
    """Run one scrape and report a structured result; never raises."""

    params = dict(params or {})
    normalized = (mode or "").strip().lower()
    _scraper_event("run", phase="start", mode=normalized)
    try:
        if normalized not in MODES:
            raise ValueError(f"Unknown scrape mode: {mode!r}")
        validate_runtime_config(entrypoint, mode=normalized)

        if normalized == "callups":
            ok, search = validate_player_search(params.get("search"))
            if not ok:
                return {"success": False, "error": search, "errorCode": ErrorCode.INVALID_INPUT}
            entry = CallupScraper(cancel=cancel).load()
            result = callup_payload(entry, search=search, cached=False)
        else:
            output_dir = params.get("output_dir")
            result = SeasonScraper(
                params.get("year"),
                output_dir=Path(output_dir) if output_dir else None,
                authenticate=bool(params.get("authenticate", False)),
                cancel=cancel,
            ).run(single_url=params.get("url"))
    except ScraperError as exc:
        _scraper_event("error", phase="run", mode=normalized, error=exc.error_code)
        return failure_payload(exc)
    except ValueError as exc:
        _scraper_event("error", phase="run", mode=normalized, error=ErrorCode.CONFIG)
        return {"success": False, "error": str(exc), "errorCode": ErrorCode.CONFIG}
    except Exception as exc:  # noqa: BLE001
        log_line(f"[RUN][ERROR] Unexpected failure in {normalized} run: {exc!r}")
        _scraper_event("error", phase="run", mode=normalized, error=ErrorCode.INTERNAL)
        return failure_payload(exc)

    _scraper_event("run", phase="end", mode=normalized, success=True)
    return result


def _season_target(raw: Optional[str]) -> tuple[Optional[int], Optional[str]]:
    """Interpret a positional season target as a year or a standings URL."""

    if not raw:
        return None, None
    value = raw.strip()
    if value.startswith("http://") or value.startswith("https://"):
        return None, value
    if value.isdigit() and len(value) == 4:
        return int(value), None
    if "standings" in value or "GAD=" in value:
        return None, f"{config.BASE_URL}/{value.lstrip('/')}"
    raise ValueError(f"Unrecognised season target: {raw!r}")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run the RDYSL scraper")
    sub = parser.add_subparsers(dest="mode", required=True)

    callups = sub.add_parser("callups", help="Scrape club callups and print the summary")
    callups.add_argument("--search", default=None, help="Only show players matching this text")
    callups.add_argument("--json", action="store_true", help="Print the raw JSON result")
    callups.add_argument("--timeout", type=float, default=None, help="Overall deadline in seconds")

    season = sub.add_parser("season", help="Scrape season schedules to CSV")
    season.add_argument(
        "target",
        nargs="?",
        default=None,
        help="Season year (e.g. 2025) or a standings URL for a single division",
    )
    season.add_argument("--year", type=int, default=None)
    season.add_argument("--url", "-u", default=None, help="Scrape a single division URL")
    season.add_argument("--output-dir", default=None)
    season.add_argument("--login", action="store_true", help="Log in before scraping")
    season.add_argument("--timeout", type=float, default=None, help="Overall deadline in seconds")
    return parser


def _print_callups(result: Dict[str, Any]) -> None:
    stats = result.get("stats", {})
    print(
        f"Players: {stats.get('totalPlayers', 0)}  Callups: {stats.get('totalCallups', 0)}  "
        f"Warnings: {stats.get('warnings', 0)}  Unavailable: {stats.get('unavailable', 0)}  "
        f"Over limit: {stats.get('overLimit', 0)}"
    )
    for player in result.get("summary", []):
        print(f"  {player['callupCount']:>3}  {player['status']:<12} {player['playerName']}")


def _cli_entrypoint(argv: Optional[List[str]] = None) -> int:  # pragma: no cover
    parser = _build_parser()
    args = parser.parse_args(argv)

    ensure_dirs()
    setup_run_logger()
    cancel = CancelToken(args.timeout) if args.timeout else None

    if args.mode == "callups":
        result = run("callups", {"search": args.search}, cancel=cancel)
        if args.json or not result.get("success"):
            print(json.dumps(result, indent=2))
        else:
            _print_callups(result)
    else:
        try:
            year, url = _season_target(args.target)
        except ValueError as exc:
            parser.error(str(exc))
        url = args.url or url
        if url and args.url and not url.startswith("http"):
            url = f"{config.BASE_URL}/{url.lstrip('/')}"
        params = {
            "year": args.year or year or (year_from_url(url) if url else None),
            "url": url,
            "output_dir": args.output_dir,
            "authenticate": args.login,
        }
        result = run("season", params, cancel=cancel)
        print(json.dumps(result, indent=2))

    return 0 if result.get("success") else 1


__all__ = [
    "run",
    "run_with_retries",
    "respectful_delay",
    "failure_payload",
    "CallupScraper",
    "SeasonScraper",
    "_cli_entrypoint",
]


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(_cli_entrypoint())
