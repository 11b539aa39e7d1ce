"""Configuration constants for the RDYSL callup and season scraper."""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

DATA_DIR: Path = Path(os.getenv("RDYSL_DATA_DIR", "/app/data"))
LOG_DIR: Path = DATA_DIR / "logs"
LOG_FILE: Path = LOG_DIR / "latest.log"
EXPORTS_DIR: Path = DATA_DIR / "exports"
RUNS_DIR: Path = DATA_DIR / "runs"

BASE_URL: str = os.getenv("RDYSL_BASE_URL", "https://www.rdysl.com").rstrip("/")
LOGIN_URL: str = f"{BASE_URL}/clublogin"
GAME_FINES_URL: str = f"{BASE_URL}/gamefines?F=club"
SEASON_PAGE_URL: str = f"{BASE_URL}/season-past.htm"

SEASON_YEAR: int = int(os.getenv("RDYSL_SEASON_YEAR", "2025"))

CACHE_DURATION_MINUTES: int = int(os.getenv("CACHE_DURATION_MINUTES", "30"))

# Fixed ceilings; jitter may vary but the attempt counts may not.
AUTH_MAX_ATTEMPTS: int = 3
SCRAPE_MAX_ATTEMPTS: int = 3
DIVISION_MAX_ATTEMPTS: int = 3


def _parse_timeout_seconds(env_var: str, default: int, *, minimum: int = 1) -> int:
    """Parse a timeout value in seconds from the environment with bounds."""

    try:
        value = int(os.getenv(env_var, str(default)))
    except ValueError:
        return default
    return max(minimum, value)


# Navigation timeout for page.goto calls on data pages.
NAV_TIMEOUT_SECONDS: int = _parse_timeout_seconds("RDYSL_NAV_TIMEOUT_SECONDS", 60)
# Waiting for the post-login navigation; a timeout here is tolerated.
LOGIN_NAV_TIMEOUT_SECONDS: int = _parse_timeout_seconds("RDYSL_LOGIN_NAV_TIMEOUT_SECONDS", 30)
# Selector waits (login form, body).
SELECTOR_TIMEOUT_SECONDS: int = _parse_timeout_seconds("RDYSL_SELECTOR_TIMEOUT_SECONDS", 15)

# Settle delays (seconds) as (min, max) ranges; the actual wait is jittered.
LOGIN_SETTLE_SECONDS: tuple[float, float] = (2.0, 4.0)
PRE_SUBMIT_PAUSE_SECONDS: tuple[float, float] = (1.0, 2.0)
POST_LOGIN_SETTLE_SECONDS: tuple[float, float] = (3.0, 5.0)
PAGE_SETTLE_SECONDS: tuple[float, float] = (
    float(os.getenv("RDYSL_PAGE_SETTLE_MIN_SECONDS", "3")),
    float(os.getenv("RDYSL_PAGE_SETTLE_MAX_SECONDS", "5")),
)
AUTH_RETRY_DELAY_SECONDS: tuple[float, float] = (2.0, 4.0)
EMPTY_RESULT_RETRY_SECONDS: tuple[float, float] = (5.0, 8.0)
# Inter-keystroke delay in milliseconds when typing credentials.
KEYSTROKE_DELAY_MS: tuple[int, int] = (80, 180)

# Respectful delay between sequential page fetches in multi-page runs.
REQUEST_DELAY_FLOOR_SECONDS: float = 2.0
REQUEST_DELAY_MIN_SECONDS: float = float(os.getenv("REQUEST_DELAY_MIN_SECONDS", "2"))
REQUEST_DELAY_MAX_SECONDS: float = float(os.getenv("REQUEST_DELAY_MAX_SECONDS", "4"))

BROWSER_MODES = ("auto", "local", "constrained")
BROWSER_MODE: str = os.getenv("RDYSL_BROWSER_MODE", "auto").strip().lower() or "auto"
CHROMIUM_EXECUTABLE_PATH: str = os.getenv("CHROMIUM_EXECUTABLE_PATH", "/usr/bin/chromium")
HEADLESS: bool = os.getenv("RDYSL_HEADLESS", "true").strip().lower() not in {"0", "false"}

VIEWPORT: dict[str, int] = {"width": 1920, "height": 1080}

USER_AGENT: str = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

COMMON_HEADERS: dict[str, str] = {
    "Accept": (
        "text/html,application/xhtml+xml,application/xml;q=0.9,"
        "image/avif,image/webp,image/apng,*/*;q=0.8"
    ),
    "Accept-Language": "en-US,en;q=0.9",
    "Cache-Control": "max-age=0",
    "Sec-Ch-Ua": '"Not_A Brand";v="8", "Chromium";v="120", "Google Chrome";v="120"',
    "Sec-Ch-Ua-Mobile": "?0",
    "Sec-Ch-Ua-Platform": '"Windows"',
    "Sec-Fetch-Dest": "document",
    "Sec-Fetch-Mode": "navigate",
    "Sec-Fetch-Site": "none",
    "Sec-Fetch-User": "?1",
    "Upgrade-Insecure-Requests": "1",
}

LOGIN_FORM_SELECTOR: str = "#login-form"
USERNAME_SELECTOR: str = 'input[name="Username"]'
PASSWORD_SELECTOR: str = 'input[name="Password"]'
SUBMIT_SELECTOR: str = 'input[name="Submit"]'

PLAYER_SEARCH_MAX_LENGTH: int = 100


@dataclass(frozen=True)
class Credentials:
    username: str
    password: str

    def is_complete(self) -> bool:
        return bool(self.username) and bool(self.password)

    def __repr__(self) -> str:
        return f"Credentials(username={self.username!r}, password='***')"


def get_credentials() -> Optional[Credentials]:
    """Return the league credentials from the environment, or ``None``."""

    username = os.getenv("RDYSL_USERNAME", "").strip()
    password = os.getenv("RDYSL_PASSWORD", "")
    if not username or not password:
        return None
    return Credentials(username=username, password=password)


def credentials_configured() -> bool:
    return get_credentials() is not None


def cache_ttl_seconds() -> float:
    """Return the cache time-to-live in seconds."""

    return float(CACHE_DURATION_MINUTES * 60)


def is_constrained_runtime(env: Optional[dict[str, str]] = None) -> bool:
    """Return ``True`` when running inside a restricted serverless runtime."""

    environ = os.environ if env is None else env
    return bool(environ.get("VERCEL")) or bool(environ.get("AWS_LAMBDA_FUNCTION_NAME"))
