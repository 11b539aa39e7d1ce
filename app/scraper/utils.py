from __future__ import annotations

import logging
import random
import re
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from . import config

LOGGER = logging.getLogger("rdysl")
_LOGGER_INITIALISED = False


def _configure_logger(log_path: Path) -> None:
    """Configure the shared application logger to write to ``log_path``."""

    global _LOGGER_INITIALISED

    log_path.parent.mkdir(parents=True, exist_ok=True)

    for handler in list(LOGGER.handlers):
        LOGGER.removeHandler(handler)
        try:
            handler.close()
        except Exception:  # noqa: BLE001
            continue

    formatter = logging.Formatter(
        fmt="[%(asctime)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setFormatter(formatter)

    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setFormatter(formatter)

    LOGGER.setLevel(logging.INFO)
    LOGGER.addHandler(stream_handler)
    LOGGER.addHandler(file_handler)
    LOGGER.propagate = False

    _LOGGER_INITIALISED = True


def _ensure_logger() -> None:
    """Initialise the logger lazily using the default log file."""

    if _LOGGER_INITIALISED:
        return

    _configure_logger(config.LOG_FILE)


def setup_run_logger() -> Path:
    """Rotate to a fresh timestamped log file for the current run."""

    timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
    log_path = config.LOG_DIR / f"scrape_{timestamp}.log"
    _configure_logger(log_path)
    LOGGER.info("Logging to %s", log_path)
    return log_path


def ensure_dirs() -> None:
    """Ensure that the application's expected directory structure exists."""

    config.DATA_DIR.mkdir(parents=True, exist_ok=True)
    config.LOG_DIR.mkdir(parents=True, exist_ok=True)
    config.EXPORTS_DIR.mkdir(parents=True, exist_ok=True)


def log_line(message: str) -> None:
    """Write a timestamped log line to stdout and the active log file."""

    _ensure_logger()
    LOGGER.info(message)


def log_warning(message: str) -> None:
    _ensure_logger()
    LOGGER.warning(message)


def random_delay(bounds: tuple[float, float]) -> float:
    """Return a jittered delay in seconds within ``bounds``."""

    low, high = bounds
    if high < low:
        low, high = high, low
    return random.uniform(low, high)


def keystroke_delay_ms() -> int:
    low, high = config.KEYSTROKE_DELAY_MS
    return random.randint(low, high)


_VALUE_ATTR = re.compile(r'value="[^"]*"', re.IGNORECASE)
_PASSWORD_TAG = re.compile(r"password[^>]*>", re.IGNORECASE)


def sanitize_for_logging(html: str | None, max_length: int = 500) -> str:
    """Mask form values and password inputs in ``html`` before logging it."""

    if not html:
        return ""
    cleaned = _PASSWORD_TAG.sub("password>", html)
    cleaned = _VALUE_ATTR.sub('value="***"', cleaned)
    return cleaned[:max_length]


_HTML_INDICATORS = ("<html", "<!doctype", "<head", "<body", "<table", "<div")


def is_html_content(content: Any) -> bool:
    """Return ``True`` when ``content`` looks like an HTML document."""

    if not content or not isinstance(content, str):
        return False
    lowered = content.lower()
    return any(indicator in lowered for indicator in _HTML_INDICATORS)


def extract_error_message(error: Any) -> str:
    """Return a human readable message for ``error``."""

    if isinstance(error, str):
        return error
    message = str(error) if error is not None else ""
    if message:
        return message
    return "Unknown error occurred"


_DANGEROUS_SEARCH_PATTERNS = [
    re.compile(r"<script", re.IGNORECASE),
    re.compile(r"javascript:", re.IGNORECASE),
    re.compile(r"on\w+\s*=", re.IGNORECASE),
    re.compile(r"eval\s*\(", re.IGNORECASE),
    re.compile(r"expression\s*\(", re.IGNORECASE),
]


def validate_player_search(search: Any) -> tuple[bool, str]:
    """Validate free-text player search input.

    Returns ``(ok, value)`` where ``value`` is the trimmed search string when
    ``ok`` is true and an error message otherwise. Non-string input is treated
    as an empty search.
    """

    if not search or not isinstance(search, str):
        return True, ""

    trimmed = search.strip()
    if len(trimmed) > config.PLAYER_SEARCH_MAX_LENGTH:
        return False, "Search input too long"

    for pattern in _DANGEROUS_SEARCH_PATTERNS:
        if pattern.search(trimmed):
            return False, "Invalid search input detected"

    return True, trimmed
