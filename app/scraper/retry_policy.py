from __future__ import annotations

import random
from typing import Optional

from .error_codes import ErrorCode
from .logging_utils import _scraper_event

RETRYABLE_ERROR_CODES = {
    ErrorCode.NAVIGATION,
    ErrorCode.INVALID_CONTENT,
    ErrorCode.PARSE_EMPTY,
}

NON_RETRYABLE_ERROR_CODES = {
    # Already retried inside the authenticator.
    ErrorCode.AUTH_FAILED,
    # Already recovered once inside the navigator.
    ErrorCode.SESSION_EXPIRED,
    # A bad URL or a site change; retrying cannot fix it.
    ErrorCode.NOT_FOUND,
    ErrorCode.CANCELLED,
    ErrorCode.CONFIG,
    ErrorCode.CACHE_EMPTY,
    # Launch happens once per run, outside any retried step.
    ErrorCode.BROWSER_LAUNCH,
    ErrorCode.INVALID_INPUT,
}

BACKOFF_BASE_SECONDS = 3.0
BACKOFF_JITTER_SECONDS = 2.0
BACKOFF_CAP_SECONDS = 30.0


def compute_backoff_seconds(attempt_index: int) -> float:
    """Return a capped, jittered backoff for the given attempt (1-based)."""

    base = BACKOFF_BASE_SECONDS * max(1, attempt_index)
    return min(base + random.uniform(0, BACKOFF_JITTER_SECONDS), BACKOFF_CAP_SECONDS)


def decide_retry(
    attempt_index: int,
    max_attempts: int,
    error: BaseException | None = None,
    *,
    error_code: Optional[str] = None,
) -> bool:
    """Decide whether a failed attempt should be retried."""

    code = (error_code or getattr(error, "error_code", None) or "").strip()

    if attempt_index >= max_attempts:
        _scraper_event(
            "state",
            phase="retry_decision",
            kind="capped",
            attempt=attempt_index,
            max_attempts=max_attempts,
            error_code=code or None,
            will_retry=False,
        )
        return False

    if code in NON_RETRYABLE_ERROR_CODES:
        _scraper_event(
            "state",
            phase="retry_decision",
            kind="non_retryable",
            error_code=code,
            attempt=attempt_index,
            max_attempts=max_attempts,
            will_retry=False,
        )
        return False

    if code in RETRYABLE_ERROR_CODES:
        _scraper_event(
            "state",
            phase="retry_decision",
            kind="retryable",
            error_code=code,
            attempt=attempt_index,
            max_attempts=max_attempts,
            will_retry=True,
        )
        return True

    _scraper_event(
        "state",
        phase="retry_decision",
        kind="unknown" if code else "missing_error_code",
        error_code=code or None,
        attempt=attempt_index,
        max_attempts=max_attempts,
        will_retry=False,
        error_repr=repr(error) if error is not None else None,
    )
    return False


__all__ = [
    "decide_retry",
    "compute_backoff_seconds",
    "RETRYABLE_ERROR_CODES",
    "NON_RETRYABLE_ERROR_CODES",
]
