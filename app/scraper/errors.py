"""Exception types raised inside the scraper core.

None of these cross the public boundary: ``run()``, the callup service and
the HTTP layer translate them into ``{"success": False, ...}`` payloads.
"""
from __future__ import annotations

from .error_codes import ErrorCode


class ScraperError(Exception):
    error_code: str = ErrorCode.INTERNAL

    def __init__(self, message: str, *, error_code: str | None = None) -> None:
        super().__init__(message)
        if error_code is not None:
            self.error_code = error_code

    def __str__(self) -> str:  # pragma: no cover - inherited behaviour
        return str(self.args[0]) if self.args else ""


class AuthenticationError(ScraperError):
    """Credentials rejected or the login flow never resolved."""

    error_code = ErrorCode.AUTH_FAILED


class SessionExpiredError(ScraperError):
    """The session was lost and one re-authentication did not restore it."""

    error_code = ErrorCode.SESSION_EXPIRED


class NotFoundError(ScraperError):
    """The target page does not exist; retrying will not help."""

    error_code = ErrorCode.NOT_FOUND


class NavigationError(ScraperError):
    """Transient navigation or network failure."""

    error_code = ErrorCode.NAVIGATION


class InvalidContentError(ScraperError):
    """The browser returned something that is not an HTML page."""

    error_code = ErrorCode.INVALID_CONTENT


class EmptyResultError(ScraperError):
    """A page parsed to zero records while retries remain."""

    error_code = ErrorCode.PARSE_EMPTY


class BrowserLaunchError(ScraperError):
    error_code = ErrorCode.BROWSER_LAUNCH


class ScrapeCancelled(ScraperError):
    error_code = ErrorCode.CANCELLED


class NotAvailableError(ScraperError):
    """Nothing has been cached yet."""

    error_code = ErrorCode.CACHE_EMPTY


class InvalidInputError(ScraperError):
    """A caller-supplied search or URL was rejected before scraping."""

    error_code = ErrorCode.INVALID_INPUT


__all__ = [
    "ScraperError",
    "AuthenticationError",
    "SessionExpiredError",
    "NotFoundError",
    "NavigationError",
    "InvalidContentError",
    "EmptyResultError",
    "BrowserLaunchError",
    "ScrapeCancelled",
    "NotAvailableError",
    "InvalidInputError",
]
