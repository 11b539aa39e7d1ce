from __future__ import annotations

from typing import Callable, Optional

from playwright.sync_api import Error as PWError, TimeoutError as PWTimeout

from . import config, page_state
from .auth import Authenticator
from .browser import BrowserSession
from .cancellation import CancelToken
from .config import Credentials
from .errors import (
    AuthenticationError,
    InvalidContentError,
    NavigationError,
    NotFoundError,
    SessionExpiredError,
)
from .logging_utils import _scraper_event
from .utils import is_html_content, log_line, random_delay


class PageNavigator:
    """Fetch rendered pages, recovering once from an expired session.

    Session expiry is only checked on authenticated sessions; public pages
    may legitimately carry a login box.
    """

    def __init__(
        self,
        authenticator: Optional[Authenticator] = None,
        credentials: Optional[Credentials] = None,
        *,
        cancel: Optional[CancelToken] = None,
        sleep: Optional[Callable[[float], None]] = None,
        settle_seconds: tuple[float, float] = config.PAGE_SETTLE_SECONDS,
    ) -> None:
        self._authenticator = authenticator
        self._credentials = credentials
        self._cancel = cancel or CancelToken()
        self._sleep = sleep or self._cancel.sleep
        self._settle_seconds = settle_seconds

    def fetch_page(self, session: BrowserSession, url: str, *, label: str = "") -> str:
        label = label or url
        html, status = self._load(session, url, label)

        if session.authenticated and page_state.is_session_expired(html, session.current_url):
            log_line(f"[NAV] Session expired while loading {label}; re-authenticating once")
            _scraper_event("nav", phase="session_expired", label=label, url=session.current_url)
            session.authenticated = False
            if self._authenticator is None:
                raise SessionExpiredError(f"Session expired loading {label}")
            try:
                self._authenticator.authenticate(session, self._credentials)
            except AuthenticationError as exc:
                raise SessionExpiredError(
                    f"Session expired and re-authentication failed: {exc}"
                ) from exc

            html, status = self._load(session, url, label)
            if page_state.is_session_expired(html, session.current_url):
                session.authenticated = False
                raise SessionExpiredError(
                    f"Session expired loading {label} - re-authentication did not hold"
                )

        if page_state.is_not_found(html, status):
            _scraper_event("error", phase="nav", kind="not_found", label=label, url=url)
            raise NotFoundError(f"Page not found: {url}")

        return html

    def _load(
        self, session: BrowserSession, url: str, label: str
    ) -> tuple[str, Optional[int]]:
        page = session.page
        _scraper_event("nav", step="goto", label=label, url=url)
        try:
            response = page.goto(
                url,
                wait_until="networkidle",
                timeout=self._cancel.timeout_ms(config.NAV_TIMEOUT_SECONDS),
            )
        except PWTimeout as exc:
            raise NavigationError(f"goto({url!r}) timed out: {exc}") from exc
        except PWError as exc:
            raise NavigationError(f"goto({url!r}) failed: {exc}") from exc

        self._sleep(random_delay(self._settle_seconds))

        try:
            html = page.content()
        except PWError as exc:
            raise NavigationError(f"Reading content of {url!r} failed: {exc}") from exc

        if not is_html_content(html):
            raise InvalidContentError(f"Invalid HTML content received from {url}")

        status = getattr(response, "status", None) if response is not None else None
        return html, status


__all__ = ["PageNavigator"]
