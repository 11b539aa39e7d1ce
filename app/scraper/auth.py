"""Login flow for the league's club area."""
from __future__ import annotations

from typing import Callable, Optional

from playwright.sync_api import Error as PWError, TimeoutError as PWTimeout

from . import config, page_state
from .browser import BrowserSession
from .cancellation import CancelToken
from .config import Credentials
from .errors import AuthenticationError, ScrapeCancelled
from .logging_utils import _scraper_event
from .models import AuthResult
from .utils import extract_error_message, keystroke_delay_ms, log_line, random_delay


class LoginFormError(Exception):
    """The login form did not contain the expected fields."""


class Authenticator:
    def __init__(
        self,
        *,
        login_url: str = config.LOGIN_URL,
        max_attempts: int = config.AUTH_MAX_ATTEMPTS,
        cancel: Optional[CancelToken] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ) -> None:
        self._login_url = login_url
        self._max_attempts = max(1, max_attempts)
        self._cancel = cancel or CancelToken()
        self._sleep = sleep or self._cancel.sleep

    def authenticate(
        self, session: BrowserSession, credentials: Optional[Credentials]
    ) -> AuthResult:
        """Log ``session`` in, or detect that it already is.

        Retries the whole sequence up to ``max_attempts`` times with jittered
        pauses and raises :class:`AuthenticationError` when every attempt
        fails.
        """

        if credentials is None or not credentials.is_complete():
            session.authenticated = False
            raise AuthenticationError("RDYSL credentials not configured")

        last_error = "login page still showing"
        for attempt in range(1, self._max_attempts + 1):
            log_line(f"[AUTH] Authentication attempt {attempt}/{self._max_attempts}")
            try:
                result = self._login_once(session, credentials)
            except ScrapeCancelled:
                session.authenticated = False
                raise
            except (PWTimeout, PWError, LoginFormError) as exc:
                last_error = extract_error_message(exc)
                _scraper_event(
                    "error",
                    phase="auth",
                    attempt=attempt,
                    max_attempts=self._max_attempts,
                    error=last_error,
                )
            else:
                if result is not None:
                    session.authenticated = True
                    _scraper_event(
                        "auth",
                        phase="success",
                        attempt=attempt,
                        already_authenticated=result.already_authenticated,
                    )
                    return result
                last_error = "invalid credentials or login page still showing"
                log_line(f"[AUTH] Login attempt {attempt} was rejected")

            if attempt < self._max_attempts:
                self._sleep(random_delay(config.AUTH_RETRY_DELAY_SECONDS))

        session.authenticated = False
        _scraper_event("error", phase="auth", kind="exhausted", error=last_error)
        raise AuthenticationError(
            f"Authentication failed after {self._max_attempts} attempts: {last_error}"
        )

    def _login_once(
        self, session: BrowserSession, credentials: Credentials
    ) -> Optional[AuthResult]:
        """Run one login sequence; ``None`` means the site rejected it."""

        page = session.page
        page.goto(
            self._login_url,
            wait_until="domcontentloaded",
            timeout=self._cancel.timeout_ms(config.NAV_TIMEOUT_SECONDS),
        )
        self._sleep(random_delay(config.LOGIN_SETTLE_SECONDS))

        if page_state.looks_authenticated(page.content(), page.url):
            log_line(f"[AUTH] Already logged in (url={page.url})")
            return AuthResult(success=True, already_authenticated=True)

        page.wait_for_selector(
            config.LOGIN_FORM_SELECTOR,
            timeout=self._cancel.timeout_ms(config.SELECTOR_TIMEOUT_SECONDS),
        )

        username_field = page.query_selector(config.USERNAME_SELECTOR)
        if username_field is None:
            raise LoginFormError(f"Username field {config.USERNAME_SELECTOR} not found")
        username_field.type(credentials.username, delay=keystroke_delay_ms())

        password_field = page.query_selector(config.PASSWORD_SELECTOR)
        if password_field is None:
            raise LoginFormError(f"Password field {config.PASSWORD_SELECTOR} not found")
        password_field.type(credentials.password, delay=keystroke_delay_ms())

        self._sleep(random_delay(config.PRE_SUBMIT_PAUSE_SECONDS))

        submit = page.query_selector(config.SUBMIT_SELECTOR)
        try:
            with page.expect_navigation(
                wait_until="networkidle",
                timeout=self._cancel.timeout_ms(config.LOGIN_NAV_TIMEOUT_SECONDS),
            ):
                if submit is not None:
                    submit.click()
                else:
                    log_line("[AUTH] Submit control not found; submitting form directly")
                    page.evaluate(
                        "() => document.getElementById('login-form').submit()"
                    )
        except PWTimeout:
            log_line("[AUTH] Login navigation timed out; verifying anyway")

        self._sleep(random_delay(config.POST_LOGIN_SETTLE_SECONDS))

        if page_state.login_failed(page.content(), page.url):
            return None
        return AuthResult(success=True, already_authenticated=False)


__all__ = ["Authenticator", "LoginFormError"]
