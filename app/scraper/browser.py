"""Browser session management for the league site.

A session is one Playwright browser, context and page configured to look like
a normal desktop Chrome client. How the Chromium binary is provisioned depends
on the runtime: a full Playwright-managed browser locally, or a minimal system
binary with single-process flags in constrained serverless runtimes. Callers
only ever see :meth:`SessionManager.acquire` / :meth:`SessionManager.release`
(or the :meth:`SessionManager.session` scope).

Playwright's sync objects are bound to the thread that created them, so a
session must be acquired, used and released on the same thread.
"""
from __future__ import annotations

import os
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Iterator, Optional

from playwright.sync_api import Error as PWError, sync_playwright

from . import config
from .errors import BrowserLaunchError
from .logging_utils import _scraper_event
from .utils import log_line

LOCAL_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--no-first-run",
    "--disable-gpu",
    "--disable-blink-features=AutomationControlled",
]

CONSTRAINED_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--no-zygote",
    "--single-process",
    "--no-first-run",
    "--disable-extensions",
    "--disable-blink-features=AutomationControlled",
]

HIDE_WEBDRIVER_SCRIPT = "Object.defineProperty(navigator, 'webdriver', {get: () => undefined});"


class LocalChromiumStrategy:
    """Playwright's bundled Chromium with the full feature set."""

    name = "local"

    def launch(self, playwright: Any) -> Any:
        return playwright.chromium.launch(headless=config.HEADLESS, args=list(LOCAL_ARGS))


class ConstrainedChromiumStrategy:
    """A minimal system Chromium for restricted execution environments."""

    name = "constrained"

    def __init__(self, executable_path: Optional[str] = None) -> None:
        self.executable_path = executable_path or config.CHROMIUM_EXECUTABLE_PATH

    def launch(self, playwright: Any) -> Any:
        if not os.path.exists(self.executable_path):
            raise BrowserLaunchError(
                f"Chromium binary not found at {self.executable_path}"
            )
        return playwright.chromium.launch(
            headless=True,
            executable_path=self.executable_path,
            args=list(CONSTRAINED_ARGS),
        )


def select_strategy(
    mode: Optional[str] = None, env: Optional[dict[str, str]] = None
) -> LocalChromiumStrategy | ConstrainedChromiumStrategy:
    """Pick the launch strategy for ``mode`` (``auto`` inspects the runtime)."""

    resolved = (mode or config.BROWSER_MODE).strip().lower()
    if resolved == "auto":
        resolved = "constrained" if config.is_constrained_runtime(env) else "local"
    if resolved == "constrained":
        return ConstrainedChromiumStrategy()
    if resolved == "local":
        return LocalChromiumStrategy()
    raise ValueError(f"Unknown browser mode: {mode!r}")


@dataclass
class BrowserSession:
    page: Any
    context: Any
    browser: Any
    playwright: Any
    base_url: str
    strategy: str
    authenticated: bool = False
    closed: bool = False

    @property
    def current_url(self) -> str:
        try:
            return str(self.page.url or "")
        except Exception:  # noqa: BLE001
            return ""


class SessionManager:
    def __init__(
        self,
        strategy: Optional[LocalChromiumStrategy | ConstrainedChromiumStrategy] = None,
        *,
        playwright_factory: Callable[[], Any] = sync_playwright,
        base_url: str = config.BASE_URL,
    ) -> None:
        self._strategy = strategy or select_strategy()
        self._playwright_factory = playwright_factory
        self._base_url = base_url

    @property
    def strategy_name(self) -> str:
        return self._strategy.name

    def acquire(self) -> BrowserSession:
        """Launch a browser and return a configured, unauthenticated session."""

        playwright = None
        browser = None
        context = None
        _scraper_event("browser", phase="launch", strategy=self._strategy.name)
        try:
            playwright = self._playwright_factory().start()
            browser = self._strategy.launch(playwright)
            context = browser.new_context(
                user_agent=config.USER_AGENT,
                extra_http_headers=dict(config.COMMON_HEADERS),
                viewport=dict(config.VIEWPORT),
                device_scale_factor=1,
                locale="en-US",
            )
            context.add_init_script(HIDE_WEBDRIVER_SCRIPT)
            page = context.new_page()
            if page is None:
                raise BrowserLaunchError("Failed to create Playwright page")
        except BrowserLaunchError:
            self._teardown(context, browser, playwright)
            raise
        except (PWError, OSError) as exc:
            self._teardown(context, browser, playwright)
            raise BrowserLaunchError(f"Browser launch failed: {exc}") from exc
        except BaseException:
            self._teardown(context, browser, playwright)
            raise

        log_line(f"[BROWSER] Session ready (strategy={self._strategy.name})")
        return BrowserSession(
            page=page,
            context=context,
            browser=browser,
            playwright=playwright,
            base_url=self._base_url,
            strategy=self._strategy.name,
        )

    def release(self, session: Optional[BrowserSession]) -> None:
        """Close the browser behind ``session``; safe to call more than once."""

        if session is None or session.closed:
            return
        self._teardown(session.context, session.browser, session.playwright)
        session.closed = True
        session.authenticated = False
        _scraper_event("browser", phase="closed", strategy=session.strategy)

    @contextmanager
    def session(self) -> Iterator[BrowserSession]:
        handle = self.acquire()
        try:
            yield handle
        finally:
            self.release(handle)

    @staticmethod
    def _teardown(context: Any, browser: Any, playwright: Any) -> None:
        for label, resource, method in (
            ("context", context, "close"),
            ("browser", browser, "close"),
            ("playwright", playwright, "stop"),
        ):
            if resource is None:
                continue
            try:
                getattr(resource, method)()
            except Exception as exc:  # noqa: BLE001
                log_line(f"[BROWSER][WARN] Error closing {label}: {exc}")


__all__ = [
    "BrowserSession",
    "SessionManager",
    "LocalChromiumStrategy",
    "ConstrainedChromiumStrategy",
    "select_strategy",
]
