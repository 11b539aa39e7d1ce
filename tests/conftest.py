from __future__ import annotations

import os
import tempfile
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Optional

# Keep logs and exports out of /app/data before any app module is imported.
os.environ.setdefault("RDYSL_DATA_DIR", tempfile.mkdtemp(prefix="rdysl-tests-"))

import pytest
from playwright.sync_api import Error as PWError, TimeoutError as PWTimeout

from app.scraper import config
from app.scraper.browser import BrowserSession, LocalChromiumStrategy, SessionManager

BASE = config.BASE_URL
MEMBER_URL = f"{BASE}/club"

LOGIN_HTML = (
    "<html><head><title>Club Login</title></head><body>"
    '<form id="login-form" method="post">'
    '<input name="Username" type="text"><input name="Password" type="password">'
    '<input name="Submit" type="submit" value="Login">'
    "</form></body></html>"
)
LOGIN_REJECTED_HTML = LOGIN_HTML.replace(
    "<body>", "<body><p class=\"error\">Invalid username or password</p>"
)
MEMBER_HTML = (
    "<html><head><title>Club</title></head><body>"
    '<a href="/gamefines?F=club">Game Fines</a> <a href="/logout">Logout</a>'
    "</body></html>"
)
NOT_FOUND_HTML = (
    "<html><head><title>404 Not Found</title></head><body><h1>Not Found</h1></body></html>"
)


def fines_html(*rows: tuple[str, str], extra_tables: str = "") -> str:
    body = "".join(f"<tr><td>{kind}</td><td>{name}</td><td>$0</td></tr>" for kind, name in rows)
    return (
        "<html><body><table>"
        "<tr><th>Type</th><th>Name</th><th>Amount</th></tr>"
        f"{body}</table>{extra_tables}</body></html>"
    )


class FakeSite:
    """In-memory stand-in for the league site, shared by every fake page."""

    def __init__(self, username: str = "club", password: str = "secret") -> None:
        self.username = username
        self.password = password
        self.pages: dict[str, str] = {}
        self.protected: set[str] = set()
        self.failures: dict[str, list[Exception]] = {}
        self.logged_in = False
        self.always_expire = False
        self.login_submissions = 0
        self.visits: list[str] = []

    def add_page(self, url: str, html: str, *, protected: bool = False) -> None:
        self.pages[url] = html
        if protected:
            self.protected.add(url)

    def fail(self, url: str, *errors: Exception) -> None:
        self.failures.setdefault(url, []).extend(errors)

    def render(self, url: str) -> tuple[str, str, int]:
        self.visits.append(url)
        queued = self.failures.get(url)
        if queued:
            raise queued.pop(0)
        if url == config.LOGIN_URL:
            return url, (MEMBER_HTML if self.logged_in else LOGIN_HTML), 200
        if url in self.protected and (not self.logged_in or self.always_expire):
            self.logged_in = False
            return config.LOGIN_URL, LOGIN_HTML, 200
        if url not in self.pages:
            return url, NOT_FOUND_HTML, 404
        return url, self.pages[url], 200

    def submit(self, form: dict[str, str]) -> tuple[str, str]:
        self.login_submissions += 1
        if form.get("Username") == self.username and form.get("Password") == self.password:
            self.logged_in = True
            return MEMBER_URL, MEMBER_HTML
        return config.LOGIN_URL, LOGIN_REJECTED_HTML


class FakeResponse:
    def __init__(self, status: int) -> None:
        self.status = status


class FakeElement:
    def __init__(self, page: "FakePage", name: str) -> None:
        self._page = page
        self._name = name

    def type(self, text: str, delay: Optional[float] = None) -> None:
        self._page.form[self._name] = self._page.form.get(self._name, "") + text

    def click(self) -> None:
        self._page.submit()


class FakePage:
    def __init__(self, site: FakeSite) -> None:
        self.site = site
        self.url = "about:blank"
        self.html = "<html><body></body></html>"
        self.form: dict[str, str] = {}
        self.goto_calls: list[dict[str, Any]] = []
        self.evaluated: list[str] = []

    def goto(self, url: str, wait_until: Optional[str] = None, timeout: Optional[float] = None):
        self.goto_calls.append({"url": url, "wait_until": wait_until, "timeout": timeout})
        self.url, self.html, status = self.site.render(url)
        self.form = {}
        return FakeResponse(status)

    def content(self) -> str:
        return self.html

    def wait_for_selector(self, selector: str, timeout: Optional[float] = None) -> None:
        if selector == config.LOGIN_FORM_SELECTOR and 'id="login-form"' not in self.html:
            raise PWTimeout(f"waiting for {selector} timed out")

    def query_selector(self, selector: str) -> Optional[FakeElement]:
        for name in ("Username", "Password", "Submit"):
            if selector == f'input[name="{name}"]' and f'name="{name}"' in self.html:
                return FakeElement(self, name)
        return None

    @contextmanager
    def expect_navigation(self, wait_until: Optional[str] = None, timeout: Optional[float] = None):
        yield None

    def evaluate(self, script: str) -> None:
        self.evaluated.append(script)
        self.submit()

    def submit(self) -> None:
        self.url, self.html = self.site.submit(self.form)
        self.form = {}


class FakeContext:
    def __init__(self, site: FakeSite, **options: Any) -> None:
        self.site = site
        self.options = options
        self.init_scripts: list[str] = []
        self.pages: list[FakePage] = []
        self.closed = False

    def add_init_script(self, script: str) -> None:
        self.init_scripts.append(script)

    def new_page(self) -> FakePage:
        page = FakePage(self.site)
        self.pages.append(page)
        return page

    def close(self) -> None:
        self.closed = True


class FakeBrowser:
    def __init__(self, site: FakeSite, fail_context: bool = False) -> None:
        self.site = site
        self.fail_context = fail_context
        self.contexts: list[FakeContext] = []
        self.closed = False

    def new_context(self, **options: Any) -> FakeContext:
        if self.fail_context:
            raise PWError("context creation failed")
        context = FakeContext(self.site, **options)
        self.contexts.append(context)
        return context

    def close(self) -> None:
        self.closed = True


class FakeChromium:
    def __init__(self, owner: "FakePlaywright") -> None:
        self._owner = owner
        self.launch_kwargs: list[dict[str, Any]] = []

    def launch(self, **kwargs: Any) -> FakeBrowser:
        self.launch_kwargs.append(kwargs)
        if self._owner.fail_launch:
            raise PWError("Executable doesn't exist")
        browser = FakeBrowser(self._owner.site, fail_context=self._owner.fail_context)
        self._owner.browsers.append(browser)
        return browser


class FakePlaywright:
    def __init__(self, site: FakeSite, *, fail_launch: bool = False, fail_context: bool = False) -> None:
        self.site = site
        self.fail_launch = fail_launch
        self.fail_context = fail_context
        self.browsers: list[FakeBrowser] = []
        self.chromium = FakeChromium(self)
        self.started = 0
        self.stopped = 0

    def start(self) -> "FakePlaywright":
        self.started += 1
        return self

    def stop(self) -> None:
        self.stopped += 1


@pytest.fixture(autouse=True)
def isolated_data_dirs(tmp_path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(config, "EXPORTS_DIR", tmp_path / "exports")
    monkeypatch.setattr(config, "RUNS_DIR", tmp_path / "runs")
    return tmp_path


@pytest.fixture
def site() -> FakeSite:
    return FakeSite()


@pytest.fixture
def fake_playwright(site: FakeSite) -> FakePlaywright:
    return FakePlaywright(site)


@pytest.fixture
def session_manager(fake_playwright: FakePlaywright) -> SessionManager:
    return SessionManager(LocalChromiumStrategy(), playwright_factory=lambda: fake_playwright)


@pytest.fixture
def browser_session(session_manager: SessionManager) -> Iterator[BrowserSession]:
    with session_manager.session() as session:
        yield session


@pytest.fixture
def sleeps() -> list[float]:
    return []


@pytest.fixture
def record_sleep(sleeps: list[float]) -> Callable[[float], None]:
    return sleeps.append


@pytest.fixture
def credentials() -> config.Credentials:
    return config.Credentials(username="club", password="secret")


@pytest.fixture
def no_jitter(monkeypatch: pytest.MonkeyPatch) -> None:
    """Make every jittered delay deterministic (the lower bound)."""

    monkeypatch.setattr("app.scraper.utils.random.uniform", lambda low, high: low)
    monkeypatch.setattr("app.scraper.retry_policy.random.uniform", lambda low, high: low)
