from __future__ import annotations

import pytest
from playwright.sync_api import Error as PWError, TimeoutError as PWTimeout

from app.scraper import config
from app.scraper.auth import Authenticator
from app.scraper.cancellation import CancelToken
from app.scraper.errors import (
    InvalidContentError,
    NavigationError,
    NotFoundError,
    ScrapeCancelled,
    SessionExpiredError,
)
from app.scraper.navigator import PageNavigator

from conftest import fines_html

FINES = fines_html(("Callup: Game 1", "Jane Smith"))


@pytest.fixture
def navigator(credentials, record_sleep) -> PageNavigator:
    auth = Authenticator(sleep=record_sleep)
    return PageNavigator(auth, credentials, sleep=record_sleep)


@pytest.fixture
def logged_in_session(browser_session, credentials, record_sleep):
    Authenticator(sleep=record_sleep).authenticate(browser_session, credentials)
    return browser_session


def test_fetch_returns_rendered_html(site, logged_in_session, navigator) -> None:
    site.add_page(config.GAME_FINES_URL, FINES, protected=True)

    html = navigator.fetch_page(logged_in_session, config.GAME_FINES_URL)

    assert "Jane Smith" in html
    last = logged_in_session.page.goto_calls[-1]
    assert last["wait_until"] == "networkidle"
    assert last["timeout"] == config.NAV_TIMEOUT_SECONDS * 1000


def test_session_expiry_reauthenticates_once(site, logged_in_session, navigator) -> None:
    site.add_page(config.GAME_FINES_URL, FINES, protected=True)
    site.logged_in = False
    submissions = site.login_submissions

    html = navigator.fetch_page(logged_in_session, config.GAME_FINES_URL)

    assert "Jane Smith" in html
    assert site.login_submissions == submissions + 1
    assert site.visits.count(config.GAME_FINES_URL) == 2
    assert logged_in_session.authenticated is True


def test_persistent_expiry_raises_without_third_fetch(site, logged_in_session, navigator) -> None:
    site.add_page(config.GAME_FINES_URL, FINES, protected=True)
    site.always_expire = True
    submissions = site.login_submissions

    with pytest.raises(SessionExpiredError):
        navigator.fetch_page(logged_in_session, config.GAME_FINES_URL)

    assert site.login_submissions == submissions + 1
    assert site.visits.count(config.GAME_FINES_URL) == 2
    assert logged_in_session.authenticated is False


def test_failed_reauthentication_is_session_expired(site, logged_in_session, record_sleep) -> None:
    site.add_page(config.GAME_FINES_URL, FINES, protected=True)
    site.logged_in = False
    site.password = "rotated"
    navigator = PageNavigator(
        Authenticator(sleep=record_sleep),
        config.Credentials(username="club", password="secret"),
        sleep=record_sleep,
    )

    with pytest.raises(SessionExpiredError):
        navigator.fetch_page(logged_in_session, config.GAME_FINES_URL)


def test_login_box_on_public_page_is_not_expiry(site, browser_session, navigator) -> None:
    url = f"{config.BASE_URL}/season-past.htm"
    site.add_page(url, "<html><body><form id=\"login-form\"></form><h2>2025</h2></body></html>")

    html = navigator.fetch_page(browser_session, url)

    assert "2025" in html
    assert site.login_submissions == 0


def test_not_found(site, browser_session, navigator) -> None:
    with pytest.raises(NotFoundError):
        navigator.fetch_page(browser_session, f"{config.BASE_URL}/missing")


@pytest.mark.parametrize("error", [PWTimeout("timed out"), PWError("net::ERR_CONNECTION_RESET")])
def test_navigation_failures_are_transient(site, browser_session, navigator, error) -> None:
    url = f"{config.BASE_URL}/standings"
    site.add_page(url, "<html><body></body></html>")
    site.fail(url, error)

    with pytest.raises(NavigationError) as excinfo:
        navigator.fetch_page(browser_session, url)

    assert excinfo.value.error_code == "navigation_error"


def test_non_html_content(site, browser_session, navigator) -> None:
    url = f"{config.BASE_URL}/feed"
    site.add_page(url, '{"ok": true}')

    with pytest.raises(InvalidContentError):
        navigator.fetch_page(browser_session, url)


def test_deadline_clamps_navigation_timeout(site, browser_session, record_sleep) -> None:
    now = [0.0]
    token = CancelToken(5, clock=lambda: now[0])
    url = f"{config.BASE_URL}/standings"
    site.add_page(url, "<html><body>ok</body></html>")
    navigator = PageNavigator(cancel=token, sleep=record_sleep)

    navigator.fetch_page(browser_session, url)
    assert browser_session.page.goto_calls[-1]["timeout"] == 5000

    now[0] = 6.0
    with pytest.raises(ScrapeCancelled):
        navigator.fetch_page(browser_session, url)
