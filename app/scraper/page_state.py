"""Classify league pages: login form, expired session, failed login, 404.

Markers are matched against the visible text of the page, not the raw markup,
so strings inside scripts or attribute values do not trigger them.
"""
from __future__ import annotations

from typing import Optional
from urllib.parse import urlparse

from bs4 import BeautifulSoup

LOGIN_FAILURE_MARKERS = ("invalid", "login corrupted", "you must login again")
SESSION_EXPIRED_MARKERS = ("login corrupted", "you must login again")
NOT_FOUND_MARKERS = ("404 not found", "page not found")
AUTHENTICATED_MARKERS = ("gamefines", "game fines", "dashboard", "logout", "log out")


def _soup(html: str) -> BeautifulSoup:
    return BeautifulSoup(html or "", "html5lib")


def visible_text(html: str) -> str:
    soup = _soup(html)
    for tag in soup(["script", "style", "noscript"]):
        tag.decompose()
    return " ".join(soup.get_text(separator=" ").split()).lower()


def has_login_form(html: str) -> bool:
    soup = _soup(html)
    if soup.find(id="login-form") is not None:
        return True
    return soup.find("input", attrs={"name": "Password"}) is not None


def url_points_at_login(url: Optional[str]) -> bool:
    if not url:
        return False
    return "login" in urlparse(url).path.lower()


def looks_authenticated(html: str, url: Optional[str] = None) -> bool:
    """Return ``True`` when a page shows no login markers at all."""

    if has_login_form(html):
        return False
    text = visible_text(html)
    if any(marker in text for marker in SESSION_EXPIRED_MARKERS):
        return False
    if not url_points_at_login(url):
        return True
    # Still on the login URL without a form: the site kept a prior session
    # and renders the member page in place.
    lowered = (html or "").lower()
    return any(marker in lowered for marker in AUTHENTICATED_MARKERS)


def login_failed(html: str, url: Optional[str] = None) -> bool:
    if url_points_at_login(url):
        return True
    if has_login_form(html):
        return True
    text = visible_text(html)
    return any(marker in text for marker in LOGIN_FAILURE_MARKERS)


def is_session_expired(html: str, url: Optional[str] = None) -> bool:
    if url_points_at_login(url):
        return True
    if has_login_form(html):
        return True
    text = visible_text(html)
    return any(marker in text for marker in SESSION_EXPIRED_MARKERS)


def is_not_found(html: str, status: Optional[int] = None) -> bool:
    if status == 404:
        return True
    soup = _soup(html)
    title = soup.title.get_text(strip=True).lower() if soup.title else ""
    if "not found" in title:
        return True
    text = visible_text(html)
    return any(marker in text for marker in NOT_FOUND_MARKERS)


__all__ = [
    "visible_text",
    "has_login_form",
    "url_points_at_login",
    "looks_authenticated",
    "login_failed",
    "is_session_expired",
    "is_not_found",
]
