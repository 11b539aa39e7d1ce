"""Division discovery from the season index page."""
from __future__ import annotations

import re
from typing import Optional
from urllib.parse import unquote

from bs4 import BeautifulSoup

from . import config
from .logging_utils import _scraper_event
from .models import DivisionLink
from .utils import log_line, log_warning

# Gender/age/division triple embedded in standings URLs: GAD=Boys:13:1
DIVISION_PATTERN = re.compile(r"GAD=([^:;&]+):(\d+):(\d+)")
YEAR_PATTERN = re.compile(r"[?;&]Y=(\d{4})")


def absolute_division_url(href: str, base_url: str = config.BASE_URL) -> str:
    """Resolve a standings ``href`` the way the league site links them."""

    base = base_url.rstrip("/")
    if href.startswith("http://") or href.startswith("https://"):
        return href
    if href.startswith("/"):
        return f"{base}{href}"
    if href.startswith("?"):
        return f"{base}/standings{href}"
    return f"{base}/{href}"


def parse_division_from_url(url: str) -> Optional[DivisionLink]:
    """Build a :class:`DivisionLink` from a standings URL, if it has a GAD triple."""

    match = DIVISION_PATTERN.search(unquote(url or ""))
    if not match:
        return None
    gender, age, division = match.groups()
    return DivisionLink.build(url, gender, int(age), int(division))


def year_from_url(url: str) -> Optional[int]:
    match = YEAR_PATTERN.search(unquote(url or ""))
    return int(match.group(1)) if match else None


def _has_year_heading(soup: BeautifulSoup, year: int) -> bool:
    for heading in soup.find_all("h2"):
        if str(year) in heading.get_text():
            return True
    return False


def extract_division_links(
    html: str, year: int, *, base_url: str = config.BASE_URL
) -> list[DivisionLink]:
    """Return one link per (gender, age, division) for ``year``, sorted."""

    soup = BeautifulSoup(html or "", "html5lib")
    if not _has_year_heading(soup, year):
        log_warning(
            f"[DIVISIONS][WARN] Year {year} section not found; scanning all standings links."
        )

    seen: set[tuple[str, int, int]] = set()
    links: list[DivisionLink] = []
    for anchor in soup.find_all("a", href=True):
        href = str(anchor["href"]).strip()
        decoded = unquote(href)
        if "standings" not in decoded:
            continue
        if year_from_url(decoded) != year:
            continue

        match = DIVISION_PATTERN.search(decoded)
        if not match:
            continue
        gender, age, division = match.groups()
        link = DivisionLink.build(
            absolute_division_url(href, base_url), gender, int(age), int(division)
        )
        if link.key in seen:
            continue
        seen.add(link.key)
        links.append(link)

    links.sort(key=lambda link: link.key)
    _scraper_event("discover", phase="divisions", year=year, divisions=len(links))
    log_line(f"[DIVISIONS] Found {len(links)} division links for {year}")
    return links


__all__ = [
    "absolute_division_url",
    "parse_division_from_url",
    "year_from_url",
    "extract_division_links",
]
