from __future__ import annotations

"""Centralised error code taxonomy for scraper failures.

These codes are attached to every scraper exception, included in structured
logs and returned to callers as ``errorCode`` so that a failed run can be
explained without reading a stack trace. Keep the values stable.
"""


class ErrorCode:
    AUTH_FAILED = "auth_failed"
    SESSION_EXPIRED = "session_expired"
    NOT_FOUND = "not_found"
    NAVIGATION = "navigation_error"
    INVALID_CONTENT = "invalid_content"
    PARSE_EMPTY = "parse_empty"
    BROWSER_LAUNCH = "browser_launch_failed"
    CANCELLED = "cancelled"
    CACHE_EMPTY = "cache_empty"
    INVALID_INPUT = "invalid_input"
    CONFIG = "config_error"
    INTERNAL = "internal_error"


__all__ = ["ErrorCode"]
