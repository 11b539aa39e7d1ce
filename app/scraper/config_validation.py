from __future__ import annotations

from typing import Literal

from . import config
from .logging_utils import _scraper_event
from .utils import log_line

Entrypoint = Literal["api", "cli", "tests"]


def _raise_config_error(
    message: str, *, entrypoint: Entrypoint, error: str, mode: str | None
) -> None:
    _scraper_event(
        "error",
        phase="config",
        context="runtime_validation",
        error=error,
        entrypoint=entrypoint,
        mode=mode,
    )
    mode_fragment = f", mode={mode}" if mode else ""
    log_line(f"[CONFIG] {message} (entrypoint={entrypoint}{mode_fragment})")
    raise ValueError(message)


def _adjust(field: str, value: float, adjusted: float, *, entrypoint: Entrypoint, mode: str | None) -> None:
    _scraper_event(
        "state",
        phase="config",
        context="runtime_validation",
        kind="config_adjustment",
        field=field,
        value=value,
        adjusted=adjusted,
        entrypoint=entrypoint,
        mode=mode,
    )
    setattr(config, field, adjusted)


def validate_runtime_config(entrypoint: Entrypoint, *, mode: str | None = None) -> None:
    """Validate runtime configuration for the given entrypoint.

    Raises ``ValueError`` when a blocking misconfiguration is detected.
    Non-fatal adjustments (e.g., raising the request delay to its floor) are
    logged but do not raise.
    """

    if config.BROWSER_MODE not in config.BROWSER_MODES:
        _raise_config_error(
            f"RDYSL_BROWSER_MODE must be one of {', '.join(config.BROWSER_MODES)}; "
            f"got {config.BROWSER_MODE!r}.",
            entrypoint=entrypoint,
            error="invalid_browser_mode",
            mode=mode,
        )

    for name in ("NAV_TIMEOUT_SECONDS", "LOGIN_NAV_TIMEOUT_SECONDS", "SELECTOR_TIMEOUT_SECONDS"):
        if getattr(config, name) <= 0:
            _raise_config_error(
                f"{name} must be positive.",
                entrypoint=entrypoint,
                error="invalid_timeout",
                mode=mode,
            )

    if config.CACHE_DURATION_MINUTES <= 0:
        _raise_config_error(
            "CACHE_DURATION_MINUTES must be positive.",
            entrypoint=entrypoint,
            error="invalid_cache_duration",
            mode=mode,
        )

    if config.REQUEST_DELAY_MIN_SECONDS < config.REQUEST_DELAY_FLOOR_SECONDS:
        floor = config.REQUEST_DELAY_FLOOR_SECONDS
        _adjust(
            "REQUEST_DELAY_MIN_SECONDS",
            config.REQUEST_DELAY_MIN_SECONDS,
            floor,
            entrypoint=entrypoint,
            mode=mode,
        )
        log_line(f"[CONFIG] REQUEST_DELAY_MIN_SECONDS below {floor}s; clamping to the floor.")

    if config.REQUEST_DELAY_MAX_SECONDS < config.REQUEST_DELAY_MIN_SECONDS:
        _adjust(
            "REQUEST_DELAY_MAX_SECONDS",
            config.REQUEST_DELAY_MAX_SECONDS,
            config.REQUEST_DELAY_MIN_SECONDS,
            entrypoint=entrypoint,
            mode=mode,
        )
        log_line("[CONFIG] REQUEST_DELAY_MAX_SECONDS < REQUEST_DELAY_MIN_SECONDS; raising max to min.")

    if mode == "callups" and not config.credentials_configured():
        _raise_config_error(
            "RDYSL_USERNAME and RDYSL_PASSWORD must be set to scrape callups.",
            entrypoint=entrypoint,
            error="credentials_missing",
            mode=mode,
        )


__all__ = ["validate_runtime_config", "Entrypoint"]
