from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Optional, TYPE_CHECKING

from . import config
from .browser import select_strategy
from .config_validation import validate_runtime_config
from .logging_utils import _scraper_event
from .utils import ensure_dirs, log_line

if TYPE_CHECKING:  # pragma: no cover
    from .service import CallupService


@dataclass
class HealthResult:
    ok: bool
    checks: dict[str, dict[str, Any]]


def run_health_checks(
    entrypoint: str = "cli", service: Optional["CallupService"] = None
) -> HealthResult:
    checks: dict[str, dict[str, Any]] = {}

    try:
        validate_runtime_config(entrypoint or "cli", mode=None)
        checks["config"] = {"ok": True}
    except ValueError as exc:
        checks["config"] = {"ok": False, "error": str(exc)}

    try:
        ensure_dirs()
        writable = os.access(config.DATA_DIR, os.W_OK)
        checks["filesystem"] = {"ok": writable, "data_dir": str(config.DATA_DIR)}
    except OSError as exc:
        checks["filesystem"] = {"ok": False, "data_dir": str(config.DATA_DIR), "error": str(exc)}

    # Reported, but the season scrape works without credentials.
    checks["credentials"] = {"ok": config.credentials_configured(), "required": False}

    try:
        strategy = select_strategy()
        browser_check: dict[str, Any] = {"ok": True, "strategy": strategy.name}
        executable = getattr(strategy, "executable_path", None)
        if executable:
            browser_check["executable_path"] = executable
            browser_check["ok"] = os.path.exists(executable)
        checks["browser"] = browser_check
    except ValueError as exc:
        checks["browser"] = {"ok": False, "error": str(exc)}

    if service is not None:
        checks["cache"] = {"ok": True, **service.cache_state()}

    overall_ok = all(
        check.get("ok", False) for name, check in checks.items() if name != "credentials"
    )

    _scraper_event(
        "state" if overall_ok else "error",
        phase="health",
        context="healthcheck",
        ok=overall_ok,
        checks=checks,
    )

    return HealthResult(ok=overall_ok, checks=checks)


if __name__ == "__main__":  # pragma: no cover
    result = run_health_checks(entrypoint="cli")
    for name, info in result.checks.items():
        status = "OK" if info.get("ok") else "FAIL"
        log_line(f"[HEALTH] {name}: {status} {info}")
    raise SystemExit(0 if result.ok else 1)
