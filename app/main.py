from __future__ import annotations

import os
from typing import Any, Dict

from flask import Flask, Response, jsonify, request

from app.scraper import config
from app.scraper.error_codes import ErrorCode
from app.scraper.healthcheck import run_health_checks
from app.scraper.logging_utils import _scraper_event
from app.scraper.service import CallupService
from app.scraper.utils import ensure_dirs, log_line

app = Flask(__name__)
app.secret_key = os.environ.get("SECRET_KEY", "dev-secret-change-me")

# Initialise storage paths on import so WSGI entrypoints also have them.
ensure_dirs()

# One service per process; each refresh still launches its own browser on the
# request thread that triggered it.
app.config["CALLUP_SERVICE"] = CallupService()


def _service() -> CallupService:
    return app.config["CALLUP_SERVICE"]


def _parse_payload() -> Dict[str, Any]:
    """Accept a JSON body, falling back to form data."""

    if request.is_json:
        payload = request.get_json(silent=True)
        if isinstance(payload, dict):
            return payload
        return {}
    return request.form.to_dict()


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value or "").strip().lower() in {"1", "true", "yes", "on"}


def _failure_status(result: Dict[str, Any]) -> int:
    code = result.get("errorCode")
    if code == ErrorCode.INVALID_INPUT:
        return 400
    if code == ErrorCode.CACHE_EMPTY:
        return 404
    return 500


@app.post("/api/callups")
def api_callups() -> Response:
    if not config.credentials_configured():
        _scraper_event("error", phase="api", context="callups", error="credentials_missing")
        return (
            jsonify(
                {
                    "success": False,
                    "error": "RDYSL credentials not configured",
                    "errorCode": ErrorCode.CONFIG,
                }
            ),
            503,
        )

    payload = _parse_payload()
    search = payload.get("playerSearch")
    if search is not None and not isinstance(search, str):
        return (
            jsonify(
                {
                    "success": False,
                    "error": "playerSearch must be a string",
                    "errorCode": ErrorCode.INVALID_INPUT,
                }
            ),
            400,
        )
    force_refresh = _as_bool(payload.get("forceRefresh"))

    _scraper_event(
        "state",
        phase="api",
        context="callups",
        force_refresh=force_refresh,
        has_search=bool(search),
        remote_addr=request.remote_addr,
    )

    result = _service().scrape(search_filter=search, force_refresh=force_refresh)
    if not result.get("success"):
        log_line(f"[API] Callup request failed: {result.get('errorCode')}")
        return jsonify(result), _failure_status(result)
    return jsonify(result)


@app.get("/api/callups/cached")
def api_callups_cached() -> Response:
    result = _service().get_cached(request.args.get("playerSearch"))
    if not result.get("success"):
        return jsonify(result), _failure_status(result)
    return jsonify(result)


@app.get("/api/health")
def api_health() -> Response:
    health = run_health_checks(entrypoint="api", service=_service())
    return jsonify({"ok": health.ok, "checks": health.checks}), 200 if health.ok else 503


if __name__ == "__main__":  # pragma: no cover
    app.run(host="0.0.0.0", port=int(os.environ.get("PORT", 8080)))
