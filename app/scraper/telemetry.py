"""Per-page telemetry for multi-page scrape runs.

Each fetched page gets one entry (``parsed``, ``empty`` or ``failed``) so an
operator can spot divisions whose layout stopped matching the parser.
"""

from __future__ import annotations

import json
import time
import uuid
from collections import Counter
from pathlib import Path
from typing import Any, Dict, List, Optional

from . import config

PARSED = "parsed"
EMPTY = "empty"
FAILED = "failed"


def _ts() -> str:
    return time.strftime("%Y%m%d_%H%M%S")


class RunTelemetry:
    def __init__(self, mode: str, runs_dir: Optional[Path] = None) -> None:
        self.run_id = f"{_ts()}_{uuid.uuid4().hex[:8]}"
        self.mode = mode
        self.started_at = time.time()
        self.entries: List[Dict[str, Any]] = []
        self.counts: Counter[str] = Counter()
        self.runs_dir = Path(runs_dir) if runs_dir else config.RUNS_DIR

    def record_page(
        self,
        label: str,
        url: str,
        *,
        records: int = 0,
        error_code: Optional[str] = None,
        error: Optional[str] = None,
    ) -> str:
        """Record the outcome of one page and return its status."""

        if error_code:
            status = FAILED
        elif records:
            status = PARSED
        else:
            status = EMPTY
        self.entries.append(
            {
                "status": status,
                "label": label,
                "url": url,
                "records": records,
                "error_code": error_code,
                "error": error,
            }
        )
        self.counts[status] += 1
        return status

    @property
    def empty_labels(self) -> List[str]:
        return [entry["label"] for entry in self.entries if entry["status"] == EMPTY]

    def finalize(self, extra: Optional[Dict[str, Any]] = None) -> Path:
        payload = {
            "run_id": self.run_id,
            "mode": self.mode,
            "started_at": self.started_at,
            "ended_at": time.time(),
            "counts": dict(self.counts),
            "entries": self.entries,
            **(extra or {}),
        }
        self.runs_dir.mkdir(parents=True, exist_ok=True)
        path = self.runs_dir / f"run_{self.run_id}.json"
        with path.open("w", encoding="utf-8") as handle:
            json.dump(payload, handle, ensure_ascii=False, indent=2)
        return path


__all__ = ["RunTelemetry", "PARSED", "EMPTY", "FAILED"]
