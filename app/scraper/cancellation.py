"""Cooperative cancellation for scrape runs.

A :class:`CancelToken` is checked between steps and clamps per-step browser
timeouts to the remaining deadline, so a navigation in flight when the
deadline passes is aborted by Playwright itself. Browser teardown is handled
by the session scope, not by the token.
"""
from __future__ import annotations

import threading
import time
from typing import Callable, Optional

from .errors import ScrapeCancelled


class CancelToken:
    def __init__(
        self,
        deadline_seconds: Optional[float] = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._clock = clock
        self._event = threading.Event()
        self._deadline = clock() + deadline_seconds if deadline_seconds is not None else None
        self._reason = ""

    def cancel(self, reason: str = "cancelled") -> None:
        self._reason = reason
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        return self._deadline is not None and self._clock() >= self._deadline

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, or ``None`` without a deadline."""

        if self._deadline is None:
            return None
        return max(0.0, self._deadline - self._clock())

    def check(self) -> None:
        """Raise :class:`ScrapeCancelled` if the run should stop."""

        if self._event.is_set():
            raise ScrapeCancelled(f"Scrape cancelled: {self._reason}")
        if self._deadline is not None and self._clock() >= self._deadline:
            raise ScrapeCancelled("Scrape cancelled: deadline exceeded")

    def timeout_ms(self, seconds: float) -> int:
        """Return a Playwright timeout for a step, clamped to the deadline."""

        self.check()
        remaining = self.remaining()
        if remaining is not None:
            seconds = min(seconds, remaining)
        return max(1, int(seconds * 1000))

    def sleep(self, seconds: float) -> None:
        """Sleep for ``seconds`` but wake early on cancel or deadline."""

        self.check()
        if seconds <= 0:
            return
        remaining = self.remaining()
        if remaining is not None:
            seconds = min(seconds, remaining)
        self._event.wait(seconds)
        self.check()


__all__ = ["CancelToken"]
