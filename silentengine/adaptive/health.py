# =============================================================================
# silentengine/adaptive/health.py — Cached provider health verdict
# =============================================================================
# A verdict is valid for a fixed interval (5 minutes). Within it, callers get
# the cached value; after it, the owner probes again and records the outcome,
# so a failing backend is probed at most once per interval.
# =============================================================================

import time
from typing import Callable

HEALTH_CHECK_INTERVAL_SEC = 5 * 60


class HealthCache:
    def __init__(
        self,
        interval_sec: float = HEALTH_CHECK_INTERVAL_SEC,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.interval_sec = interval_sec
        self.verdict: bool = True
        self.valid_until: float | None = None
        self._clock = clock

    def cached(self) -> bool | None:
        if self.valid_until is None or self._clock() >= self.valid_until:
            return None
        return self.verdict

    def record(self, verdict: bool) -> None:
        self.verdict = verdict
        self.valid_until = self._clock() + self.interval_sec

    def to_dict(self) -> dict:
        return {
            "healthy": self.verdict,
            "checked": self.valid_until is not None,
            "fresh": self.cached() is not None,
        }
