# -----------------------------------------------------------------------------
# silentengine/security/rate_guard.py — Max request size, per-key rate limiter
# -----------------------------------------------------------------------------
# Fixed windows per caller key counting requests, tokens and cost.
# admit() only checks; record_usage() charges. The two are separate calls, so
# concurrent requests for one key may all pass admit() before any of them is
# charged: this is a soft throttle, not a strict quota.
# -----------------------------------------------------------------------------

import math
import time
from dataclasses import dataclass
from typing import Callable

from silentengine.utils.logger import logger

MAX_PROMPT_LENGTH = 20_000
DEFAULT_KEY = "default"


def check_prompt_size(prompt: str) -> None:
    if len(prompt) > MAX_PROMPT_LENGTH:
        raise ValueError("prompt exceeds maximum length")


@dataclass(frozen=True)
class RateLimitConfig:
    window_sec: float = 60.0
    max_requests: int = 100
    max_tokens: int | None = 100_000
    max_cost: float | None = 1.0


@dataclass
class RateLimitEntry:
    request_count: int = 0
    token_count: int = 0
    cost_accrued: float = 0.0
    window_start: float = 0.0


class RateLimiter:
    def __init__(
        self,
        default: RateLimitConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._configs: dict[str, RateLimitConfig] = {DEFAULT_KEY: default or RateLimitConfig()}
        self._entries: dict[str, RateLimitEntry] = {}
        self._clock = clock

    def set_limit(self, key: str, config: RateLimitConfig) -> None:
        self._configs[key] = config

    def config_for(self, key: str) -> RateLimitConfig:
        return self._configs.get(key) or self._configs[DEFAULT_KEY]

    def entry(self, key: str) -> RateLimitEntry | None:
        return self._entries.get(key)

    def _current_entry(self, key: str) -> RateLimitEntry:
        config = self.config_for(key)
        now = self._clock()
        entry = self._entries.get(key)
        if entry is None or now - entry.window_start > config.window_sec:
            entry = RateLimitEntry(window_start=now)
            self._entries[key] = entry
        return entry

    def admit(self, key: str, estimated_tokens: int = 1000, estimated_cost: float = 0.01) -> bool:
        config = self.config_for(key)
        entry = self._current_entry(key)
        if entry.request_count >= config.max_requests:
            return False
        if config.max_tokens is not None and entry.token_count + estimated_tokens > config.max_tokens:
            return False
        if config.max_cost is not None and entry.cost_accrued + estimated_cost > config.max_cost:
            return False
        return True

    def record_usage(self, key: str, tokens: int, cost: float) -> None:
        entry = self._entries.get(key)
        if entry is None:
            # never admitted, nothing to charge
            logger.debug("rate_limit_unadmitted_usage", extra={"key": key})
            return
        entry.request_count += 1
        entry.token_count += max(0, tokens)
        entry.cost_accrued += max(0.0, cost)

    def retry_after(self, key: str) -> int:
        config = self.config_for(key)
        entry = self._entries.get(key)
        if entry is None:
            return 0
        remaining = config.window_sec - (self._clock() - entry.window_start)
        return max(1, math.ceil(remaining))

    def cleanup(self) -> int:
        now = self._clock()
        stale = [
            key
            for key, entry in self._entries.items()
            if now - entry.window_start > self.config_for(key).window_sec * 2
        ]
        for key in stale:
            del self._entries[key]
        if stale:
            logger.debug("rate_limit_cleanup", extra={"removed": len(stale)})
        return len(stale)
