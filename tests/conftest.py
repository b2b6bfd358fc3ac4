"""
Shared fixtures: controllable fake providers, fake clocks and a request log
rooted in a temporary directory.
"""

from datetime import datetime, timezone

import pytest

from silentengine.db.request_log import RequestLogger
from silentengine.llms.base import BaseLLM
from silentengine.llms.router import Router
from silentengine.schemas.request import GenerateRequest
from silentengine.security.privacy import PrivacyConfig, PrivacyFilter
from silentengine.security.rate_guard import RateLimiter
from silentengine.services.engine import Engine


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class DayClock:
    """Wall clock returning a settable aware datetime."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class FakeLLM(BaseLLM):
    """Provider whose answers and health are scripted by the test.

    ``outcomes`` is consumed one entry per call: a string is returned as the
    content, an exception is raised. When it runs dry every call answers "ok".
    """

    def __init__(self, model: str = "fake-model", backend: str = "fake", healthy: bool = True,
                 outcomes: list | None = None, **kwargs):
        super().__init__(model, **kwargs)
        self.backend = backend
        self.healthy = healthy
        self.outcomes = list(outcomes or [])
        self.calls: list[GenerateRequest] = []
        self.probes = 0

    async def _complete(self, request: GenerateRequest):
        self.calls.append(request)
        outcome = self.outcomes.pop(0) if self.outcomes else "ok"
        if isinstance(outcome, Exception):
            raise outcome
        return outcome, 10, 5

    async def _probe(self) -> None:
        self.probes += 1
        if not self.healthy:
            raise RuntimeError("probe failed")


def make_providers(**overrides) -> dict[str, FakeLLM]:
    providers = {
        "anthropic:claude-haiku-4": FakeLLM("claude-3-haiku-20240307", backend="anthropic"),
        "groq:llama-3.1-70b": FakeLLM("llama-3.1-70b-versatile", backend="groq"),
        "google:gemini-1.5-flash": FakeLLM("gemini-1.5-flash", backend="google"),
    }
    providers.update(overrides)
    return providers


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def day_clock() -> DayClock:
    return DayClock(datetime(2026, 3, 14, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def privacy() -> PrivacyFilter:
    return PrivacyFilter(PrivacyConfig(log_full_content=True, redact_pii=False), environment="development")


@pytest.fixture
def request_logger(tmp_path, privacy) -> RequestLogger:
    return RequestLogger(tmp_path / "logs", privacy)


@pytest.fixture
def providers() -> dict[str, FakeLLM]:
    return make_providers()


@pytest.fixture
def rate_limiter(clock) -> RateLimiter:
    return RateLimiter(clock=clock)


@pytest.fixture
def engine(providers, request_logger, rate_limiter) -> Engine:
    return Engine(providers, Router.from_config(), request_logger, rate_limiter=rate_limiter)
