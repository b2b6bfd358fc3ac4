# =============================================================================
# silentengine/llms/base.py — Provider contract shared by every backend client
# =============================================================================
# generate() performs one upstream call and raises ProviderError on failure.
# check_health() probes with a minimal generation at most once per health
# interval and serves the cached verdict in between.
# =============================================================================

import time
import uuid
from abc import ABC, abstractmethod
from typing import Any, Callable

import httpx

from silentengine.adaptive.health import HEALTH_CHECK_INTERVAL_SEC, HealthCache
from silentengine.core.errors import ProviderError
from silentengine.schemas.request import GenerateRequest
from silentengine.schemas.response import GenerateResponse, TokenUsage
from silentengine.utils.logger import logger
from silentengine.utils.token_estimator import estimate_tokens

HEALTH_PROBE = GenerateRequest(prompt="ping", max_tokens=1)


def new_request_id() -> str:
    return f"req_{int(time.time() * 1000)}_{uuid.uuid4().hex[:7]}"


class BaseLLM(ABC):
    backend: str = "base"

    def __init__(
        self,
        model: str,
        api_key: str = "",
        input_cost_per_1k: float = 0.0,
        output_cost_per_1k: float = 0.0,
        timeout: float = 30,
        transport: httpx.AsyncBaseTransport | None = None,
        health_interval_sec: float = HEALTH_CHECK_INTERVAL_SEC,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.model = model
        self.api_key = api_key
        self.input_cost_per_1k = input_cost_per_1k
        self.output_cost_per_1k = output_cost_per_1k
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self.health = HealthCache(interval_sec=health_interval_sec, clock=clock)

    def get_name(self) -> str:
        return f"{self.backend}:{self.model}"

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    @abstractmethod
    async def _complete(self, request: GenerateRequest) -> tuple[str, int | None, int | None]:
        """Call the backend; return (text, input_tokens, output_tokens). Token counts may be None."""

    async def generate(self, request: GenerateRequest) -> GenerateResponse:
        start = time.perf_counter()
        try:
            text, input_tokens, output_tokens = await self._complete(request)
        except ProviderError:
            raise
        except httpx.HTTPStatusError as e:
            raise ProviderError(
                self.get_name(),
                f"{self.backend} API error {e.response.status_code}: {(e.response.text or '')[:500]}",
            ) from e
        except httpx.RequestError as e:
            raise ProviderError(self.get_name(), f"{self.backend} API unreachable: {e!s}") from e
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise ProviderError(self.get_name(), f"{self.backend} returned an unexpected payload: {e!s}") from e
        latency_ms = (time.perf_counter() - start) * 1000
        if input_tokens is None:
            input_tokens = estimate_tokens(request.prompt)
        if output_tokens is None:
            output_tokens = estimate_tokens(text)
        return GenerateResponse(
            content=text,
            model=self.model,
            provider=self.backend,
            tokens=TokenUsage.from_counts(input_tokens, output_tokens),
            latency=latency_ms,
            cost=self.cost(input_tokens, output_tokens),
            request_id=new_request_id(),
        )

    def cost(self, input_tokens: int, output_tokens: int) -> float:
        total = (input_tokens / 1000) * self.input_cost_per_1k + (output_tokens / 1000) * self.output_cost_per_1k
        return round(total, 8)

    async def check_health(self) -> bool:
        cached = self.health.cached()
        if cached is not None:
            return cached
        healthy = False
        try:
            await self._probe()
            healthy = True
        except Exception as e:
            logger.warning("health_check_failed", extra={"provider": self.get_name(), "error": str(e)})
        finally:
            self.health.record(healthy)
        return healthy

    async def _probe(self) -> None:
        await self.generate(HEALTH_PROBE)

    @staticmethod
    def _chat_messages(request: GenerateRequest) -> list[dict[str, Any]]:
        return [{"role": "user", "content": request.prompt}]
