# =============================================================================
# silentengine/llms/gemini_client.py — Google Gemini API client
# =============================================================================
# Uses GOOGLE_API_KEY. One retry on 429/502 or a transport error, after 2s.
# =============================================================================

import asyncio

import httpx

from silentengine.core.errors import ProviderError
from silentengine.core.security import require_key
from silentengine.llms.base import BaseLLM
from silentengine.schemas.request import GenerateRequest

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"
GEMINI_MAX_OUTPUT_TOKENS = 8192
RETRY_STATUSES = (429, 502)
RETRY_DELAY_SEC = 2.0


class GeminiClient(BaseLLM):
    backend = "google"
    retry_delay_sec = RETRY_DELAY_SEC

    async def _complete(self, request: GenerateRequest) -> tuple[str, int | None, int | None]:
        key = require_key(self.api_key, "GOOGLE_API_KEY", self.get_name())
        client = await self._get_client()
        url = f"{GEMINI_BASE_URL}/{self.model}:generateContent"
        generation_config = {"maxOutputTokens": request.max_tokens or GEMINI_MAX_OUTPUT_TOKENS}
        if request.temperature is not None:
            generation_config["temperature"] = min(2.0, max(0.0, request.temperature))
        payload = {
            "contents": [{"parts": [{"text": request.prompt}]}],
            "generationConfig": generation_config,
        }
        for attempt in range(2):
            try:
                r = await client.post(url, params={"key": key}, json=payload)
                r.raise_for_status()
                return self._parse(r.json())
            except httpx.HTTPStatusError as e:
                status = e.response.status_code
                if status == 400:
                    raise ProviderError(
                        self.get_name(), f"Gemini model or request invalid: {(e.response.text or '')[:500]}"
                    ) from e
                if status in (401, 403):
                    raise ProviderError(self.get_name(), "GOOGLE_API_KEY invalid or not allowed") from e
                if status in RETRY_STATUSES and attempt == 0:
                    await asyncio.sleep(self.retry_delay_sec)
                    continue
                raise
            except httpx.RequestError:
                if attempt == 0:
                    await asyncio.sleep(self.retry_delay_sec)
                    continue
                raise
        raise ProviderError(self.get_name(), "Gemini API retries exhausted")

    @staticmethod
    def _parse(data: dict) -> tuple[str, int | None, int | None]:
        usage = data.get("usageMetadata") or {}
        input_tokens = usage.get("promptTokenCount")
        output_tokens = usage.get("candidatesTokenCount")
        candidates = data.get("candidates") or []
        if not candidates:
            return "", input_tokens, output_tokens
        parts = (candidates[0].get("content") or {}).get("parts") or []
        if not parts:
            return "", input_tokens, output_tokens
        return (parts[0].get("text") or "").strip(), input_tokens, output_tokens
