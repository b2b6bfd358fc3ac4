from silentengine.core.security import require_key
from silentengine.llms.base import BaseLLM
from silentengine.schemas.request import GenerateRequest

ANTHROPIC_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_VERSION = "2023-06-01"
# The messages API requires max_tokens on every call
DEFAULT_MAX_TOKENS = 1024


class AnthropicClient(BaseLLM):
    backend = "anthropic"

    async def _complete(self, request: GenerateRequest) -> tuple[str, int | None, int | None]:
        key = require_key(self.api_key, "ANTHROPIC_API_KEY", self.get_name())
        client = await self._get_client()
        payload = {
            "model": self.model,
            "max_tokens": request.max_tokens or DEFAULT_MAX_TOKENS,
            "messages": self._chat_messages(request),
        }
        if request.temperature is not None:
            payload["temperature"] = min(1.0, max(0.0, request.temperature))
        r = await client.post(
            ANTHROPIC_URL,
            headers={"x-api-key": key, "anthropic-version": ANTHROPIC_VERSION},
            json=payload,
        )
        r.raise_for_status()
        data = r.json()
        text = "".join(block.get("text", "") for block in data.get("content") or [] if block.get("type") == "text")
        usage = data.get("usage") or {}
        return text, usage.get("input_tokens"), usage.get("output_tokens")
