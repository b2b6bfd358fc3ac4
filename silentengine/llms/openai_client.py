from silentengine.core.security import require_key
from silentengine.llms.base import BaseLLM
from silentengine.schemas.request import GenerateRequest


class OpenAIClient(BaseLLM):
    """Chat-completions client. Groq and OpenRouter speak the same protocol."""

    backend = "openai"
    base_url = "https://api.openai.com/v1"
    key_env = "OPENAI_API_KEY"

    def _headers(self, key: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {key}"}

    def _payload(self, request: GenerateRequest) -> dict:
        payload = {
            "model": self.model,
            "messages": self._chat_messages(request),
        }
        if request.temperature is not None:
            payload["temperature"] = request.temperature
        if request.max_tokens is not None:
            payload["max_tokens"] = request.max_tokens
        return payload

    async def _complete(self, request: GenerateRequest) -> tuple[str, int | None, int | None]:
        key = require_key(self.api_key, self.key_env, self.get_name())
        client = await self._get_client()
        r = await client.post(
            f"{self.base_url}/chat/completions",
            headers=self._headers(key),
            json=self._payload(request),
        )
        r.raise_for_status()
        data = r.json()
        text = data["choices"][0]["message"]["content"] or ""
        usage = data.get("usage") or {}
        return text, usage.get("prompt_tokens"), usage.get("completion_tokens")
