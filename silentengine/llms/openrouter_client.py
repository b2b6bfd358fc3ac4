from silentengine.llms.openai_client import OpenAIClient

APP_TITLE = "SilentEngine"


class OpenRouterClient(OpenAIClient):
    backend = "openrouter"
    base_url = "https://openrouter.ai/api/v1"
    key_env = "OPENROUTER_API_KEY"

    def _headers(self, key: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {key}", "X-Title": APP_TITLE}
