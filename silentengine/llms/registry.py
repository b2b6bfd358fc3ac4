from silentengine.core.config import Settings
from silentengine.core.providers import PROVIDERS
from silentengine.llms.anthropic_client import AnthropicClient
from silentengine.llms.base import BaseLLM
from silentengine.llms.gemini_client import GeminiClient
from silentengine.llms.groq_client import GroqClient
from silentengine.llms.openai_client import OpenAIClient
from silentengine.llms.openrouter_client import OpenRouterClient
from silentengine.utils.logger import logger

CLIENTS: dict[str, type[BaseLLM]] = {
    "openai": OpenAIClient,
    "anthropic": AnthropicClient,
    "groq": GroqClient,
    "google": GeminiClient,
    "openrouter": OpenRouterClient,
}


def get_client(provider_id: str, settings: Settings) -> BaseLLM:
    entry = PROVIDERS.get(provider_id)
    if entry is None:
        raise ValueError(f"Unknown provider: {provider_id}")
    backend = entry["backend"]
    api_key = settings.provider_keys().get(backend, "")
    if not api_key.strip():
        logger.warning("provider_key_missing", extra={"provider": provider_id, "backend": backend})
    return CLIENTS[backend](
        model=entry["model"],
        api_key=api_key,
        input_cost_per_1k=entry["input_cost_per_1k"],
        output_cost_per_1k=entry["output_cost_per_1k"],
        timeout=settings.request_timeout,
    )


def build_providers(settings: Settings) -> dict[str, BaseLLM]:
    return {provider_id: get_client(provider_id, settings) for provider_id in PROVIDERS}
