import os
from functools import lru_cache

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()

DEV_ENGINE_KEY = "dev-key-change-in-production"


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_float_or_none(name: str, default: str) -> float | None:
    raw = os.getenv(name, default).strip()
    if not raw or raw.lower() == "none":
        return None
    return float(raw)


class Settings(BaseModel):
    environment: str = "development"
    engine_api_key: str = ""
    allowed_origins: list[str] = []

    openai_api_key: str = ""
    anthropic_api_key: str = ""
    google_api_key: str = ""
    groq_api_key: str = ""
    openrouter_api_key: str = ""

    hash_prompts: bool = False
    log_full_content: bool = True
    redact_pii: bool = False
    log_retention_days: int = 90
    log_archive_after_days: int = 30
    log_dir: str = "./logs"
    log_level: str = "INFO"

    request_timeout: int = 30

    rate_limit_window_sec: float = 60.0
    rate_limit_max_requests: int = 100
    rate_limit_max_tokens: int | None = 100_000
    rate_limit_max_cost: float | None = 1.0

    host: str = "127.0.0.1"
    port: int = 4000

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def provider_keys(self) -> dict[str, str]:
        return {
            "openai": self.openai_api_key,
            "anthropic": self.anthropic_api_key,
            "google": self.google_api_key,
            "groq": self.groq_api_key,
            "openrouter": self.openrouter_api_key,
        }

    @classmethod
    def from_env(cls) -> "Settings":
        environment = os.getenv("ENVIRONMENT", "development").strip().lower() or "development"
        origins = os.getenv("ALLOWED_ORIGINS", "")
        max_tokens = os.getenv("RATE_LIMIT_MAX_TOKENS", "100000").strip()
        return cls(
            environment=environment,
            engine_api_key=os.getenv("ENGINE_API_KEY", ""),
            allowed_origins=[o.strip() for o in origins.split(",") if o.strip()],
            openai_api_key=os.getenv("OPENAI_API_KEY", ""),
            anthropic_api_key=os.getenv("ANTHROPIC_API_KEY", ""),
            google_api_key=os.getenv("GOOGLE_API_KEY", ""),
            groq_api_key=os.getenv("GROQ_API_KEY", ""),
            openrouter_api_key=os.getenv("OPENROUTER_API_KEY", ""),
            hash_prompts=_env_bool("HASH_PROMPTS", False),
            log_full_content=_env_bool("LOG_FULL_CONTENT", environment == "development"),
            redact_pii=_env_bool("REDACT_PII", environment == "production"),
            log_retention_days=int(os.getenv("LOG_RETENTION_DAYS", "90")),
            log_archive_after_days=int(os.getenv("LOG_ARCHIVE_AFTER_DAYS", "30")),
            log_dir=os.getenv("LOG_DIR", "./logs"),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            request_timeout=int(os.getenv("REQUEST_TIMEOUT", "30")),
            rate_limit_window_sec=float(os.getenv("RATE_LIMIT_WINDOW_SEC", "60")),
            rate_limit_max_requests=int(os.getenv("RATE_LIMIT_MAX_REQUESTS", "100")),
            rate_limit_max_tokens=int(max_tokens) if max_tokens and max_tokens.lower() != "none" else None,
            rate_limit_max_cost=_env_float_or_none("RATE_LIMIT_MAX_COST", "1.0"),
            host=os.getenv("HOST", "127.0.0.1"),
            port=int(os.getenv("PORT", "4000")),
        )


@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()
