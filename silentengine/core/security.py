import secrets

from silentengine.core.config import DEV_ENGINE_KEY, Settings
from silentengine.core.errors import ConfigurationError, ProviderError
from silentengine.utils.logger import logger

MIN_ENGINE_KEY_LENGTH = 32


def require_key(key: str, env_name: str, provider: str) -> str:
    if not key or not key.strip():
        raise ProviderError(provider, f"{env_name} is not set")
    return key


def engine_key_matches(settings: Settings, presented: str | None) -> bool:
    expected = settings.engine_api_key
    if not expected or not presented:
        return False
    return secrets.compare_digest(presented.encode("utf-8"), expected.encode("utf-8"))


def validate_production_security(settings: Settings) -> None:
    """Refuse to start a production engine with a weak key or no providers."""
    if not settings.is_production:
        return
    key = settings.engine_api_key
    if not key or key == DEV_ENGINE_KEY:
        raise ConfigurationError("ENGINE_API_KEY must be set to a secure value in production")
    if len(key) < MIN_ENGINE_KEY_LENGTH:
        raise ConfigurationError(
            f"ENGINE_API_KEY must be at least {MIN_ENGINE_KEY_LENGTH} characters long"
        )
    if not any(k.strip() for k in settings.provider_keys().values()):
        raise ConfigurationError("At least one provider API key must be configured")
    logger.info("production_security_ok")


def cors_origins(settings: Settings) -> list[str]:
    if not settings.is_production:
        return ["*"]
    if not settings.allowed_origins:
        logger.warning("cors_wide_open", extra={"reason": "ALLOWED_ORIGINS not set in production"})
        return ["*"]
    return list(settings.allowed_origins)
