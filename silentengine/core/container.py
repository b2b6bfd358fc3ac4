# =============================================================================
# silentengine/core/container.py — Composition root
# =============================================================================
# Every component is built once here from Settings and handed to whoever needs
# it. Nothing else in the package constructs its own collaborators.
# =============================================================================

from dataclasses import dataclass

from silentengine.core.config import Settings
from silentengine.core.security import validate_production_security
from silentengine.db.request_log import RequestLogger
from silentengine.llms.base import BaseLLM
from silentengine.llms.registry import build_providers
from silentengine.llms.router import Router
from silentengine.security.privacy import PrivacyConfig, PrivacyFilter
from silentengine.security.rate_guard import RateLimitConfig, RateLimiter
from silentengine.services.dashboard import DashboardDataService
from silentengine.services.engine import Engine
from silentengine.utils.logger import logger, setup_logging


@dataclass
class EngineContainer:
    settings: Settings
    privacy: PrivacyFilter
    request_logger: RequestLogger
    rate_limiter: RateLimiter
    providers: dict[str, BaseLLM]
    router: Router
    engine: Engine
    dashboard: DashboardDataService

    async def aclose(self) -> None:
        self.request_logger.shutdown()
        for provider in self.providers.values():
            await provider.close()


def rate_limit_config(settings: Settings) -> RateLimitConfig:
    return RateLimitConfig(
        window_sec=settings.rate_limit_window_sec,
        max_requests=settings.rate_limit_max_requests,
        max_tokens=settings.rate_limit_max_tokens,
        max_cost=settings.rate_limit_max_cost,
    )


def build_container(settings: Settings) -> EngineContainer:
    setup_logging(settings.log_level)
    validate_production_security(settings)

    privacy = PrivacyFilter(PrivacyConfig.from_settings(settings), environment=settings.environment)
    request_logger = RequestLogger(settings.log_dir, privacy)
    rate_limiter = RateLimiter(rate_limit_config(settings))
    providers = build_providers(settings)
    router = Router.from_config()

    unknown = sorted(router.models() - set(providers))
    if unknown:
        logger.warning("routing_unknown_models", extra={"models": unknown})

    engine = Engine(providers, router, request_logger, rate_limiter=rate_limiter)
    dashboard = DashboardDataService(request_logger)
    logger.info(
        "engine_ready",
        extra={
            "environment": settings.environment,
            "providers": sorted(providers),
            "log_dir": settings.log_dir,
        },
    )
    return EngineContainer(
        settings=settings,
        privacy=privacy,
        request_logger=request_logger,
        rate_limiter=rate_limiter,
        providers=providers,
        router=router,
        engine=engine,
        dashboard=dashboard,
    )
