# =============================================================================
# silentengine/services/engine.py — Routing, fallback and JSON-mode retries
# =============================================================================
# generate():
#   rule = router.resolve(task type)
#   primary unhealthy + fallback rule  -> backup only (primary never called)
#   primary ok                         -> log, return
#   primary fails + fallback rule      -> backup; success logs primary error
#   nothing left                       -> log zero-valued response, raise
# Usage is charged to the rate limiter once per successful generation,
# against whichever provider actually answered.
# =============================================================================

import json
import re
from typing import Any, Callable, NoReturn

from silentengine.core.errors import AggregateFailureError, ConfigurationError, JSONValidationError
from silentengine.db.request_log import RequestLogger
from silentengine.llms.base import BaseLLM, new_request_id
from silentengine.llms.router import Router
from silentengine.schemas.request import GenerateRequest
from silentengine.schemas.response import GenerateResponse, TokenUsage
from silentengine.schemas.routing import RoutingRule
from silentengine.security.rate_guard import RateLimiter
from silentengine.utils.logger import logger

FallbackHook = Callable[[str, str, Exception], None]

_JSON_FENCE = re.compile(r"```json\n?")
_FENCE = re.compile(r"```\n?")

JSON_RETRY_INSTRUCTION = (
    "\n\n[PREVIOUS ATTEMPT FAILED]\n"
    "Error: {error}\n"
    "Please respond with ONLY valid JSON. No markdown, no explanations, no code blocks."
)


def strip_code_fences(content: str) -> str:
    return _FENCE.sub("", _JSON_FENCE.sub("", content)).strip()


class Engine:
    def __init__(
        self,
        providers: dict[str, BaseLLM],
        router: Router,
        request_logger: RequestLogger,
        rate_limiter: RateLimiter | None = None,
        on_fallback: FallbackHook | None = None,
    ) -> None:
        self.providers = providers
        self.router = router
        self.request_logger = request_logger
        self.rate_limiter = rate_limiter
        self.on_fallback = on_fallback

    def _provider(self, provider_id: str, role: str) -> BaseLLM:
        provider = self.providers.get(provider_id)
        if provider is None:
            raise ConfigurationError(f"{role.capitalize()} model {provider_id} not found")
        return provider

    def _alert_fallback(self, primary: str, backup: str, error: Exception) -> None:
        logger.warning(
            "fallback_triggered",
            extra={"primary": primary, "backup": backup, "error": str(error)},
        )
        if self.on_fallback is not None:
            try:
                self.on_fallback(primary, backup, error)
            except Exception:
                logger.exception("fallback_hook_failed")

    def _charge(self, rate_key: str | None, response: GenerateResponse) -> None:
        if rate_key is not None and self.rate_limiter is not None:
            self.rate_limiter.record_usage(rate_key, response.tokens.total, response.cost)

    def _succeed(
        self,
        request: GenerateRequest,
        response: GenerateResponse,
        rule: RoutingRule,
        rate_key: str | None,
        error: str | None,
        fallback_used: bool,
        routing_reason: str,
    ) -> GenerateResponse:
        self.request_logger.append(request, response, error=error, fallback_used=fallback_used)
        self._charge(rate_key, response)
        logger.info(
            "llm_used",
            extra={
                "task_type": rule.task_type,
                "original_provider": rule.primary_model,
                "final_provider_used": f"{response.provider}:{response.model}",
                "routing_reason": routing_reason,
                "latency_ms": round(response.latency, 2),
                "request_id": response.request_id,
            },
        )
        return response

    async def generate(self, request: GenerateRequest, rate_key: str | None = None) -> GenerateResponse:
        task_type = request.task_type or "general"
        rule = self.router.resolve(task_type)
        logger.info("routing", extra={"task_type": task_type, "primary": rule.primary_model})

        primary = self._provider(rule.primary_model, "primary")

        primary_error: Exception | None = None
        backup_error: Exception | None = None
        fallback_used = False

        if rule.uses_fallback and not await primary.check_health():
            logger.warning(
                "primary_unhealthy",
                extra={"primary": rule.primary_model, "backup": rule.backup_model},
            )
            # no primary attempt to fall back from: a missing backup is fatal here
            backup = self._provider(rule.backup_model, "backup")
            fallback_used = True
            primary_error = RuntimeError(f"{rule.primary_model} failed its health check")
            try:
                response = await backup.generate(request)
            except Exception as e:
                backup_error = e
                logger.error("backup_failed", extra={"backup": rule.backup_model, "error": str(e)})
            else:
                return self._succeed(request, response, rule, rate_key, None, True, "preemptive_fallback")
        else:
            try:
                response = await primary.generate(request)
            except Exception as e:
                primary_error = e
                logger.error("primary_failed", extra={"primary": rule.primary_model, "error": str(e)})
            else:
                return self._succeed(request, response, rule, rate_key, None, False, "primary")

            if rule.uses_fallback:
                logger.info("fallback_attempt", extra={"backup": rule.backup_model})
                try:
                    response = await self._provider(rule.backup_model, "backup").generate(request)
                except Exception as e:
                    backup_error = e
                    logger.error("backup_failed", extra={"backup": rule.backup_model, "error": str(e)})
                else:
                    fallback_used = True
                    self._alert_fallback(rule.primary_model, rule.backup_model, primary_error)
                    return self._succeed(
                        request, response, rule, rate_key, str(primary_error), True, "fallback"
                    )

        self._fail(request, rule, primary_error, backup_error, fallback_used)

    def _fail(
        self,
        request: GenerateRequest,
        rule: RoutingRule,
        primary_error: Exception | None,
        backup_error: Exception | None,
        fallback_used: bool,
    ) -> NoReturn:
        error_response = GenerateResponse(
            content="",
            model=rule.primary_model,
            provider="none",
            tokens=TokenUsage(),
            latency=0,
            cost=0,
            request_id=new_request_id(),
        )
        primary_msg = str(primary_error) if primary_error is not None else "Unknown error"
        if backup_error is not None:
            combined = f"Primary: {primary_msg}, Backup: {backup_error}"
        else:
            combined = primary_msg
        self.request_logger.append(request, error_response, error=combined, fallback_used=fallback_used)

        message = f"All models failed for taskType={rule.task_type}. Primary ({rule.primary_model}): {primary_msg}"
        if backup_error is not None:
            message += f". Backup ({rule.backup_model}): {backup_error}"
        raise AggregateFailureError(
            message,
            primary_error=primary_msg,
            backup_error=str(backup_error) if backup_error is not None else None,
        )

    async def generate_json(
        self,
        request: GenerateRequest,
        max_retries: int = 3,
        rate_key: str | None = None,
    ) -> tuple[Any, int]:
        """Generate until the answer parses as JSON.

        Every attempt is a full generate() call with its own fallback and
        rate-limit accounting. Returns (data, attempts used).
        """
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        local = request.model_copy(update={"task_type": "json"})
        last_error = ""
        for attempt in range(1, max_retries + 1):
            response = await self.generate(local, rate_key=rate_key)
            try:
                data = json.loads(strip_code_fences(response.content))
            except ValueError as e:
                last_error = str(e)
                logger.warning(
                    "json_invalid",
                    extra={"attempt": attempt, "max_retries": max_retries, "error": last_error},
                )
                if attempt < max_retries:
                    local = local.model_copy(
                        update={"prompt": local.prompt + JSON_RETRY_INSTRUCTION.format(error=last_error)}
                    )
                continue
            logger.info("json_valid", extra={"attempt": attempt, "max_retries": max_retries})
            return data, attempt
        raise JSONValidationError(max_retries, last_error)
