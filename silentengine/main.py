import asyncio
import contextlib
import os
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from silentengine.core.config import get_settings
from silentengine.core.container import EngineContainer, build_container
from silentengine.core.errors import EngineError, JSONValidationError
from silentengine.core.security import cors_origins, engine_key_matches
from silentengine.schemas.request import GenerateJSONRequest, GenerateRequest
from silentengine.schemas.response import GenerateJSONResponse
from silentengine.security.rate_guard import DEFAULT_KEY, check_prompt_size
from silentengine.utils.logger import logger

ESTIMATED_TOKENS = 1000
ESTIMATED_COST = 0.01
SWEEP_INTERVAL_SEC = 60
ARCHIVE_HOUR_UTC = 2
CORS_MAX_AGE = 86400


def seconds_until(hour: int, now: datetime | None = None) -> float:
    now = now or datetime.now(timezone.utc)
    target = now.replace(hour=hour, minute=0, second=0, microsecond=0)
    if target <= now:
        target += timedelta(days=1)
    return (target - now).total_seconds()


async def sweep_rate_limits(container: EngineContainer, interval: float = SWEEP_INTERVAL_SEC) -> None:
    while True:
        await asyncio.sleep(interval)
        container.rate_limiter.cleanup()


async def archive_daily(container: EngineContainer, hour: int = ARCHIVE_HOUR_UTC) -> None:
    while True:
        await asyncio.sleep(seconds_until(hour))
        days = container.settings.log_archive_after_days
        try:
            archived = await asyncio.to_thread(container.request_logger.archive, days)
        except Exception:
            logger.exception("archive_job_failed")
            continue
        logger.info("archive_job_done", extra={"archived": len(archived), "older_than_days": days})


def get_container(request: Request) -> EngineContainer:
    return request.app.state.container


def rate_limit_key(request: Request) -> str:
    return request.headers.get("x-api-key") or request.headers.get("x-engine-key") or DEFAULT_KEY


async def require_engine_key(request: Request, container: EngineContainer = Depends(get_container)) -> None:
    if not engine_key_matches(container.settings, request.headers.get("x-engine-key")):
        logger.warning("unauthorized", extra={"path": request.url.path})
        raise HTTPException(status_code=401, detail="Unauthorized")


async def enforce_rate_limit(request: Request, container: EngineContainer = Depends(get_container)) -> str:
    key = rate_limit_key(request)
    limiter = container.rate_limiter
    if not limiter.admit(key, ESTIMATED_TOKENS, ESTIMATED_COST):
        retry_after = limiter.retry_after(key)
        logger.warning("rate_limited", extra={"path": request.url.path, "retry_after": retry_after})
        raise HTTPException(
            status_code=429,
            detail={"error": "Rate limit exceeded", "retryAfter": retry_after},
            headers={"Retry-After": str(retry_after)},
        )
    return key


async def _json_body(request: Request) -> dict:
    try:
        body = await request.json()
    except ValueError:
        raise HTTPException(status_code=400, detail="Request body must be valid JSON")
    if not isinstance(body, dict):
        raise HTTPException(status_code=400, detail="Request body must be a JSON object")
    return body


def _validate_prompt(body: dict) -> None:
    prompt = body.get("prompt")
    if not prompt or not isinstance(prompt, str):
        raise HTTPException(status_code=400, detail="Prompt is required")
    try:
        check_prompt_size(prompt)
    except ValueError:
        raise HTTPException(status_code=413, detail="Prompt exceeds maximum length")


def _validation_message(e: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(p) for p in err['loc']) or 'body'}: {err['msg']}" for err in e.errors()
    )


def create_app(container: EngineContainer | None = None) -> FastAPI:
    settings = container.settings if container is not None else get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.container is None:
            app.state.container = build_container(settings)
        current: EngineContainer = app.state.container
        tasks = [
            asyncio.create_task(sweep_rate_limits(current)),
            asyncio.create_task(archive_daily(current)),
        ]
        logger.info("server_started", extra={"host": settings.host, "port": settings.port})
        try:
            yield
        finally:
            for task in tasks:
                task.cancel()
            for task in tasks:
                with contextlib.suppress(asyncio.CancelledError):
                    await task
            await current.aclose()
            logger.info("server_stopped")

    app = FastAPI(title="SilentEngine", lifespan=lifespan)
    app.state.container = container
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins(settings),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        max_age=CORS_MAX_AGE,
    )

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        body = exc.detail if isinstance(exc.detail, dict) else {"error": exc.detail}
        return JSONResponse(body, status_code=exc.status_code, headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        message = "; ".join(f"{'.'.join(str(p) for p in e['loc'])}: {e['msg']}" for e in exc.errors())
        return JSONResponse({"error": message}, status_code=400)

    @app.get("/")
    async def root():
        return {
            "message": "SilentEngine API",
            "docs": "/docs",
            "health": "/health",
            "generate": "POST /v1/generate",
        }

    @app.get("/health")
    async def get_health(container: EngineContainer = Depends(get_container)):
        log_dir = container.request_logger.log_dir
        writable = log_dir.is_dir() and os.access(log_dir, os.W_OK)
        providers = {
            backend: "configured" if key.strip() else "missing_key"
            for backend, key in container.settings.provider_keys().items()
        }
        return {
            "status": "ok" if writable else "degraded",
            "environment": container.settings.environment,
            "logs": "writable" if writable else "not_writable",
            "providers": providers,
            "providerHealth": {pid: p.health.to_dict() for pid, p in container.providers.items()},
        }

    @app.post("/v1/generate", dependencies=[Depends(require_engine_key)])
    async def post_generate(
        request: Request,
        rate_key: str = Depends(enforce_rate_limit),
        container: EngineContainer = Depends(get_container),
    ):
        body = await _json_body(request)
        _validate_prompt(body)
        try:
            generate_request = GenerateRequest.model_validate(body)
        except ValidationError as e:
            raise HTTPException(status_code=400, detail=_validation_message(e))
        try:
            response = await container.engine.generate(generate_request, rate_key=rate_key)
        except EngineError as e:
            logger.error("generate_failed", extra={"error": str(e)})
            raise HTTPException(status_code=500, detail=str(e))
        except Exception as e:
            logger.exception("generate_crashed")
            raise HTTPException(status_code=500, detail=str(e))
        return response.to_wire()

    @app.post("/v1/generate-json", dependencies=[Depends(require_engine_key)])
    async def post_generate_json(
        request: Request,
        rate_key: str = Depends(enforce_rate_limit),
        container: EngineContainer = Depends(get_container),
    ):
        body = await _json_body(request)
        _validate_prompt(body)
        try:
            json_request = GenerateJSONRequest.model_validate(body)
        except ValidationError as e:
            raise HTTPException(status_code=400, detail=_validation_message(e))
        generate_request = GenerateRequest(prompt=json_request.prompt, task_type=json_request.task_type or "json")
        try:
            data, attempts = await container.engine.generate_json(
                generate_request, max_retries=json_request.max_retries, rate_key=rate_key
            )
        except EngineError as e:
            logger.error("generate_json_failed", extra={"error": str(e)})
            return JSONResponse(
                {"success": False, "error": str(e), "hint": JSONValidationError.hint},
                status_code=500,
            )
        return GenerateJSONResponse(data=data, meta={"retriesUsed": attempts}).model_dump()

    @app.get("/v1/dashboard/overview", dependencies=[Depends(require_engine_key)])
    async def get_overview(
        days: int = Query(7, ge=1, le=365),
        container: EngineContainer = Depends(get_container),
    ):
        return await container.dashboard.usage_overview(days)

    @app.get("/v1/dashboard/cost-projection", dependencies=[Depends(require_engine_key)])
    async def get_cost_projection(container: EngineContainer = Depends(get_container)):
        return await container.dashboard.cost_projection()

    @app.get("/v1/admin/logs", dependencies=[Depends(require_engine_key)])
    async def get_admin_logs(
        limit: int = Query(20, ge=1, le=1000),
        container: EngineContainer = Depends(get_container),
    ) -> list:
        return container.request_logger.recent(limit)

    return app


app = create_app()
