import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

from silentengine.db.request_log import RequestLogger
from silentengine.schemas.log import RequestLog

PROJECTION_WINDOW_DAYS = 7


def _empty_overview() -> dict[str, Any]:
    return {
        "totalRequests": 0,
        "totalCost": 0.0,
        "totalTokens": 0,
        "avgLatency": 0.0,
        "errorRate": 0.0,
        "fallbackRate": 0.0,
        "byModel": {},
        "byTaskType": {},
        "byDay": {},
    }


def _running_mean(previous: float, count: int, sample: float) -> float:
    return previous + (sample - previous) / count


class DashboardDataService:
    """Usage and cost aggregates over the persisted request log."""

    def __init__(
        self,
        request_logger: RequestLogger,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self.request_logger = request_logger
        self._clock = clock

    async def usage_overview(self, days: int = 7) -> dict[str, Any]:
        end = self._clock()
        start = end - timedelta(days=days)
        logs = await asyncio.to_thread(self.request_logger.query_range, start, end)
        return summarize(logs)

    async def cost_projection(self) -> dict[str, float]:
        overview = await self.usage_overview(PROJECTION_WINDOW_DAYS)
        daily = overview["totalCost"] / PROJECTION_WINDOW_DAYS
        return {
            "daily": daily,
            "weekly": daily * 7,
            "monthly": daily * 30,
            "yearly": daily * 365,
        }


def summarize(logs: list[RequestLog]) -> dict[str, Any]:
    if not logs:
        return _empty_overview()

    total_cost = 0.0
    total_tokens = 0
    total_latency = 0.0
    errors = 0
    fallbacks = 0
    by_model: dict[str, dict[str, Any]] = {}
    by_task: dict[str, dict[str, Any]] = {}
    by_day: dict[str, dict[str, Any]] = {}

    for log in logs:
        response = log.response
        cost = float(response.get("cost") or 0)
        tokens = int((response.get("tokens") or {}).get("total") or 0)
        latency = float(response.get("latency") or 0)
        failed = bool(log.error)
        model = response.get("model") or "unknown"
        task = log.request.get("taskType") or "general"
        day = log.timestamp.split("T")[0]

        total_cost += cost
        total_tokens += tokens
        total_latency += latency
        errors += failed
        fallbacks += log.fallback_used

        m = by_model.setdefault(model, {"requests": 0, "cost": 0.0, "tokens": 0, "errors": 0, "avgLatency": 0.0})
        m["requests"] += 1
        m["cost"] += cost
        m["tokens"] += tokens
        m["errors"] += failed
        m["avgLatency"] = _running_mean(m["avgLatency"], m["requests"], latency)

        t = by_task.setdefault(task, {"requests": 0, "cost": 0.0, "avgLatency": 0.0})
        t["requests"] += 1
        t["cost"] += cost
        t["avgLatency"] = _running_mean(t["avgLatency"], t["requests"], latency)

        d = by_day.setdefault(day, {"requests": 0, "cost": 0.0, "errors": 0})
        d["requests"] += 1
        d["cost"] += cost
        d["errors"] += failed

    count = len(logs)
    return {
        "totalRequests": count,
        "totalCost": total_cost,
        "totalTokens": total_tokens,
        "avgLatency": total_latency / count,
        "errorRate": errors / count,
        "fallbackRate": fallbacks / count,
        "byModel": by_model,
        "byTaskType": by_task,
        "byDay": by_day,
    }
