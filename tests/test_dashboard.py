"""
Unit tests for dashboard aggregates and cost projection.
"""

from datetime import datetime, timedelta, timezone

import pytest

from silentengine.schemas.log import RequestLog
from silentengine.services.dashboard import DashboardDataService

NOW = datetime(2026, 5, 10, 9, 30, tzinfo=timezone.utc)


class StubLogger:
    def __init__(self, logs: list[RequestLog]):
        self.logs = logs
        self.ranges = []

    def query_range(self, start, end):
        self.ranges.append((start, end))
        return self.logs


def record(day: str, model: str, task: str, cost: float, tokens: int, latency: float,
           error: str | None = None, fallback: bool = False) -> RequestLog:
    return RequestLog.model_validate({
        "id": f"req_{day}_{model}_{latency}",
        "timestamp": f"{day}T10:00:00.000000Z",
        "request": {"prompt": "p", "taskType": task},
        "response": {
            "content": "c",
            "model": model,
            "provider": "x",
            "tokens": {"input": tokens, "output": 0, "total": tokens},
            "latency": latency,
            "cost": cost,
            "requestId": "r",
        },
        "error": error,
        "fallbackUsed": fallback,
    })


class TestUsageOverview:
    @pytest.mark.asyncio
    async def test_empty_window_is_all_zero(self):
        service = DashboardDataService(StubLogger([]), clock=lambda: NOW)
        overview = await service.usage_overview()

        assert overview["totalRequests"] == 0
        assert overview["totalCost"] == 0
        assert overview["avgLatency"] == 0
        assert overview["errorRate"] == 0
        assert overview["fallbackRate"] == 0
        assert overview["byModel"] == {}
        assert overview["byTaskType"] == {}
        assert overview["byDay"] == {}

    @pytest.mark.asyncio
    async def test_queries_requested_window(self):
        stub = StubLogger([])
        service = DashboardDataService(stub, clock=lambda: NOW)
        await service.usage_overview(days=3)
        assert stub.ranges == [(NOW - timedelta(days=3), NOW)]

    @pytest.mark.asyncio
    async def test_aggregates(self):
        logs = [
            record("2026-05-09", "llama", "chat", 0.01, 10, 100.0),
            record("2026-05-09", "llama", "code", 0.02, 20, 300.0, fallback=True),
            record("2026-05-10", "claude", "code", 0.0, 0, 0.0, error="Primary: a, Backup: b"),
        ]
        service = DashboardDataService(StubLogger(logs), clock=lambda: NOW)

        overview = await service.usage_overview()

        assert overview["totalRequests"] == 3
        assert overview["totalCost"] == pytest.approx(0.03)
        assert overview["totalTokens"] == 30
        assert overview["avgLatency"] == pytest.approx(400 / 3)
        assert overview["errorRate"] == pytest.approx(1 / 3)
        assert overview["fallbackRate"] == pytest.approx(1 / 3)

        llama = overview["byModel"]["llama"]
        assert llama["requests"] == 2
        assert llama["tokens"] == 30
        assert llama["errors"] == 0
        assert llama["avgLatency"] == pytest.approx(200.0)
        assert overview["byModel"]["claude"]["errors"] == 1

        code = overview["byTaskType"]["code"]
        assert code["requests"] == 2
        assert code["avgLatency"] == pytest.approx(150.0)

        assert overview["byDay"]["2026-05-09"]["requests"] == 2
        assert overview["byDay"]["2026-05-10"]["errors"] == 1


class TestCostProjection:
    @pytest.mark.asyncio
    async def test_scales_seven_day_average(self):
        logs = [record("2026-05-09", "llama", "chat", 0.035, 1, 1.0) for _ in range(2)]
        stub = StubLogger(logs)
        service = DashboardDataService(stub, clock=lambda: NOW)

        projection = await service.cost_projection()

        assert projection["daily"] == pytest.approx(0.01)
        assert projection["weekly"] == pytest.approx(0.07)
        assert projection["monthly"] == pytest.approx(0.3)
        assert projection["yearly"] == pytest.approx(3.65)
        assert stub.ranges == [(NOW - timedelta(days=7), NOW)]

    @pytest.mark.asyncio
    async def test_empty_projection_is_zero(self):
        service = DashboardDataService(StubLogger([]), clock=lambda: NOW)
        assert await service.cost_projection() == {"daily": 0, "weekly": 0, "monthly": 0, "yearly": 0}
