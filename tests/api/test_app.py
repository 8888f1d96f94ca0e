"""
Tests for the trigger API.

The application is served by aiohttp's TestServer and exercised through a
TestClient, with in-memory stores behind it.
"""

import asyncio
from datetime import datetime, timedelta
from typing import AsyncIterator, Callable
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestClient, TestServer

from uptime_monitor.api.app import CORS_HEADERS, create_app
from uptime_monitor.contracts import Prober, TargetRegistry
from uptime_monitor.domain import CheckResult, CheckStatus, Target
from uptime_monitor.errors import PersistenceError
from uptime_monitor.scheduler.check_scheduler import CheckScheduler
from uptime_monitor.store.memory_store import InMemoryResultStore, InMemoryTargetRegistry


@pytest_asyncio.fixture
async def make_client() -> AsyncIterator[Callable]:
    """
    Provides a factory that serves an application and returns a client for it.
    """
    clients = []

    async def _factory(app: web.Application) -> TestClient:
        client = TestClient(TestServer(app))
        await client.start_server()
        clients.append(client)
        return client

    yield _factory

    for client in clients:
        await client.close()


@pytest.fixture
def registry(target: Target) -> InMemoryTargetRegistry:
    return InMemoryTargetRegistry([target, target._replace(id="site-2", active=False)])


@pytest.fixture
def store() -> InMemoryResultStore:
    return InMemoryResultStore()


@pytest.fixture
def prober(now: datetime) -> AsyncMock:
    async def probe(target: Target) -> CheckResult:
        return CheckResult(target.id, CheckStatus.UP, 42, 200, None, now)

    mock = AsyncMock(spec=Prober)
    mock.probe.side_effect = probe
    return mock


@pytest.fixture
def app(registry, store, prober, now: datetime) -> web.Application:
    scheduler = CheckScheduler(registry, prober, store, clock=lambda: now)
    return create_app(scheduler, registry, store, clock=lambda: now)


class TestCheckUptime:
    """Tests for POST /check-uptime."""

    @pytest.mark.asyncio
    async def test_check_uptime_should_return_cycle_summary(self, make_client, app, store) -> None:
        # Arrange
        client = await make_client(app)

        # Act
        response = await client.post("/check-uptime")

        # Assert
        assert response.status == 200
        assert await response.json() == {
            "success": True,
            "summary": {"total": 1, "up": 1, "down": 0, "error": 0},
        }
        assert response.headers["Access-Control-Allow-Origin"] == "*"
        assert len(store.results) == 1

    @pytest.mark.asyncio
    async def test_check_uptime_should_return_500_when_registry_fails(
        self, make_client, store, prober
    ) -> None:
        """
        A failed cycle is reported as an error payload with the underlying cause.
        """
        # Arrange
        registry = AsyncMock(spec=TargetRegistry)
        registry.list_active_targets.side_effect = ConnectionError("database unreachable")
        scheduler = CheckScheduler(registry, prober, store)
        client = await make_client(create_app(scheduler, registry, store))

        # Act
        response = await client.post("/check-uptime")

        # Assert
        assert response.status == 500
        body = await response.json()
        assert body["error"].startswith("Failed to fetch targets")
        assert body["details"] == "database unreachable"
        assert response.headers["Access-Control-Allow-Origin"] == "*"

    @pytest.mark.asyncio
    async def test_check_uptime_should_return_500_when_write_fails(
        self, make_client, registry, store
    ) -> None:
        scheduler = AsyncMock(spec=CheckScheduler)
        scheduler.run_cycle.side_effect = PersistenceError("Failed to save check results: disk full")
        client = await make_client(create_app(scheduler, registry, store))

        response = await client.post("/check-uptime")

        assert response.status == 500
        assert (await response.json())["details"] is None

    @pytest.mark.asyncio
    async def test_check_uptime_should_return_409_when_cycle_is_running(
        self, make_client, registry, store, now: datetime
    ) -> None:
        """
        A second trigger while a cycle is still probing is rejected.
        """
        # Arrange
        release = asyncio.Event()
        started = asyncio.Event()

        async def blocking_probe(target: Target) -> CheckResult:
            started.set()
            await release.wait()
            return CheckResult(target.id, CheckStatus.UP, 42, 200, None, now)

        prober = AsyncMock(spec=Prober)
        prober.probe.side_effect = blocking_probe
        scheduler = CheckScheduler(registry, prober, store, clock=lambda: now)
        client = await make_client(create_app(scheduler, registry, store, clock=lambda: now))

        # Act
        async def trigger():
            return await client.post("/check-uptime")

        first = asyncio.create_task(trigger())
        await started.wait()
        second = await client.post("/check-uptime")
        release.set()
        first_response = await first

        # Assert
        assert second.status == 409
        assert first_response.status == 200

    @pytest.mark.asyncio
    async def test_preflight_should_return_empty_200_with_cors_headers(
        self, make_client, app
    ) -> None:
        client = await make_client(app)

        response = await client.options("/check-uptime")

        assert response.status == 200
        assert await response.text() == ""
        for name, value in CORS_HEADERS.items():
            assert response.headers[name] == value


class TestReadEndpoints:
    """Tests for the health and statistics endpoints."""

    @pytest.mark.asyncio
    async def test_health_should_report_healthy(self, make_client, app) -> None:
        client = await make_client(app)

        response = await client.get("/health")

        assert response.status == 200
        assert await response.json() == {"status": "healthy"}

    @pytest.mark.asyncio
    async def test_target_health_should_report_no_data_for_unchecked_target(
        self, make_client, app
    ) -> None:
        client = await make_client(app)

        response = await client.get("/targets/site-1/health")

        assert response.status == 200
        assert await response.json() == {
            "target_id": "site-1",
            "current_status": None,
            "uptime_percent": None,
            "avg_response_time_ms": None,
            "last_checked_at": None,
        }

    @pytest.mark.asyncio
    async def test_target_health_should_summarize_recent_checks(
        self, make_client, app, store, make_result, now: datetime
    ) -> None:
        # Arrange
        await store.append_checks(
            [
                make_result(CheckStatus.UP, checked_at=now - timedelta(minutes=10), response_time_ms=100),
                make_result(CheckStatus.DOWN, checked_at=now - timedelta(minutes=5)),
            ]
        )
        client = await make_client(app)

        # Act
        response = await client.get("/targets/site-1/health")

        # Assert
        body = await response.json()
        assert body["current_status"] == "down"
        assert body["uptime_percent"] == 50
        assert body["avg_response_time_ms"] == 100

    @pytest.mark.asyncio
    async def test_dashboard_should_return_stats_and_hourly_series(
        self, make_client, app, store, make_result
    ) -> None:
        # Arrange
        await store.append_checks([make_result(CheckStatus.UP), make_result(CheckStatus.ERROR)])
        client = await make_client(app)

        # Act
        response = await client.get("/dashboard")

        # Assert
        assert response.status == 200
        body = await response.json()
        assert body["stats"] == {
            "total_targets": 2,
            "active_targets": 1,
            "up": 1,
            "down": 0,
            "error": 1,
            "recent_checks": 2,
        }
        assert len(body["series"]) == 24
        assert body["series"][-1]["label"] == "14:00"
        assert body["series"][-1]["total"] == 2

    @pytest.mark.asyncio
    async def test_unexpected_errors_should_return_json_500(
        self, make_client, registry, now: datetime
    ) -> None:
        """
        Failures outside the cycle are caught by the error middleware.
        """
        store = AsyncMock(spec=InMemoryResultStore)
        store.list_checks.side_effect = RuntimeError("read failed")
        scheduler = AsyncMock(spec=CheckScheduler)
        client = await make_client(create_app(scheduler, registry, store, clock=lambda: now))

        response = await client.get("/dashboard")

        assert response.status == 500
        assert (await response.json())["error"] == "read failed"
        assert response.headers["Access-Control-Allow-Origin"] == "*"

    @pytest.mark.asyncio
    async def test_target_health_should_keep_last_known_state_after_a_quiet_day(
        self, make_client, app, store, make_result, now: datetime
    ) -> None:
        """
        A target last checked 30 hours ago has no uptime for the last day, but
        still reports its latest status and latency.
        """
        # Arrange
        last = now - timedelta(hours=30)
        await store.append_checks(
            [make_result(CheckStatus.UP, checked_at=last, response_time_ms=100)]
        )
        client = await make_client(app)

        # Act
        response = await client.get("/targets/site-1/health")

        # Assert
        assert response.status == 200
        assert await response.json() == {
            "target_id": "site-1",
            "current_status": "up",
            "uptime_percent": None,
            "avg_response_time_ms": 100,
            "last_checked_at": last.isoformat(),
        }

    @pytest.mark.asyncio
    async def test_target_health_should_average_newest_up_checks_across_window_edge(
        self, make_client, app, store, make_result, now: datetime
    ) -> None:
        """
        The latency sample mixes checks from inside and outside the last 24 hours.
        """
        # Arrange
        await store.append_checks(
            [
                make_result(CheckStatus.UP, checked_at=now - timedelta(hours=1), response_time_ms=100),
                make_result(CheckStatus.UP, checked_at=now - timedelta(hours=26), response_time_ms=300),
                make_result(CheckStatus.ERROR, checked_at=now - timedelta(hours=27)),
            ]
        )
        client = await make_client(app)

        # Act
        body = await (await client.get("/targets/site-1/health")).json()

        # Assert
        assert body["current_status"] == "up"
        assert body["uptime_percent"] == 100
        assert body["avg_response_time_ms"] == 200

    @pytest.mark.asyncio
    async def test_target_health_should_return_404_for_unknown_target(
        self, make_client, registry, now: datetime
    ) -> None:
        """
        An id that is not registered, such as one that is not even a UUID, never reaches the store.
        """
        # Arrange
        store = AsyncMock(spec=InMemoryResultStore)
        scheduler = AsyncMock(spec=CheckScheduler)
        client = await make_client(create_app(scheduler, registry, store, clock=lambda: now))

        # Act
        response = await client.get("/targets/not-a-uuid/health")

        # Assert
        assert response.status == 404
        assert (await response.json())["error"] == "Unknown target: not-a-uuid"
        assert response.headers["Access-Control-Allow-Origin"] == "*"
        store.list_checks.assert_not_awaited()
        store.latest_checks.assert_not_awaited()
