"""
HTTP trigger surface for the uptime monitoring system.

This module builds an aiohttp web application that exposes the on-demand
check cycle and read-only health statistics:

- POST /check-uptime runs one cycle and returns its summary
- OPTIONS /check-uptime answers CORS preflight requests
- GET /targets/{target_id}/health returns the health summary of one target
- GET /dashboard returns the dashboard counts and the 24-hour series
- GET /health reports that the service itself is alive
"""

import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Optional

from aiohttp import web

from uptime_monitor import aggregator
from uptime_monitor.contracts import ResultStore, TargetRegistry
from uptime_monitor.domain import CheckStatus
from uptime_monitor.errors import CycleError, CycleInProgressError
from uptime_monitor.scheduler.check_scheduler import CheckScheduler

# Module logger
logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}

SCHEDULER_KEY = web.AppKey("scheduler", CheckScheduler)
REGISTRY_KEY = web.AppKey("registry", TargetRegistry)
STORE_KEY = web.AppKey("store", ResultStore)
CLOCK_KEY = web.AppKey("clock")

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def error_payload(message: str, details: Optional[str] = None) -> Dict[str, Any]:
    return {"error": message, "details": details}


@web.middleware
async def cors_middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
    """Adds the CORS headers to every response, including error responses."""
    try:
        response = await handler(request)
    except web.HTTPException as e:
        e.headers.update(CORS_HEADERS)
        raise
    response.headers.update(CORS_HEADERS)
    return response


async def preflight(request: web.Request) -> web.Response:
    return web.Response(status=200)


async def check_uptime(request: web.Request) -> web.Response:
    """
    Runs one check cycle on demand.

    Returns:
        web.Response: 200 with the cycle summary, 409 if a cycle is already
            running, 500 if the cycle failed.
    """
    scheduler = request.app[SCHEDULER_KEY]
    try:
        summary = await scheduler.run_cycle()
    except CycleInProgressError as e:
        return web.json_response(error_payload(str(e)), status=409)
    except CycleError as e:
        cause = str(e.__cause__) if e.__cause__ is not None else None
        logger.error(f"On-demand check cycle failed: {e}")
        return web.json_response(error_payload(str(e), cause), status=500)

    return web.json_response({"success": True, "summary": summary.to_dict()})


async def target_health(request: web.Request) -> web.Response:
    """
    Returns the health summary of one registered target.

    Uptime covers the last 24 hours. The current status and the latency
    sample come from the newest checks whatever their age, so a target that
    has not been checked for a day still reports its last known state.

    Returns:
        web.Response: 200 with the summary, 404 if the target is not registered.
    """
    target_id = request.match_info["target_id"]
    targets = await request.app[REGISTRY_KEY].list_targets()
    if not any(target.id == target_id for target in targets):
        return web.json_response(error_payload(f"Unknown target: {target_id}"), status=404)

    store = request.app[STORE_KEY]
    now = request.app[CLOCK_KEY]()
    since = now - aggregator.DAY
    recent = await store.list_checks(target_id, since)
    newest = await store.latest_checks(target_id, 1)
    newest_up = await store.latest_checks(
        target_id, aggregator.DEFAULT_LATENCY_SAMPLE, CheckStatus.UP
    )
    older = list(dict.fromkeys(r for r in newest + newest_up if r.checked_at < since))

    health = aggregator.target_health(target_id, recent + older, now)
    return web.json_response(health.to_dict())


async def dashboard(request: web.Request) -> web.Response:
    now = request.app[CLOCK_KEY]()
    targets = await request.app[REGISTRY_KEY].list_targets()
    results = await request.app[STORE_KEY].list_checks(None, now - aggregator.DAY)
    stats = aggregator.dashboard_stats(targets, results, now)
    series = aggregator.hourly_series(results, now)
    return web.json_response(
        {
            "stats": stats.to_dict(),
            "series": [bucket.to_dict() for bucket in series],
        }
    )


async def health(request: web.Request) -> web.Response:
    return web.json_response({"status": "healthy"})


@web.middleware
async def error_middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
    """Turns unexpected exceptions into a JSON error payload."""
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error handling {request.method} {request.path}")
        return web.json_response(error_payload(str(e) or "Unknown error"), status=500)


def create_app(
    scheduler: CheckScheduler,
    registry: TargetRegistry,
    store: ResultStore,
    clock: Callable[[], datetime] = _utc_now,
) -> web.Application:
    """
    Builds the web application around the engine components.

    Args:
        scheduler: Runs the on-demand check cycle.
        registry: Source of the targets shown on the dashboard.
        store: Source of the check history.
        clock: Returns the reference time for statistics.

    Returns:
        web.Application: The configured application.
    """
    app = web.Application(middlewares=[cors_middleware, error_middleware])
    app[SCHEDULER_KEY] = scheduler
    app[REGISTRY_KEY] = registry
    app[STORE_KEY] = store
    app[CLOCK_KEY] = clock
    app.add_routes(
        [
            web.post("/check-uptime", check_uptime),
            web.route("OPTIONS", "/check-uptime", preflight),
            web.get("/targets/{target_id}/health", target_health),
            web.get("/dashboard", dashboard),
            web.get("/health", health),
        ]
    )
    return app
