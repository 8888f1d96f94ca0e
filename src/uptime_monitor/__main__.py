"""
Main entry point for the uptime monitoring application.

This module initializes and runs the uptime monitoring system. It sets up logging,
creates database and HTTP connections, initializes the engine components, serves
the trigger API and handles graceful shutdown when the application is terminated.
"""

import asyncio
import logging
from datetime import timedelta
from typing import Optional

import aiohttp
import asyncpg
from aiohttp import web

from uptime_monitor.api.app import create_app
from uptime_monitor.config import MonitoringContext, get_context
from uptime_monitor.config.db_config import initiate_db_pool
from uptime_monitor.config.http_config import get_http_session
from uptime_monitor.config.logging_config import configure_logging
from uptime_monitor.domain import SchedulingPolicy
from uptime_monitor.prober.aiohttp_prober import AiohttpProber
from uptime_monitor.scheduler.check_scheduler import CheckScheduler
from uptime_monitor.store.asyncpg_store import PostgresResultStore, PostgresTargetRegistry
from uptime_monitor.worker import MonitoringWorker


async def main(context: MonitoringContext) -> None:
    """
    Set up and run the uptime monitoring application.

    This function initializes all components of the monitoring system:
    1. Creates an HTTP session for making requests
    2. Establishes database connection pool
    3. Creates the registry, store, prober and scheduler
    4. Starts the periodic worker and the trigger API
    5. Handles graceful shutdown when the application is terminated

    Args:
        context: Configuration context containing all application settings.

    Returns:
        None
    """
    logger: logging.Logger = logging.getLogger(__name__)
    logger.info("Starting application...")

    http_session: Optional[aiohttp.ClientSession] = None
    db_pool: Optional[asyncpg.pool.Pool] = None
    worker: Optional[MonitoringWorker] = None
    runner: Optional[web.AppRunner] = None

    try:
        # Initialize HTTP session for making requests
        http_session = get_http_session(context)
        logger.info("configured: http_session")

        # Initialize the database connection pool
        db_pool = await initiate_db_pool(context)
        logger.info("initialized: db_pool")

        registry = PostgresTargetRegistry(db_pool)
        store = PostgresResultStore(db_pool)
        scheduler = CheckScheduler(
            registry=registry,
            prober=AiohttpProber(session=http_session, timeout=context.probe_timeout),
            store=store,
            policy=SchedulingPolicy(context.scheduling_policy),
            max_concurrency=context.max_concurrency,
            due_tolerance=timedelta(seconds=context.probe_timeout),
        )

        worker = MonitoringWorker(
            worker_id=context.worker_id,
            scheduler=scheduler,
            initial_delay=context.initial_delay,
            interval=context.cycle_interval,
        )

        runner = web.AppRunner(create_app(scheduler, registry, store))
        await runner.setup()
        await web.TCPSite(runner, context.http_host, context.http_port).start()
        logger.info(f"Trigger API listening on {context.http_host}:{context.http_port}")

        logger.info("Worker initialized. Starting monitoring loop...")
        await worker.start()
        await worker.wait()

    except asyncio.CancelledError:
        logger.info("Application shutdown requested.")
    finally:
        # Ensure all resources are properly closed during shutdown
        logger.info("Shutting down resources...")
        if runner:
            await runner.cleanup()
        if worker:
            await worker.stop()
        if http_session:
            await http_session.close()
        if db_pool:
            await db_pool.close()
        logger.info("Shutdown complete.")


def run() -> None:
    """Console script entry point."""
    try:
        # Parse command-line arguments and environment variables
        uptime_monitor_context: MonitoringContext = get_context()

        # Configure logging based on the context
        configure_logging(uptime_monitor_context)

        # Run the main application
        asyncio.run(main(uptime_monitor_context))
    except KeyboardInterrupt:
        logging.info("Shutdown initiated by user (Ctrl+C).")


if __name__ == "__main__":
    run()
