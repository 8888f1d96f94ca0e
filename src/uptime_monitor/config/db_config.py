"""
Database configuration module for the uptime monitoring system.

This module creates the asyncpg connection pool and checks, before the pool
is handed out, that the database holds the 'websites' and 'uptime_checks'
tables from sql/schema.sql.
"""

import logging
from typing import List

import asyncpg

from uptime_monitor.config import MonitoringContext

# Module logger
logger = logging.getLogger(__name__)

REQUIRED_TABLES = ("websites", "uptime_checks")

MISSING_TABLES_QUERY = """
    SELECT name
    FROM unnest($1::text[]) AS name
    WHERE to_regclass(name) IS NULL;
"""


async def initiate_db_pool(context: MonitoringContext) -> asyncpg.pool.Pool:
    """
    Create a connection pool and verify the monitoring schema.

    Args:
        context: Configuration context containing database connection parameters.

    Returns:
        asyncpg.pool.Pool: A pool connected to a database with the required tables.

    Raises:
        RuntimeError: If any of the required tables is missing.
        Exception: If the database connection cannot be established.
    """
    pool: asyncpg.pool.Pool = await asyncpg.create_pool(
        dsn=context.dsn, min_size=1, max_size=context.db_pool_size
    )

    try:
        async with pool.acquire() as connection:
            records = await connection.fetch(MISSING_TABLES_QUERY, list(REQUIRED_TABLES))
        missing: List[str] = [record["name"] for record in records]
        if missing:
            raise RuntimeError(
                f"Database schema is incomplete, missing table(s): {', '.join(missing)}. "
                "Apply sql/schema.sql first."
            )
        logger.info("Database connection pool successfully created.")
        return pool
    except Exception as e:
        logger.error(f"Could not initialize the database pool. {e}")
        await pool.close()
        raise
