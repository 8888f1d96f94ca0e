"""
PostgreSQL-based implementations of the TargetRegistry and ResultStore interfaces.

This module reads targets from the 'websites' table and appends check results
to the 'uptime_checks' table (see sql/schema.sql) using an asyncpg connection
pool. Each batch of results is written inside a single transaction.
"""

import logging
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional, Sequence

from asyncpg import Pool, Record

from uptime_monitor.contracts import ResultStore, TargetRegistry
from uptime_monitor.domain import CheckResult, CheckStatus, Target, validate_target

# Module logger
logger = logging.getLogger(__name__)

LIST_TARGETS_QUERY = """
    SELECT id, name, url, check_interval, is_active
    FROM websites
    ORDER BY created_at DESC;
"""

LIST_ACTIVE_TARGETS_QUERY = """
    SELECT id, name, url, check_interval, is_active
    FROM websites
    WHERE is_active = true
    ORDER BY created_at DESC;
"""

INSERT_CHECK_QUERY = """
    INSERT INTO uptime_checks (website_id, status, response_time, status_code,
                               error_message, checked_at)
    VALUES ($1, $2, $3, $4, $5, $6);
"""

LIST_CHECKS_QUERY = """
    SELECT website_id, status, response_time, status_code, error_message, checked_at
    FROM uptime_checks
    WHERE checked_at >= $1
    ORDER BY checked_at DESC;
"""

LIST_TARGET_CHECKS_QUERY = """
    SELECT website_id, status, response_time, status_code, error_message, checked_at
    FROM uptime_checks
    WHERE checked_at >= $1 AND website_id = $2
    ORDER BY checked_at DESC;
"""

LATEST_TARGET_CHECKS_QUERY = """
    SELECT website_id, status, response_time, status_code, error_message, checked_at
    FROM uptime_checks
    WHERE website_id = $1 AND ($2::text IS NULL OR status = $2)
    ORDER BY checked_at DESC
    LIMIT $3;
"""

LAST_CHECKED_QUERY = """
    SELECT website_id, MAX(checked_at) AS last_checked_at
    FROM uptime_checks
    WHERE website_id = ANY($1::uuid[])
    GROUP BY website_id;
"""


def map_target(record: Record) -> Target:
    """
    Converts a 'websites' row to a Target domain object.

    Args:
        record: A database record containing target information.

    Returns:
        Target: A domain object representing a monitoring target.

    Raises:
        ValueError: If the row does not describe a schedulable target.
    """
    return validate_target(
        Target(
            id=str(record["id"]),
            url=record["url"],
            check_interval=timedelta(seconds=record["check_interval"]),
            active=bool(record["is_active"]),
            name=record["name"],
        )
    )


def map_check(record: Record) -> CheckResult:
    """
    Converts an 'uptime_checks' row to a CheckResult domain object.

    Args:
        record: A database record containing a check result.

    Returns:
        CheckResult: The stored check result.
    """
    return CheckResult(
        target_id=str(record["website_id"]),
        status=CheckStatus(record["status"]),
        response_time_ms=record["response_time"],
        status_code=record["status_code"],
        error_message=record["error_message"],
        checked_at=record["checked_at"],
    )


def _to_row(result: CheckResult) -> tuple:
    return (
        result.target_id,
        result.status.value,
        result.response_time_ms,
        result.status_code,
        result.error_message,
        result.checked_at,
    )


class PostgresTargetRegistry(TargetRegistry):
    """
    Reads monitoring targets from the 'websites' table.

    Rows that fail validation, such as a check interval below one minute, are
    logged and skipped rather than failing the whole read.
    """

    def __init__(self, pool: Pool) -> None:
        """
        Initializes a new PostgresTargetRegistry instance.

        Args:
            pool: A connection pool to the PostgreSQL database.
        """
        self._pool: Pool = pool

    async def _fetch_targets(self, query: str) -> List[Target]:
        async with self._pool.acquire() as conn:
            records = await conn.fetch(query)

        targets: List[Target] = []
        for record in records:
            try:
                targets.append(map_target(record))
            except ValueError as e:
                logger.warning(f"Skipping invalid target {record['id']}: {e}")
        return targets

    async def list_active_targets(self) -> List[Target]:
        return await self._fetch_targets(LIST_ACTIVE_TARGETS_QUERY)

    async def list_targets(self) -> List[Target]:
        return await self._fetch_targets(LIST_TARGETS_QUERY)


class PostgresResultStore(ResultStore):
    """
    Persists check results to the time-series 'uptime_checks' table.

    Errors are propagated to the caller; the store never retries.
    """

    def __init__(self, pool: Pool, acquire_timeout: float = 10.0) -> None:
        """
        Initializes the store.

        Args:
            pool: The asyncpg connection pool.
            acquire_timeout: Seconds to wait for a free connection before failing.
        """
        self._pool: Pool = pool
        self._acquire_timeout: float = acquire_timeout

    async def append_checks(self, results: Sequence[CheckResult]) -> None:
        """
        Writes the whole batch inside one transaction.

        Args:
            results: The check results of one cycle.
        """
        if not results:
            return

        records_to_insert = [_to_row(result) for result in results]
        logger.info(f"Flushing {len(records_to_insert)} check results to the database.")

        async with self._pool.acquire(timeout=self._acquire_timeout) as conn:
            async with conn.transaction():
                await conn.executemany(INSERT_CHECK_QUERY, records_to_insert)

        logger.debug(f"Successfully flushed {len(records_to_insert)} check results.")

    async def list_checks(self, target_id: Optional[str], since: datetime) -> List[CheckResult]:
        async with self._pool.acquire(timeout=self._acquire_timeout) as conn:
            if target_id is None:
                records = await conn.fetch(LIST_CHECKS_QUERY, since)
            else:
                records = await conn.fetch(LIST_TARGET_CHECKS_QUERY, since, target_id)
        return [map_check(record) for record in records]

    async def latest_checks(
        self, target_id: str, limit: int, status: Optional[CheckStatus] = None
    ) -> List[CheckResult]:
        async with self._pool.acquire(timeout=self._acquire_timeout) as conn:
            records = await conn.fetch(
                LATEST_TARGET_CHECKS_QUERY, target_id, status.value if status else None, limit
            )
        return [map_check(record) for record in records]

    async def last_checked(self, target_ids: Iterable[str]) -> Dict[str, datetime]:
        ids = list(target_ids)
        if not ids:
            return {}

        async with self._pool.acquire(timeout=self._acquire_timeout) as conn:
            records = await conn.fetch(LAST_CHECKED_QUERY, ids)
        return {str(record["website_id"]): record["last_checked_at"] for record in records}
