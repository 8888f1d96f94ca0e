"""
Check cycle implementation for the uptime monitoring system.

This module provides the CheckScheduler class, which runs one complete check
cycle: it reads the active targets, decides which of them are due, probes
them concurrently through a bounded pool of executor tasks and writes the
whole batch of results to the store in a single call.
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable, Dict, List, Optional

from uptime_monitor.contracts import Prober, ResultStore, TargetRegistry
from uptime_monitor.domain import (
    CheckResult,
    CheckStatus,
    CycleSummary,
    SchedulingPolicy,
    Target,
)
from uptime_monitor.errors import CycleInProgressError, PersistenceError, RegistryReadError

# Module logger
logger = logging.getLogger(__name__)

DEFAULT_MAX_CONCURRENCY = 64
DEFAULT_DUE_TOLERANCE = timedelta(seconds=30)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CycleState(str, Enum):
    """The phases a scheduler goes through during one cycle."""

    IDLE = "idle"
    FETCHING_TARGETS = "fetching_targets"
    DISPATCHING = "dispatching"
    AWAITING_RESULTS = "awaiting_results"
    PERSISTING = "persisting"


def is_due(
    target: Target,
    last_checked_at: Optional[datetime],
    now: datetime,
    tolerance: timedelta = DEFAULT_DUE_TOLERANCE,
) -> bool:
    """
    Tells whether a target's check interval has elapsed.

    A check's 'checked_at' is its completion time, which trails the start of
    its cycle by up to one probe timeout. The tolerance absorbs that lag so a
    target with an interval equal to the cycle cadence is checked every cycle.

    Args:
        target: The target to evaluate.
        last_checked_at: When the target was last checked, or None if never.
        now: The current time.
        tolerance: How early a target may be considered due.

    Returns:
        bool: True if the target should be probed in this cycle.
    """
    if last_checked_at is None:
        return True
    return now - last_checked_at + tolerance >= target.check_interval


class CheckScheduler:
    """
    Runs check cycles over the active targets of a registry.

    Cycles are serialized: a cycle requested while another one is still
    running is rejected with CycleInProgressError instead of being queued.
    Manual and timer-driven invocations share the same run_cycle() logic.
    """

    def __init__(
        self,
        registry: TargetRegistry,
        prober: Prober,
        store: ResultStore,
        policy: SchedulingPolicy = SchedulingPolicy.DUE,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
        due_tolerance: timedelta = DEFAULT_DUE_TOLERANCE,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        """
        Initializes a new CheckScheduler instance.

        Args:
            registry: Source of the targets to check.
            prober: Component that performs the HTTP check of one target.
            store: Destination of the check results.
            policy: Whether to probe every active target or only the due ones.
            max_concurrency: Upper bound on the number of simultaneous probes.
            due_tolerance: How early a target may be considered due under the DUE policy.
            clock: Returns the current timezone-aware time.

        Raises:
            ValueError: If max_concurrency is not a positive integer.
        """
        if not isinstance(max_concurrency, int) or max_concurrency < 1:
            raise ValueError("max_concurrency must be a positive integer.")

        self._registry: TargetRegistry = registry
        self._prober: Prober = prober
        self._store: ResultStore = store
        self._policy: SchedulingPolicy = SchedulingPolicy(policy)
        self._max_concurrency: int = max_concurrency
        self._due_tolerance: timedelta = due_tolerance
        self._clock: Callable[[], datetime] = clock
        self._lock = asyncio.Lock()
        self._state: CycleState = CycleState.IDLE

    @property
    def state(self) -> CycleState:
        return self._state

    @property
    def policy(self) -> SchedulingPolicy:
        return self._policy

    @property
    def is_running(self) -> bool:
        return self._lock.locked()

    async def run_cycle(self) -> CycleSummary:
        """
        Runs one complete check cycle.

        Returns:
            CycleSummary: Counts of the outcomes produced by the cycle.

        Raises:
            CycleInProgressError: If another cycle is still running.
            RegistryReadError: If the targets could not be read. Nothing is written.
            PersistenceError: If the batch could not be written. The batch is dropped.
        """
        if self._lock.locked():
            raise CycleInProgressError("A check cycle is already in progress.")

        async with self._lock:
            try:
                return await self._run_cycle()
            finally:
                self._state = CycleState.IDLE

    async def _run_cycle(self) -> CycleSummary:
        self._state = CycleState.FETCHING_TARGETS
        targets = await self._select_targets()

        if not targets:
            logger.info("No targets to check in this cycle.")
            return CycleSummary(total=0, up=0, down=0, error=0)

        self._state = CycleState.DISPATCHING
        logger.info(f"Checking {len(targets)} target(s)...")
        results = await self._probe_all(targets)

        self._state = CycleState.PERSISTING
        try:
            await self._store.append_checks(results)
        except Exception as e:
            logger.error(f"Failed to save check results: {e}. {len(results)} results dropped.")
            raise PersistenceError(f"Failed to save check results: {e}") from e

        summary = CycleSummary.from_results(results)
        logger.info(f"Check summary: {summary.to_dict()}")
        return summary

    async def _select_targets(self) -> List[Target]:
        """
        Reads the active targets and applies the scheduling policy.

        Raises:
            RegistryReadError: If the registry or the last check times could not be read.
        """
        try:
            targets = await self._registry.list_active_targets()
        except Exception as e:
            logger.error(f"Error fetching targets: {e}")
            raise RegistryReadError(f"Failed to fetch targets: {e}") from e

        # The registry contract already excludes inactive targets.
        targets = [target for target in targets if target.active]

        if self._policy is SchedulingPolicy.ALL or not targets:
            return targets

        try:
            last_checked: Dict[str, datetime] = await self._store.last_checked(
                [target.id for target in targets]
            )
        except Exception as e:
            logger.error(f"Error fetching last check times: {e}")
            raise RegistryReadError(f"Failed to fetch last check times: {e}") from e

        now = self._clock()
        due = [
            target
            for target in targets
            if is_due(target, last_checked.get(target.id), now, self._due_tolerance)
        ]
        logger.debug(f"{len(due)} of {len(targets)} active target(s) are due.")
        return due

    async def _probe_all(self, targets: List[Target]) -> List[CheckResult]:
        """
        Probes every target through a pool of min(len(targets), max_concurrency) executors.

        Waits for every probe to finish before returning.
        """
        queue: asyncio.Queue[Target] = asyncio.Queue()
        for target in targets:
            queue.put_nowait(target)

        results: List[CheckResult] = []
        num_executors = min(len(targets), self._max_concurrency)
        executors = [
            asyncio.create_task(self._executor(i + 1, queue, results))
            for i in range(num_executors)
        ]

        self._state = CycleState.AWAITING_RESULTS
        try:
            await queue.join()
        finally:
            for task in executors:
                task.cancel()
            await asyncio.gather(*executors, return_exceptions=True)

        return results

    async def _executor(
        self, executor_num: int, queue: "asyncio.Queue[Target]", results: List[CheckResult]
    ) -> None:
        """
        Consumer task that probes targets from the queue until it is cancelled.
        """
        executor_logger: logging.Logger = logging.getLogger(f"{__name__}.executor-{executor_num}")

        while True:
            target: Target = await queue.get()
            try:
                results.append(await self._prober.probe(target))
            except Exception as e:
                executor_logger.exception(f"Probe failed for target {target.id} with error: {e}")
                results.append(
                    CheckResult(
                        target_id=target.id,
                        status=CheckStatus.ERROR,
                        response_time_ms=None,
                        status_code=None,
                        error_message=str(e) or type(e).__name__,
                        checked_at=self._clock(),
                    )
                )
            finally:
                queue.task_done()
