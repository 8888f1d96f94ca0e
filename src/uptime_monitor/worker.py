"""
Background worker for the uptime monitoring system.

This module provides the MonitoringWorker class, which drives check cycles on
a fixed cadence: one cycle shortly after startup, then one per interval. It
shares the CheckScheduler with the on-demand trigger, so both paths run the
same cycle logic.
"""

import asyncio
import logging
from typing import Optional

from .domain import CycleSummary
from .errors import CycleError, CycleInProgressError
from .scheduler.check_scheduler import CheckScheduler

DEFAULT_INITIAL_DELAY = 5.0
DEFAULT_CYCLE_INTERVAL = 300.0


class MonitoringWorker:
    """
    Runs check cycles periodically until stopped.

    A cycle that is already running when stop() is called is allowed to
    finish, including the write of its batch; only the wait between cycles
    is interrupted.
    """

    def __init__(
        self,
        worker_id: str,
        scheduler: CheckScheduler,
        initial_delay: float = DEFAULT_INITIAL_DELAY,
        interval: float = DEFAULT_CYCLE_INTERVAL,
    ) -> None:
        """
        Initializes a new MonitoringWorker instance.

        Args:
            worker_id: A unique identifier for this worker instance.
            scheduler: The component that runs one check cycle.
            initial_delay: Seconds to wait before the first cycle.
            interval: Seconds between the starts of two consecutive cycles.

        Raises:
            ValueError: If the delay is negative or the interval is not positive.
        """
        if initial_delay < 0:
            raise ValueError("initial_delay must not be negative.")
        if interval <= 0:
            raise ValueError("interval must be a positive number.")

        self._worker_id: str = worker_id
        self._scheduler: CheckScheduler = scheduler
        self._initial_delay: float = initial_delay
        self._interval: float = interval
        self._logger: logging.Logger = logging.getLogger(__name__)
        self._stop_event: asyncio.Event = asyncio.Event()
        self._loop_task: Optional[asyncio.Task] = None
        self._cycles_run: int = 0

    @property
    def cycles_run(self) -> int:
        return self._cycles_run

    @property
    def is_running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    async def _wait(self, delay: float) -> bool:
        """
        Sleeps for 'delay' seconds or until stop() is called.

        Returns:
            bool: True if the worker was asked to stop during the wait.
        """
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            return False
        return True

    async def run_once(self) -> Optional[CycleSummary]:
        """
        Runs a single cycle, logging instead of raising on failure.

        Returns:
            Optional[CycleSummary]: The cycle summary, or None if the cycle failed or was skipped.
        """
        try:
            summary = await self._scheduler.run_cycle()
        except CycleInProgressError:
            self._logger.info("Skipping scheduled cycle: another cycle is still running.")
            return None
        except CycleError as e:
            self._logger.error(f"Check cycle failed: {e}")
            return None
        finally:
            self._cycles_run += 1
        return summary

    async def _run(self) -> None:
        """
        The timer loop: wait for the next tick, run a cycle, repeat until stopped.

        Ticks are spaced 'interval' seconds apart from the first one, whatever
        the duration of the cycles. Ticks missed by a cycle that overran the
        interval are skipped rather than run back to back.
        """
        self._logger.info(
            f"First check in {self._initial_delay:g}s, then every {self._interval:g}s."
        )
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self._initial_delay
        while not await self._wait(max(0.0, deadline - loop.time())):
            deadline += self._interval
            await self.run_once()

            now = loop.time()
            if deadline < now:
                missed = int((now - deadline) // self._interval) + 1
                deadline += missed * self._interval
                self._logger.warning(f"Check cycle overran the interval; skipped {missed} tick(s).")
        self._logger.info("Timer loop stopped.")

    async def start(self) -> None:
        """
        Starts the timer loop in the background.

        Calling start() on a running worker has no effect.

        Returns:
            None
        """
        if self.is_running:
            return
        self._logger.info(f"Starting monitoring worker {self._worker_id}.")
        self._stop_event.clear()
        self._loop_task = asyncio.create_task(self._run())

    async def wait(self) -> None:
        """
        Blocks until the timer loop exits.

        Cancelling the caller does not cancel the loop, so a running cycle
        still reaches persistence; call stop() to end the loop.

        Returns:
            None
        """
        if self._loop_task is not None:
            await asyncio.shield(self._loop_task)

    async def stop(self) -> None:
        """
        Gracefully stops the timer loop.

        This method implements a clean shutdown sequence:
        1. Signal the loop so a pending wait returns immediately
        2. Let an in-flight cycle finish and persist its batch
        3. Wait for the loop task to exit

        Returns:
            None
        """
        self._logger.info("Initiating graceful shutdown...")
        self._stop_event.set()

        if self._loop_task is not None:
            if self._scheduler.is_running:
                self._logger.info("Waiting for the running check cycle to complete...")
            await asyncio.gather(self._loop_task, return_exceptions=True)
            self._loop_task = None

        self._logger.info("Worker shutdown complete")
