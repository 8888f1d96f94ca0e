import asyncio
import logging
from typing import List
from unittest.mock import AsyncMock

import pytest

from uptime_monitor.domain import CycleSummary
from uptime_monitor.errors import CycleInProgressError, PersistenceError
from uptime_monitor.scheduler.check_scheduler import CheckScheduler
from uptime_monitor.worker import MonitoringWorker

SUMMARY = CycleSummary(total=1, up=1, down=0, error=0)


@pytest.fixture
def mock_scheduler() -> AsyncMock:
    """Provides a mock for the CheckScheduler."""
    scheduler = AsyncMock(spec=CheckScheduler)
    scheduler.run_cycle.return_value = SUMMARY
    scheduler.is_running = False
    return scheduler


@pytest.mark.asyncio
async def test_worker_should_run_first_cycle_after_initial_delay(mock_scheduler: AsyncMock) -> None:
    """
    Tests that the worker runs a cycle once the initial delay has passed.
    """
    # Arrange
    worker = MonitoringWorker("test-worker", mock_scheduler, initial_delay=0.01, interval=60)

    # Act
    await worker.start()
    await asyncio.sleep(0.1)
    await worker.stop()

    # Assert
    mock_scheduler.run_cycle.assert_awaited_once()
    assert worker.cycles_run == 1
    assert not worker.is_running


@pytest.mark.asyncio
async def test_worker_should_repeat_cycles_on_interval(mock_scheduler: AsyncMock) -> None:
    """
    Tests that the worker keeps running cycles at the configured cadence.
    """
    # Arrange
    worker = MonitoringWorker("test-worker", mock_scheduler, initial_delay=0, interval=0.02)

    # Act
    await worker.start()
    await asyncio.sleep(0.15)
    await worker.stop()

    # Assert
    assert mock_scheduler.run_cycle.await_count >= 3


@pytest.mark.asyncio
async def test_worker_should_not_run_a_cycle_when_stopped_during_initial_delay(
    mock_scheduler: AsyncMock,
) -> None:
    """
    Tests that stop() interrupts the wait before the first cycle.
    """
    worker = MonitoringWorker("test-worker", mock_scheduler, initial_delay=60, interval=60)

    await worker.start()
    await asyncio.wait_for(worker.stop(), timeout=1)

    mock_scheduler.run_cycle.assert_not_awaited()


@pytest.mark.asyncio
async def test_worker_should_let_in_flight_cycle_finish_on_stop(mock_scheduler: AsyncMock) -> None:
    """
    Tests that a cycle running when stop() is called completes before the worker exits.
    """
    # Arrange
    started = asyncio.Event()
    finished: List[bool] = []

    async def slow_cycle() -> CycleSummary:
        started.set()
        await asyncio.sleep(0.05)
        finished.append(True)
        return SUMMARY

    mock_scheduler.run_cycle.side_effect = slow_cycle
    worker = MonitoringWorker("test-worker", mock_scheduler, initial_delay=0, interval=60)

    # Act
    await worker.start()
    await started.wait()
    await worker.stop()

    # Assert
    assert finished == [True]
    assert worker.cycles_run == 1


@pytest.mark.asyncio
async def test_worker_should_keep_running_after_failed_cycle(
    mock_scheduler: AsyncMock, caplog: pytest.LogCaptureFixture
) -> None:
    """
    Tests that a failing cycle is logged and the next cycle still runs.
    """
    # Arrange
    outcomes = iter([PersistenceError("insert failed")])

    async def cycle() -> CycleSummary:
        error = next(outcomes, None)
        if error is not None:
            raise error
        return SUMMARY

    mock_scheduler.run_cycle.side_effect = cycle
    worker = MonitoringWorker("test-worker", mock_scheduler, initial_delay=0, interval=0.01)

    # Act
    with caplog.at_level(logging.ERROR, logger="uptime_monitor.worker"):
        await worker.start()
        await asyncio.sleep(0.1)
        await worker.stop()

    # Assert
    assert mock_scheduler.run_cycle.await_count >= 2
    assert "Check cycle failed: insert failed" in caplog.text


@pytest.mark.asyncio
async def test_run_once_should_return_summary(mock_scheduler: AsyncMock) -> None:
    worker = MonitoringWorker("test-worker", mock_scheduler)

    assert await worker.run_once() == SUMMARY
    assert worker.cycles_run == 1


@pytest.mark.asyncio
async def test_run_once_should_skip_when_cycle_is_in_progress(
    mock_scheduler: AsyncMock, caplog: pytest.LogCaptureFixture
) -> None:
    """
    Tests that a timer tick that collides with an on-demand cycle is skipped.
    """
    mock_scheduler.run_cycle.side_effect = CycleInProgressError("busy")
    worker = MonitoringWorker("test-worker", mock_scheduler)

    with caplog.at_level(logging.INFO, logger="uptime_monitor.worker"):
        assert await worker.run_once() is None

    assert "Skipping scheduled cycle" in caplog.text


@pytest.mark.asyncio
async def test_start_should_be_idempotent(mock_scheduler: AsyncMock) -> None:
    worker = MonitoringWorker("test-worker", mock_scheduler, initial_delay=60, interval=60)

    await worker.start()
    first_task = worker._loop_task
    await worker.start()

    assert worker._loop_task is first_task
    await worker.stop()


@pytest.mark.parametrize("initial_delay, interval", [(-1, 60), (0, 0), (0, -5)])
def test_worker_should_reject_invalid_timings(
    mock_scheduler: AsyncMock, initial_delay: float, interval: float
) -> None:
    with pytest.raises(ValueError):
        MonitoringWorker("test-worker", mock_scheduler, initial_delay=initial_delay, interval=interval)


@pytest.mark.asyncio
async def test_worker_should_start_cycles_on_a_fixed_cadence(mock_scheduler: AsyncMock) -> None:
    """
    Tests that the time a cycle takes does not push back the start of the next one.
    """
    # Arrange
    loop = asyncio.get_running_loop()
    starts: List[float] = []

    async def timed_cycle() -> CycleSummary:
        starts.append(loop.time())
        await asyncio.sleep(0.1)
        return SUMMARY

    mock_scheduler.run_cycle.side_effect = timed_cycle
    worker = MonitoringWorker("test-worker", mock_scheduler, initial_delay=0, interval=0.2)

    # Act
    await worker.start()
    await asyncio.sleep(0.5)
    await worker.stop()

    # Assert
    assert len(starts) >= 3
    gaps = [later - earlier for earlier, later in zip(starts, starts[1:])]
    for gap in gaps:
        assert abs(gap - 0.2) < 0.05


@pytest.mark.asyncio
async def test_worker_should_skip_ticks_missed_by_a_slow_cycle(
    mock_scheduler: AsyncMock, caplog: pytest.LogCaptureFixture
) -> None:
    """
    Tests that a cycle longer than the interval is followed by the next tick on
    the grid, not by a burst of catch-up cycles.
    """
    # Arrange
    loop = asyncio.get_running_loop()
    starts: List[float] = []

    async def cycle() -> CycleSummary:
        starts.append(loop.time())
        if len(starts) == 1:
            await asyncio.sleep(0.25)
        return SUMMARY

    mock_scheduler.run_cycle.side_effect = cycle
    worker = MonitoringWorker("test-worker", mock_scheduler, initial_delay=0, interval=0.1)

    # Act
    with caplog.at_level(logging.WARNING, logger="uptime_monitor.worker"):
        await worker.start()
        await asyncio.sleep(0.35)
        await worker.stop()

    # Assert
    assert len(starts) >= 2
    assert abs((starts[1] - starts[0]) - 0.3) < 0.05
    assert "skipped 2 tick(s)" in caplog.text
