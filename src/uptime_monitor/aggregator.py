"""
Rolling statistics over check history.

Every function in this module is pure: it takes a history of check results and
an explicit reference time, never mutates the history and returns the same
output for the same input. "No data" is reported as None, never as zero.

Percentages and averages are rounded half up, so 12.5 becomes 13.
"""

from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Sequence

from .domain import (
    CheckResult,
    CheckStatus,
    DashboardStats,
    HourlyBucket,
    StatusBreakdown,
    StatWindow,
    Target,
    TargetHealth,
)

HOUR = timedelta(hours=1)
DAY = timedelta(hours=24)
DEFAULT_LATENCY_SAMPLE = 10


def _round_ratio(numerator: int, denominator: int) -> int:
    # Integer half-up rounding of numerator / denominator for non-negative inputs.
    return (2 * numerator + denominator) // (2 * denominator)


def _newest_first(results: Iterable[CheckResult]) -> List[CheckResult]:
    return sorted(results, key=lambda r: r.checked_at, reverse=True)


def make_window(results: Iterable[CheckResult], start: datetime, end: datetime) -> StatWindow:
    """
    Selects the results whose 'checked_at' falls inside [start, end).

    Args:
        results: The check history.
        start: The inclusive lower bound.
        end: The exclusive upper bound.

    Returns:
        StatWindow: The bounds and the matching results, in input order.
    """
    return StatWindow(
        start=start,
        end=end,
        results=[r for r in results if start <= r.checked_at < end],
    )


def trailing_window(results: Iterable[CheckResult], now: datetime, window: timedelta) -> StatWindow:
    """Selects the results of the trailing window [now - window, now)."""
    return make_window(results, now - window, now)


def status_breakdown(
    results: Iterable[CheckResult], now: Optional[datetime] = None, window: Optional[timedelta] = None
) -> StatusBreakdown:
    """
    Counts each status, optionally restricted to the trailing window.

    Args:
        results: The check history.
        now: The reference time; required together with 'window'.
        window: The trailing window length, or None to count everything.

    Returns:
        StatusBreakdown: The up, down and error counts and their total.
    """
    if window is not None:
        if now is None:
            raise ValueError("now must be provided when a window is given.")
        results = trailing_window(results, now, window).results

    up = down = error = 0
    for result in results:
        if result.status is CheckStatus.UP:
            up += 1
        elif result.status is CheckStatus.DOWN:
            down += 1
        else:
            error += 1
    return StatusBreakdown(up=up, down=down, error=error, total=up + down + error)


def uptime_percentage(
    results: Iterable[CheckResult], now: datetime, window: timedelta = DAY
) -> Optional[int]:
    """
    Computes the share of 'up' checks within the trailing window.

    Args:
        results: The check history.
        now: The reference time.
        window: The trailing window length.

    Returns:
        Optional[int]: The rounded percentage, or None if the window holds no checks.
    """
    breakdown = status_breakdown(results, now, window)
    if breakdown.total == 0:
        return None
    return _round_ratio(100 * breakdown.up, breakdown.total)


def _mean_latency(results: Iterable[CheckResult]) -> Optional[int]:
    latencies = [
        r.response_time_ms
        for r in results
        if r.status is CheckStatus.UP and r.response_time_ms is not None
    ]
    if not latencies:
        return None
    return _round_ratio(sum(latencies), len(latencies))


def average_response_time(
    results: Iterable[CheckResult],
    limit: Optional[int] = DEFAULT_LATENCY_SAMPLE,
    now: Optional[datetime] = None,
    window: Optional[timedelta] = None,
) -> Optional[int]:
    """
    Averages the latency of the most recent successful checks.

    Only 'up' checks with a measured response time are considered. By default
    the sample is the 10 most recent of them regardless of age; passing a
    window restricts it to the trailing window first.

    Args:
        results: The check history, in any order.
        limit: How many of the newest eligible checks to average, or None for all.
        now: The reference time; required together with 'window'.
        window: The trailing window length, or None for no time restriction.

    Returns:
        Optional[int]: The rounded mean in milliseconds, or None if nothing is eligible.
    """
    if window is not None:
        if now is None:
            raise ValueError("now must be provided when a window is given.")
        results = trailing_window(results, now, window).results

    eligible = [
        r
        for r in _newest_first(results)
        if r.status is CheckStatus.UP and r.response_time_ms is not None
    ]
    if limit is not None:
        eligible = eligible[:limit]
    return _mean_latency(eligible)


def current_status(results: Iterable[CheckResult]) -> Optional[CheckStatus]:
    """Returns the status of the newest check, or None if there is none."""
    ordered = _newest_first(results)
    return ordered[0].status if ordered else None


def hourly_series(
    results: Sequence[CheckResult], now: datetime, hours: int = 24
) -> List[HourlyBucket]:
    """
    Splits the last 'hours' hours into one bucket per hour, oldest first.

    Buckets are aligned to absolute hour boundaries in the timezone of 'now':
    the newest bucket starts at 'now' truncated to the hour and every earlier
    bucket starts exactly one hour before the next. A result belongs to a
    bucket when start <= checked_at < end and checked_at < now.

    Args:
        results: The check history of one or more targets.
        now: The reference time.
        hours: The number of buckets to produce.

    Returns:
        List[HourlyBucket]: Exactly 'hours' buckets.
    """
    if hours < 1:
        raise ValueError("hours must be a positive integer.")

    newest_start = now.replace(minute=0, second=0, microsecond=0)
    buckets: List[HourlyBucket] = []

    for offset in range(hours - 1, -1, -1):
        start = newest_start - offset * HOUR
        end = start + HOUR
        window = make_window(results, start, min(end, now))
        breakdown = status_breakdown(window.results)
        buckets.append(
            HourlyBucket(
                start=start,
                end=end,
                label=start.strftime("%H:00"),
                up=breakdown.up,
                down=breakdown.down,
                error=breakdown.error,
                total=breakdown.total,
                uptime_percent=(
                    _round_ratio(100 * breakdown.up, breakdown.total) if breakdown.total else None
                ),
                avg_response_time_ms=_mean_latency(window.results),
            )
        )

    return buckets


def target_health(target_id: str, results: Iterable[CheckResult], now: datetime) -> TargetHealth:
    """
    Builds the health summary of one target.

    Uptime covers the last 24 hours; latency averages the 10 newest 'up' checks.

    Args:
        target_id: The target to summarize.
        results: A check history that may contain other targets too.
        now: The reference time.

    Returns:
        TargetHealth: The target's summary, with None for anything without data.
    """
    own = _newest_first(r for r in results if r.target_id == target_id)
    return TargetHealth(
        target_id=target_id,
        current_status=own[0].status if own else None,
        uptime_percent=uptime_percentage(own, now, DAY),
        avg_response_time_ms=average_response_time(own),
        last_checked_at=own[0].checked_at if own else None,
    )


def dashboard_stats(
    targets: Sequence[Target],
    results: Iterable[CheckResult],
    now: datetime,
    window: timedelta = HOUR,
) -> DashboardStats:
    """
    Builds the summary cards of the dashboard.

    Args:
        targets: Every registered target, active or not.
        results: The check history of all targets.
        now: The reference time.
        window: The trailing window the status counts cover.

    Returns:
        DashboardStats: Target counts and the status counts of recent checks.
    """
    breakdown = status_breakdown(results, now, window)
    return DashboardStats(
        total_targets=len(targets),
        active_targets=sum(1 for t in targets if t.active),
        up=breakdown.up,
        down=breakdown.down,
        error=breakdown.error,
        recent_checks=breakdown.total,
    )
