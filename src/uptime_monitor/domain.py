"""
Domain models for the uptime monitoring system.

This module defines the core data structures used throughout the application,
including monitoring targets, check outcomes, cycle summaries and the derived
statistics produced by the aggregator. These models serve as the foundation
for the monitoring system's data flow.
"""

from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, List, NamedTuple, Optional

# Targets may not be checked more often than once a minute.
MIN_CHECK_INTERVAL = timedelta(seconds=60)


class CheckStatus(str, Enum):
    """
    The closed set of outcomes for a single probe.

    Inheriting from 'str' allows enum members to behave like strings,
    making them compatible with the database and JSON representations.
    """

    UP = "up"
    DOWN = "down"
    ERROR = "error"


class SchedulingPolicy(str, Enum):
    """
    Decides which active targets are probed in a cycle.

    DUE only probes targets whose check interval has elapsed since their last
    check, ALL probes every active target on every cycle.
    """

    DUE = "due"
    ALL = "all"


class Target(NamedTuple):
    """
    Represents a single endpoint under monitoring.

    This data structure corresponds to the columns of the 'websites' table.
    The engine only ever reads targets; they are created and edited by the
    registration flow.

    Attributes:
        id: The unique identifier of the target.
        url: The absolute URL to probe.
        check_interval: The minimum spacing between two checks of this target.
        active: Whether the target should be scheduled at all.
        name: A display name for the target.
    """

    id: str
    url: str
    check_interval: timedelta
    active: bool = True
    name: Optional[str] = None


class CheckResult(NamedTuple):
    """
    The outcome of one probe against one target.

    Attributes:
        target_id: The id of the Target that was checked.
        status: The classified outcome of the check.
        response_time_ms: Elapsed wall-clock time of the attempt in milliseconds.
        status_code: The HTTP status code, or None if no response was received.
        error_message: A description of the failure for 'down' and 'error' checks.
        checked_at: Timezone-aware completion time of the check.
    """

    target_id: str
    status: CheckStatus
    response_time_ms: Optional[int]
    status_code: Optional[int]
    error_message: Optional[str]
    checked_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "target_id": self.target_id,
            "status": self.status.value,
            "response_time_ms": self.response_time_ms,
            "status_code": self.status_code,
            "error_message": self.error_message,
            "checked_at": self.checked_at.isoformat(),
        }


class CycleSummary(NamedTuple):
    """
    Counts of check outcomes produced by one scheduler cycle.

    Attributes:
        total: The number of targets checked in the cycle.
        up: The number of 'up' results.
        down: The number of 'down' results.
        error: The number of 'error' results.
    """

    total: int
    up: int
    down: int
    error: int

    @classmethod
    def from_results(cls, results: List[CheckResult]) -> "CycleSummary":
        return cls(
            total=len(results),
            up=sum(1 for r in results if r.status is CheckStatus.UP),
            down=sum(1 for r in results if r.status is CheckStatus.DOWN),
            error=sum(1 for r in results if r.status is CheckStatus.ERROR),
        )

    def to_dict(self) -> Dict[str, int]:
        return dict(self._asdict())


class StatWindow(NamedTuple):
    """
    A half-open time interval [start, end) and the results that fall inside it.
    """

    start: datetime
    end: datetime
    results: List[CheckResult]


class StatusBreakdown(NamedTuple):
    """Counts of each status within a window."""

    up: int
    down: int
    error: int
    total: int

    def to_dict(self) -> Dict[str, int]:
        return dict(self._asdict())


class HourlyBucket(NamedTuple):
    """
    One slice of a bucketed series used for charting.

    'uptime_percent' and 'avg_response_time_ms' are None when the bucket
    has no data to compute them from.
    """

    start: datetime
    end: datetime
    label: str
    up: int
    down: int
    error: int
    total: int
    uptime_percent: Optional[int]
    avg_response_time_ms: Optional[int]

    def to_dict(self) -> Dict[str, Any]:
        data = dict(self._asdict())
        data["start"] = self.start.isoformat()
        data["end"] = self.end.isoformat()
        return data


class TargetHealth(NamedTuple):
    """The health summary shown for a single target."""

    target_id: str
    current_status: Optional[CheckStatus]
    uptime_percent: Optional[int]
    avg_response_time_ms: Optional[int]
    last_checked_at: Optional[datetime]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "target_id": self.target_id,
            "current_status": self.current_status.value if self.current_status else None,
            "uptime_percent": self.uptime_percent,
            "avg_response_time_ms": self.avg_response_time_ms,
            "last_checked_at": self.last_checked_at.isoformat() if self.last_checked_at else None,
        }


class DashboardStats(NamedTuple):
    """Summary counts for the dashboard cards."""

    total_targets: int
    active_targets: int
    up: int
    down: int
    error: int
    recent_checks: int

    def to_dict(self) -> Dict[str, int]:
        return dict(self._asdict())


def validate_target(target: Target) -> Target:
    """
    Checks that a target can be scheduled.

    Args:
        target: The target to validate.

    Returns:
        Target: The same target, unchanged.

    Raises:
        ValueError: If the id or url is blank or the check interval is below one minute.
    """
    if not target.id:
        raise ValueError("Target id must be provided.")
    if not target.url:
        raise ValueError(f"Target {target.id} has no url.")
    if target.check_interval < MIN_CHECK_INTERVAL:
        raise ValueError(
            f"Target {target.id} check interval must be at least "
            f"{int(MIN_CHECK_INTERVAL.total_seconds())} seconds, "
            f"got {target.check_interval.total_seconds():g}."
        )
    return target
