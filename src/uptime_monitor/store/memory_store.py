"""
In-memory implementations of the TargetRegistry and ResultStore interfaces.

These hold their state in process memory. They back the test suite and can
serve an aggregator snapshot when no database is configured.
"""

import asyncio
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence

from uptime_monitor.contracts import ResultStore, TargetRegistry
from uptime_monitor.domain import CheckResult, CheckStatus, Target, validate_target


class InMemoryTargetRegistry(TargetRegistry):
    """A registry over a list of targets, kept in registration order."""

    def __init__(self, targets: Optional[Iterable[Target]] = None) -> None:
        self._targets: Dict[str, Target] = {}
        for target in targets or []:
            self.add(target)

    def add(self, target: Target) -> None:
        """
        Registers a target, replacing any target with the same id.

        Raises:
            ValueError: If the target fails validation.
        """
        self._targets[target.id] = validate_target(target)

    def set_active(self, target_id: str, active: bool) -> None:
        self._targets[target_id] = self._targets[target_id]._replace(active=active)

    def remove(self, target_id: str) -> None:
        self._targets.pop(target_id, None)

    async def list_active_targets(self) -> List[Target]:
        return [target for target in self._targets.values() if target.active]

    async def list_targets(self) -> List[Target]:
        return list(self._targets.values())


class InMemoryResultStore(ResultStore):
    """
    An append-only list of check results.

    A batch is appended under a lock in one step, so readers see all of it or
    none of it.
    """

    def __init__(self) -> None:
        self._results: List[CheckResult] = []
        self._lock = asyncio.Lock()

    @property
    def results(self) -> List[CheckResult]:
        return list(self._results)

    async def append_checks(self, results: Sequence[CheckResult]) -> None:
        async with self._lock:
            self._results.extend(results)

    async def list_checks(self, target_id: Optional[str], since: datetime) -> List[CheckResult]:
        async with self._lock:
            selected = [
                r
                for r in self._results
                if r.checked_at >= since and (target_id is None or r.target_id == target_id)
            ]
        return sorted(selected, key=lambda r: r.checked_at, reverse=True)

    async def latest_checks(
        self, target_id: str, limit: int, status: Optional[CheckStatus] = None
    ) -> List[CheckResult]:
        async with self._lock:
            selected = [
                r
                for r in self._results
                if r.target_id == target_id and (status is None or r.status is status)
            ]
        return sorted(selected, key=lambda r: r.checked_at, reverse=True)[:limit]

    async def last_checked(self, target_ids: Iterable[str]) -> Dict[str, datetime]:
        wanted = set(target_ids)
        latest: Dict[str, datetime] = {}
        async with self._lock:
            for r in self._results:
                if r.target_id in wanted and (
                    r.target_id not in latest or r.checked_at > latest[r.target_id]
                ):
                    latest[r.target_id] = r.checked_at
        return latest
