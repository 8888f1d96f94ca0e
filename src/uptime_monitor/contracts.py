"""
Core interfaces for the uptime monitoring system.

This module defines the abstract base classes that form the boundary of the
monitoring engine. The engine reads targets from a TargetRegistry, checks them
with a Prober and writes the outcomes to a ResultStore; concrete storage and
transport are pluggable implementations of these contracts.
"""

import abc
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence

from .domain import CheckResult, CheckStatus, Target


class TargetRegistry(abc.ABC):
    """
    Abstract interface for the source of monitoring targets.

    The engine never writes to the registry. Implementations should raise on
    failure; the scheduler turns the exception into an aborted cycle.
    """

    @abc.abstractmethod
    async def list_active_targets(self) -> List[Target]:
        """
        Returns every target whose 'active' flag is set.

        Returns:
            List[Target]: The active targets, possibly empty.
        """
        pass

    @abc.abstractmethod
    async def list_targets(self) -> List[Target]:
        """
        Returns every registered target, active or not.

        Returns:
            List[Target]: All targets, possibly empty.
        """
        pass


class ResultStore(abc.ABC):
    """
    Abstract interface for the append-only log of check results.

    Results are keyed by target and timestamp; insertion order carries no
    meaning.
    """

    @abc.abstractmethod
    async def append_checks(self, results: Sequence[CheckResult]) -> None:
        """
        Appends a batch of check results.

        The batch must be atomic from the caller's point of view: either every
        record is visible afterwards or none is.

        Args:
            results: The check results of one cycle.

        Raises:
            Exception: If the batch could not be written.
        """
        pass

    @abc.abstractmethod
    async def list_checks(self, target_id: Optional[str], since: datetime) -> List[CheckResult]:
        """
        Returns the check results recorded at or after 'since', newest first.

        Args:
            target_id: The target to read, or None for every target.
            since: The oldest 'checked_at' to include.

        Returns:
            List[CheckResult]: The matching results ordered newest first.
        """
        pass

    @abc.abstractmethod
    async def latest_checks(
        self, target_id: str, limit: int, status: Optional[CheckStatus] = None
    ) -> List[CheckResult]:
        """
        Returns the newest check results of one target, regardless of age.

        Args:
            target_id: The target to read.
            limit: The maximum number of results to return.
            status: Only return results with this status, or None for any.

        Returns:
            List[CheckResult]: At most 'limit' results ordered newest first.
        """
        pass

    @abc.abstractmethod
    async def last_checked(self, target_ids: Iterable[str]) -> Dict[str, datetime]:
        """
        Returns the most recent 'checked_at' of each given target.

        Targets that were never checked are absent from the mapping.

        Args:
            target_ids: The targets to look up.

        Returns:
            Dict[str, datetime]: The latest check time keyed by target id.
        """
        pass


class Prober(abc.ABC):
    """
    Abstract interface for a component that performs the check of a single target.

    Its responsibility is to encapsulate the network I/O for a given Target
    and return a classified result.
    """

    @abc.abstractmethod
    async def probe(self, target: Target) -> CheckResult:
        """
        Performs one liveness check against the given target.

        Implementations must not raise: timeouts, transport failures and
        unsuccessful status codes are all reported through the returned
        CheckResult.

        Args:
            target: The Target to check.

        Returns:
            CheckResult: The classified outcome of the check.
        """
        pass
