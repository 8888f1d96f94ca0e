"""
HTTP prober implementation using the aiohttp library.

This module provides an implementation of the Prober interface that issues a
HEAD request through a shared aiohttp ClientSession, measures how long it
took and classifies the outcome as up, down or error.
"""

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Callable, Optional

import aiohttp

from uptime_monitor.contracts import Prober
from uptime_monitor.domain import CheckResult, CheckStatus, Target

# Module logger
logger = logging.getLogger(__name__)

DEFAULT_PROBE_TIMEOUT = 30


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def is_ok_status(status_code: int) -> bool:
    """
    Tells whether an HTTP status code counts as a successful check.

    Args:
        status_code: The HTTP status code of the response.

    Returns:
        bool: True for the 2xx range, False otherwise.
    """
    return 200 <= status_code < 300


class TransportTimeoutError(Exception):
    """A timeout raised by the HTTP client itself, before the probe budget expired."""


def describe_error(error: BaseException) -> str:
    """
    Produces a human-readable description of a transport failure.

    Args:
        error: The exception raised by the HTTP client.

    Returns:
        str: The exception message, or its class name when the message is empty.
    """
    return str(error) or type(error).__name__


class AiohttpProber(Prober):
    """
    A concrete implementation of Prober using the aiohttp library.

    The whole request, including DNS resolution and the TLS handshake, runs
    under a cancellation-based timeout, so a probe never takes much longer
    than its budget. The prober holds no per-check state and is safe to call
    concurrently for different targets.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        timeout: float = DEFAULT_PROBE_TIMEOUT,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        """
        Initializes the prober with a shared aiohttp ClientSession.

        Args:
            session: An active aiohttp.ClientSession to be used for requests.
            timeout: The budget in seconds for a single check.
            clock: Returns the timezone-aware time used for 'checked_at'.
        """
        if timeout <= 0:
            raise ValueError("timeout must be a positive number.")

        self._session: aiohttp.ClientSession = session
        self._timeout: float = timeout
        self._clock: Callable[[], datetime] = clock
        self._timeout_message: str = f"Request timeout ({timeout:g}s)"

    async def _request(self, target: Target) -> aiohttp.ClientResponse:
        try:
            async with self._session.request("HEAD", target.url, allow_redirects=True) as response:
                return response
        except asyncio.TimeoutError as e:
            # Only the expiry of the probe budget reports as a request timeout.
            raise TransportTimeoutError(describe_error(e)) from e

    async def probe(self, target: Target) -> CheckResult:
        """
        Issues a HEAD request to the target's URL and classifies the outcome.

        Args:
            target: The Target to check.

        Returns:
            CheckResult: 'up' for a 2xx response, 'down' for any other response,
                'error' when no response was received in time or at all.
        """
        logger.debug(f"Checking {target.name or target.id} ({target.url})")
        status = CheckStatus.ERROR
        status_code: Optional[int] = None
        error_message: Optional[str] = None
        start: float = time.monotonic()

        try:
            response = await asyncio.wait_for(self._request(target), timeout=self._timeout)
            status_code = response.status
            if is_ok_status(status_code):
                status = CheckStatus.UP
            else:
                status = CheckStatus.DOWN
                error_message = f"HTTP {status_code} {response.reason or ''}".rstrip()
        except asyncio.TimeoutError:
            error_message = self._timeout_message
        except Exception as e:
            error_message = describe_error(e)

        response_time_ms = round((time.monotonic() - start) * 1000)

        if status is CheckStatus.UP:
            logger.debug(f"{target.url}: up ({response_time_ms}ms)")
        else:
            logger.info(f"{target.url}: {status.value} - {error_message}")

        return CheckResult(
            target_id=target.id,
            status=status,
            response_time_ms=response_time_ms,
            status_code=status_code,
            error_message=error_message,
            checked_at=self._clock(),
        )
