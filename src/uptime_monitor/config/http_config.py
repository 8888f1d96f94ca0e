"""
HTTP client configuration module for the uptime monitoring system.

This module provides functionality to create the aiohttp client session shared
by every probe. The session is built once at startup and injected into the
prober.
"""

import logging

import aiohttp

from uptime_monitor.config import MonitoringContext
from uptime_monitor.config.constants import DEFAULT_USER_AGENT

# Module logger
logger = logging.getLogger(__name__)


def get_http_session(context: MonitoringContext) -> aiohttp.ClientSession:
    """
    Create and configure an HTTP client session based on the provided configuration.

    The connection limit matches the probe concurrency so a cycle never opens
    more outbound connections than it runs probes. The session has no timeout
    of its own; the prober bounds every request.

    Args:
        context: Configuration context containing HTTP client settings.

    Returns:
        aiohttp.ClientSession: A configured HTTP client session that can be used to make HTTP requests.
    """
    connector = aiohttp.TCPConnector(limit=context.max_concurrency)
    logger.debug(f"HTTP session connection limit: {context.max_concurrency}")
    return aiohttp.ClientSession(
        connector=connector,
        headers={"User-Agent": DEFAULT_USER_AGENT},
        timeout=aiohttp.ClientTimeout(total=None),
    )
