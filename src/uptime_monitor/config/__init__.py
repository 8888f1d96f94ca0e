"""
Configuration module for the uptime monitoring system.

This module provides functionality to parse command-line arguments and environment
variables to create a configuration context for the monitoring system. It defines
default values and help text for all configurable parameters.
"""

import argparse
import os
from typing import Any, List, Optional
from uuid import uuid4

from uptime_monitor.config.constants import (
    DEFAULT_CYCLE_INTERVAL,
    DEFAULT_DB_POOL_SIZE,
    DEFAULT_DSN,
    DEFAULT_HTTP_HOST,
    DEFAULT_HTTP_PORT,
    DEFAULT_INITIAL_DELAY,
    DEFAULT_LOGGING_CONFIG_FILE,
    DEFAULT_LOGGING_TYPE,
    DEFAULT_MAX_CONCURRENCY,
    DEFAULT_PROBE_TIMEOUT,
    DEFAULT_SCHEDULING_POLICY,
    DEFAULT_WORKER_ID_PREFIX,
)
from uptime_monitor.config.monitoring_context import MonitoringContext

SCHEDULING_POLICIES = ("due", "all")


def get_context(argv: Optional[List[str]] = None) -> MonitoringContext:
    """
    Parse command-line arguments and environment variables to create a configuration context.

    This function creates an argument parser with options for all configurable aspects
    of the monitoring system. For each option, it first checks for a command-line argument,
    then falls back to an environment variable, and finally uses a default value.

    Args:
        argv: The arguments to parse, or None to read sys.argv.

    Returns:
        MonitoringContext: A configuration context object containing all parsed settings.
    """
    parser = argparse.ArgumentParser(
        description="Periodically checks registered HTTP endpoints and records their uptime."
    )

    parser.add_argument(
        "-dsn",
        type=str,
        default=os.getenv("UPTIME_MONITOR_DSN", DEFAULT_DSN),
        help="Specifies the DSN (connection string) for the PostgreSQL database.\n"
        "If not provided, the value is read from the UPTIME_MONITOR_DSN environment variable.\n"
        f"If that is also absent, a default value for a local database is used: {DEFAULT_DSN}",
    )

    parser.add_argument(
        "-wid",
        "--worker-id",
        type=str,
        default=os.getenv("UPTIME_MONITOR_WORKER_ID", f"{DEFAULT_WORKER_ID_PREFIX}{uuid4()}"),
        help="Specifies the worker ID for the monitoring service.\n"
        "If not provided, the value is read from the UPTIME_MONITOR_WORKER_ID environment variable.\n"
        f"If that is also absent, the default value will be {DEFAULT_WORKER_ID_PREFIX}uuid4().",
    )

    parser.add_argument(
        "-ps",
        "--db-pool-size",
        type=int,
        default=int(os.getenv("UPTIME_MONITOR_DB_POOL_SIZE", DEFAULT_DB_POOL_SIZE)),
        help="Specifies the maximum number of connections in the database connection pool.\n"
        "If not provided, the value is read from the UPTIME_MONITOR_DB_POOL_SIZE environment variable.\n"
        f"If that is also absent, a default value of {DEFAULT_DB_POOL_SIZE} is used.",
    )

    parser.add_argument(
        "-mc",
        "--max-concurrency",
        type=int,
        default=int(os.getenv("UPTIME_MONITOR_MAX_CONCURRENCY", DEFAULT_MAX_CONCURRENCY)),
        help="Specifies the maximum number of checks running at the same time.\n"
        "If not provided, the value is read from the UPTIME_MONITOR_MAX_CONCURRENCY environment variable.\n"
        f"If that is also absent, a default value of {DEFAULT_MAX_CONCURRENCY} is used.",
    )

    parser.add_argument(
        "-pt",
        "--probe-timeout",
        type=int,
        default=int(os.getenv("UPTIME_MONITOR_PROBE_TIMEOUT", DEFAULT_PROBE_TIMEOUT)),
        help="Specifies the timeout in seconds for a single HTTP check.\n"
        "If not provided, the value is read from the UPTIME_MONITOR_PROBE_TIMEOUT environment variable.\n"
        f"If that is also absent, a default value of {DEFAULT_PROBE_TIMEOUT} seconds is used.",
    )

    parser.add_argument(
        "-id",
        "--initial-delay",
        type=int,
        default=int(os.getenv("UPTIME_MONITOR_INITIAL_DELAY", DEFAULT_INITIAL_DELAY)),
        help="Specifies how many seconds to wait before the first check cycle.\n"
        "If not provided, the value is read from the UPTIME_MONITOR_INITIAL_DELAY environment variable.\n"
        f"If that is also absent, a default value of {DEFAULT_INITIAL_DELAY} seconds is used.",
    )

    parser.add_argument(
        "-ci",
        "--cycle-interval",
        type=int,
        default=int(os.getenv("UPTIME_MONITOR_CYCLE_INTERVAL", DEFAULT_CYCLE_INTERVAL)),
        help="Specifies how many seconds to wait between check cycles.\n"
        "If not provided, the value is read from the UPTIME_MONITOR_CYCLE_INTERVAL environment variable.\n"
        f"If that is also absent, a default value of {DEFAULT_CYCLE_INTERVAL} seconds is used.",
    )

    parser.add_argument(
        "-sp",
        "--scheduling-policy",
        type=str,
        default=os.getenv("UPTIME_MONITOR_SCHEDULING_POLICY", DEFAULT_SCHEDULING_POLICY),
        help="Specifies which active targets a cycle checks.\n"
        "Allowed values: due (only targets whose check interval has elapsed), all (every active target).\n"
        "If not provided, the value is read from the UPTIME_MONITOR_SCHEDULING_POLICY environment variable.\n"
        f"If that is also absent, a default value of {DEFAULT_SCHEDULING_POLICY} is used.",
    )

    parser.add_argument(
        "-H",
        "--http-host",
        type=str,
        default=os.getenv("UPTIME_MONITOR_HTTP_HOST", DEFAULT_HTTP_HOST),
        help="Specifies the interface the trigger API listens on.\n"
        "If not provided, the value is read from the UPTIME_MONITOR_HTTP_HOST environment variable.\n"
        f"If that is also absent, a default value of {DEFAULT_HTTP_HOST} is used.",
    )

    parser.add_argument(
        "-p",
        "--http-port",
        type=int,
        default=int(os.getenv("UPTIME_MONITOR_HTTP_PORT", DEFAULT_HTTP_PORT)),
        help="Specifies the port the trigger API listens on.\n"
        "If not provided, the value is read from the UPTIME_MONITOR_HTTP_PORT environment variable.\n"
        f"If that is also absent, a default value of {DEFAULT_HTTP_PORT} is used.",
    )

    parser.add_argument(
        "-lt",
        "--logging-type",
        type=str,
        default=os.getenv("UPTIME_MONITOR_LOGGING_TYPE", DEFAULT_LOGGING_TYPE),
        help="Specifies the logging configuration type to use.\n"
        "Allowed values: dev, prod, custom (case insensitive).\n"
        "For 'dev' and 'prod', system will use built-in configurations.\n"
        "For 'custom', the --logging-config-file argument is required.",
    )

    parser.add_argument(
        "-lcf",
        "--logging-config-file",
        type=str,
        default=os.getenv("UPTIME_MONITOR_LOGGING_CONFIG_FILE", DEFAULT_LOGGING_CONFIG_FILE),
        help="Path to custom logging configuration file.\n"
        "Required when --logging-type is set to 'custom'.",
    )

    # Parse the command-line arguments
    args: Any = parser.parse_args(argv)

    scheduling_policy = args.scheduling_policy.lower()
    if scheduling_policy not in SCHEDULING_POLICIES:
        parser.error(
            f"Invalid scheduling policy: {args.scheduling_policy}. "
            f"Allowed values are: {', '.join(SCHEDULING_POLICIES)}"
        )

    # Create and return a MonitoringContext with the parsed settings
    return MonitoringContext(
        dsn=args.dsn,
        worker_id=args.worker_id,
        logging_type=args.logging_type,
        logging_config_file=args.logging_config_file,
        db_pool_size=args.db_pool_size,
        max_concurrency=args.max_concurrency,
        probe_timeout=args.probe_timeout,
        initial_delay=args.initial_delay,
        cycle_interval=args.cycle_interval,
        scheduling_policy=scheduling_policy,
        http_host=args.http_host,
        http_port=args.http_port,
    )
