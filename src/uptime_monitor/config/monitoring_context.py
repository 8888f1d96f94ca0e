"""
Configuration context for the uptime monitoring system.

This module defines a data structure that holds all configuration parameters
for the monitoring system. It serves as a central point for passing configuration
throughout the application.
"""

from typing import NamedTuple


class MonitoringContext(NamedTuple):
    """
    A data structure containing all configuration parameters for the monitoring system.

    This class is immutable and provides a type-safe way to pass configuration
    throughout the application. It is created by parsing command-line arguments
    and environment variables.

    Attributes:
        dsn: Database connection string for PostgreSQL.
        worker_id: Unique identifier for this worker instance.
        logging_type: Type of logging configuration to use (dev, prod, or custom).
        logging_config_file: Path to custom logging configuration file (if logging_type is 'custom').
        db_pool_size: Maximum number of connections in the database connection pool.
        max_concurrency: Maximum number of probes running at the same time.
        probe_timeout: Timeout in seconds for a single HTTP check.
        initial_delay: Seconds to wait before the first check cycle.
        cycle_interval: Seconds between two check cycles.
        scheduling_policy: Which active targets a cycle checks ('due' or 'all').
        http_host: Interface the trigger API listens on.
        http_port: Port the trigger API listens on.
    """

    dsn: str
    worker_id: str
    logging_type: str
    logging_config_file: str
    db_pool_size: int
    max_concurrency: int
    probe_timeout: int
    initial_delay: int
    cycle_interval: int
    scheduling_policy: str
    http_host: str
    http_port: int
