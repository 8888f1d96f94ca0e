"""
Logging configuration module for the uptime monitoring system.

This module configures logging from a JSON dictConfig file: one of the
built-in 'dev' and 'prod' configurations packaged next to this module, or a
custom file. Every record handled by the root handlers carries a 'worker_id'
attribute so formatters can identify the worker instance.
"""

import json
import logging.config
import os
from typing import Any, Dict

from uptime_monitor.config import MonitoringContext

BUILT_IN_CONFIGS = {
    "dev": "logging-config-dev.json",
    "prod": "logging-config-prod.json",
}


def configure_logging(context: MonitoringContext) -> None:
    """
    Configure logging for the application based on the provided configuration.

    Supported logging types:
    - dev: Development logging configuration
    - prod: Production logging configuration
    - custom: Custom logging configuration from a specified file

    Args:
        context: Configuration context containing logging settings.

    Raises:
        ValueError: If the logging type is invalid or if a custom logging
            configuration file is not provided when using the 'custom' type.
        RuntimeError: If the configuration file cannot be loaded.
    """
    _load_logging_config(_resolve_config_file(context))
    _install_worker_id(context.worker_id)
    logging.getLogger(__name__).debug("Logging configured for worker %s.", context.worker_id)


def _resolve_config_file(context: MonitoringContext) -> str:
    """
    Select the configuration file matching the context's logging type.

    Args:
        context: Configuration context containing logging settings.

    Returns:
        str: Path of the JSON configuration file to load.
    """
    logging_type: str = context.logging_type.lower()
    if not logging_type:
        raise ValueError("Logging type must be provided.")
    if logging_type in BUILT_IN_CONFIGS:
        return _get_local_package_file_path(BUILT_IN_CONFIGS[logging_type])
    if logging_type == "custom":
        if not context.logging_config_file:
            raise ValueError("Custom logging configuration file must be provided.")
        return context.logging_config_file
    raise ValueError(
        f"Invalid logging type: {context.logging_type}. Allowed values are: dev, prod, custom"
    )


def _load_logging_config(config_file: str) -> None:
    """
    Load logging configuration from a JSON file and apply it with dictConfig.

    Args:
        config_file: Path to the JSON file containing logging configuration.

    Raises:
        RuntimeError: If the file is not found, contains invalid JSON, or
            if there is any other error loading the configuration.
    """
    try:
        with open(config_file) as f:
            config: Dict[str, Any] = json.load(f)
        logging.config.dictConfig(config)
    except FileNotFoundError as err:
        raise RuntimeError(f"Logging config file not found: {config_file}") from err
    except json.JSONDecodeError as err:
        raise RuntimeError(f"Invalid JSON format in logging config file: {config_file}") from err
    except Exception as err:
        raise RuntimeError(f"Error loading logging config: {str(err)}") from err


def _install_worker_id(worker_id: str) -> None:
    """
    Make every root handler stamp records with the given worker ID.

    Handler filters see records propagated from child loggers, unlike filters
    on the root logger itself. Handlers already carrying a WorkerIdFilter from
    the configuration file are updated in place.

    Args:
        worker_id: The unique identifier of the worker instance.
    """
    for handler in logging.getLogger().handlers:
        existing = [f for f in handler.filters if isinstance(f, WorkerIdFilter)]
        if existing:
            for worker_filter in existing:
                worker_filter.worker_id = worker_id
        else:
            handler.addFilter(WorkerIdFilter(worker_id=worker_id))


def _get_local_package_file_path(config_file: str) -> str:
    """
    Get the absolute path to a file in the same directory as this module.

    Args:
        config_file: Name of the file to locate.

    Returns:
        str: Absolute path to the specified file.
    """
    return os.path.join(os.path.dirname(__file__), config_file)


class WorkerIdFilter(logging.Filter):
    """
    A logging filter that injects the worker ID into every log record.

    Configuration files reference it by dotted path; the worker ID is filled
    in by configure_logging() once the context is known.
    """

    def __init__(self, worker_id: str = "-") -> None:
        super().__init__()
        self.worker_id: str = worker_id

    def filter(self, record: logging.LogRecord) -> bool:
        record.worker_id = self.worker_id
        return True
