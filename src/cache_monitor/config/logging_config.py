"""
Logging setup for the cache monitoring system.

The built-in configurations ship next to this module as dictConfig JSON files;
a custom configuration is any such file given on the command line. Every log
record is tagged with an ``instance_id`` attribute so that several monitors can
share one log sink.
"""

import json
import logging.config
import os
from typing import Any, Dict

from cache_monitor.config.monitoring_context import MonitoringContext

BUILT_IN_CONFIGS: Dict[str, str] = {
    "dev": "logging-config-dev.json",
    "prod": "logging-config-prod.json",
}
CUSTOM_LOGGING_TYPE = "custom"


def configure_logging(context: MonitoringContext) -> None:
    """
    Configure logging from the context and tag records with the instance ID.

    Args:
        context: Configuration context containing logging settings.

    Raises:
        ValueError: If the logging type is missing or unknown, or if the 'custom'
            type is used without a configuration file.
        RuntimeError: If the configuration file cannot be loaded.
    """
    _load_logging_config(_resolve_config_file(context))
    _install_instance_filter(logging.getLogger(), context.instance_id)
    logging.debug("Logging configured and InstanceIdFilter added.")


def _resolve_config_file(context: MonitoringContext) -> str:
    """Returns the path of the dictConfig file selected by the context."""
    logging_type = context.logging_type.lower()
    if not logging_type:
        raise ValueError("Logging type must be provided.")
    if logging_type in BUILT_IN_CONFIGS:
        return _get_local_package_file_path(BUILT_IN_CONFIGS[logging_type])
    if logging_type == CUSTOM_LOGGING_TYPE:
        if not context.logging_config_file:
            raise ValueError("Custom logging configuration file must be provided.")
        return context.logging_config_file

    allowed = ", ".join([*BUILT_IN_CONFIGS, CUSTOM_LOGGING_TYPE])
    raise ValueError(f"Invalid logging type: {context.logging_type}. Allowed values are: {allowed}")


def _install_instance_filter(root_logger: logging.Logger, instance_id: str) -> None:
    # Logger filters do not see records propagated from child loggers.
    instance_filter = _InstanceIdFilter(instance_id=instance_id)
    root_logger.addFilter(instance_filter)
    for handler in root_logger.handlers:
        handler.addFilter(instance_filter)


def _load_logging_config(config_file: str) -> None:
    """
    Read a dictConfig JSON file and apply it.

    Args:
        config_file: Path to the JSON file containing logging configuration.

    Raises:
        RuntimeError: If the file is missing, is not valid JSON, has no
            dictConfig version or is rejected by dictConfig.
    """
    try:
        with open(config_file) as f:
            config: Dict[str, Any] = json.load(f)
    except FileNotFoundError as err:
        raise RuntimeError(f"Logging config file not found: {config_file}") from err
    except json.JSONDecodeError as err:
        raise RuntimeError(f"Invalid JSON format in logging config file: {config_file}") from err

    if not isinstance(config, dict) or "version" not in config:
        raise RuntimeError(f"Logging config file has no dictConfig version: {config_file}")

    try:
        logging.config.dictConfig(config)
    except (ValueError, TypeError, AttributeError, ImportError) as err:
        raise RuntimeError(f"Error loading logging config: {err}") from err


def _get_local_package_file_path(config_file: str) -> str:
    """Returns the absolute path of a file shipped in this package directory."""
    return os.path.join(os.path.dirname(__file__), config_file)


class _InstanceIdFilter(logging.Filter):
    """
    Sets ``record.instance_id`` on every record it sees and never drops one.
    """

    def __init__(self, instance_id: str) -> None:
        super().__init__()
        self._instance_id: str = instance_id

    def filter(self, record: logging.LogRecord) -> bool:
        record.instance_id = self._instance_id
        return True
