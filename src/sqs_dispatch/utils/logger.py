"""
Module: logger.py
Description: Structured logging configuration for the SQS dispatch client.

Configures structlog for JSON output so that queue errors reported by
worker processes can be shipped to CloudWatch Logs or any line-based
collector without further parsing.

Key Components:
- JSON output with timestamp and level
- configure_logging(): opt-in setup for scripts and applications; the
  library itself never changes the process-wide structlog configuration
- get_logger() helper function

Dependencies: structlog, logging, datetime
"""

import logging
from datetime import datetime, timezone

import structlog


def _add_timestamp(logger, method_name, event_dict):
    """Add ISO 8601 UTC timestamp to log entries."""
    event_dict["timestamp"] = datetime.now(timezone.utc).isoformat()
    return event_dict


def _add_log_level(logger, method_name, event_dict):
    """Add log level to event dictionary."""
    event_dict["level"] = method_name.upper()
    return event_dict


def configure_logging(log_level: str = "INFO") -> None:
    """
    Configure structlog for JSON output.

    Safe to call more than once; the last call wins. Loggers obtained
    before the call pick up the new configuration on their next use.

    Args:
        log_level: Minimum level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            _add_timestamp,
            _add_log_level,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(log_level.upper())
        ),
        logger_factory=structlog.WriteLoggerFactory(),
        cache_logger_on_first_use=False,
    )


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Get a configured structlog logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger instance

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.error("Error retrieving message", task_key="mailer__deliver")
        {"event": "Error retrieving message", "task_key": "mailer__deliver", "timestamp": "...", "level": "ERROR"}
    """
    return structlog.get_logger(name)
