"""
Logging configuration.

On Cloud Run, logs go to Google Cloud Logging; locally they are written
to stdout with any json_fields passed through `extra` appended.
"""

import json
import logging
import os
import sys

from store import config

# Flag to track if logging is already configured
_logging_configured = False


class LocalFormatter(logging.Formatter):
    """Formatter that appends json_fields from the extra dict."""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)

        json_fields = getattr(record, "json_fields", None)
        if json_fields:
            fields_str = json.dumps(json_fields, indent=2, default=str)
            message = f"{message}\n{fields_str}"

        return message


def setup_logging(service_name: str = config.SERVICE_NAME, level: str | None = None):
    """
    Configure the root logger once per process.

    Args:
        service_name: Name of the service for log identification
        level: Log level name; defaults to LOG_LEVEL
    """
    global _logging_configured

    if _logging_configured:
        return

    log_level = logging.getLevelName(level or config.LOG_LEVEL)

    # K_SERVICE is set by Cloud Run
    if os.getenv("K_SERVICE"):
        _setup_cloud_logging(service_name, log_level)
    else:
        _setup_local_logging(log_level)

    # SQL statements are logged by SQLAlchemy itself when SQL_ECHO is on
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if config.SQL_ECHO else logging.WARNING
    )

    _logging_configured = True


def _setup_cloud_logging(service_name: str, log_level: int):
    try:
        import google.cloud.logging

        client = google.cloud.logging.Client()
        client.setup_logging(log_level=log_level)

        logging.info("Cloud Logging configured for service: %s", service_name)
    except Exception as e:
        # Fall back to local logging if Cloud Logging setup fails
        _setup_local_logging(log_level)
        logging.warning("Failed to setup Cloud Logging, using local logging: %s", e)


def _setup_local_logging(log_level: int):
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        LocalFormatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.addHandler(handler)
