"""Logging setup for the pipeline's Lambda functions.

Every record written through :func:`setup_logger` carries the request id of
the Lambda invocation being served, so lines from the consumer, its stores
and its worker threads can be grouped per invocation in CloudWatch.
"""

import os
import sys
import logging
from typing import Any, Optional

DEFAULT_LOGGER_NAME = "image-metadata-pipeline"
NO_REQUEST_ID = "-"

STRUCTURED_FORMAT = (
    "%(asctime)s | %(aws_request_id)s | %(name)s | %(levelname)-8s | "
    "%(filename)s:%(lineno)d | %(funcName)s() | %(message)s"
)
SIMPLE_FORMAT = "%(asctime)s - %(aws_request_id)s - %(levelname)s - %(message)s"

# Lambda serves one invocation per process at a time; batch worker threads share it
_current_request_id = NO_REQUEST_ID


def bind_request_id(lambda_context: Any) -> str:
    """Remember the request id of the invocation now being served."""
    global _current_request_id
    _current_request_id = getattr(lambda_context, "aws_request_id", None) or NO_REQUEST_ID
    return _current_request_id


def current_request_id() -> str:
    return _current_request_id


class RequestIdFilter(logging.Filter):
    """Stamps each record with the current Lambda request id."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.aws_request_id = _current_request_id
        return True


def setup_logger(
    name: str = DEFAULT_LOGGER_NAME,
    level: Optional[str] = None,
    format_type: str = "structured",
) -> logging.Logger:
    """
    Configure a stdout logger for a pipeline component.

    Args:
        name: Logger name (defaults to "image-metadata-pipeline")
        level: Log level override (defaults to LOG_LEVEL or INFO)
        format_type: "structured" (CloudWatch friendly, with source location)
            or "simple"

    Returns:
        Configured logger instance

    Environment Variables:
        LOG_LEVEL: DEBUG, INFO, WARNING, ERROR or CRITICAL
        LOG_FORMAT: overrides format_type
    """
    logger = logging.getLogger(name)

    level_name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    logger.setLevel(getattr(logging, level_name, logging.INFO))

    # Warm Lambda containers call this again on every cached consumer build
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.addFilter(RequestIdFilter())

        if os.getenv("LOG_FORMAT", format_type).lower() == "structured":
            formatter = logging.Formatter(STRUCTURED_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
        else:
            formatter = logging.Formatter(SIMPLE_FORMAT)

        handler.setFormatter(formatter)
        logger.addHandler(handler)

    # The Lambda runtime installs its own root handler
    logger.propagate = False
    return logger


def get_logger(name: str = DEFAULT_LOGGER_NAME) -> logging.Logger:
    """Return a logger configured by :func:`setup_logger`."""
    return setup_logger(name)
