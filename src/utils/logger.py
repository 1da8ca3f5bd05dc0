"""Structured JSON logging configuration."""

import logging
import sys
from typing import Dict, Optional

from pythonjsonlogger import jsonlogger


def setup_logger(
    name: str = "queue_metrics",
    level: str = "INFO",
    static_fields: Optional[Dict[str, str]] = None
) -> logging.Logger:
    """
    Configure structured JSON logging.

    Publisher log lines come from a background thread, so the thread name
    is part of every record.

    Args:
        name: Logger name
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        static_fields: Extra fields added to every record (e.g. service name)

    Returns:
        logging.Logger: Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level.upper()))

    # Remove existing handlers to avoid duplicates
    logger.handlers = []

    handler = logging.StreamHandler(sys.stdout)
    formatter = jsonlogger.JsonFormatter(
        '%(asctime)s %(name)s %(threadName)s %(levelname)s %(message)s',
        timestamp=True,
        static_fields=static_fields or {}
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)

    logger.propagate = False

    return logger
