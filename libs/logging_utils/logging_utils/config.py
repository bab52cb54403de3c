"""Logging configuration shared by the orders services."""

import sys
from typing import Optional

from loguru import logger as loguru_logger

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<magenta>{extra[service]}</magenta> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)

FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {extra[service]} | {name}:{function}:{line} - {message}"


def setup_service_logger(
    service_name: str,
    log_level: str = "INFO",
    log_file: Optional[str] = None,
) -> loguru_logger:
    """Configure loguru sinks for a service and return a bound logger.

    Existing sinks are replaced, so calling this twice does not duplicate
    output.

    Args:
        service_name: Name of the service (e.g., 'orders-api')
        log_level: Minimum level for every sink (default: INFO)
        log_file: Optional path of a rotating log file

    Returns:
        logger: Logger with ``service`` bound into every record
    """
    loguru_logger.remove()
    loguru_logger.configure(extra={"service": service_name})

    loguru_logger.add(
        sys.stderr,
        level=log_level,
        format=CONSOLE_FORMAT,
        colorize=True,
        enqueue=True,
        backtrace=True,
        diagnose=False,
    )

    if log_file:
        loguru_logger.add(
            log_file,
            level=log_level,
            format=FILE_FORMAT,
            rotation="10 MB",
            retention="1 week",
            compression="gz",
            enqueue=True,
        )

    return loguru_logger.bind(service=service_name)


def get_kafka_logger(service_name: str) -> loguru_logger:
    """Logger for Kafka producer activity.

    Sinks are left untouched; only the ``service`` field differs.
    """
    return loguru_logger.bind(service=f"{service_name}.kafka")


def get_search_logger(service_name: str) -> loguru_logger:
    """Logger for search index activity."""
    return loguru_logger.bind(service=f"{service_name}.search")
