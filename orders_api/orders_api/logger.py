"""Logger module for the Orders API."""

import os

from logging_utils.config import get_kafka_logger, get_search_logger, setup_service_logger

SERVICE_NAME = "orders-api"

logger = setup_service_logger(
    SERVICE_NAME,
    log_level=os.getenv("LOG_LEVEL", "INFO"),
    log_file=os.getenv("LOG_FILE") or None,
)

kafka_logger = get_kafka_logger(SERVICE_NAME)
search_logger = get_search_logger(SERVICE_NAME)

__all__ = ["logger", "kafka_logger", "search_logger"]
