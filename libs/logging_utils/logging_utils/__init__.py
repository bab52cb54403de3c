"""Logging utilities for the orders services."""

from .config import get_kafka_logger, get_search_logger, setup_service_logger

__all__ = [
    "setup_service_logger",
    "get_kafka_logger",
    "get_search_logger",
]
