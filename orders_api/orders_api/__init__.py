"""Orders API: stock-aware order management with Kafka and Elasticsearch propagation."""

__version__ = "0.1.0"
