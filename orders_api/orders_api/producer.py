"""Kafka producer for publishing order events."""

import json
from typing import Any, Optional, Union

from confluent_kafka import KafkaException, Producer
from pydantic import BaseModel

from .logger import kafka_logger as logger
from .schemas import OrderEvent


class OrderEventProducer:
    """Kafka producer for order-created and order-updated events.

    Messages are keyed by order id so every event of one order lands on the
    same partition and is consumed in order. Delivery is at-least-once:
    the broker must acknowledge on all in-sync replicas and the client
    retries idempotently.

    Attributes:
        _producer: The underlying Kafka producer instance.
        created_topic: Topic receiving order-created events.
        updated_topic: Topic receiving order-updated events.
    """

    def __init__(
        self,
        bootstrap_servers: str,
        client_id: str = "orders-api",
        created_topic: str = "order_created",
        updated_topic: str = "order_updated",
    ):
        """Initialize the Kafka producer.

        Args:
            bootstrap_servers (str): Comma-separated list of Kafka broker addresses.
            client_id (str): Client id reported to the brokers.
            created_topic (str): Topic for order-created events.
            updated_topic (str): Topic for order-updated events.
        """
        self._producer = Producer(
            {
                "bootstrap.servers": bootstrap_servers,
                "client.id": client_id,
                "acks": "all",
                "enable.idempotence": True,
                "message.timeout.ms": 5000,
                "partitioner": "consistent_random",  # Same key → same partition
            }
        )
        self.created_topic = created_topic
        self.updated_topic = updated_topic

    @property
    def producer(self):
        """Get the underlying Kafka producer instance."""
        return self._producer

    def _delivery_callback(self, err, msg):
        """Log the delivery report of one message.

        Args:
            err: Error that occurred during message delivery, if any.
            msg: Message that was delivered or failed.
        """
        if err:
            logger.error(f"Message failed delivery: {err} | topic={msg.topic()} | key={msg.key()}")
        else:
            logger.debug(f"Message delivered to {msg.topic()} [p:{msg.partition()}] | offset={msg.offset()}")

    def publish(self, topic: str, key: str, payload: Union[BaseModel, dict[str, Any]]) -> None:
        """Publish one JSON message.

        Args:
            topic (str): Destination topic.
            key (str): Message key, the order id for order events.
            payload: Pydantic model (serialized by alias) or plain dict.

        Raises:
            BufferError: If the producer's local queue is still full after a flush.
            KafkaException: If the client rejects the message.
        """
        if isinstance(payload, BaseModel):
            value = payload.model_dump_json(by_alias=True)
        else:
            value = json.dumps(payload, default=str)

        try:
            self._produce(topic, key, value)
        except BufferError:
            logger.warning("Producer buffer full, flushing...")
            self._producer.flush(5)
            self._produce(topic, key, value)

    def _produce(self, topic: str, key: str, value: str) -> None:
        self._producer.produce(
            topic=topic,
            key=key.encode("utf-8"),
            value=value.encode("utf-8"),
            on_delivery=self._delivery_callback,
        )
        self._producer.poll(0)  # Trigger delivery callbacks

    def publish_order_created(self, event: OrderEvent) -> None:
        self.publish(self.created_topic, event.id, event)

    def publish_order_updated(self, event: OrderEvent) -> None:
        self.publish(self.updated_topic, event.id, event)

    def is_connected(self, timeout: float = 5.0) -> bool:
        """Check that the brokers answer a metadata request."""
        try:
            return bool(self._producer.list_topics(timeout=timeout).brokers)
        except KafkaException as e:
            logger.error(f"Kafka connection failed: {e}")
            return False

    def flush(self, timeout: float = 10.0) -> int:
        """Wait for outstanding messages to be delivered.

        Args:
            timeout: Maximum time to wait in seconds

        Returns:
            int: Number of messages still pending.
        """
        remaining = self._producer.flush(timeout)
        if remaining > 0:
            logger.warning(f"{remaining} messages still pending delivery")
        return remaining

    def close(self, timeout: Optional[float] = 10.0) -> None:
        """Flush pending messages before shutdown."""
        self.flush(timeout)
        logger.info("Producer closed")
