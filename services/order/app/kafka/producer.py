import json
from kafka import KafkaProducer
from app.core.config import settings
from app.core.logging import get_logger

logger = get_logger(__name__)

_producer = None

def _get_producer() -> KafkaProducer:
    global _producer
    if _producer is None:
        _producer = KafkaProducer(
            bootstrap_servers=[settings.KAFKA_BOOTSTRAP],
            value_serializer=lambda v: json.dumps(v).encode("utf-8"),
            key_serializer=lambda v: (v.encode("utf-8") if isinstance(v, str) else v),
            linger_ms=10,
            retries=5,
        )
    return _producer

def send(topic: str, key: str, value: dict):
    if not settings.KAFKA_ENABLED:
        logger.debug("kafka disabled, dropping event", topic=topic, type=value.get("type"))
        return
    p = _get_producer()
    p.send(topic, key=key, value=value)
    p.flush(5)

class KafkaEventPublisher:
    """Publishes order lifecycle events to the order events topic."""

    def __init__(self, topic: str | None = None):
        self.topic = topic or settings.TOPIC_ORDER_EVENTS

    def publish(self, event: dict) -> None:
        send(self.topic, key=str(event.get("order_id", "")), value=event)
