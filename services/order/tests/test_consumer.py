import time

from app.db.models import OrderStatus
from app.kafka import consumer
from app.schemas import CreateFromCartData


def test_payment_succeeded_confirms_order(service, cart, inventory):
    cart.put("cust@example.com", 3, qty=1, unit_price_cents=900)
    order = service.create_from_cart("cust@example.com", CreateFromCartData())

    consumer.process_event({"type": "payment.succeeded", "order_id": order.id, "amount_cents": 900}, service)

    assert service.get(order.id).status == OrderStatus.CONFIRMED
    assert inventory.calls[-1] == ("commit", [(3, 1)])


def test_other_events_are_ignored(service, cart, inventory):
    cart.put("cust@example.com", 3, qty=1, unit_price_cents=900)
    order = service.create_from_cart("cust@example.com", CreateFromCartData())

    consumer.process_event({"type": "payment.failed", "order_id": order.id}, service)
    consumer.process_event({"type": "payment.succeeded"}, service)

    assert service.get(order.id).status == OrderStatus.PENDING
    assert [c[0] for c in inventory.calls] == ["reserve"]


def test_start_is_noop_when_kafka_disabled(monkeypatch):
    monkeypatch.setattr(consumer.settings, "KAFKA_ENABLED", False)
    consumer.start()
    assert consumer._thread is None


class FakeKafkaConsumer:
    def __init__(self, *topics, **config):
        self.topics = topics
        self.polls = 0
        self.closed = False
        FakeKafkaConsumer.instances.append(self)

    def poll(self, timeout_ms=0):
        self.polls += 1
        time.sleep(timeout_ms / 1000)
        return {}

    def close(self):
        self.closed = True


def test_stop_joins_idle_consumer(db, monkeypatch):
    FakeKafkaConsumer.instances = []
    monkeypatch.setattr(consumer, "KafkaConsumer", FakeKafkaConsumer)
    monkeypatch.setattr(consumer, "SessionLocal", lambda: db)
    monkeypatch.setattr(consumer, "POLL_TIMEOUT_MS", 10)
    monkeypatch.setattr(consumer.settings, "KAFKA_ENABLED", True)

    consumer.start()
    thread = consumer._thread
    assert thread is not None

    consumer.stop(timeout=2)

    assert not thread.is_alive()
    assert consumer._thread is None
    fake = FakeKafkaConsumer.instances[0]
    assert fake.closed
    assert fake.topics == (consumer.settings.TOPIC_PAYMENT_EVENTS,)


def test_stop_without_consumer_is_harmless():
    consumer.stop()
    assert consumer._thread is None
