import threading, json
from kafka import KafkaConsumer
from sqlalchemy.orm import Session
from app.core.config import settings
from app.core.logging import get_logger
from app.db.session import SessionLocal
from app.clients.catalog import CatalogClient
from app.kafka.producer import KafkaEventPublisher
from app.services.orders import OrderService

logger = get_logger(__name__)

_stop_event = threading.Event()
_thread = None
# bounds how long stop() waits for the loop to notice the stop event
POLL_TIMEOUT_MS = 1000

def process_event(ev: dict, svc: OrderService):
    if ev.get("type") == "payment.succeeded":
        order_id = ev.get("order_id")
        if order_id is None:
            logger.warning("payment event without order_id", event=ev)
            return
        svc.confirm_payment(int(order_id))

def run_loop():
    consumer = KafkaConsumer(
        settings.TOPIC_PAYMENT_EVENTS,
        bootstrap_servers=[settings.KAFKA_BOOTSTRAP],
        group_id="order-service",
        value_deserializer=lambda v: json.loads(v.decode("utf-8")),
        enable_auto_commit=True,
        auto_offset_reset="earliest",
    )
    db: Session = SessionLocal()
    svc = OrderService(db, inventory=CatalogClient(), events=KafkaEventPublisher())
    logger.info("payment consumer started", topic=settings.TOPIC_PAYMENT_EVENTS)
    try:
        while not _stop_event.is_set():
            batches = consumer.poll(timeout_ms=POLL_TIMEOUT_MS)
            for records in batches.values():
                for msg in records:
                    try:
                        process_event(msg.value, svc)
                    except Exception:
                        db.rollback()
                        logger.exception("failed to process payment event", offset=msg.offset)
    finally:
        db.close()
        consumer.close()
        logger.info("payment consumer stopped")

def start():
    global _thread
    if not settings.KAFKA_ENABLED:
        logger.info("kafka disabled, payment consumer not started")
        return
    if _thread and _thread.is_alive(): return
    _stop_event.clear()
    _thread = threading.Thread(target=run_loop, daemon=True)
    _thread.start()

def stop(timeout: float = 5.0):
    global _thread
    _stop_event.set()
    if _thread and _thread.is_alive():
        _thread.join(timeout)
        if _thread.is_alive():
            logger.warning("payment consumer did not stop in time", timeout=timeout)
            return
    _thread = None
