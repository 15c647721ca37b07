from fastapi import Depends, Request
from sqlalchemy.orm import Session
from app.db.session import SessionLocal
from app.store.cart_store import RedisCartStore
from app.clients.catalog import CatalogClient
from app.kafka.producer import KafkaEventPublisher
from app.services.orders import OrderService

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def get_cart_store() -> RedisCartStore:
    return RedisCartStore()

def get_inventory() -> CatalogClient:
    return CatalogClient()

def get_event_publisher() -> KafkaEventPublisher:
    return KafkaEventPublisher()

def get_order_service(
    db: Session = Depends(get_db),
    cart: RedisCartStore = Depends(get_cart_store),
    inventory: CatalogClient = Depends(get_inventory),
    events: KafkaEventPublisher = Depends(get_event_publisher),
) -> OrderService:
    return OrderService(db, cart=cart, inventory=inventory, events=events)

async def json_body(request: Request) -> dict:
    """Raw JSON body; anything that is not a JSON object is treated as empty."""
    try:
        payload = await request.json()
    except ValueError:
        return {}
    return payload if isinstance(payload, dict) else {}
