import os

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("KAFKA_ENABLED", "false")

import jwt
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.api import deps
from app.core.config import settings
from app.db.session import Base
from app.main import app
from app.services.orders import OrderService


class FakeCart:
    def __init__(self):
        self.carts = {}

    def put(self, email, product_id, qty, unit_price_cents, title="Item", image=None):
        item = {"product_id": product_id, "qty": qty, "unit_price_cents": unit_price_cents, "title": title}
        if image:
            item["image"] = image
        self.carts.setdefault(email, {})[str(product_id)] = item

    def get_items(self, email):
        return list(self.carts.get(email, {}).values())

    def clear(self, email):
        self.carts.pop(email, None)


class FakeInventory:
    def __init__(self):
        self.calls = []
        self.fail_with = None

    def _record(self, action, items):
        if self.fail_with is not None:
            raise self.fail_with
        self.calls.append((action, [(it["product_id"], it["qty"]) for it in items]))

    def reserve(self, items):
        self._record("reserve", items)

    def commit(self, items):
        self._record("commit", items)

    def release(self, items):
        self._record("release", items)


class FakeEvents:
    def __init__(self):
        self.events = []

    def publish(self, event):
        self.events.append(event)

    def types(self):
        return [e["type"] for e in self.events]


@pytest.fixture()
def db():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    Session = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    session = Session()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(engine)
        engine.dispose()


@pytest.fixture()
def cart():
    return FakeCart()


@pytest.fixture()
def inventory():
    return FakeInventory()


@pytest.fixture()
def events():
    return FakeEvents()


@pytest.fixture()
def service(db, cart, inventory, events):
    return OrderService(db, cart=cart, inventory=inventory, events=events)


@pytest.fixture()
def client(db, cart, inventory, events):
    app.dependency_overrides[deps.get_db] = lambda: db
    app.dependency_overrides[deps.get_cart_store] = lambda: cart
    app.dependency_overrides[deps.get_inventory] = lambda: inventory
    app.dependency_overrides[deps.get_event_publisher] = lambda: events
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def make_token(email="cust@example.com", role="customer", token_type="access"):
    return jwt.encode(
        {"sub": email, "role": role, "type": token_type},
        settings.JWT_SECRET,
        algorithm=settings.JWT_ALGORITHM,
    )


def auth_headers(email="cust@example.com", role="customer"):
    return {"Authorization": f"Bearer {make_token(email, role)}"}


@pytest.fixture()
def auth():
    return auth_headers
